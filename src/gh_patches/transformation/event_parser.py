import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List
import tldextract
from pydantic import ValidationError
from gh_patches.transformation.models import CommitRecord, EnrichedEvent, RawEvent
from gh_patches.utils.config import DEFAULT_GITHUB_HOST
from gh_patches.utils.errors import ParseError
from gh_patches.utils.logger_util import get_logger


# logging configuration
logger = get_logger(__name__)

# The feed's own infrastructure shows up in every line's URL fields
BLACKLISTED_DOMAINS = frozenset({
    "github.dev",
    "github.com",
    "githubusercontent.com",
    "gravatar.com",
    "akamai.net",
})

# Any dotted name ending in a public suffix counts, so file names such as
# README.md or setup.py (Moldova, Paraguay) are reported as domains too
DOMAIN_CANDIDATE = re.compile(
    r"(?<![\w.-])(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z][a-z0-9-]{0,61}[a-z0-9](?![\w-])",
    re.IGNORECASE,
)
# \n, \t, \" ... inside the raw JSON would otherwise glue a letter onto a domain
JSON_ESCAPE = re.compile(r"\\(?:u[0-9a-fA-F]{4}|.)")

# Bundled public suffix snapshot, no network lookups
_extract = tldextract.TLDExtract(suffix_list_urls=())


# ------------------------
# Derivation Helpers
# ------------------------

def make_patch_url(api_url: str, host: str = DEFAULT_GITHUB_HOST) -> str:
    """
    Turn a commit API URL into the URL of its .patch download.
    https://api.github.com/repos/o/r/commits/sha -> https://github.com/o/r/commit/sha.patch
    URLs of another shape go through the substitutions unchanged.
    """
    web_url = api_url.replace(f"https://api.{host}/repos/", f"https://{host}/", 1)
    return web_url.replace("/commits/", "/commit/", 1) + ".patch"

def extract_domains(text: str) -> List[str]:
    """
    Find registrable domain names mentioned anywhere in text,
    in order of first appearance and without repeats.
    """
    seen = {}
    for match in DOMAIN_CANDIDATE.finditer(JSON_ESCAPE.sub(" ", text)):
        parts = _extract(match.group(0).lower())
        if parts.domain and parts.suffix:
            seen.setdefault(f"{parts.domain}.{parts.suffix}", None)
    return list(seen)

def remove_blacklisted_domains(domains: Iterable[str]) -> List[str]:
    return [domain for domain in domains if domain not in BLACKLISTED_DOMAINS]

def enrich_event(line: str, host: str = DEFAULT_GITHUB_HOST) -> EnrichedEvent:
    """
    Decode one raw line and attach patch URLs and referenced domains.
    Raises pydantic.ValidationError when the line is not a valid event.
    """
    raw = RawEvent.model_validate_json(line)
    commits = raw.payload.commits
    for commit in commits:
        commit.patch_url = make_patch_url(commit.url, host)
    return EnrichedEvent.model_construct(
        **dict(raw),
        patch_url=commits[0].patch_url if commits else None,
        domains=remove_blacklisted_domains(extract_domains(line)),
    )


# ------------------------
# Parsing
# ------------------------

def parse_events(path, host: str = DEFAULT_GITHUB_HOST) -> Iterator[EnrichedEvent]:
    """
    Lazily parse a decompressed chunk, one JSON event per line.
    Each call reopens the file. A malformed line raises ParseError and ends
    the parse; events before it have already been yielded.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8", errors="replace") as res:
        for line_number, line in enumerate(res, start=1):
            if not line.strip():
                continue
            try:
                event = enrich_event(line, host)
            except ValidationError as e:
                logger.error(f"Failed to parse {path} at line {line_number}: {e.error_count()} error(s)")
                raise ParseError(path, line_number, str(e)) from e
            yield event


@dataclass
class ParseResult:
    events: List[EnrichedEvent] = field(default_factory=list)
    failures: Dict[Path, ParseError] = field(default_factory=dict)


def parse_file(path, host: str = DEFAULT_GITHUB_HOST) -> List[EnrichedEvent]:
    """
    Parse a whole chunk eagerly; nothing is returned if any line is malformed.
    """
    return list(parse_events(path, host))

def parse_files(paths: Iterable, host: str = DEFAULT_GITHUB_HOST) -> ParseResult:
    """
    Parse several chunk files. A file that fails to parse contributes no
    events and is recorded in failures; the remaining files are still read.
    """
    result = ParseResult()
    for path in paths:
        path = Path(path)
        try:
            events = parse_file(path, host)
        except ParseError as e:
            result.failures[path] = e
            continue
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            result.failures[path] = ParseError(path, 0, f"cannot read file: {e}")
            continue
        result.events.extend(events)
        logger.info(f"Parsed {len(events)} events from {path}")
    return result


# ------------------------
# Commit Flattening
# ------------------------

def filter_push_events(events: Iterable[EnrichedEvent]) -> Iterator[EnrichedEvent]:
    """
    Keep only push events.
    """
    return (event for event in events if event.type == "PushEvent")

def flatten_push_events(events: Iterable[EnrichedEvent],
                        host: str = DEFAULT_GITHUB_HOST) -> Iterator[CommitRecord]:
    """
    Flatten push events into one record per commit.
    Commits without a derived patch URL get one built against host.
    """
    for event in filter_push_events(events):
        payload = event.payload
        ref = re.sub(r"^refs/heads/", "", payload.ref or "unknown")
        for commit in payload.commits:
            yield CommitRecord(
                event_id=event.id,
                created_at=event.created_at,
                actor_id=event.actor.id,
                actor_login=event.actor.login.strip(),
                repo_name=event.repo.name.strip(),
                repo_owner=event.repo.name.split("/")[0],
                ref=ref,
                head_sha=payload.head,
                before_sha=payload.before,
                commit_sha=commit.sha,
                author_name=(commit.author.name or "unknown").strip(),
                author_email=(commit.author.email or "unknown").strip().lower(),
                commit_message=commit.message.strip() or "No message",
                commit_url=commit.url or "No URL",
                patch_url=commit.patch_url or make_patch_url(commit.url, host),
                domains=list(event.domains),
            )