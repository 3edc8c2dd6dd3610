from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import requests
from gh_patches.utils.config import IngestConfig
from gh_patches.utils.errors import FetchError
from gh_patches.utils.ingest_utils import ChunkFetcher
from gh_patches.utils.logger_util import get_logger
from gh_patches.utils.time_utils import generate_timestamps


# logging configuration
logger = get_logger(__name__)


@dataclass
class IngestReport:
    """
    Outcome of one ingestion run: ready chunk files and per-token failures.
    """
    tokens: List[str] = field(default_factory=list)
    ready: Dict[str, Path] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


# ------------------------
# Chunk Jobs
# ------------------------

def _fetch_one(fetcher: ChunkFetcher, token: str) -> Tuple[str, Optional[Path], Optional[str]]:
    try:
        return token, fetcher.fetch(token), None
    except FetchError as e:
        logger.error(f"Error processing {token}: {e}")
        return token, None, str(e)

def _record(report: IngestReport, outcome) -> None:
    token, path, error = outcome
    if error is None:
        report.ready[token] = path
    else:
        report.failed[token] = error

def _run_sequential(fetcher: ChunkFetcher, tokens: List[str], report: IngestReport) -> None:
    logger.info("Downloading and extracting non-concurrently...")
    for token in tokens:
        _record(report, _fetch_one(fetcher, token))

def _run_concurrent(fetcher: ChunkFetcher, tokens: List[str], report: IngestReport,
                    max_workers: int) -> None:
    # Each token is unique, so no two workers ever touch the same files
    logger.info(f"Downloading and extracting {len(tokens)} chunks with {max_workers} workers...")
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        for outcome in pool.map(lambda token: _fetch_one(fetcher, token), tokens):
            _record(report, outcome)


# ------------------------
# Main Ingestion Entry Points
# ------------------------

def get_commits_in_range(output_dir: Optional[str] = None, from_ts: str = "", to_ts: str = "",
                         concurrent: bool = False, max_workers: Optional[int] = None,
                         config: Optional[IngestConfig] = None,
                         session: Optional[requests.Session] = None,
                         now: Optional[datetime] = None) -> IngestReport:
    """
    Download and extract every hourly chunk between from_ts and to_ts.

    output_dir overrides the configured cache root for this run only.
    With neither timestamp the previous UTC hour is fetched. In concurrent
    mode at most max_workers chunks (default: config.max_workers) are in
    flight. Failed chunks are logged and reported; they never stop the rest.
    """
    config = config or IngestConfig.from_env()
    if output_dir:
        config = config.with_cache_root(output_dir)

    report = IngestReport(tokens=generate_timestamps(from_ts, to_ts, now=now))
    if not report.tokens:
        logger.info("No timestamps to fetch.")
        return report

    fetcher = ChunkFetcher(config, session=session)
    if concurrent:
        workers = min(max_workers or config.max_workers, len(report.tokens))
        _run_concurrent(fetcher, report.tokens, report, workers)
    else:
        _run_sequential(fetcher, report.tokens, report)

    logger.info(f"Finished: {len(report.ready)} ready, {len(report.failed)} failed "
                f"in {config.cache_root}")
    return report

def main():
    config = IngestConfig.from_env()
    get_commits_in_range(config=config)
