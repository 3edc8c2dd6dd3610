import os
from dataclasses import dataclass, replace
from pathlib import Path
from dotenv import load_dotenv
from gh_patches.utils.errors import ConfigError


# Load environment variables
load_dotenv()

# Defaults used when the environment does not override them
DEFAULT_ARCHIVE_URL = "https://data.gharchive.org/{ts}.json.gz"
DEFAULT_CACHE_ROOT = ".githubCommits"
DEFAULT_GITHUB_HOST = "github.com"
DEFAULT_REQUEST_TIMEOUT = 60
DEFAULT_MAX_WORKERS = 8

TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class IngestConfig:
    """
    Settings shared by every pipeline component.
    Passed explicitly so runs with different cache roots can coexist.
    """
    archive_url: str = DEFAULT_ARCHIVE_URL
    cache_root: Path = Path(DEFAULT_CACHE_ROOT)
    github_host: str = DEFAULT_GITHUB_HOST
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    show_progress: bool = False

    def __post_init__(self):
        if "{ts}" not in self.archive_url:
            raise ConfigError(f"Archive URL must contain a '{{ts}}' placeholder: {self.archive_url}")
        if self.request_timeout <= 0:
            raise ConfigError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.max_workers < 1:
            raise ConfigError(f"Max workers must be at least 1, got {self.max_workers}")
        object.__setattr__(self, "cache_root", Path(self.cache_root))

    @classmethod
    def from_env(cls) -> "IngestConfig":
        """
        Build the configuration from environment variables (and .env).
        """
        return cls(
            archive_url=os.getenv("GH_ARCHIVE_URL") or DEFAULT_ARCHIVE_URL,
            cache_root=Path(os.getenv("LOCAL_BASE_PATH") or DEFAULT_CACHE_ROOT),
            github_host=os.getenv("GITHUB_HOST") or DEFAULT_GITHUB_HOST,
            request_timeout=_env_number("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT, float),
            max_workers=_env_number("MAX_WORKERS", DEFAULT_MAX_WORKERS, int),
            show_progress=os.getenv("SHOW_PROGRESS", "").strip().lower() in TRUTHY,
        )

    def with_cache_root(self, cache_root) -> "IngestConfig":
        return replace(self, cache_root=Path(cache_root))


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} environment variable is not a number: {raw!r}") from e
