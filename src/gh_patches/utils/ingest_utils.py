import gzip
import os
import shutil
import zlib
from contextlib import suppress
from pathlib import Path
from typing import Optional
import requests
from tqdm.auto import tqdm
from gh_patches.utils.config import IngestConfig
from gh_patches.utils.errors import DecompressError, FetchError
from gh_patches.utils.logger_util import get_logger
from gh_patches.utils.time_utils import build_url


# logging configuration
logger = get_logger(__name__)

# Constants
DOWNLOAD_CHUNK_SIZE = 1024 * 1024
COMPRESSED_SUFFIX = ".json.gz"
PARTIAL_SUFFIX = ".part"

# gzip.BadGzipFile is an OSError; truncated streams raise EOFError
DECOMPRESS_ERRORS = (OSError, EOFError, zlib.error)


# ------------------------------
# Path And Key Helper Functions
# ------------------------------

class ChunkCache:
    """
    Maps timestamp tokens to files under a cache root.

    {root}/{token}.json.gz is the transient download, {root}/{token}.json
    the decompressed chunk. A chunk whose .json file exists is ready.
    """

    def __init__(self, root):
        self.root = Path(root)

    def ensure_root(self) -> Path:
        os.makedirs(self.root, exist_ok=True)
        return self.root

    def compressed_path(self, token: str) -> Path:
        return self.root / f"{token}{COMPRESSED_SUFFIX}"

    def decompressed_path(self, token: str) -> Path:
        compressed = str(self.compressed_path(token))
        return Path(compressed[:-len(".gz")])

    def is_ready(self, token: str) -> bool:
        return self.decompressed_path(token).exists()

    def is_compressed_present(self, token: str) -> bool:
        return self.compressed_path(token).exists()


# ------------------------
# I/O Helper Functions
# ------------------------

def content_length(headers) -> Optional[int]:
    """
    Size announced by the server, or None when missing or unparseable
    (e.g. a repeated header joined as '10, 10').
    """
    try:
        return int(headers.get("Content-Length")) or None
    except (TypeError, ValueError):
        return None

def partial_path(path: Path) -> Path:
    return path.with_name(path.name + PARTIAL_SUFFIX)

def download_file(url: str, dest: Path, http=requests,
                  timeout: float = 60, show_progress: bool = False) -> int:
    """
    Stream the file at url into dest without holding it in memory.
    http is the requests module or a Session.
    The body is written to a .part file and renamed once complete, so an
    interrupted download never leaves a truncated dest behind.
    Returns the number of bytes written.
    """
    partial = partial_path(dest)
    written = 0
    try:
        with http.get(url, stream=True, timeout=timeout) as res:
            res.raise_for_status()
            bar = tqdm(total=content_length(res.headers), unit="B", unit_scale=True,
                       desc=f"Downloading {url}", disable=not show_progress)
            try:
                with open(partial, "wb") as out:
                    for chunk in res.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            out.write(chunk)
                            written += len(chunk)
                            bar.update(len(chunk))
            finally:
                bar.close()
        os.replace(partial, dest)
    except BaseException:
        _remove_quietly(partial)
        raise
    return written

def decompress_file(src: Path, dest: Path) -> None:
    """
    Stream-decompress a gzip file into dest.
    Output goes to a .part file first and is renamed once complete, so dest
    only ever exists fully written.
    """
    partial = partial_path(dest)
    try:
        with gzip.open(src, "rb") as gz, open(partial, "wb") as out:
            shutil.copyfileobj(gz, out, DOWNLOAD_CHUNK_SIZE)
        os.replace(partial, dest)
    except BaseException:
        _remove_quietly(partial)
        raise

def _remove_quietly(path: Path) -> None:
    # cleanup must never mask the error being handled
    with suppress(OSError):
        os.remove(path)


# ------------------------
# Chunk Fetcher
# ------------------------

class ChunkFetcher:
    """
    Produces the decompressed file for a token, reusing whatever is cached.
    """

    def __init__(self, config: IngestConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.cache = ChunkCache(config.cache_root)
        # module-level requests.get when no session is given, safe across threads
        self.http = session or requests

    def fetch(self, token: str) -> Path:
        """
        Make the chunk for token ready and return its decompressed path.
        Raises FetchError (or DecompressError) when the chunk cannot be made ready;
        any other failure for this chunk is reported as a FetchError too.
        """
        try:
            return self._fetch(token)
        except FetchError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error fetching {token}")
            raise FetchError(token, f"unexpected {type(e).__name__}: {e}") from e

    def _fetch(self, token: str) -> Path:
        json_path = self.cache.decompressed_path(token)
        gz_path = self.cache.compressed_path(token)

        try:
            self.cache.ensure_root()
        except OSError as e:
            logger.error(f"Failed to create cache directory {self.cache.root}: {e}")
            raise FetchError(token, f"cannot create cache directory {self.cache.root}: {e}") from e

        if self.cache.is_ready(token):
            logger.info(f"JSON file {json_path} already exists. Continuing...")
            return json_path

        if self.cache.is_compressed_present(token):
            logger.info(f"Extracting cached {gz_path} to {json_path}")
            # Keep the .gz on failure so a later run can retry without downloading
            self._decompress(token, gz_path, json_path, discard_on_failure=False)
            return json_path

        self._download(token, gz_path)
        logger.info(f"Extracting {gz_path} to {json_path}")
        # A freshly downloaded archive that fails to decompress is corrupt; drop it
        self._decompress(token, gz_path, json_path, discard_on_failure=True)
        return json_path

    def _download(self, token: str, gz_path: Path) -> None:
        url = build_url(token, self.config)
        logger.info(f"Downloading {url}")
        try:
            size = download_file(url, gz_path, self.http,
                                 timeout=self.config.request_timeout,
                                 show_progress=self.config.show_progress)
        except requests.RequestException as e:
            logger.error(f"Failed to download {url}: {e}")
            raise FetchError(token, f"failed to download {url}: {e}") from e
        except OSError as e:
            logger.error(f"Failed to store {url} at {gz_path}: {e}")
            raise FetchError(token, f"failed to write {gz_path}: {e}") from e
        logger.info(f"Downloaded {size / 1_048_576:.2f} MB from {url}")

    def _decompress(self, token: str, gz_path: Path, json_path: Path,
                    discard_on_failure: bool) -> None:
        try:
            decompress_file(gz_path, json_path)
        except DECOMPRESS_ERRORS as e:
            if discard_on_failure:
                _remove_quietly(gz_path)
            logger.error(f"Failed to extract {gz_path}: {e}")
            raise DecompressError(token, f"failed to extract {gz_path}: {e}") from e
        logger.info(f"Extracted to {json_path}")
        try:
            os.remove(gz_path)
        except OSError as e:
            # the chunk is ready either way; a leftover .gz is ignored next run
            logger.warning(f"Could not remove {gz_path}: {e}")
