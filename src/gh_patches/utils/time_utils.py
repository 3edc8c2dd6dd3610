from datetime import datetime, timezone, timedelta
from typing import List, Optional
from gh_patches.utils.config import IngestConfig
from gh_patches.utils.errors import TimestampFormatError, TimeOverflowError
from gh_patches.utils.logger_util import get_logger


# logging configuration
logger = get_logger(__name__)

# Constants
TIMESTAMP_LAYOUT = "%Y-%m-%d-%H"
ONE_HOUR = timedelta(hours=1)

TIMESTAMP_FORMAT_ERROR = "Please specify both to and from timestamps in the format '2006-01-02-15'."
TIME_OVERFLOW_ERROR = "The 'to' timestamp is missing or malformed while 'from' is valid."


# ------------------------
# Time Helper Functions
# ------------------------

def last_completed_hour_utc(now: Optional[datetime] = None) -> datetime:
    """
    Get the last completed hour in UTC.
    """
    now = now or datetime.now(timezone.utc)
    return now - ONE_HOUR

def parse_timestamp(value: str) -> datetime:
    """
    Parse a 'year-month-day-hour' timestamp such as '2006-01-02-15'.
    """
    return datetime.strptime(value, TIMESTAMP_LAYOUT)

def is_valid_timestamp(value: str) -> bool:
    try:
        parse_timestamp(value)
        return True
    except ValueError:
        return False

def strip_hour_padding(timestamp: str) -> str:
    """
    GH Archive names hourly files without a leading zero on the hour,
    so '2024-01-01-05' becomes '2024-01-01-5'. Date parts are kept as is.
    """
    parts = timestamp.split("-")
    if len(parts) == 4 and parts[3].startswith("0"):
        parts[3] = parts[3][1:] or "0"
    return "-".join(parts)

def to_token(ts: datetime) -> str:
    return strip_hour_padding(ts.strftime(TIMESTAMP_LAYOUT))


# ------------------------
# Range Generation
# ------------------------

def validate_range(from_ts: str, to_ts: str) -> None:
    """
    Raise when a fully supplied range cannot be parsed.
    """
    from_ok = is_valid_timestamp(from_ts)
    to_ok = is_valid_timestamp(to_ts)
    if from_ok and not to_ok:
        raise TimeOverflowError(TIME_OVERFLOW_ERROR)
    if not (from_ok and to_ok):
        raise TimestampFormatError(TIMESTAMP_FORMAT_ERROR)

def generate_timestamps(from_ts: str = "", to_ts: str = "",
                        now: Optional[datetime] = None,
                        raise_on_invalid: bool = False) -> List[str]:
    """
    Build the ordered list of hourly tokens between two timestamps, inclusive.

    - Only one of from_ts/to_ts given: nothing to do, returns [].
    - Neither given: the previous UTC hour.
    - Malformed timestamps: logged and [] is returned, or the
      TimestampFormatError is raised when raise_on_invalid is set.
    - from_ts after to_ts: the range is walked backwards.
    """
    from_ts = (from_ts or "").strip()
    to_ts = (to_ts or "").strip()

    if bool(from_ts) != bool(to_ts):
        return []

    if not from_ts and not to_ts:
        return [to_token(last_completed_hour_utc(now))]

    try:
        validate_range(from_ts, to_ts)
    except TimestampFormatError as e:
        logger.error(f"Invalid timestamp range {from_ts!r} -> {to_ts!r}: {e}")
        if raise_on_invalid:
            raise
        return []

    start = parse_timestamp(from_ts)
    end = parse_timestamp(to_ts)
    step = -ONE_HOUR if start > end else ONE_HOUR

    tokens = []
    current = start
    while True:
        tokens.append(to_token(current))
        if (step > timedelta(0) and current >= end) or (step < timedelta(0) and current <= end):
            break
        current += step
    return tokens


# ------------------------------
# URL Helper Functions
# ------------------------------

def build_url(token: str, config: IngestConfig) -> str:
    """
    Build the URL for the GitHub archive for the given token.
    """
    return config.archive_url.format(ts=token)

def chunk_urls(from_ts: str, to_ts: str, config: IngestConfig,
               now: Optional[datetime] = None) -> List[str]:
    """
    List the archive URLs covering a timestamp range.
    """
    return [build_url(token, config) for token in generate_timestamps(from_ts, to_ts, now=now)]
