"""
Error taxonomy for the ingestion pipeline.

Every error raised by gh_patches derives from GhPatchesError so callers can
catch the whole family. Chunk-level and file-level errors carry the token or
path they belong to, which is what the orchestrator reports.
"""


class GhPatchesError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(GhPatchesError, ValueError):
    """An environment or configuration value is missing or malformed."""


class InputValidationError(GhPatchesError, ValueError):
    """A timestamp range could not be turned into work."""


class TimestampFormatError(InputValidationError):
    """A timestamp does not match the year-month-day-hour layout."""


class TimeOverflowError(TimestampFormatError):
    """The 'from' timestamp is valid but the 'to' timestamp is not."""


class FetchError(GhPatchesError):
    """Downloading or caching one chunk failed."""

    def __init__(self, token: str, message: str):
        super().__init__(f"{token}: {message}")
        self.token = token


class DecompressError(FetchError):
    """A compressed chunk could not be decompressed."""


class ParseError(GhPatchesError):
    """A decompressed chunk file holds a line that is not a valid event."""

    def __init__(self, path, line_number: int, message: str):
        super().__init__(f"{path}:{line_number}: {message}")
        self.path = path
        self.line_number = line_number
