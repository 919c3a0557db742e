import os

from fdlines.errors import InvalidArgument

CHUNK_SIZE_VAR = "FDLINES_CHUNK_SIZE"
LOG_LEVEL_VAR = "FDLINES_LOG_LEVEL"

DEFAULT_CHUNK_SIZE = 4096
DEFAULT_LOG_LEVEL = "WARNING"


def get_chunk_size():
    raw = os.environ.get(CHUNK_SIZE_VAR)
    if raw is None:
        return DEFAULT_CHUNK_SIZE
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidArgument(
            f"{CHUNK_SIZE_VAR} must be an integer, got {raw!r}"
        ) from e


def get_log_level():
    return os.environ.get(LOG_LEVEL_VAR, DEFAULT_LOG_LEVEL).upper()
