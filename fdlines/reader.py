import collections
import enum
import logging
import os
import sys

from fdlines.bytesutil import Carryover
from fdlines.config import get_chunk_size
from fdlines.errors import (
    AllocationError,
    InvalidArgument,
    LineReaderError,
    ReadError,
)
from fdlines.logging import logging_context

logger = logging.getLogger(__name__)

# os.read takes the descriptor as a C int
MAX_DESCRIPTOR = 2**31 - 1


class State(enum.Enum):
    NO_STATE = "no_state"
    BUFFERING = "buffering"
    LINE_READY = "line_ready"
    END_OF_STREAM = "end_of_stream"
    ERROR = "error"


class Stream:
    def __init__(self):
        self.state = State.NO_STATE
        # None until the first read; an empty Carryover after a line that
        # ended exactly at the end of the buffered data
        self.carryover = None

    def finish(self):
        self.state = State.END_OF_STREAM
        self.carryover = None

    def fail(self):
        self.state = State.ERROR
        self.carryover = None


def fileno(handle):
    if isinstance(handle, bool):
        raise InvalidArgument(f"not a stream handle: {handle!r}")
    if not isinstance(handle, int):
        get_fileno = getattr(handle, "fileno", None)
        if get_fileno is None:
            raise InvalidArgument(f"not a stream handle: {handle!r}")
        try:
            fd = get_fileno()
        except (OSError, ValueError) as e:
            raise InvalidArgument(f"no descriptor for {handle!r}: {e}") from e
        return fileno(fd)
    if handle < 0:
        raise InvalidArgument(f"negative descriptor: {handle}")
    if handle > MAX_DESCRIPTOR:
        raise InvalidArgument(f"descriptor out of range: {handle}")
    return handle


class LineReader:
    """Reads newline-terminated lines from file descriptors.

    Bytes read past the end of a line are kept per descriptor and handed
    out by the next call for that descriptor, so one reader can serve
    several streams interleaved. The reader never opens or closes
    descriptors itself, and keeps the state of every descriptor it has
    read until that descriptor is passed to close(). Calls are not
    thread safe.
    """

    def __init__(self, chunk_size=None):
        if chunk_size is None:
            chunk_size = get_chunk_size()
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
            raise InvalidArgument(
                f"chunk size must be an integer, got {chunk_size!r}"
            )
        self.chunk_size = chunk_size
        self.streams = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        self.streams.clear()

    # lifecycle

    def open(self, handle):
        fd = fileno(handle)
        self.streams[fd] = Stream()
        logger.debug("stream opened", extra={"fd": fd})
        return fd

    def close(self, handle):
        fd = fileno(handle)
        stream = self.streams.pop(fd, None)
        if stream is None or stream.carryover is None:
            leftover = b""
        else:
            leftover = bytes(stream.carryover)
        logger.debug("stream closed", extra={"fd": fd, "leftover": len(leftover)})
        return leftover

    def state(self, handle):
        stream = self.streams.get(fileno(handle))
        return stream.state if stream is not None else State.NO_STATE

    def pending(self, handle):
        stream = self.streams.get(fileno(handle))
        if stream is None or stream.carryover is None:
            return 0
        return len(stream.carryover)

    # reading

    def next(self, handle):
        try:
            line = self.readline(handle)
        except LineReaderError:
            return self.Error(handle, *sys.exc_info())

        if line:
            return self.Line(handle, line)
        else:
            return self.EndOfStream(handle)

    def lines(self, handle):
        while True:
            line = self.readline(handle)
            if not line:
                return
            yield line

    def readline(self, handle):
        """Return the next line from ``handle``.

        The line keeps its trailing newline unless it is the last one in
        the stream. Returns ``b""`` at end of stream. Any error discards
        the bytes buffered for the descriptor.
        """
        try:
            fd = fileno(handle)
        except InvalidArgument:
            logger.debug("invalid stream handle", extra={"handle": handle})
            raise

        stream = self.streams.setdefault(fd, Stream())
        with logging_context(fd=fd):
            try:
                return self._readline(fd, stream)
            except InvalidArgument as e:
                stream.fail()
                logger.debug("invalid argument: %s", e)
                raise
            except (AllocationError, ReadError) as e:
                stream.fail()
                logger.warning("read failed: %s", e)
                raise

    def _readline(self, fd, stream):
        if self.chunk_size <= 0:
            raise InvalidArgument(
                f"chunk size must be positive, got {self.chunk_size}"
            )

        stream.state = State.BUFFERING
        if stream.carryover is None:
            stream.carryover = Carryover()
        carryover = stream.carryover

        while not carryover.has_line():
            chunk = self.read_chunk(fd)
            if not chunk:
                break
            carryover.append(chunk)

        if not carryover:
            stream.finish()
            logger.debug("end of stream")
            return b""

        line = carryover.split_line()
        if not line.endswith(b"\n"):
            stream.carryover = None
        stream.state = State.LINE_READY
        return line

    def read_chunk(self, fd):
        try:
            return os.read(fd, self.chunk_size)
        except OSError as e:
            raise ReadError.from_os_error(fd, e) from e
        except OverflowError as e:
            raise InvalidArgument(f"chunk size too large: {self.chunk_size}") from e
        except MemoryError as e:
            raise AllocationError(
                f"could not allocate a {self.chunk_size} byte chunk"
            ) from e

    Line = collections.namedtuple(
        'Line', ['handle', 'data']
    )

    EndOfStream = collections.namedtuple(
        'EndOfStream', ['handle']
    )

    Error = collections.namedtuple(
        'Error', ['handle', 'exc_type', 'exc_value', 'exc_traceback']
    )
