from fdlines.errors import AllocationError

NEWLINE = 0x0A
MAX_SEARCH_BYTE = 0x7F


def length(sequence):
    if sequence is None:
        return 0
    end = sequence.find(b"\0")
    return len(sequence) if end == -1 else end


def find_byte(sequence, byte, start=0):
    if sequence is None:
        return -1
    if isinstance(byte, (bytes, bytearray)):
        if len(byte) != 1:
            return -1
        byte = byte[0]
    if not 0 <= byte <= MAX_SEARCH_BYTE:
        return -1
    return sequence.find(byte, start)


def concatenate(a, b):
    if a is None:
        a = b""
    try:
        return bytes(a) + bytes(b)
    except MemoryError as e:
        raise AllocationError(
            f"could not join {len(a)} + {len(b)} bytes"
        ) from e


class Carryover:
    def __init__(self, data=b""):
        self.data = bytearray(data)
        # bytes before this offset are known to hold no newline
        self.scanned = 0

    def __len__(self):
        return len(self.data)

    def __bytes__(self):
        return bytes(self.data)

    def __repr__(self):
        return f"<Carryover {bytes(self.data)!r}>"

    def has_line(self):
        nl = find_byte(self.data, NEWLINE, self.scanned)
        if nl == -1:
            self.scanned = len(self.data)
            return False
        self.scanned = nl
        return True

    def append(self, chunk):
        try:
            self.data.extend(chunk)
        except MemoryError as e:
            raise AllocationError(
                f"could not grow carry-over past {len(self.data)} bytes"
            ) from e

    def split_line(self):
        """Remove and return the first line.

        The line keeps its trailing newline. With no newline buffered the
        whole buffer is returned and the carry-over is left empty.
        """
        nl = find_byte(self.data, NEWLINE, self.scanned)
        end = len(self.data) if nl == -1 else nl + 1
        try:
            line = bytes(self.data[:end])
        except MemoryError as e:
            raise AllocationError(f"could not copy a {end} byte line") from e
        del self.data[:end]
        self.scanned = 0
        return line

    def clear(self):
        self.data.clear()
        self.scanned = 0
