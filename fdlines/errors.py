class LineReaderError(Exception):
    pass


class InvalidArgument(LineReaderError, ValueError):
    pass


class AllocationError(LineReaderError, MemoryError):
    pass


class ReadError(LineReaderError, OSError):
    fd = None

    @classmethod
    def from_os_error(cls, fd, error):
        if error.errno is None:
            exc = cls(str(error))
        else:
            exc = cls(error.errno, error.strerror)
        exc.fd = fd
        return exc
