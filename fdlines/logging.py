import contextlib
import contextvars
import logging
import time

from fdlines.config import get_log_level

LOGGING_CONTEXT = contextvars.ContextVar(__name__ + ".LOGGING_CONTEXT")
HANDLER_NAME = "fdlines"


def init_logging(level=None):
    if level is None:
        level = get_log_level()
    logging.setLoggerClass(Logger)

    logger = logging.getLogger()
    logger.setLevel(level)
    for handler in logger.handlers:
        if handler.get_name() == HANDLER_NAME:
            return handler

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(Formatter())
    logger.addHandler(handler)
    return handler


class Logger(logging.Logger):
    def makeRecord(
        self,
        name,
        level,
        fn,
        lno,
        msg,
        args,
        exc_info,
        func=None,
        extra=None,
        sinfo=None,
    ):
        record = super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func, extra, sinfo
        )
        record.extra = extra or {}
        record.context = get_logging_context()
        return record


class Formatter(logging.Formatter):
    def format(self, record):
        # loggers created before init_logging() are plain logging.Loggers
        context = self.serialize_fields(
            getattr(record, "context", None) or get_logging_context(),
            getattr(record, "extra", None) or {},
        )
        created = time.strftime("%Y%m%dT%H%M%S", time.gmtime(record.created))
        msecs = int(record.msecs)
        base = (
            f"{created}.{msecs:03} {record.levelname:7s} "
            f"{record.name} {record.getMessage()}"
        )
        exc_text = (
            "\n" + self.formatException(record.exc_info) if record.exc_info else ""
        )
        return base + (" | " + context if context else "") + exc_text

    def serialize_fields(self, context, extra):
        # per-call extra fields win over the surrounding context
        fields = dict(context, **extra)
        return " ".join(f"{key}:{value!r}" for key, value in fields.items())


@contextlib.contextmanager
def logging_context(**kwargs):
    token = LOGGING_CONTEXT.set({**get_logging_context(), **kwargs})
    try:
        yield
    finally:
        LOGGING_CONTEXT.reset(token)


def get_logging_context():
    try:
        return LOGGING_CONTEXT.get()
    except LookupError:
        return {}
