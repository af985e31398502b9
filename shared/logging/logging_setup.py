from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger


debug_mode = os.getenv("LOG_LEVEL", "info").lower() == "debug"
loglevel = logging.INFO if not debug_mode else logging.DEBUG

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ANSI_RESET = "\033[0m"
_ANSI_COLORS: dict[str, str] = {
    "white": "\033[37m",
    "cyan": "\033[36m",
    "magenta": "\033[35m",
    "green": "\033[32m",
    "red": "\033[31m",
}

# document status -> console color
STATUS_COLORS: dict[str, str] = {
    "pending": "white",
    "processing": "cyan",
    "verifying": "magenta",
    "completed": "green",
    "error": "red",
}


class CustomFormatter(logging.Formatter):
    """Timestamps in the configured timezone; warnings and errors get a marker."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)

        if record.levelno >= logging.ERROR:
            message = "⛔ " + message
        elif record.levelno == logging.WARNING:
            message = "⚠️ " + message
        record.msg, record.args = message, ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    def format(self, record) -> str:
        line = super().format(record)
        ansi = _ANSI_COLORS.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi and line else line


class ColorLogger:
    """Logger wrapper whose methods accept ``color=``, applied on the console only."""

    def __init__(self, logger: Logger):
        self._logger = logger

    def _emit(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._emit(level, msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def setup_logging(log_to_file: bool = True) -> ColorLogger:
    """Configure root logging and return the application logger.

    Args:
        log_to_file (bool): Also write ``ROOT_DIR/logs/app.log``.
    """
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")

    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "level": loglevel,
            "stream": "ext://sys.stdout",
        },
    }
    if log_to_file:
        log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "plain",
            "level": loglevel,
            "filename": os.path.join(log_dir, "app.log"),
            "encoding": "utf-8",
        }

    formatter = {"format": LOG_FORMAT, "datefmt": DATE_FORMAT, "tz_name": tz_name}
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"()": CustomFormatter, **formatter},
            "colored": {"()": ColoredFormatter, **formatter},
        },
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": loglevel},
    })

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug_mode else logging.WARNING)

    return ColorLogger(logging.getLogger("document_analysis"))
