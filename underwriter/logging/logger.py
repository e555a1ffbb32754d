import logging
import sys
from typing import TextIO


class Log:
    """Process-wide logger of the worker.

    Keyword arguments are appended to the message as ``key=value`` pairs so a
    line can be found by job or file id; None values are left out.
    """

    _logger: logging.Logger = logging.getLogger("underwriter")
    FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

    @classmethod
    def configure(cls, log_level: str, stream: TextIO | None = None) -> None:
        """Set the level and attach a single stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(stream or sys.stdout)
            handler.setFormatter(logging.Formatter(cls.FORMAT))
            cls._logger.addHandler(handler)

    @staticmethod
    def render(message: str, context: dict[str, object]) -> str:
        pairs = " ".join(f"{key}={value}" for key, value in context.items() if value is not None)
        return f"{message} [{pairs}]" if pairs else message

    @classmethod
    def info(cls, message: str, **context: object) -> None:
        cls._logger.info(cls.render(message, context))

    @classmethod
    def error(cls, message: str, **context: object) -> None:
        cls._logger.error(cls.render(message, context))

    @classmethod
    def exception(cls, message: str, **context: object) -> None:
        """Error with the active exception's traceback."""
        cls._logger.exception(cls.render(message, context))

    @classmethod
    def warning(cls, message: str, **context: object) -> None:
        cls._logger.warning(cls.render(message, context))

    @classmethod
    def debug(cls, message: str, **context: object) -> None:
        cls._logger.debug(cls.render(message, context))
