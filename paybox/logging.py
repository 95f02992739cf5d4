"""
Logging configuration for the API process.

One stdout handler for everything; ``paybox.*`` module loggers (ledger, store,
events) and uvicorn follow the configured level. SQLAlchemy engine echo stays
at WARNING unless the service runs at DEBUG.
"""
import logging
import sys

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: int | str = logging.INFO, format_string: str | None = None) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format=format_string or DEFAULT_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    for name in ("paybox", "uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)
