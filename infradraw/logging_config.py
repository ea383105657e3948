"""Process-wide logging setup for the command line and the application.

Modules log through ``logging.getLogger(__name__)`` and never install
handlers themselves; entry points call :func:`configure_logging` once.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HTTP_LOGGERS = ("urllib3", "urllib3.connectionpool", "requests")


def configure_logging(level: str = "INFO") -> None:
    """Install the process-wide log handler.  Call once from an entry point."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        format=LOG_FORMAT,
        stream=sys.stderr,
        level=numeric_level,
    )
    # HTTP chatter only at DEBUG
    http_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
