"""
Logging setup shared by the API process and the session sweeper.
"""

import logging
import sys

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service."""
    logging.basicConfig(level=level.upper(), format=_FORMAT, stream=sys.stdout)
    # httpx logs every request URL at INFO, which would leak authorization codes.
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
