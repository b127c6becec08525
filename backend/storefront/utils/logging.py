import logging
import sys

from storefront.config import settings

_FORMAT = "[%(levelname)s] %(asctime)s %(name)s: %(message)s"


def configure_logging(level: str = None) -> None:
    """Attach a single stdout handler to the package logger."""
    log = logging.getLogger("storefront")
    log.setLevel((level or settings.LOG_LEVEL).upper())
    if not log.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(_FORMAT))
        log.addHandler(h)
