"""Logging setup for the API process."""

import logging

from campus_placement.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = None) -> None:
    """Configure root logging once; later calls only adjust the level."""
    level_name = (level or get_settings().log_level).upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level_name, format=LOG_FORMAT)
    root.setLevel(level_name)
    # SQL echo goes through sqlalchemy.engine when db_echo is on
    logging.getLogger("httpx").setLevel(logging.WARNING)
