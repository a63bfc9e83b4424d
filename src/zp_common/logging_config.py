"""Root logging setup shared by the API process and the observer process."""

import logging

from config.settings import settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format=_FORMAT)
    # SQL echo is controlled by DEBUG on the engine, keep the logger itself quiet
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
