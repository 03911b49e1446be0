"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Mapping

from pydantic import BaseModel

_ENV_VARS = {
    "log_level": "TASKBOARD_LOG_LEVEL",
    "enforce_range_on_update": "TASKBOARD_ENFORCE_RANGE_ON_UPDATE",
    "datetime_format": "TASKBOARD_DATETIME_FORMAT",
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseModel):
    log_level: str = "INFO"
    # Edits made from the board views skip the project range unless this is set.
    enforce_range_on_update: bool = False
    datetime_format: str = "%Y-%m-%d %H:%M"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        values = {field: env[var] for field, var in _ENV_VARS.items() if var in env}
        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
