from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Callable, Mapping


logger = logging.getLogger(__name__)

ENV_TEMP_DIR = "DISAPPEARING_FILES_TEMP_DIR"
ENV_MAX_ATTEMPTS = "DISAPPEARING_FILES_MAX_ATTEMPTS"
ENV_DELETE_RETRIES = "DISAPPEARING_FILES_DELETE_RETRIES"
ENV_DELETE_DELAY = "DISAPPEARING_FILES_DELETE_DELAY"

DEFAULT_DELETE_RETRIES = 3
DEFAULT_DELETE_DELAY_S = 0.1


@dataclass(frozen=True)
class Settings:
    temp_dir: Path | None = None
    max_attempts: int | None = None
    delete_retries: int = DEFAULT_DELETE_RETRIES
    delete_delay_s: float = DEFAULT_DELETE_DELAY_S


def _read_number(
    environ: Mapping[str, str],
    key: str,
    parse: Callable[[str], float],
    default,
    *,
    minimum: float,
):
    raw = (environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        value = parse(raw)
    except ValueError:
        logger.warning("invalid %s (%r); using %r", key, raw, default)
        return default
    if value < minimum:
        logger.warning("%s below %s (%r); using %r", key, minimum, raw, default)
        return default
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read settings from environment variables.

    Invalid values are reported and replaced by the defaults, never raised.
    """
    if environ is None:
        environ = os.environ

    temp_dir_raw = (environ.get(ENV_TEMP_DIR) or "").strip()
    temp_dir = Path(temp_dir_raw).expanduser() if temp_dir_raw else None

    return Settings(
        temp_dir=temp_dir,
        max_attempts=_read_number(environ, ENV_MAX_ATTEMPTS, int, None, minimum=1),
        delete_retries=_read_number(
            environ, ENV_DELETE_RETRIES, int, DEFAULT_DELETE_RETRIES, minimum=0
        ),
        delete_delay_s=_read_number(
            environ, ENV_DELETE_DELAY, float, DEFAULT_DELETE_DELAY_S, minimum=0
        ),
    )
