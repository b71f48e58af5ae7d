"""Load and cache alert threshold configuration."""

import logging
import time
from pathlib import Path

import yaml
from pydantic import ValidationError as SchemaValidationError

from ..errors import ValidationError
from ..schemas.thresholds import ReportThresholds

logger = logging.getLogger(__name__)

# Re-read the thresholds file at most every 5 minutes
CONFIG_CACHE_TTL_SECONDS = 300.0

_cache: dict[str, tuple[float, ReportThresholds]] = {}


def load_report_thresholds(path: str | None = None) -> ReportThresholds:
    """
    Load weekly/monthly thresholds from a YAML file.

    Strategy:
    1. No path configured: return defaults
    2. A fresh cached copy exists: return it
    3. Otherwise parse and validate the file, then cache it

    A missing section falls back to its default levels; anything malformed
    raises ValidationError rather than silently using defaults.
    """
    if not path:
        return ReportThresholds.get_default()

    cached = _cache.get(path)
    if cached and time.monotonic() - cached[0] < CONFIG_CACHE_TTL_SECONDS:
        return cached[1]

    config_path = Path(path)
    if not config_path.is_file():
        raise ValidationError("Thresholds file not found", {"path": path})

    try:
        config_dict = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValidationError("Thresholds file is not valid YAML", {"path": path}) from e

    try:
        thresholds = ReportThresholds(**config_dict) if config_dict else ReportThresholds()
    except (SchemaValidationError, TypeError) as e:
        raise ValidationError("Invalid thresholds", {"path": path, "reason": str(e)}) from e

    logger.info(
        f"Loaded thresholds from {path}: weekly={thresholds.weekly.model_dump()} "
        f"monthly={thresholds.monthly.model_dump()}"
    )
    _cache[path] = (time.monotonic(), thresholds)
    return thresholds


def clear_thresholds_cache() -> None:
    _cache.clear()
