"""Settings file loading."""

import json
import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from swupgrade.models.settings import UpgradeSettings


def load_settings(path: Union[str, Path] = "./config/upgrader.json") -> UpgradeSettings:
    """Load UpgradeSettings from a JSON file.

    Args:
        path: Settings file path (default ./config/upgrader.json)

    Returns:
        Parsed settings, or defaults if the file does not exist

    Raises:
        ValueError: If the file is not valid JSON or fails validation
    """
    logger = logging.getLogger("swupgrade.config")
    settings_path = Path(path)

    if not settings_path.exists():
        logger.debug(f"No settings file at {settings_path}, using defaults")
        return UpgradeSettings()

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        settings = UpgradeSettings(**data)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid settings JSON in {settings_path}: {e}") from e
    except ValidationError as e:
        raise ValueError(f"Invalid settings in {settings_path}: {e}") from e

    logger.info(
        f"Loaded settings from {settings_path}: "
        f"transition={settings.transition_timeout}s, "
        f"recovery={settings.recovery_timeout}s, "
        f"overall={settings.overall_timeout}s"
    )
    return settings
