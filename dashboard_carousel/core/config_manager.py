import asyncio
import os
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

import aiofiles

from .logging_utils import get_module_logger


logger = get_module_logger("ConfigManager")


class ConfigManager:
    """Reads ``key = value`` configuration files and layers the environment on top."""

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")

    # ------------------------------------------------------------------
    # Parsing

    @staticmethod
    def _parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip().lower()
            value = value.strip()

            # Inline comments need surrounding whitespace; URLs keep their fragments.
            if ' #' in value:
                value = value.split(' #', 1)[0].strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                value = value[1:-1]

            config[key] = value

        return config

    # ------------------------------------------------------------------
    # Reading

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        """Read ``config_path``; a missing or unreadable file yields an empty mapping."""
        if not await asyncio.to_thread(config_path.exists):
            logger.debug("Config file %s not found - using defaults", config_path)
            return {}
        try:
            async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                lines = await f.readlines()
        except OSError as e:
            logger.error("Failed to read config %s: %s", config_path, e)
            return {}
        return self._parse_config_lines(lines)

    @staticmethod
    def overlay_environment(
        config: Dict[str, str],
        keys: Iterable[str],
        environ: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, str]:
        """Return ``config`` with ``KEY`` environment variables taking precedence."""
        environ = os.environ if environ is None else environ
        merged = dict(config)
        for key in keys:
            env_value = environ.get(key.upper())
            if env_value is not None:
                merged[key] = env_value
        return merged

    # ------------------------------------------------------------------
    # Typed getters

    def get_bool(self, config: Dict[str, str], key: str, default: bool = False) -> bool:
        if key not in config or config[key] == "":
            return default

        value = config[key].lower()
        return value in ('true', '1', 'yes', 'on')

    def get_int(self, config: Dict[str, str], key: str, default: int = 0) -> int:
        if key not in config or config[key] == "":
            return default

        try:
            return int(config[key])
        except ValueError:
            logger.warning("Invalid int value for %s: %s, using default %d", key, config[key], default)
            return default

    def get_float(self, config: Dict[str, str], key: str, default: float = 0.0) -> float:
        if key not in config or config[key] == "":
            return default

        try:
            return float(config[key])
        except ValueError:
            logger.warning("Invalid float value for %s: %s, using default %f", key, config[key], default)
            return default

    def get_str(self, config: Dict[str, str], key: str, default: str = "") -> str:
        return config.get(key, default)


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager
