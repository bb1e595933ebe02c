import asyncio
import errno
import hashlib
import re
from pathlib import Path
from typing import Any, Dict, Iterable

import aiofiles

from .logging_utils import get_module_logger
from .paths import PROJECT_ROOT, USER_CONFIG_OVERRIDES_DIR


logger = get_module_logger("ConfigManager")


class ConfigManager:
    """Reads and writes ``key = value`` profiler configuration files.

    Writes that hit a read-only file fall back to a per-user override file,
    which is merged on top of the base file on every read.
    """

    def __init__(self, overrides_dir: Path = USER_CONFIG_OVERRIDES_DIR):
        self.lock = asyncio.Lock()
        self._overrides_dir = overrides_dir
        try:
            self._project_root = PROJECT_ROOT.resolve()
        except OSError:  # pragma: no cover - unusual filesystems
            self._project_root = PROJECT_ROOT

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _stringify_value(value: Any) -> str:
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)

    def _parse_config_lines(self, lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if '#' in value:
                value = value.split('#')[0].strip()

            if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]

            config[key] = value

        return config

    def _resolve_override_path(self, config_path: Path) -> Path:
        try:
            rel_path = config_path.resolve().relative_to(self._project_root)
        except ValueError:
            digest = hashlib.sha1(str(config_path).encode('utf-8')).hexdigest()[:10]
            safe_name = re.sub(r'[^a-zA-Z0-9._-]+', '_', config_path.stem or 'config')
            rel_path = Path('external') / f"{safe_name}_{digest}{config_path.suffix or '.txt'}"
        return self._overrides_dir / rel_path

    def _load_override_sync(self, config_path: Path) -> Dict[str, str]:
        override_path = self._resolve_override_path(config_path)
        if not override_path.exists():
            return {}

        try:
            with open(override_path, 'r', encoding='utf-8') as fh:
                return self._parse_config_lines(fh)
        except OSError as exc:
            logger.warning("Failed to read override config %s: %s", override_path, exc)
            return {}

    def _write_override_sync(self, config_path: Path, updates: Dict[str, Any]) -> bool:
        override_path = self._resolve_override_path(config_path)
        try:
            existing = self._load_override_sync(config_path)
            for key, value in updates.items():
                existing[key] = self._stringify_value(value)

            override_path.parent.mkdir(parents=True, exist_ok=True)
            with open(override_path, 'w', encoding='utf-8') as fh:
                for key in sorted(existing.keys()):
                    fh.write(f"{key} = {existing[key]}\n")

            logger.debug("Stored config overrides in %s", override_path)
            return True
        except OSError as exc:
            logger.error("Failed to write config override %s: %s", override_path, exc)
            return False

    def _clear_override(self, config_path: Path) -> None:
        self._resolve_override_path(config_path).unlink(missing_ok=True)

    @classmethod
    def _merge_lines(cls, lines: list[str], updates: Dict[str, Any]) -> list[str]:
        updated_keys = set()

        for i, line in enumerate(lines):
            stripped = line.strip()
            if not stripped or stripped.startswith('#') or '=' not in stripped:
                continue
            key = stripped.split('=')[0].strip()
            if key in updates:
                indent = len(line) - len(line.lstrip())
                lines[i] = ' ' * indent + f"{key} = {cls._stringify_value(updates[key])}\n"
                updated_keys.add(key)

        for key, value in updates.items():
            if key not in updated_keys:
                lines.append(f"{key} = {cls._stringify_value(value)}\n")
                logger.debug("Added new config key: %s = %s", key, value)

        return lines

    # ------------------------------------------------------------------
    # Reading

    def read_config(self, config_path: Path) -> Dict[str, str]:
        config: Dict[str, str] = {}

        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    config = self._parse_config_lines(f)
            except OSError as e:
                logger.error("Failed to read config %s: %s", config_path, e)

        overrides = self._load_override_sync(config_path)
        if overrides:
            config.update(overrides)

        return config

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        config: Dict[str, str] = {}

        if await asyncio.to_thread(config_path.exists):
            try:
                lines: list[str] = []
                async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                    async for line in f:
                        lines.append(line)
                config = self._parse_config_lines(lines)
            except OSError as e:
                logger.error("Failed to read config %s: %s", config_path, e)

        overrides = await asyncio.to_thread(self._load_override_sync, config_path)
        if overrides:
            config.update(overrides)

        return config

    # ------------------------------------------------------------------
    # Writing

    async def write_config_async(self, config_path: Path, updates: Dict[str, Any]) -> bool:
        if not await asyncio.to_thread(config_path.exists):
            logger.error("Config file not found: %s", config_path)
            return False
        if not updates:
            return True

        async with self.lock:
            try:
                async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                    lines = await f.readlines()
                lines = self._merge_lines(lines, updates)
                async with aiofiles.open(config_path, 'w', encoding='utf-8') as f:
                    await f.writelines(lines)
                await asyncio.to_thread(self._clear_override, config_path)
                return True
            except OSError as e:
                if isinstance(e, PermissionError) or e.errno in (errno.EACCES, errno.EROFS):
                    logger.warning("Config %s is not writable (%s). Falling back to override file", config_path, e)
                    return await asyncio.to_thread(self._write_override_sync, config_path, updates)
                logger.error("Failed to write config %s: %s", config_path, e, exc_info=True)
                return False

    # ------------------------------------------------------------------
    # Typed accessors

    def get_bool(self, config: Dict[str, str], key: str, default: bool = False) -> bool:
        if key not in config:
            return default
        return config[key].lower() in ('true', '1', 'yes', 'on')

    def get_int(self, config: Dict[str, str], key: str, default: int = 0) -> int:
        if key not in config:
            return default
        try:
            return int(config[key])
        except ValueError:
            logger.warning("Invalid int value for %s: %s, using default %d", key, config[key], default)
            return default

    def get_float(self, config: Dict[str, str], key: str, default: float = 0.0) -> float:
        if key not in config:
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
