from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from gbancord.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


@dataclass(frozen=True)
class GbanSettings:
    """Timing knobs of the gban engine.

    Attributes:
        ban_delay_seconds: Pause after every actuator call (rate limit).
        min_update_interval_seconds: Minimum spacing between progress edits.
        queue_yield_seconds: Pause between two queued tasks.
        approval_timeout_seconds: Lifetime of a pending unban approval.
        ban_operation_timeout_seconds: Upper bound for a single actuator call.
        directory_timeout_seconds: Upper bound for reading the target snapshot.
    """
    ban_delay_seconds: float = 0.1
    min_update_interval_seconds: float = 3.0
    queue_yield_seconds: float = 0.5
    approval_timeout_seconds: float = 15 * 60
    ban_operation_timeout_seconds: float = 10.0
    directory_timeout_seconds: float = 30.0


def _as_float(section: Dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    try:
        result = float(value)
    except (TypeError, ValueError):
        logger.warning("[APP CONFIGURATION] Invalid value for %s: %r, using %s", key, value, default)
        return default
    if result < 0:
        logger.warning("[APP CONFIGURATION] Negative value for %s: %r, using %s", key, value, default)
        return default
    return result


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes
    dictionary-like access helpers plus typed shortcuts for the engine and
    bot settings. Uses fcntl file locks for safe concurrent access across
    processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                if not isinstance(data, dict):
                    logger.warning("[APP CONFIGURATION] Config %s is not a mapping; ignoring", self.config_path)
                    return {}
                return data
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, key: str) -> Dict[str, Any]:
        section = self._data.get(key, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def founders(self) -> List[str]:
        """Return the founder user IDs as strings.

        Founders are the only users allowed to run gban commands, and they
        can never be the subject of one.
        """
        value = self._data.get("founders") or []
        if not isinstance(value, list):
            value = [value]
        return [str(item).strip() for item in value if str(item).strip()]

    @property
    def database_path(self) -> Path:
        """Return the SQLite database location (default ``./data/gbancord.db``)."""
        value = self._section("database").get("path") or "./data/gbancord.db"
        return Path(str(value)).resolve()

    @property
    def gban_settings(self) -> GbanSettings:
        """Return the engine timing settings, falling back to defaults per key."""
        section = self._section("gban")
        defaults = GbanSettings()
        return GbanSettings(
            ban_delay_seconds=_as_float(section, "ban_delay_seconds", defaults.ban_delay_seconds),
            min_update_interval_seconds=_as_float(
                section, "min_update_interval_seconds", defaults.min_update_interval_seconds
            ),
            queue_yield_seconds=_as_float(section, "queue_yield_seconds", defaults.queue_yield_seconds),
            approval_timeout_seconds=_as_float(
                section, "approval_timeout_seconds", defaults.approval_timeout_seconds
            ),
            ban_operation_timeout_seconds=_as_float(
                section, "ban_operation_timeout_seconds", defaults.ban_operation_timeout_seconds
            ),
            directory_timeout_seconds=_as_float(
                section, "directory_timeout_seconds", defaults.directory_timeout_seconds
            ),
        )

    @property
    def inactive_guild_days(self) -> int:
        """Days without activity after which a guild stops being a gban target (min 1)."""
        value = self._section("pruning").get("inactive_guild_days", 30)
        try:
            return max(int(value), 1)
        except (TypeError, ValueError):
            return 30

    @property
    def inactive_check_interval(self) -> float:
        """Seconds between two inactive guild sweeps (``inactive_check_hours``, min 1 h)."""
        value = self._section("pruning").get("inactive_check_hours", 12)
        try:
            hours = max(int(value), 1)
        except (TypeError, ValueError):
            hours = 12
        return float(hours * 60 * 60)


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
