from pathlib import Path

import pytest
import yaml

from gbancord.configuration.app_configuration import AppConfig, GbanSettings


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_payload = {
        "founders": [111, "222"],
        "database": {"path": "./somewhere/gbans.db"},
        "gban": {
            "ban_delay_seconds": 0.25,
            "min_update_interval_seconds": 5,
            "approval_timeout_seconds": 60,
        },
        "pruning": {"inactive_guild_days": 7, "inactive_check_hours": 2},
    }
    config_path.write_text(yaml.safe_dump(config_payload), encoding="utf-8")

    config = AppConfig(config_path)

    assert config.founders == ["111", "222"]
    assert config.database_path.name == "gbans.db"
    assert config.database_path.is_absolute()
    assert config.inactive_guild_days == 7
    assert config.inactive_check_interval == 2 * 60 * 60

    settings = config.gban_settings
    assert settings.ban_delay_seconds == pytest.approx(0.25)
    assert settings.min_update_interval_seconds == pytest.approx(5)
    assert settings.approval_timeout_seconds == pytest.approx(60)
    assert settings.queue_yield_seconds == pytest.approx(GbanSettings().queue_yield_seconds)


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.founders == []
    assert config.gban_settings == GbanSettings()
    assert config.inactive_guild_days == 30
    assert config.inactive_check_interval == 12 * 60 * 60
    assert config.database_path.name == "gbancord.db"


def test_invalid_values_fall_back_per_key(config_path: Path) -> None:
    config_path.write_text(
        yaml.safe_dump(
            {
                "founders": "333",
                "gban": {"ban_delay_seconds": "fast", "queue_yield_seconds": -1, "directory_timeout_seconds": 12},
                "pruning": {"inactive_guild_days": 0, "inactive_check_hours": "soon"},
            }
        ),
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.founders == ["333"]
    settings = config.gban_settings
    assert settings.ban_delay_seconds == GbanSettings().ban_delay_seconds
    assert settings.queue_yield_seconds == GbanSettings().queue_yield_seconds
    assert settings.directory_timeout_seconds == pytest.approx(12)
    assert config.inactive_guild_days == 1
    assert config.inactive_check_interval == 12 * 60 * 60


def test_non_mapping_yaml_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}
    assert config.get("founders", "fallback") == "fallback"


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text(yaml.safe_dump({"founders": ["1"]}), encoding="utf-8")
    config = AppConfig(config_path)
    assert config.founders == ["1"]

    config_path.write_text(yaml.safe_dump({"founders": ["1", "2"]}), encoding="utf-8")
    config.reload()

    assert config.founders == ["1", "2"]
