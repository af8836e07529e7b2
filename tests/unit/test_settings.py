"""Unit tests for GpsMapSettings and ConfigManager."""

import json
import stat
from unittest.mock import patch

import pytest

from gpsmap.location.models import AccuracyMode, UpdateConfig
from gpsmap.settings import GpsMapSettings

# ---------------------------------------------------------------------------
# ConfigManager
# ---------------------------------------------------------------------------


def test_load_returns_empty_when_no_file(config_manager):
    assert config_manager.config_exists() is False
    assert config_manager.load_config() == {}


def test_save_and_load_roundtrip(config_manager):
    config_manager.save_config({"location_source": "simulated", "web_port": 8080})
    loaded = config_manager.load_config()
    assert loaded["location_source"] == "simulated"
    assert loaded["web_port"] == 8080


def test_save_creates_directory(config_manager, tmp_path):
    config_manager.config_dir = tmp_path / "deep" / "nested"
    config_manager.config_file = config_manager.config_dir / "config.json"
    config_manager.save_config({"key": "val"})
    assert config_manager.config_file.exists()


def test_save_sets_private_permissions(config_manager):
    config_manager.save_config({"key": "val"})
    mode = stat.S_IMODE(config_manager.config_file.stat().st_mode)
    assert mode == 0o600


def test_save_leaves_no_temp_file(config_manager):
    config_manager.save_config({"key": "val"})
    assert not config_manager.config_file.with_suffix(".json.tmp").exists()


def test_save_failure_raises_ioerror(config_manager):
    with patch("json.dump", side_effect=TypeError("not serializable")):
        with pytest.raises(IOError, match="Failed to save config"):
            config_manager.save_config({"key": object()})
    assert not config_manager.config_file.with_suffix(".json.tmp").exists()


def test_load_invalid_json_returns_empty(config_manager):
    config_manager.ensure_config_directory()
    config_manager.config_file.write_text("{not json")
    assert config_manager.load_config() == {}


def test_load_non_dict_returns_empty(config_manager):
    config_manager.ensure_config_directory()
    config_manager.config_file.write_text(json.dumps([1, 2, 3]))
    assert config_manager.load_config() == {}


def test_update_config_merges(config_manager):
    config_manager.save_config({"web_port": 9000})
    written = config_manager.update_config(location_permission_granted=True)

    assert written == {"web_port": 9000, "location_permission_granted": True}
    assert config_manager.load_config() == written


def test_validate_config(config_manager):
    assert config_manager.validate_config({}) == (True, None)
    valid, error = config_manager.validate_config("nope")
    assert valid is False
    assert "dictionary" in error


def test_get_config_path(config_manager, tmp_path):
    assert config_manager.get_config_path() == tmp_path / "config.json"


# ---------------------------------------------------------------------------
# GpsMapSettings
# ---------------------------------------------------------------------------


def test_defaults(config_manager):
    s = GpsMapSettings(config_manager=config_manager)

    assert s.location_source == "gpsd"
    assert s.update_interval_seconds == 5.0
    assert s.fast_update_interval_seconds == 2.0
    assert s.high_accuracy is False
    assert s.last_known_timeout_seconds == 3.0
    assert s.location_permission_granted is False
    assert s.web_port == 24877
    assert s.log_level == "INFO"
    assert s.config_manager is config_manager


def test_values_from_config_file(config_manager):
    config_manager.save_config({"location_source": "simulated", "high_accuracy": True, "web_port": 9001})
    s = GpsMapSettings(config_manager=config_manager)

    assert s.location_source == "simulated"
    assert s.high_accuracy is True
    assert s.web_port == 9001


def test_arguments_override_config_file(config_manager):
    config_manager.save_config({"log_level": "WARNING", "web_port": 9001, "location_source": "gpsd"})
    s = GpsMapSettings(log_level="DEBUG", web_port=9002, config_manager=config_manager, location_source="simulated")

    assert s.log_level == "DEBUG"
    assert s.web_port == 9002
    assert s.location_source == "simulated"


def test_environment_variables(config_manager, monkeypatch):
    monkeypatch.setenv("GPSMAP_LOCATION_SOURCE", "simulated")
    monkeypatch.setenv("GPSMAP_UPDATE_INTERVAL_SECONDS", "10")

    s = GpsMapSettings(config_manager=config_manager)

    assert s.location_source == "simulated"
    assert s.update_interval_seconds == 10.0


def test_unknown_keys_ignored(config_manager):
    config_manager.save_config({"something_else": 1})
    assert not hasattr(GpsMapSettings(config_manager=config_manager), "something_else")


def test_invalid_location_source(config_manager):
    with pytest.raises(ValueError):
        GpsMapSettings(config_manager=config_manager, location_source="wifi")


def test_fast_interval_above_base_rejected(config_manager):
    with pytest.raises(ValueError, match="must not exceed"):
        GpsMapSettings(config_manager=config_manager, update_interval_seconds=1.0, fast_update_interval_seconds=2.0)


def test_non_positive_interval_rejected(config_manager):
    with pytest.raises(ValueError, match="positive"):
        GpsMapSettings(config_manager=config_manager, fast_update_interval_seconds=0)


def test_update_config(config_manager):
    s = GpsMapSettings(config_manager=config_manager)
    assert s.update_config() == UpdateConfig(5.0, 2.0, AccuracyMode.BALANCED_POWER)

    s = GpsMapSettings(
        config_manager=config_manager,
        high_accuracy=True,
        update_interval_seconds=10.0,
        fast_update_interval_seconds=1.0,
    )
    assert s.update_config() == UpdateConfig(10.0, 1.0, AccuracyMode.HIGH_ACCURACY)


def test_remember_permission_grant(config_manager):
    config_manager.save_config({"web_port": 9001})
    s = GpsMapSettings(config_manager=config_manager)

    s.remember_permission_grant()

    assert s.location_permission_granted is True
    assert config_manager.load_config() == {"web_port": 9001, "location_permission_granted": True}
    assert GpsMapSettings(config_manager=config_manager).location_permission_granted is True


def test_remember_permission_grant_write_failure(config_manager):
    s = GpsMapSettings(config_manager=config_manager)

    with patch.object(config_manager, "save_config", side_effect=IOError("read-only")):
        s.remember_permission_grant()

    # Still granted for this run
    assert s.location_permission_granted is True
