import json

import pytest

from goll.config import ConfigError, load_settings


def _write(tmp_path, data, name="settings.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_minimal_settings_defaults(tmp_path):
    s = load_settings(_write(tmp_path, {"api_base_url": "http://localhost:11434/api/"}))
    assert s.api_base_url == "http://localhost:11434/api"
    assert s.folder_base_path == "."
    assert s.timeout == 300
    assert s.logging.level == "info"
    assert s.reasoning.open_tag == "<think>"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError) as ei:
        load_settings(tmp_path / "nope.json")
    assert ei.value.error_type == "settings"


def test_malformed_json(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(path)


def test_missing_base_url_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(_write(tmp_path, {"timeout": 5}))


def test_unknown_key_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(_write(tmp_path, {"api_base_url": "http://x", "timout": 5}))


def test_yaml_settings_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("api_base_url: http://x\ntimeout: 12\n", encoding="utf-8")
    assert load_settings(path).timeout == 12


def test_local_yaml_overrides_file(tmp_path):
    path = _write(tmp_path, {"api_base_url": "http://x", "timeout": 10})
    (tmp_path / "settings.local.yaml").write_text(
        "timeout: 20\nlogging:\n  format: json\n", encoding="utf-8"
    )
    s = load_settings(path)
    assert s.timeout == 20
    assert s.logging.format == "json"
    assert s.logging.level == "info"


def test_env_overrides_win(tmp_path, monkeypatch):
    path = _write(tmp_path, {"api_base_url": "http://x", "timeout": 10})
    (tmp_path / "settings.local.yaml").write_text("timeout: 20\n", encoding="utf-8")
    monkeypatch.setenv("GOLL__TIMEOUT", "60")
    monkeypatch.setenv("GOLL__LOGGING__LEVEL", "debug")
    s = load_settings(path)
    assert s.timeout == 60
    assert s.logging.level == "debug"


def test_settings_path_from_env(tmp_path, monkeypatch):
    path = _write(tmp_path, {"api_base_url": "http://env"}, name="custom.json")
    monkeypatch.setenv("GOLL_SETTINGS", str(path))
    assert load_settings().api_base_url == "http://env"


def test_env_overrides_nesting_and_casting():
    from goll.config.loader import env_overrides

    got = env_overrides(
        {
            "GOLL__TIMEOUT": "15",
            "GOLL__REASONING__OPEN_TAG": "<r>",
            "GOLL__LOGGING__LEVEL": "warn",
            "GOLL_SETTINGS": "ignored.json",
            "PATH": "/bin",
        }
    )
    assert got == {
        "timeout": 15,
        "reasoning": {"open_tag": "<r>"},
        "logging": {"level": "warn"},
    }


def test_deep_merge_does_not_mutate_inputs():
    from goll.config.loader import deep_merge

    base = {"logging": {"level": "info", "format": "text"}}
    merged = deep_merge(base, {"logging": {"level": "debug"}})
    assert merged == {"logging": {"level": "debug", "format": "text"}}
    assert base["logging"]["level"] == "info"
