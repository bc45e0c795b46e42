import json

import pytest

from goll.errors import ConfigLoadError
from goll.llm import build_request
from goll.pipeline import list_subfolders, load_step_config, resolve_prompt
from goll.pipeline.base import MODE_CHAIN, MODE_RECURSIVE


def test_load_defaults_when_options_missing(tmp_path, step_factory):
    folder = step_factory(tmp_path / "a", model="llama3", system="You are terse.")
    cfg = load_step_config(folder)
    assert cfg.model == "llama3"
    assert cfg.system == "You are terse."
    assert cfg.options.num_ctx == 2048
    assert cfg.format is None


def test_options_override_merges_with_defaults(tmp_path, step_factory):
    folder = step_factory(tmp_path / "a", options={"num_ctx": 8192, "seed": 7})
    cfg = load_step_config(folder)
    assert cfg.options.num_ctx == 8192
    assert cfg.options.seed == 7
    assert cfg.options.repeat_penalty == 1.1


def test_format_json_used_when_config_has_none(tmp_path, step_factory):
    schema = {"type": "object", "properties": {"a": {"type": "string"}}}
    folder = step_factory(tmp_path / "a", format_file=schema)
    cfg = load_step_config(folder)
    assert cfg.format.type == "object"
    assert "a" in cfg.format.properties


def test_config_format_wins_over_format_json(tmp_path, step_factory):
    folder = step_factory(
        tmp_path / "a",
        fmt={"type": "array"},
        format_file={"type": "object"},
    )
    assert load_step_config(folder).format.type == "array"


def test_missing_system_txt(tmp_path, step_factory):
    folder = step_factory(tmp_path / "a")
    (folder / "system.txt").unlink()
    with pytest.raises(ConfigLoadError) as ei:
        load_step_config(folder)
    assert ei.value.path.endswith("system.txt")
    assert ei.value.error_type == "config-load"


def test_missing_config_json(tmp_path):
    (tmp_path / "a").mkdir()
    with pytest.raises(ConfigLoadError) as ei:
        load_step_config(tmp_path / "a")
    assert "config.json" in str(ei.value)


def test_malformed_config_json(tmp_path, step_factory):
    folder = step_factory(tmp_path / "a")
    (folder / "config.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigLoadError):
        load_step_config(folder)


def test_extra_options_and_keys_are_accepted(tmp_path, step_factory):
    folder = step_factory(tmp_path / "a", options={"temperature": 0.2, "num_gpu": 1})
    raw = json.loads((folder / "config.json").read_text(encoding="utf-8"))
    raw["comment"] = "shared with another tool"
    (folder / "config.json").write_text(json.dumps(raw), encoding="utf-8")
    cfg = load_step_config(folder)
    assert cfg.options.to_wire()["num_gpu"] == 1
    assert build_request(cfg, "p").to_payload()["options"]["num_gpu"] == 1
    assert not hasattr(cfg, "comment")


def test_invalid_option_value_rejected(tmp_path, step_factory):
    folder = step_factory(tmp_path / "a", options={"num_ctx": 0})
    with pytest.raises(ConfigLoadError):
        load_step_config(folder)


def test_resolve_prompt_rules(tmp_path, step_factory):
    folder = step_factory(tmp_path / "a", prompt="from file")
    assert resolve_prompt(folder, mode=MODE_CHAIN, index=0, prompt_override="X") == (
        "X",
        "override",
    )
    assert resolve_prompt(folder, mode=MODE_CHAIN, index=1, prompt_override="X") == (
        "from file",
        "forwarded",
    )
    assert resolve_prompt(folder, mode=MODE_CHAIN, index=0, prompt_override=None) == (
        "from file",
        "file",
    )
    assert resolve_prompt(
        folder, mode=MODE_RECURSIVE, index=3, prompt_override="X"
    ) == ("X", "override")
    assert resolve_prompt(
        folder, mode=MODE_RECURSIVE, index=3, prompt_override=""
    ) == ("from file", "file")


def test_resolve_prompt_missing_file(tmp_path, step_factory):
    folder = step_factory(tmp_path / "a")
    with pytest.raises(ConfigLoadError) as ei:
        resolve_prompt(folder, mode=MODE_CHAIN, index=0, prompt_override=None)
    assert "prompt.txt" in str(ei.value)


def test_list_subfolders_sorted_and_filtered(tmp_path):
    parent = tmp_path / "batch"
    for name in ("zeta", "alpha", ".hidden", "mid"):
        (parent / name).mkdir(parents=True)
    (parent / "notes.txt").write_text("x", encoding="utf-8")
    assert [p.name for p in list_subfolders(parent)] == ["alpha", "mid", "zeta"]


def test_list_subfolders_errors(tmp_path):
    with pytest.raises(ConfigLoadError):
        list_subfolders(tmp_path / "missing")
    (tmp_path / "empty").mkdir()
    with pytest.raises(ConfigLoadError):
        list_subfolders(tmp_path / "empty")
