import functools
import json

import httpx
import pytest

from goll.cli import app as cli
from goll.errors import CancellationError, ConfigLoadError, StepFailedError
from goll.llm import GenerationClient


@pytest.fixture
def workspace(tmp_path, step_factory):
    prompts = tmp_path / "prompts"
    step_factory(prompts / "a", model="ma", prompt="hello")
    step_factory(prompts / "b", model="mb")
    settings = tmp_path / "settings.json"
    settings.write_text(
        json.dumps(
            {"api_base_url": "http://llm.test/api", "folder_base_path": str(prompts)}
        ),
        encoding="utf-8",
    )
    return prompts, settings


@pytest.fixture
def fake_server(monkeypatch, reply_body):
    payloads = []

    def handler(request):
        payload = json.loads(request.content)
        payloads.append(payload)
        if payload["model"] == "broken":
            return httpx.Response(404, json={"error": "model not found"})
        return httpx.Response(200, json=reply_body(f"out-{payload['model']}"))

    monkeypatch.setattr(
        cli,
        "GenerationClient",
        functools.partial(GenerationClient, transport=httpx.MockTransport(handler)),
    )
    return payloads


def test_console_entry_point_is_the_app_main():
    from goll.cli import main

    assert main is cli.main


def test_parse_folders():
    assert cli.parse_folders(" a, b ,,c ") == ["a", "b", "c"]
    assert cli.parse_folders(" , ") == []


def test_folders_flag_required():
    with pytest.raises(SystemExit) as ei:
        cli.main([])
    assert ei.value.code == 2


def test_blank_folder_list_is_usage_error():
    with pytest.raises(SystemExit) as ei:
        cli.main(["-f", " , "])
    assert ei.value.code == 2


def test_recursive_with_many_folders_is_usage_error(capsys):
    with pytest.raises(SystemExit) as ei:
        cli.main(["-f", "a,b", "-r"])
    assert ei.value.code == 2
    assert "exactly one folder" in capsys.readouterr().err


def test_missing_settings_file(tmp_path, capsys):
    code = cli.main(["-s", str(tmp_path / "none.json"), "-f", "a"])
    assert code == cli.EXIT_FAILURE
    assert "settings file not found" in capsys.readouterr().err


def test_missing_folder(workspace, fake_server, capsys):
    _, settings = workspace
    code = cli.main(["-s", str(settings), "-f", "a,zzz"])
    assert code == cli.EXIT_FAILURE
    assert "zzz" in capsys.readouterr().err
    assert fake_server == []


def test_chain_run_end_to_end(workspace, fake_server, capsys):
    prompts, settings = workspace
    code = cli.main(["-s", str(settings), "-f", "a,b", "-p", "override"])
    assert code == cli.EXIT_OK
    assert [p["prompt"] for p in fake_server] == ["override", "out-ma"]
    assert (prompts / "b" / "prompt.txt").read_text(encoding="utf-8") == "out-ma"
    out = capsys.readouterr().out
    assert "Generating response using folder: a (1/2, prompt from override)" in out
    assert "Response: out-mb" in out
    assert "b completed successfully" in out


def test_failed_step_exit_code(workspace, fake_server, step_factory, capsys):
    prompts, settings = workspace
    step_factory(prompts / "c", model="broken", prompt="x")
    code = cli.main(["-s", str(settings), "-f", "c"])
    assert code == cli.EXIT_FAILURE
    assert "404" in capsys.readouterr().err


def test_verbose_prints_config_and_metrics(workspace, fake_server, capsys):
    _, settings = workspace
    assert cli.main(["-s", str(settings), "-f", "a", "-v"]) == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "With Model Config:" in out
    assert "generation_requests_total{status=ok} = 1" in out


def test_exit_code_mapping():
    interrupted = StepFailedError("a", 0, CancellationError())
    timed_out = StepFailedError("a", 0, CancellationError("timeout", 1))
    assert cli._exit_code(interrupted) == cli.EXIT_INTERRUPTED
    assert cli._exit_code(timed_out) == cli.EXIT_FAILURE
    assert cli._exit_code(ConfigLoadError("x")) == cli.EXIT_FAILURE
