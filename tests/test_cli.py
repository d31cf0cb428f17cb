"""Tests for the typer CLI."""

import pytest
import typer
from typer.testing import CliRunner

from conversation_tts import config
from conversation_tts.cli.main import app, parse_speaker_option
from conversation_tts.services.tts_service import REFUSAL, SpeechResult

from conftest import ALICE, BOB, CAROL, ScriptedSpeechBackend, plan_json

runner = CliRunner()

PLAN = plan_json((1, [ALICE, BOB], "Alice: Hi.\nBob: Hey."), (2, [BOB, CAROL], "Carol: Hello."))
SPEAKER_ARGS = ["-s", "Alice=Zephyr", "-s", "Bob=Puck", "-s", "Carol=Aoede"]


@pytest.fixture
def script(tmp_path):
    path = tmp_path / "script.txt"
    path.write_text("Alice: Hi.\nBob: Hey.\nCarol: Hello.", encoding="utf-8")
    return path


@pytest.fixture
def patched(monkeypatch, store):
    """Route convert/show-job at the temp store and a scripted pipeline."""
    monkeypatch.setattr(config, "SESSIONS_ROOT", store.root)
    monkeypatch.setattr(config, "initialize_api_keys", lambda: "test-key")

    def install(pipeline):
        monkeypatch.setattr("conversation_tts.job_manager.build_default_pipeline", lambda: pipeline)
        return pipeline
    return install


def test_parse_speaker_option():
    assert parse_speaker_option(" Alice = Zephyr ") == {"name": "Alice", "voice": "Zephyr"}
    with pytest.raises(typer.BadParameter):
        parse_speaker_option("Alice")


def test_list_voices():
    result = runner.invoke(app, ["list-voices"])
    assert result.exit_code == 0
    assert "Kore" in result.output
    assert "Puck" in result.output


def test_convert(patched, make_pipeline, script):
    pipeline = patched(make_pipeline(PLAN))
    result = runner.invoke(app, ["convert", str(script), *SPEAKER_ARGS])

    assert result.exit_code == 0, result.output
    assert "conversation_Alice_Bob_Carol_" in result.output
    assert len(pipeline.backend.calls) == 2


def test_convert_without_api_key(monkeypatch, script):
    monkeypatch.setattr(config, "initialize_api_keys", lambda: None)
    result = runner.invoke(app, ["convert", str(script), *SPEAKER_ARGS])
    assert result.exit_code == 1


def test_convert_bad_roster(patched, make_pipeline, script):
    patched(make_pipeline(PLAN))
    result = runner.invoke(app, ["convert", str(script), "-s", "Alice=Zephyr", "-s", "Bob=Puck"])
    assert result.exit_code == 2


def test_convert_empty_script(patched, make_pipeline, tmp_path):
    empty = tmp_path / "empty.txt"
    empty.write_text("\n", encoding="utf-8")
    pipeline = patched(make_pipeline(PLAN))
    result = runner.invoke(app, ["convert", str(empty), *SPEAKER_ARGS])
    assert result.exit_code == 2
    assert pipeline.generator.prompts == []


def test_convert_synthesis_refused(patched, make_pipeline, script):
    backend = ScriptedSpeechBackend(default=SpeechResult(kind=REFUSAL, finish_reason="SAFETY"))
    patched(make_pipeline(PLAN, backend=backend))
    result = runner.invoke(app, ["convert", str(script), *SPEAKER_ARGS])
    assert result.exit_code == 1
    assert "synthesis_refusal" in result.output


def test_show_job(patched, make_pipeline, session_id, roster):
    pipeline = make_pipeline(PLAN)
    job = pipeline.run(session_id, "Alice: Hi.\nBob: Hey.\nCarol: Hello.", roster)

    result = runner.invoke(app, ["show-job", session_id, job.job_id])

    assert result.exit_code == 0, result.output
    assert "completed" in result.output


def test_show_job_missing(patched, session_id):
    result = runner.invoke(app, ["show-job", session_id, "nope"])
    assert result.exit_code == 1
