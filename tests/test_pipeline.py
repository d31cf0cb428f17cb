"""End-to-end tests for the conversation pipeline with scripted backends."""

import time

import pytest

from conversation_tts.core.errors import (
    InvalidConversationRequest,
    RosterValidationError,
    StructuralPlanError,
    SynthesisRefusal,
    SynthesisTransientFailure,
)
from conversation_tts.job_manager import JobRegistry
from conversation_tts.models.conversation import CombinationOutcome, Speaker
from conversation_tts.services.tts_service import EMPTY, REFUSAL, SpeechResult
from conversation_tts.session_store import SessionNotFoundError

from conftest import ALICE, BOB, CAROL, FailingMuxer, ScriptedSpeechBackend, plan_json

TEXT = "Alice: Hi everyone.\nBob: Hey Alice.\nCarol: Hello both."

TWO_SEGMENT_PLAN = plan_json(
    (1, [ALICE, BOB], "Alice: Hi everyone.\nBob: Hey Alice."),
    (2, [BOB, CAROL], "Carol: Hello both."),
)


def _transcripts(store, session_id):
    return sorted(p.name for p in store.path_for(session_id, "transcripts", "x").parent.iterdir())


def _audio(store, session_id):
    return sorted(p.name for p in store.path_for(session_id, "audio", "x").parent.iterdir())


def test_happy_path(make_pipeline, store, session_id, roster):
    """Two segments synthesized in order and combined."""
    pipeline = make_pipeline(TWO_SEGMENT_PLAN)
    result = pipeline.run(session_id, TEXT, roster)

    assert result.success
    assert result.combination_outcome == CombinationOutcome.SUCCESS
    assert result.combined_audio_file.startswith("conversation_Alice_Bob_Carol_")
    assert result.combined_audio_url == f"/api/audio/{session_id}/{result.combined_audio_file}"
    assert [s["segmentIndex"] for s in result.segments] == [1, 2]
    assert all(s["status"] == "synthesized" for s in result.segments)
    assert result.segments[0]["audioFile"].startswith("multi_Alice_Bob_")
    assert result.segments[1]["audioFile"].startswith("multi_Bob_Carol_")

    # one backend call per segment, pair order kept
    assert [call[1] for call in pipeline.backend.calls] == [(ALICE, BOB), (BOB, CAROL)]

    snapshot = pipeline.tracker.load(session_id, result.job_id)
    assert snapshot["status"] == "completed"
    assert snapshot["combinationStatus"] == "success"
    assert snapshot["combinationError"] is None
    assert snapshot["combinedAudioFile"] == result.combined_audio_file
    assert snapshot["rawSegmentation"] == TWO_SEGMENT_PLAN
    assert set(snapshot["timings"]) >= {"segmentation", "synthesis", "combine"}
    assert result.meta_file == f"conversation_meta_{result.job_id}.json"


def test_snapshot_checkpoints(make_pipeline, session_id, roster, monkeypatch):
    """Snapshot is written after segmentation, after synthesis and after combine."""
    pipeline = make_pipeline(TWO_SEGMENT_PLAN)
    stages = []
    original = pipeline.tracker.record

    def recording(job):
        stages.append(job.stage.value)
        return original(job)

    monkeypatch.setattr(pipeline.tracker, "record", recording)
    pipeline.run(session_id, TEXT, roster)

    assert stages == ["segmentation_complete", "segments_generated", "completed"]


def test_plan_written_before_first_synthesis(make_pipeline, store, session_id, roster, audio_result):
    seen = {}

    class PeekingBackend(ScriptedSpeechBackend):
        def synthesize(self, text, speakers):
            if "transcripts" not in seen:
                seen["transcripts"] = _transcripts(store, session_id)
            return super().synthesize(text, speakers)

    pipeline = make_pipeline(TWO_SEGMENT_PLAN, backend=PeekingBackend(default=audio_result))
    result = pipeline.run(session_id, TEXT, roster)
    assert seen["transcripts"] == [result.meta_file]


def test_invented_speaker_fails_before_synthesis(make_pipeline, store, session_id, roster):
    """No backend call and no snapshot when the plan names an unknown speaker."""
    plan = plan_json(
        (1, [ALICE, BOB], "Alice: Hi.\nBob: Hey."),
        (2, [CAROL, Speaker("Dave", "Kore")], "Dave: I'm new."),
    )
    pipeline = make_pipeline(plan)

    with pytest.raises(StructuralPlanError) as exc:
        pipeline.run(session_id, TEXT, roster)

    assert exc.value.segment_index == 2
    assert "Dave" in str(exc.value)
    assert pipeline.backend.calls == []
    assert _transcripts(store, session_id) == []
    assert _audio(store, session_id) == []


def test_repeated_speaker_fails_before_synthesis(make_pipeline, store, session_id, roster):
    plan = plan_json(
        (1, [ALICE, ALICE], "Alice: Hi.\nAlice: Me again."),
        (2, [BOB, CAROL], "Bob: Hey.\nCarol: Hello."),
    )
    pipeline = make_pipeline(plan)

    with pytest.raises(StructuralPlanError) as exc:
        pipeline.run(session_id, TEXT, roster)

    assert exc.value.segment_index == 1
    assert exc.value.field == "speakers"
    assert pipeline.backend.calls == []
    assert _audio(store, session_id) == []


def test_unparseable_plan(make_pipeline, session_id, roster):
    pipeline = make_pipeline("Sure! Here is the conversation split up nicely.")
    with pytest.raises(StructuralPlanError) as exc:
        pipeline.run(session_id, TEXT, roster)
    assert exc.value.field == "response"
    assert len(pipeline.generator.prompts) == 1


def test_muxer_failure_still_succeeds(make_pipeline, store, session_id, roster):
    """Segments stay available when combining fails."""
    pipeline = make_pipeline(TWO_SEGMENT_PLAN, muxer=FailingMuxer())
    result = pipeline.run(session_id, TEXT, roster)

    assert result.success
    assert result.combination_outcome == CombinationOutcome.FAILED
    assert result.combined_audio_file is None
    assert result.combined_audio_url is None
    assert len(_audio(store, session_id)) == 2

    snapshot = pipeline.tracker.load(session_id, result.job_id)
    assert snapshot["status"] == "completed"
    assert snapshot["combinationStatus"] == "failed"
    assert "muxer unavailable" in snapshot["combinationError"]


def test_always_refusing_backend_fails_job(make_pipeline, store, session_id, roster):
    backend = ScriptedSpeechBackend(default=SpeechResult(kind=REFUSAL, finish_reason="SAFETY"))
    pipeline = make_pipeline(TWO_SEGMENT_PLAN, backend=backend)

    with pytest.raises(SynthesisRefusal) as exc:
        pipeline.run(session_id, TEXT, roster)

    assert len(backend.calls) == 3
    assert exc.value.segment_index == 1

    meta = _transcripts(store, session_id)
    assert len(meta) == 1
    snapshot = store.read_json(session_id, "transcripts", meta[0])
    assert snapshot["status"] == "failed"
    assert snapshot["error"]["kind"] == "synthesis_refusal"
    assert snapshot["error"]["segment_index"] == 1
    assert [s["status"] for s in snapshot["segments"]] == ["failed", "pending"]


def test_second_segment_failure_keeps_first_audio(make_pipeline, store, session_id, roster, audio_result):
    """Files from segments already synthesized are not deleted."""
    backend = ScriptedSpeechBackend(audio_result, default=SpeechResult(kind=EMPTY))
    pipeline = make_pipeline(TWO_SEGMENT_PLAN, backend=backend)

    with pytest.raises(SynthesisTransientFailure) as exc:
        pipeline.run(session_id, TEXT, roster)

    assert exc.value.segment_index == 2
    assert len(backend.calls) == 4
    assert len(_audio(store, session_id)) == 1
    snapshot = store.read_json(session_id, "transcripts", _transcripts(store, session_id)[0])
    assert [s["status"] for s in snapshot["segments"]] == ["synthesized", "failed"]


def test_single_segment_copied_as_conversation(make_pipeline, store, session_id, roster):
    pipeline = make_pipeline(plan_json((1, [ALICE, CAROL], "Alice: Hi.\nCarol: Hello.")))
    result = pipeline.run(session_id, TEXT, roster)

    segment_file = result.segments[0]["audioFile"]
    combined = store.path_for(session_id, "audio", result.combined_audio_file).read_bytes()
    assert combined == store.path_for(session_id, "audio", segment_file).read_bytes()


def test_roster_error_before_job_exists(make_pipeline, store, session_id):
    registry = JobRegistry()
    pipeline = make_pipeline(TWO_SEGMENT_PLAN, registry=registry)

    with pytest.raises(RosterValidationError):
        pipeline.run(session_id, TEXT, [ALICE, BOB])

    assert len(registry) == 0
    assert pipeline.generator.prompts == []
    assert _transcripts(store, session_id) == []


def test_empty_text_rejected(make_pipeline, session_id, roster):
    with pytest.raises(InvalidConversationRequest, match="empty"):
        make_pipeline(TWO_SEGMENT_PLAN).run(session_id, "   ", roster)


def test_unknown_session_rejected(make_pipeline, roster):
    with pytest.raises(SessionNotFoundError):
        make_pipeline(TWO_SEGMENT_PLAN).run("no-such-session", TEXT, roster)


def test_missing_session_creates_one(make_pipeline, store, roster):
    result = make_pipeline(TWO_SEGMENT_PLAN).run(None, TEXT, roster)
    assert store.has_session(result.session_id)


def test_registry_tracks_completed_job(make_pipeline, session_id, roster):
    registry = JobRegistry()
    result = make_pipeline(TWO_SEGMENT_PLAN, registry=registry).run(session_id, TEXT, roster)

    status = registry.get_job_status(result.job_id)
    assert status["status"] == "completed"
    assert status["progress"] == {"segmentation": "completed", "synthesis": "completed", "combine": "completed"}
    assert status["segments_completed"] == 2
    assert status["segments_total"] == 2
    assert status["result"]["combinationStatus"] == "success"


def test_registry_tracks_failed_job(make_pipeline, session_id, roster):
    registry = JobRegistry()
    pipeline = make_pipeline(plan_json((1, [ALICE, ALICE, BOB], "x")), registry=registry)

    with pytest.raises(StructuralPlanError):
        pipeline.run(session_id, TEXT, roster)

    (job_id,) = registry.jobs
    status = registry.get_job_status(job_id)
    assert status["status"] == "failed"
    assert status["progress"]["segmentation"] == "failed"
    assert status["error"]["kind"] == "structural_plan"
    assert "exception" not in status["error"]


def test_start_background(make_pipeline, session_id, roster):
    registry = JobRegistry()
    pipeline = make_pipeline(TWO_SEGMENT_PLAN, registry=registry)
    job_id = pipeline.start_background(TEXT, roster, session_id)

    deadline = time.time() + 10
    while registry.get_job_status(job_id)["status"] == "processing" and time.time() < deadline:
        time.sleep(0.05)

    assert registry.get_job_status(job_id)["status"] == "completed"


def test_start_background_validates_in_caller(make_pipeline, session_id):
    with pytest.raises(RosterValidationError):
        make_pipeline(TWO_SEGMENT_PLAN).start_background(TEXT, [ALICE], session_id)
