"""Shared fixtures for conversation TTS tests."""

import json

import pytest
from pydub import AudioSegment

from conversation_tts import config
from conversation_tts.job_manager import ConversationPipeline, JobRegistry
from conversation_tts.models.conversation import Speaker
from conversation_tts.services.audio_service import AudioCombiner, PydubMuxer
from conversation_tts.services.planner_service import SegmentationPlanner
from conversation_tts.services.tracker_service import JobStateTracker
from conversation_tts.services.tts_service import AUDIO, SegmentSynthesizer, SpeechResult
from conversation_tts.session_store import SessionStore


ALICE = Speaker("Alice", "Zephyr")
BOB = Speaker("Bob", "Puck")
CAROL = Speaker("Carol", "Aoede")


def plan_json(*segments):
    """Build a planner reply from (index, [Speaker, ...], text) tuples."""
    return json.dumps([
        {
            "segmentIndex": index,
            "speakers": [s.to_dict() if isinstance(s, Speaker) else s for s in speakers],
            "text": text,
            "description": f"segment {index}",
        }
        for index, speakers, text in segments
    ])


class ScriptedTextGenerator:
    """Returns canned planner replies in order and records prompts."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        reply = self.responses.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class ScriptedSpeechBackend:
    """
    Returns scripted SpeechResults in order; once the script runs out,
    every call returns `default`.
    """

    def __init__(self, *outcomes, default=None):
        self.outcomes = list(outcomes)
        self.default = default
        self.calls = []

    def synthesize(self, text, speakers):
        self.calls.append((text, tuple(speakers)))
        if self.outcomes:
            return self.outcomes.pop(0)
        return self.default


class FailingMuxer:
    def __init__(self):
        self.calls = 0

    def concatenate(self, inputs, output):
        self.calls += 1
        raise RuntimeError("muxer unavailable")


@pytest.fixture(autouse=True)
def isolated_error_log(tmp_path, monkeypatch):
    """Keep error_log.txt writes inside the test's temp dir."""
    log_path = tmp_path / "error_log.txt"
    monkeypatch.setattr(config, "ERROR_LOG_PATH", log_path)
    return log_path


@pytest.fixture
def pcm_audio():
    """100ms of silent 24 kHz mono 16-bit PCM."""
    return AudioSegment.silent(duration=100, frame_rate=24000).set_sample_width(2).raw_data


@pytest.fixture
def audio_result(pcm_audio):
    return SpeechResult(kind=AUDIO, audio=pcm_audio)


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "sessions")


@pytest.fixture
def session_id(store):
    return store.create_session()


@pytest.fixture
def roster():
    return [ALICE, BOB, CAROL]


@pytest.fixture
def make_pipeline(store, audio_result):
    """Factory for a pipeline wired to scripted fakes and a zero-delay synthesizer."""

    def factory(planner_reply, backend=None, muxer=None, registry=None):
        generator = planner_reply if isinstance(planner_reply, ScriptedTextGenerator) \
            else ScriptedTextGenerator(planner_reply)
        backend = backend or ScriptedSpeechBackend(default=audio_result)
        pipeline = ConversationPipeline(
            planner=SegmentationPlanner(generator, store),
            synthesizer=SegmentSynthesizer(backend, store, base_delay=0.0, sleep=lambda s: None),
            tracker=JobStateTracker(store),
            combiner=AudioCombiner(store, muxer or PydubMuxer()),
            store=store,
            registry=registry if registry is not None else JobRegistry(),
        )
        pipeline.generator = generator
        pipeline.backend = backend
        return pipeline

    return factory
