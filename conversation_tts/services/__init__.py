"""
Service modules for Gemini Conversation TTS
"""
from .roster_service import validate_roster, validate_duo, validate_segment_plan
from .planner_service import (
    TextGenerator,
    GeminiTextGenerator,
    SegmentationPlanner,
    SegmentationPlan,
    PlanParsed,
    PlanParseFailure,
    build_segmentation_prompt,
    parse_segmentation_response,
)
from .tts_service import (
    SpeechBackend,
    SpeechResult,
    GeminiSpeechBackend,
    SegmentSynthesizer,
    SynthesisAttempt,
    SynthesizedAudio,
    next_attempt,
    sanitize_for_tts,
)
from .tracker_service import JobStateTracker
from .audio_service import AudioCombiner, AudioMuxer, PydubMuxer, CombinationResult

__all__ = [
    "validate_roster",
    "validate_duo",
    "validate_segment_plan",
    "TextGenerator",
    "GeminiTextGenerator",
    "SegmentationPlanner",
    "SegmentationPlan",
    "PlanParsed",
    "PlanParseFailure",
    "build_segmentation_prompt",
    "parse_segmentation_response",
    "SpeechBackend",
    "SpeechResult",
    "GeminiSpeechBackend",
    "SegmentSynthesizer",
    "SynthesisAttempt",
    "SynthesizedAudio",
    "next_attempt",
    "sanitize_for_tts",
    "JobStateTracker",
    "AudioCombiner",
    "AudioMuxer",
    "PydubMuxer",
    "CombinationResult",
]
