"""
Data models and voice metadata for Gemini Conversation TTS
"""
from .voice import VOICE_BANKS, KNOWN_VOICES, is_known_voice, list_voices
from .conversation import (
    Speaker,
    ConversationRequest,
    Segment,
    SegmentStatus,
    ConversationJob,
    JobStage,
    CombinationOutcome,
    ConversationResult,
)

__all__ = [
    "VOICE_BANKS",
    "KNOWN_VOICES",
    "is_known_voice",
    "list_voices",
    "Speaker",
    "ConversationRequest",
    "Segment",
    "SegmentStatus",
    "ConversationJob",
    "JobStage",
    "CombinationOutcome",
    "ConversationResult",
]
