"""
Core modules for Gemini Conversation TTS
"""
from .constants import (
    TTS_QUOTA_RPM,
    TTS_MAX_ATTEMPTS,
    TTS_RETRY_BASE_DELAY,
    TTS_SAMPLE_RATE,
    REFUSAL_FINISH_REASONS,
    SPEAKERS_PER_SEGMENT,
    MIN_CONVERSATION_SPEAKERS,
)
from .errors import (
    InvalidConversationRequest,
    RosterValidationError,
    ConversationPipelineError,
    StructuralPlanError,
    SynthesisRefusal,
    SynthesisTransientFailure,
    CombinationFailure,
)
from .rate_limiter import RateLimiter, get_default_rate_limiter, set_default_rate_limiter
from .error_handler import ErrorHandler

__all__ = [
    "RateLimiter",
    "get_default_rate_limiter",
    "set_default_rate_limiter",
    "ErrorHandler",
    # Errors
    "InvalidConversationRequest",
    "RosterValidationError",
    "ConversationPipelineError",
    "StructuralPlanError",
    "SynthesisRefusal",
    "SynthesisTransientFailure",
    "CombinationFailure",
    # Constants
    "TTS_QUOTA_RPM",
    "TTS_MAX_ATTEMPTS",
    "TTS_RETRY_BASE_DELAY",
    "TTS_SAMPLE_RATE",
    "REFUSAL_FINISH_REASONS",
    "SPEAKERS_PER_SEGMENT",
    "MIN_CONVERSATION_SPEAKERS",
]
