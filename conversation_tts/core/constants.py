"""
Constants for Gemini Conversation TTS
매직 넘버와 문자열 상수를 한 곳에서 관리
"""

# TTS Rate Limiting
TTS_QUOTA_RPM: float = 9.0  # requests per minute, with safety margin
TTS_REQUEST_TIMEOUT_SEC: float = 300.0  # single call upper bound

# TTS retry policy
TTS_MAX_ATTEMPTS: int = 3
TTS_RETRY_BASE_DELAY: float = 1.0  # seconds; sleep = attempt * base

# Finish reasons the backend uses when it declines to render audio
REFUSAL_FINISH_REASONS: tuple = ("SAFETY", "OTHER")

# Characters kept when sanitizing refused text: \w (letters incl. non-ASCII, digits, underscore), whitespace, : . , ! ? -
TTS_SANITIZE_PATTERN: str = r"[^\w\s:.,!?-]"

# Audio format returned by Gemini TTS (PCM L16 mono)
TTS_SAMPLE_RATE: int = 24000
TTS_SAMPLE_WIDTH: int = 2
TTS_CHANNELS: int = 1

# Speakers per backend call (Gemini multi-speaker limit)
SPEAKERS_PER_SEGMENT: int = 2
MIN_CONVERSATION_SPEAKERS: int = 3

# Session directory layout
DIR_AUDIO: str = "audio"
DIR_TRANSCRIPTS: str = "transcripts"
DIR_PROMPTS: str = "prompts"
SESSION_FILE_KINDS: tuple = (DIR_AUDIO, DIR_TRANSCRIPTS, DIR_PROMPTS)

# File extensions
EXT_WAV: str = ".wav"
EXT_JSON: str = ".json"

# File name prefixes
PREFIX_SEGMENT_AUDIO: str = "multi"
PREFIX_COMBINED_AUDIO: str = "conversation"
PREFIX_JOB_SNAPSHOT: str = "conversation_meta"
PREFIX_SEGMENTATION_PROMPT: str = "conversation_segmentation_prompt"


# Planner input guard
MAX_SEGMENTATION_INPUT_LENGTH: int = 50000

# Graph node names
NODE_SEGMENTATION: str = "segmentation"
NODE_SYNTHESIS: str = "synthesis"
NODE_COMBINE: str = "combine"
NODE_ERROR_HANDLER: str = "error_handler"
