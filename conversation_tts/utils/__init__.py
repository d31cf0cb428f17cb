"""
Utility modules for Gemini Conversation TTS
"""
from .logging import log_error, print_error, print_warning
from .timing import WorkflowTimer
from .text import sanitize_path_component, speaker_file_stem, extract_json_text, now_ms

__all__ = [
    "log_error",
    "print_error",
    "print_warning",
    "WorkflowTimer",
    "sanitize_path_component",
    "speaker_file_stem",
    "extract_json_text",
    "now_ms",
]
