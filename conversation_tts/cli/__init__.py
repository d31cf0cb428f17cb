"""
Typer/Rich CLI for Gemini Conversation TTS
"""
from .main import app

__all__ = ["app"]
