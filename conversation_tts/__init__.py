"""
Gemini Conversation TTS
N명 화자 대화를 2인 세그먼트로 나누어 합성하는 파이프라인
"""
__version__ = "1.0.0"
