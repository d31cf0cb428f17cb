"""
Configuration management for Gemini Conversation TTS
"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
import google.generativeai as genai

# Application path handling
application_path = Path(__file__).parent.parent

# .env 파일 우선 로드 (이미 설정된 환경 변수는 덮어쓰지 않음)
load_dotenv(application_path / ".env")

# 세션 저장 루트 (세션별 audio/transcripts/prompts 폴더)
SESSIONS_ROOT = Path(os.getenv("SESSIONS_DIR", str(application_path / "sessions")))

# 에러 로그
ERROR_LOG_PATH = Path(os.getenv("ERROR_LOG_PATH", str(application_path / "error_log.txt")))

# 모델 설정
TTS_MODEL_NAME = os.getenv("TTS_MODEL_NAME", "gemini-2.5-flash-preview-tts")
ORCHESTRATOR_MODEL_NAME = os.getenv("ORCHESTRATOR_MODEL_NAME", "gemini-2.5-flash")

# 합성 재시도 / 쿼터 설정
TTS_RETRY_BASE_DELAY_SETTING = float(os.getenv("TTS_RETRY_BASE_DELAY", "1.0"))
TTS_QUOTA_RPM_SETTING = float(os.getenv("TTS_QUOTA_RPM", "9"))

# 서버 설정
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

PLACEHOLDER_API_KEY = "your_gemini_api_key_here"


def get_api_key() -> Optional[str]:
    """
    Gemini API 키를 환경 변수에서 찾습니다.

    우선순위:
    1. GEMINI_API_KEY
    2. GOOGLE_API_KEY

    .env 템플릿의 placeholder 값은 미설정으로 취급합니다.
    """
    for var_name in ("GEMINI_API_KEY", "GOOGLE_API_KEY"):
        value = (os.getenv(var_name) or "").strip()
        if value and value != PLACEHOLDER_API_KEY:
            return value
    return None


def initialize_api_keys() -> Optional[str]:
    """
    API 키 초기화 및 google.generativeai 설정

    Returns:
        사용된 API 키 (없으면 None)
    """
    api_key = get_api_key()
    if not api_key:
        print("✗ GEMINI_API_KEY is not set (or still the placeholder in .env)", flush=True)
        print("  ⚠ Planning and synthesis calls will fail until a key is configured", flush=True)
        return None

    genai.configure(api_key=api_key)
    print(f"✓ Gemini API configured ({api_key[:6]}...)", flush=True)
    print(f"  Models: TTS='{TTS_MODEL_NAME}', Orchestrator='{ORCHESTRATOR_MODEL_NAME}'", flush=True)
    return api_key
