"""
Gemini Conversation TTS - Entry Point
이 파일은 단순 래퍼이며, 실제 로직은 conversation_tts/cli/main.py에 있습니다.
"""
import sys
from pathlib import Path

# 설치하지 않고 저장소 루트에서 실행할 때를 위해 경로 추가
current_dir = Path(__file__).parent
if str(current_dir) not in sys.path:
    sys.path.insert(0, str(current_dir))

from conversation_tts.cli.main import app


if __name__ == "__main__":
    app()
