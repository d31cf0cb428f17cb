"""
FastAPI Server for Gemini Conversation TTS
세션, 2인 합성, N인 대화 합성, 파일 다운로드 REST API
"""
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel

from . import config
from .core.constants import DIR_AUDIO, DIR_PROMPTS, DIR_TRANSCRIPTS
from .core.errors import (
    ConversationPipelineError,
    InvalidConversationRequest,
    RosterValidationError,
    StructuralPlanError,
)
from .job_manager import ConversationPipeline, JobRegistry, build_default_pipeline
from .models.voice import KNOWN_VOICES, list_voices
from .services.roster_service import validate_duo
from .session_store import SessionNotFoundError, SessionStore
from .utils.logging import log_error


# Pydantic 모델
class DuoRequest(BaseModel):
    sessionId: Optional[str] = None
    text: Optional[str] = None
    speakers: Optional[List[Dict[str, Any]]] = None


class ConversationRequestBody(BaseModel):
    sessionId: Optional[str] = None
    text: Optional[str] = None
    speakers: Optional[List[Dict[str, Any]]] = None


class JobResponse(BaseModel):
    job_id: str
    status: str


# FastAPI 앱 생성
app = FastAPI(
    title="Gemini Conversation TTS API",
    description="Multi-speaker conversation synthesis on top of two-speaker Gemini TTS",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    start_time = time.time()
    print(f"\n[API Request] {request.method} {request.url.path}", flush=True)

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    print(f"[API Response] {response.status_code} ({process_time:.2f}ms)", flush=True)
    return response


# 프로세스 단위 공유 객체 (의존성 주입으로 테스트에서 교체)
_store: Optional[SessionStore] = None
_registry: Optional[JobRegistry] = None
_pipeline: Optional[ConversationPipeline] = None


def get_store() -> SessionStore:
    global _store
    if _store is None:
        _store = SessionStore()
    return _store


def get_registry() -> JobRegistry:
    global _registry
    if _registry is None:
        _registry = JobRegistry()
    return _registry


def get_pipeline() -> ConversationPipeline:
    global _pipeline
    if not config.get_api_key():
        raise HTTPException(status_code=503, detail="AI Service not initialized. Check GEMINI_API_KEY.")
    if _pipeline is None:
        _pipeline = build_default_pipeline(store=get_store(), registry=get_registry())
    return _pipeline


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    body = {"success": False, "error": message}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def _pipeline_error_response(error: ConversationPipelineError) -> JSONResponse:
    # 모델 출력/백엔드 문제는 업스트림 실패로 보고
    label = "Structural plan error" if isinstance(error, StructuralPlanError) else "Synthesis failed"
    return _error(502, f"{label}: {error.message}", details=error.to_dict())


@app.on_event("startup")
async def startup_event():
    """서버 시작 시 초기화"""
    print("=" * 70, flush=True)
    print("Gemini Conversation TTS API Server Starting...", flush=True)
    print("=" * 70, flush=True)
    config.initialize_api_keys()
    print(f"✓ Sessions directory: {config.SESSIONS_ROOT}", flush=True)
    print("✓ Server ready to accept requests", flush=True)
    print("=" * 70, flush=True)


@app.get("/health")
def health_check(store: SessionStore = Depends(get_store)):
    """헬스 체크"""
    return {
        "success": True,
        "message": "Gemini Conversation TTS API is running",
        "timestamp": datetime.now().isoformat(),
        "sessions": store.session_count(),
        "modelsInUse": {
            "TTS_MODEL": config.TTS_MODEL_NAME,
            "ORCHESTRATOR_MODEL": config.ORCHESTRATOR_MODEL_NAME,
        },
        "geminiService": "Initialized" if config.get_api_key() else "Not Initialized (GEMINI_API_KEY missing or default)",
    }


@app.post("/api/session")
def create_session(store: SessionStore = Depends(get_store)):
    """새 세션 생성"""
    try:
        session_id = store.create_session()
    except OSError as e:
        log_error(f"Failed to create session: {e}", context="server", exception=e)
        return _error(500, f"Failed to create session: {e}")
    return {"success": True, "sessionId": session_id, "message": "Session created successfully"}


@app.get("/api/session/{session_id}")
def get_session(session_id: str, store: SessionStore = Depends(get_store)):
    try:
        session = store.get_session(session_id)
    except SessionNotFoundError:
        return _error(404, "Session not found")
    return {"success": True, "session": session}


@app.get("/api/session/{session_id}/files")
def list_session_files(session_id: str, store: SessionStore = Depends(get_store)):
    try:
        files = store.list_files(session_id)
    except SessionNotFoundError:
        return _error(404, "Session not found or directory inaccessible")
    return {"success": True, "files": files}


@app.post("/api/tts/duo")
def duo_tts(
    request: DuoRequest,
    store: SessionStore = Depends(get_store),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """
    2인 화자 합성 (세그먼트 하나)

    Args:
        request: DuoRequest
            - sessionId: 세션 ID
            - text: 합성할 대화 텍스트
            - speakers: [{"name", "voice"}] 정확히 2명
    """
    if not request.sessionId or not store.has_session(request.sessionId):
        return _error(400, "Valid session ID required")
    if not request.text or not request.text.strip() or not request.speakers:
        return _error(400, "Text and speakers array are required")
    try:
        speakers = validate_duo(request.speakers)
    except RosterValidationError as e:
        return _error(400, str(e))

    session_id = store.ensure_session(request.sessionId)
    try:
        audio = pipeline.synthesizer.synthesize_duo(request.text, speakers, session_id)
    except ConversationPipelineError as e:
        return _pipeline_error_response(e)
    except Exception as e:
        log_error(f"Duo TTS failed: {e}", context="server", exception=e)
        return _error(500, f"Failed in duo speaker TTS: {e}")
    return audio.to_dict(session_id)


@app.post("/api/tts/conversation")
def conversation_tts(
    request: ConversationRequestBody,
    store: SessionStore = Depends(get_store),
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """
    3명 이상 화자 대화 합성 (동기 실행)

    Returns:
        ConversationResult 딕셔너리
    """
    if not request.sessionId or not store.has_session(request.sessionId):
        return _error(400, "Valid session ID required")
    try:
        result = pipeline.run(request.sessionId, request.text or "", request.speakers or [])
    except (InvalidConversationRequest, SessionNotFoundError) as e:
        return _error(400, str(e))
    except ConversationPipelineError as e:
        return _pipeline_error_response(e)
    except Exception as e:
        log_error(f"Conversation TTS failed: {e}", context="server", exception=e)
        return _error(500, f"Failed in conversation TTS: {e}")
    return result.to_dict()


@app.post("/api/v1/conversations", response_model=JobResponse)
def start_conversation_job(
    request: ConversationRequestBody,
    pipeline: ConversationPipeline = Depends(get_pipeline),
):
    """
    대화 합성 작업을 백그라운드에서 시작

    Returns:
        JobResponse: job_id와 status 포함
    """
    try:
        job_id = pipeline.start_background(request.text or "", request.speakers or [], request.sessionId)
    except (InvalidConversationRequest, SessionNotFoundError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JobResponse(job_id=job_id, status="processing")


@app.get("/api/v1/conversations/{job_id}/status")
def get_conversation_status(job_id: str, registry: JobRegistry = Depends(get_registry)):
    """
    작업 진행 상태 조회

    Args:
        job_id: 작업 ID
    """
    status = registry.get_job_status(job_id)
    if not status:
        raise HTTPException(status_code=404, detail="Job not found")
    return status


@app.get("/api/audio/{session_id}/{filename}")
def download_audio(session_id: str, filename: str, store: SessionStore = Depends(get_store)):
    """세션 오디오(WAV) 다운로드"""
    try:
        path = store.path_for(session_id, DIR_AUDIO, filename)
    except ValueError:
        return _error(404, "Session or audio file not found")
    if not path.is_file():
        return _error(404, "Audio file not found")
    return FileResponse(path=str(path), media_type="audio/wav", filename=filename)


@app.get("/api/file/{session_id}/{kind}/{filename}")
def download_file(session_id: str, kind: str, filename: str, store: SessionStore = Depends(get_store)):
    """transcripts/prompts JSON 파일 다운로드"""
    if kind not in (DIR_TRANSCRIPTS, DIR_PROMPTS):
        return _error(400, "Invalid file type specified")
    try:
        path = store.path_for(session_id, kind, filename)
    except ValueError:
        return _error(404, "File not found")
    if not path.is_file():
        return _error(404, "File not found")
    return FileResponse(path=str(path), media_type="application/json", filename=filename)


@app.get("/api/voices")
def get_available_voices():
    """사용 가능한 음성 목록 조회"""
    return {"success": True, "voices": list(KNOWN_VOICES), "details": list_voices()}


def main():
    """서버 실행"""
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level="info"
    )


if __name__ == "__main__":
    main()
