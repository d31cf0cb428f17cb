"""
Session store for Gemini Conversation TTS
세션별 디렉토리(audio/transcripts/prompts) 및 파일 목록 관리
"""
import json
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config
from .core.constants import DIR_AUDIO, EXT_JSON, EXT_WAV, SESSION_FILE_KINDS
from .utils.logging import print_warning


class SessionNotFoundError(KeyError):
    """Unknown session id (neither registered nor present on disk)."""


class SessionStore:
    """
    Persistence collaborator for the pipeline.

    Every artifact a job produces (segment audio, combined audio, prompt
    audit, job snapshots) is written through this class so that the session
    file roster stays in step with what is on disk.
    """

    def __init__(self, root: Optional[Path] = None):
        """
        Args:
            root: 세션 루트 디렉토리 (None이면 config.SESSIONS_ROOT)
        """
        self.root = Path(root) if root is not None else config.SESSIONS_ROOT
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # sessions
    # ------------------------------------------------------------------
    def create_session(self, session_id: Optional[str] = None) -> str:
        """새 세션을 만들고 하위 디렉토리를 생성합니다."""
        session_id = session_id or str(uuid.uuid4())
        session_dir = self._session_dir(session_id)
        for kind in SESSION_FILE_KINDS:
            (session_dir / kind).mkdir(parents=True, exist_ok=True)

        with self._lock:
            self._sessions.setdefault(session_id, {
                "id": session_id,
                "directory": str(session_dir),
                "created": datetime.now().isoformat(),
                "files": {kind: [] for kind in SESSION_FILE_KINDS},
            })
        return session_id

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            if session_id in self._sessions:
                return True
        return self._is_safe_id(session_id) and self._session_dir(session_id).is_dir()

    def ensure_session(self, session_id: Optional[str]) -> str:
        """Return an existing session id, or create a fresh session."""
        if session_id and self.has_session(session_id):
            with self._lock:
                known = session_id in self._sessions
            if not known:
                # 재시작 후 디스크에만 남아 있는 세션을 다시 등록
                self.create_session(session_id)
            return session_id
        if session_id:
            raise SessionNotFoundError(session_id)
        return self.create_session()

    def get_session(self, session_id: str) -> Dict[str, Any]:
        """
        세션 정보(id, created, files)를 반환합니다.

        Raises:
            SessionNotFoundError: 등록되지 않은 세션
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            return {
                "id": session["id"],
                "created": session["created"],
                "files": {kind: list(names) for kind, names in session["files"].items()},
            }

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ------------------------------------------------------------------
    # files
    # ------------------------------------------------------------------
    def path_for(self, session_id: str, kind: str, filename: str) -> Path:
        """
        세션 파일의 절대 경로. 경로 탈출(../)은 허용하지 않습니다.

        Raises:
            ValueError: 알 수 없는 kind 또는 잘못된 파일명
        """
        if kind not in SESSION_FILE_KINDS:
            raise ValueError(f"Unknown session file kind: {kind}")
        if not self._is_safe_id(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        name = Path(filename).name
        if not name or name != filename or name in (".", ".."):
            raise ValueError(f"Invalid file name: {filename!r}")
        return self._session_dir(session_id) / kind / name

    def write_json(self, session_id: str, kind: str, filename: str, payload: Any) -> Path:
        """
        JSON 파일을 기록합니다 (덮어쓰기, 키 정렬).

        같은 payload는 항상 바이트 단위로 같은 파일을 만듭니다.
        """
        data = json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True) + "\n"
        return self.write_bytes(session_id, kind, filename, data.encode("utf-8"))

    def write_bytes(self, session_id: str, kind: str, filename: str, data: bytes) -> Path:
        path = self.path_for(session_id, kind, filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "wb") as f:
            f.write(data)
        tmp_path.replace(path)
        self.register_file(session_id, kind, filename)
        return path

    def read_json(self, session_id: str, kind: str, filename: str) -> Any:
        path = self.path_for(session_id, kind, filename)
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def register_file(self, session_id: str, kind: str, filename: str) -> None:
        """세션 파일 목록에 추가합니다 (append-only, 중복 무시)."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return
            names = session["files"].setdefault(kind, [])
            if filename not in names:
                names.append(filename)

    def list_files(self, session_id: str) -> Dict[str, List[Dict[str, Any]]]:
        """
        디스크에 있는 세션 파일 목록 (audio는 .wav, transcripts/prompts는 .json).

        Raises:
            SessionNotFoundError: 세션 디렉토리가 없음
        """
        if not self.has_session(session_id):
            raise SessionNotFoundError(session_id)

        files: Dict[str, List[Dict[str, Any]]] = {}
        session_dir = self._session_dir(session_id)
        for kind in SESSION_FILE_KINDS:
            wanted = EXT_WAV if kind == DIR_AUDIO else EXT_JSON
            entries = []
            kind_dir = session_dir / kind
            try:
                children = sorted(kind_dir.iterdir())
            except FileNotFoundError:
                children = []
            except OSError as e:
                print_warning(f"Could not read directory {kind_dir}: {e}", context="session_store")
                children = []
            for child in children:
                if not child.is_file() or child.suffix != wanted:
                    continue
                stat = child.stat()
                if kind == DIR_AUDIO:
                    url = f"/api/audio/{session_id}/{child.name}"
                else:
                    url = f"/api/file/{session_id}/{kind}/{child.name}"
                entries.append({
                    "name": child.name,
                    "size": stat.st_size,
                    "created": datetime.fromtimestamp(stat.st_mtime).isoformat(),
                    "url": url,
                })
            files[kind] = entries
        return files

    # ------------------------------------------------------------------
    def _session_dir(self, session_id: str) -> Path:
        return self.root / session_id

    @staticmethod
    def _is_safe_id(session_id: str) -> bool:
        return bool(session_id) and Path(session_id).name == session_id and session_id not in (".", "..")
