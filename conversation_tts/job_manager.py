"""
Job manager for Gemini Conversation TTS
파이프라인 실행 및 작업 상태 관리
"""
import threading
import time
import uuid
from typing import Any, Dict, Iterable, Optional

from .core.constants import NODE_COMBINE, NODE_ERROR_HANDLER, NODE_SEGMENTATION, NODE_SYNTHESIS
from .core.error_handler import ErrorHandler
from .core.errors import InvalidConversationRequest
from .graph import create_conversation_graph
from .models.conversation import ConversationRequest, ConversationResult
from .services.roster_service import validate_roster
from .state import ConversationState
from .utils.logging import log_error
from .utils.timing import WorkflowTimer


class JobStatus:
    """작업 상태 클래스"""
    def __init__(self, job_id: str, session_id: Optional[str] = None):
        self.job_id = job_id
        self.session_id = session_id
        self.status = "pending"  # pending, processing, completed, failed
        self.current_step = None  # segmentation, synthesis, combine
        self.progress = {
            NODE_SEGMENTATION: "pending",
            NODE_SYNTHESIS: "pending",
            NODE_COMBINE: "pending",
        }
        self.segments_completed = 0
        self.segments_total = 0
        self.result = None
        self.error = None
        self.created_at = time.time()
        self.updated_at = time.time()

    def to_dict(self) -> dict:
        """딕셔너리로 변환"""
        data = {
            "job_id": self.job_id,
            "session_id": self.session_id,
            "status": self.status,
            "current_step": self.current_step,
            "progress": dict(self.progress),
            "segments_completed": self.segments_completed,
            "segments_total": self.segments_total,
        }
        if self.result:
            data["result"] = self.result
        if self.error:
            data["error"] = self.error
        return data


class JobRegistry:
    """
    Thread-safe in-memory job status map.

    Entries are kept until the process exits.
    """

    def __init__(self):
        self.jobs: Dict[str, JobStatus] = {}
        self.jobs_lock = threading.Lock()

    def register(self, job_id: str, session_id: Optional[str] = None) -> JobStatus:
        job_status = JobStatus(job_id, session_id)
        job_status.status = "processing"
        with self.jobs_lock:
            self.jobs[job_id] = job_status
        return job_status

    def get_job_status(self, job_id: str) -> Optional[dict]:
        """작업 상태 조회"""
        with self.jobs_lock:
            job = self.jobs.get(job_id)
            if job:
                return job.to_dict()
        return None

    def update(
        self,
        job_id: str,
        status: Optional[str] = None,
        current_step: Optional[str] = None,
        progress_update: Optional[dict] = None,
        segments_completed: Optional[int] = None,
        segments_total: Optional[int] = None,
        result: Optional[dict] = None,
        error: Optional[dict] = None,
    ) -> None:
        """작업 상태 업데이트"""
        with self.jobs_lock:
            job = self.jobs.get(job_id)
            if not job:
                return

            if status:
                job.status = status
            if current_step:
                job.current_step = current_step
            if progress_update:
                job.progress.update(progress_update)
            if segments_completed is not None:
                job.segments_completed = segments_completed
            if segments_total is not None:
                job.segments_total = segments_total
            if result:
                job.result = result
            if error:
                job.error = error

            job.updated_at = time.time()

    def __len__(self) -> int:
        with self.jobs_lock:
            return len(self.jobs)


class ConversationPipeline:
    """
    Runs one conversation job end to end:
    roster check → segmentation → synthesis → combine.

    All collaborators are injected so tests can substitute scripted fakes.
    """

    def __init__(self, planner, synthesizer, tracker, combiner, store, registry: Optional[JobRegistry] = None):
        self.planner = planner
        self.synthesizer = synthesizer
        self.tracker = tracker
        self.combiner = combiner
        self.store = store
        self.registry = registry if registry is not None else JobRegistry()

    def prepare(self, text: str, speakers: Iterable[Any], session_id: Optional[str] = None, job_id: Optional[str] = None):
        """
        화자 검증 후 작업을 레지스트리에 등록합니다.

        Returns:
            (job_id, session_id, ConversationRequest)

        Raises:
            RosterValidationError: 화자 목록이 잘못됨
            InvalidConversationRequest: 텍스트가 비어 있음
        """
        if not text or not text.strip():
            raise InvalidConversationRequest("Conversation text cannot be empty")
        roster = validate_roster(speakers)
        session_id = self.store.ensure_session(session_id)
        job_id = job_id or uuid.uuid4().hex
        self.registry.register(job_id, session_id)
        return job_id, session_id, ConversationRequest(text=text, speakers=tuple(roster))

    def run(self, session_id: Optional[str], text: str, speakers: Iterable[Any]) -> ConversationResult:
        """
        Raises:
            RosterValidationError: before any job is created
            StructuralPlanError, SynthesisRefusal, SynthesisTransientFailure:
                the fatal error recorded by the failing node
        """
        job_id, session_id, request = self.prepare(text, speakers, session_id)
        return self.execute(job_id, session_id, request)

    def execute(self, job_id: str, session_id: str, request: ConversationRequest) -> ConversationResult:
        """등록된 작업을 실행합니다."""
        initial_state: ConversationState = {
            "job_id": job_id,
            "session_id": session_id,
            "request": request,
            "job": None,
            "meta_file": None,
            "segments_completed": 0,
            "timer": WorkflowTimer(),
            "errors": [],
        }

        def on_progress(completed: int, total: int) -> None:
            self.registry.update(job_id, segments_completed=completed, segments_total=total)

        app = create_conversation_graph(
            self.planner, self.synthesizer, self.tracker, self.combiner, on_progress=on_progress
        )

        self.registry.update(
            job_id,
            current_step=NODE_SEGMENTATION,
            progress_update={NODE_SEGMENTATION: "in_progress"},
        )

        try:
            final_state = self._run_graph_with_updates(app, initial_state, job_id)
        except Exception as e:
            log_error(f"Job {job_id} failed: {e}", context="job_manager", exception=e)
            self.registry.update(job_id, status="failed", error={"kind": "unexpected", "message": str(e)})
            raise

        errors = final_state.get("errors", [])
        if errors:
            error_info = errors[0]
            self.registry.update(job_id, status="failed", error=ErrorHandler.public_record(error_info))
            raise error_info["exception"]

        job = final_state["job"]
        result = ConversationResult.from_job(job, final_state["meta_file"])
        self.registry.update(job_id, status="completed", result=result.to_dict())
        return result

    def _run_graph_with_updates(self, app, initial_state: ConversationState, job_id: str) -> ConversationState:
        """그래프를 실행하면서 노드 완료 시점마다 레지스트리를 갱신"""
        final_state = dict(initial_state)

        for output in app.stream(initial_state):
            # output은 {node_name: state_update} 형태
            for node_name, state_update in output.items():
                print(f"Job {job_id} - Node completed: {node_name}", flush=True)

                if isinstance(state_update, dict):
                    final_state.update(state_update)

                if node_name == NODE_SEGMENTATION:
                    job = final_state.get("job")
                    if job is not None:
                        self.registry.update(
                            job_id,
                            current_step=NODE_SYNTHESIS,
                            progress_update={NODE_SEGMENTATION: "completed", NODE_SYNTHESIS: "in_progress"},
                            segments_total=len(job.segments),
                        )
                    else:
                        self.registry.update(job_id, progress_update={NODE_SEGMENTATION: "failed"})

                elif node_name == NODE_SYNTHESIS:
                    if final_state.get("errors"):
                        self.registry.update(job_id, progress_update={NODE_SYNTHESIS: "failed"})
                    else:
                        self.registry.update(
                            job_id,
                            current_step=NODE_COMBINE,
                            progress_update={NODE_SYNTHESIS: "completed", NODE_COMBINE: "in_progress"},
                        )

                elif node_name == NODE_COMBINE:
                    self.registry.update(job_id, progress_update={NODE_COMBINE: "completed"})

                elif node_name == NODE_ERROR_HANDLER:
                    self.registry.update(job_id, current_step=NODE_ERROR_HANDLER)

        return final_state

    def start_background(self, text: str, speakers: Iterable[Any], session_id: Optional[str] = None) -> str:
        """
        백그라운드 스레드에서 파이프라인을 실행하고 작업 ID를 즉시 반환합니다.

        화자 검증은 호출 스레드에서 수행되므로 잘못된 요청은 바로 예외가 납니다.
        """
        job_id, session_id, request = self.prepare(text, speakers, session_id)

        thread = threading.Thread(
            target=self._run_background,
            args=(job_id, session_id, request),
            daemon=True,
        )
        thread.start()
        return job_id

    def _run_background(self, job_id: str, session_id: str, request: ConversationRequest) -> None:
        try:
            self.execute(job_id, session_id, request)
        except Exception as e:
            # 상태는 execute()에서 이미 failed로 기록됨
            print(f"Job {job_id} failed: {type(e).__name__}: {e}", flush=True)


def build_default_pipeline(store=None, registry: Optional[JobRegistry] = None) -> ConversationPipeline:
    """
    Gemini 백엔드로 구성된 운영용 파이프라인을 생성합니다.
    """
    from .session_store import SessionStore
    from .services.audio_service import AudioCombiner, PydubMuxer
    from .services.planner_service import GeminiTextGenerator, SegmentationPlanner
    from .services.tracker_service import JobStateTracker
    from .services.tts_service import GeminiSpeechBackend, SegmentSynthesizer
    from . import config

    store = store or SessionStore()
    return ConversationPipeline(
        planner=SegmentationPlanner(GeminiTextGenerator(), store),
        synthesizer=SegmentSynthesizer(
            GeminiSpeechBackend(),
            store,
            base_delay=config.TTS_RETRY_BASE_DELAY_SETTING,
        ),
        tracker=JobStateTracker(store),
        combiner=AudioCombiner(store, PydubMuxer()),
        store=store,
        registry=registry,
    )


def run_conversation_pipeline(
    text: str,
    speakers: Iterable[Any],
    *,
    session_id: Optional[str] = None,
    pipeline: Optional[ConversationPipeline] = None,
) -> ConversationResult:
    """Run one conversation job synchronously (default Gemini pipeline if none given)."""
    pipeline = pipeline or build_default_pipeline()
    return pipeline.run(session_id, text, speakers)
