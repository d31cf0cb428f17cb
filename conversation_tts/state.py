"""
State definition for the conversation pipeline graph
"""
from typing import TypedDict, Optional

from .models.conversation import ConversationJob, ConversationRequest
from .utils.timing import WorkflowTimer


class ConversationState(TypedDict):
    """State schema shared across the graph"""

    # Input
    job_id: str  # 레지스트리와 스냅샷 파일명에 같이 쓰이는 작업 ID
    session_id: str
    request: ConversationRequest  # 검증된 화자 목록 + 원본 텍스트

    # Segmentation output (검증 통과 후에만 생성)
    job: Optional[ConversationJob]
    meta_file: Optional[str]  # transcripts/ 아래 스냅샷 파일명

    # Synthesis progress
    segments_completed: int

    # Per-job stage timings
    timer: WorkflowTimer

    # Error tracking
    errors: list[dict]  # ErrorHandler.handle_node_error 레코드
