"""
Combine node for the conversation pipeline
"""
from ..core.constants import NODE_COMBINE
from ..models.conversation import JobStage
from ..state import ConversationState


def combine_node(state: ConversationState, combiner, tracker) -> ConversationState:
    """
    Combine 노드: 세그먼트 오디오를 합치고 최종 스냅샷을 기록

    합치기 실패는 작업 실패가 아니며 combination_outcome에만 반영됩니다.
    """
    timer = state["timer"]
    timer.start(NODE_COMBINE)
    print("\n[Combine] Starting...", flush=True)

    job = state["job"]
    result = combiner.combine(job, job.session_id)

    job.combination_outcome = result.outcome
    job.combined_audio_file = result.file
    job.combination_error = result.error
    job.stage = JobStage.COMPLETED

    duration = timer.end(NODE_COMBINE)
    job.timings = timer.summary()
    job.touch()
    tracker.record(job)

    print(
        f"Combine completed: {result.outcome.value} (Duration: {duration:.1f}s)",
        flush=True,
    )
    return state
