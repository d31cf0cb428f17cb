"""
Segmentation node for the conversation pipeline
"""
from ..core.constants import NODE_SEGMENTATION
from ..core.error_handler import ErrorHandler
from ..models.conversation import ConversationJob, JobStage
from ..state import ConversationState


def segmentation_node(state: ConversationState, planner, tracker) -> ConversationState:
    """
    Segmentation 노드: 대화를 2인 세그먼트로 나누고 첫 스냅샷을 기록

    검증에 실패하면 스냅샷을 남기지 않고 에러만 기록합니다.

    Args:
        state: ConversationState
        planner: SegmentationPlanner
        tracker: JobStateTracker

    Returns:
        업데이트된 ConversationState
    """
    timer = state["timer"]
    timer.start(NODE_SEGMENTATION)
    print("\n[Segmentation] Starting...", flush=True)

    request = state["request"]
    session_id = state["session_id"]

    try:
        plan = planner.plan(request, session_id)
    except Exception as e:
        state["errors"].append(ErrorHandler.handle_node_error(NODE_SEGMENTATION, e))
        timer.end(NODE_SEGMENTATION)
        return state

    duration = timer.end(NODE_SEGMENTATION)

    job = ConversationJob(
        id=state["job_id"],
        session_id=session_id,
        request=request,
        segments=plan.segments,
        stage=JobStage.SEGMENTATION_COMPLETE,
        segmentation_prompt=plan.prompt,
        raw_segmentation=plan.raw_response,
        timings=timer.summary(),
    )

    # 합성 호출 전에 계획을 먼저 기록 (write-ahead)
    state["meta_file"] = tracker.record(job).name
    state["job"] = job

    print(
        f"Segmentation completed: {len(plan.segments)} segments (Duration: {duration:.1f}s)",
        flush=True,
    )
    return state
