"""
LangGraph StateGraph assembly for the conversation pipeline
"""
from typing import Callable, Optional

from langgraph.graph import StateGraph, END

from .core.constants import NODE_COMBINE, NODE_ERROR_HANDLER, NODE_SEGMENTATION, NODE_SYNTHESIS
from .state import ConversationState
from .nodes.segmentation import segmentation_node
from .nodes.synthesis import synthesis_node
from .nodes.combine import combine_node


def has_fatal_error(state: ConversationState) -> bool:
    return bool(state.get("errors"))


def should_continue_to_synthesis(state: ConversationState) -> str:
    """
    Segmentation 완료 후 검증된 작업이 있는지 확인하는 조건부 엣지
    """
    if has_fatal_error(state) or state.get("job") is None:
        return NODE_ERROR_HANDLER
    return NODE_SYNTHESIS


def should_continue_to_combine(state: ConversationState) -> str:
    """
    Synthesis 완료 후 모든 세그먼트가 합성되었는지 확인하는 조건부 엣지
    """
    if has_fatal_error(state):
        return NODE_ERROR_HANDLER
    return NODE_COMBINE


def error_handler_node(state: ConversationState) -> ConversationState:
    """
    에러 처리 노드: 치명적 에러가 기록된 경우 그래프 종료
    """
    errors = state.get("errors", [])
    if not errors:
        state["errors"].append({
            "node_name": NODE_SEGMENTATION,
            "error_message": "Segmentation produced no job",
            "error_type": "RuntimeError",
            "kind": "unexpected",
            "segment_index": None,
            "exception": RuntimeError("Segmentation produced no job"),
        })

    last = state["errors"][-1]
    print(f"  ✗ Error: Cannot proceed after {last['node_name']}: {last['error_message']}", flush=True)
    return state


def create_conversation_graph(
    planner,
    synthesizer,
    tracker,
    combiner,
    on_progress: Optional[Callable[[int, int], None]] = None,
):
    """
    대화 TTS 파이프라인용 LangGraph StateGraph 생성

    Args:
        planner: SegmentationPlanner
        synthesizer: SegmentSynthesizer
        tracker: JobStateTracker
        combiner: AudioCombiner
        on_progress: 세그먼트 합성 진행 콜백 (완료 수, 전체 수)

    Returns:
        컴파일된 StateGraph
    """
    workflow = StateGraph(ConversationState)

    workflow.add_node(NODE_SEGMENTATION, lambda state: segmentation_node(state, planner, tracker))
    workflow.add_node(NODE_SYNTHESIS, lambda state: synthesis_node(state, synthesizer, tracker, on_progress))
    workflow.add_node(NODE_COMBINE, lambda state: combine_node(state, combiner, tracker))
    workflow.add_node(NODE_ERROR_HANDLER, error_handler_node)

    workflow.set_entry_point(NODE_SEGMENTATION)

    # segmentation → synthesis (조건부) 또는 error_handler
    workflow.add_conditional_edges(
        NODE_SEGMENTATION,
        should_continue_to_synthesis,
        {
            NODE_SYNTHESIS: NODE_SYNTHESIS,
            NODE_ERROR_HANDLER: NODE_ERROR_HANDLER,
        }
    )

    # synthesis → combine (조건부) 또는 error_handler
    workflow.add_conditional_edges(
        NODE_SYNTHESIS,
        should_continue_to_combine,
        {
            NODE_COMBINE: NODE_COMBINE,
            NODE_ERROR_HANDLER: NODE_ERROR_HANDLER,
        }
    )

    workflow.add_edge(NODE_COMBINE, END)
    workflow.add_edge(NODE_ERROR_HANDLER, END)

    return workflow.compile()
