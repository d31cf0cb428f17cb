"""
Synthesis node for the conversation pipeline
"""
from typing import Callable, Optional

from ..core.constants import NODE_SYNTHESIS
from ..core.error_handler import ErrorHandler
from ..core.errors import ConversationPipelineError
from ..models.conversation import JobStage, SegmentStatus
from ..state import ConversationState


def synthesis_node(
    state: ConversationState,
    synthesizer,
    tracker,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> ConversationState:
    """
    Synthesis 노드: 세그먼트를 배열 순서대로 하나씩 합성

    첫 번째로 재시도를 소진한 세그먼트에서 작업 전체를 실패 처리합니다.
    이미 저장된 세그먼트 파일은 그대로 둡니다.

    Args:
        state: ConversationState
        synthesizer: SegmentSynthesizer
        tracker: JobStateTracker
        on_progress: (완료 수, 전체 수) 콜백
    """
    timer = state["timer"]
    timer.start(NODE_SYNTHESIS)
    print("\n[Synthesis] Starting...", flush=True)

    job = state["job"]
    total = len(job.segments)

    for position, segment in enumerate(job.segments, start=1):
        print(
            f"  Segment {segment.index} ({position}/{total}): "
            f"{segment.speakers[0].name} & {segment.speakers[1].name}",
            flush=True,
        )
        try:
            audio = synthesizer.synthesize(
                segment.text,
                segment.speakers,
                job.session_id,
                segment_index=segment.index,
            )
        except Exception as e:
            segment.status = SegmentStatus.FAILED
            if isinstance(e, ConversationPipelineError):
                e.segment_index = segment.index
                job.error = e.to_dict()
            else:
                job.error = {
                    "kind": "unexpected",
                    "stage": NODE_SYNTHESIS,
                    "segment_index": segment.index,
                    "message": str(e),
                }
            state["errors"].append(
                ErrorHandler.handle_node_error(NODE_SYNTHESIS, e, segment_index=segment.index)
            )

            timer.end(NODE_SYNTHESIS)
            job.stage = JobStage.FAILED
            job.timings = timer.summary()
            job.touch()
            tracker.record(job)
            return state

        segment.status = SegmentStatus.SYNTHESIZED
        segment.audio_file = audio.audio_file
        state["segments_completed"] = position
        if on_progress:
            on_progress(position, total)

    duration = timer.end(NODE_SYNTHESIS)
    job.stage = JobStage.SEGMENTS_GENERATED
    job.timings = timer.summary()
    job.touch()
    tracker.record(job)

    print(f"Synthesis completed: {total} segments (Duration: {duration:.1f}s)", flush=True)
    return state
