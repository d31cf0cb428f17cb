"""
Error Handler for standardized error handling across nodes
"""
from typing import Optional, Dict, Any
from .errors import ConversationPipelineError
from ..utils.logging import log_error, print_error


class ErrorHandler:
    """
    노드 공통 에러 처리 로직
    노드별 에러 레코드 포맷을 표준화
    """

    @staticmethod
    def handle_node_error(
        node_name: str,
        error: Exception,
        segment_index: Optional[int] = None,
        context: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        노드에서 발생한 에러를 표준 형식으로 처리합니다.

        Args:
            node_name: 노드 이름 (예: "segmentation", "synthesis", "combine")
            error: 발생한 예외
            segment_index: 세그먼트 인덱스 (해당되는 경우)
            context: 추가 컨텍스트 정보

        Returns:
            표준화된 에러 정보 딕셔너리. "exception" 키에 원본 예외를 보존하여
            파이프라인이 호출자에게 그대로 다시 raise 할 수 있게 합니다.
        """
        if segment_index is None and isinstance(error, ConversationPipelineError):
            segment_index = error.segment_index

        error_info = {
            "node_name": node_name,
            "error_message": str(error),
            "error_type": type(error).__name__,
            "kind": getattr(error, "kind", "unexpected"),
            "segment_index": segment_index,
            "exception": error,
        }

        if context:
            error_info["context"] = context

        log_error(
            f"{node_name} error" + (f" (segment {segment_index})" if segment_index is not None else ""),
            context=context or node_name,
            exception=error
        )

        print_error(
            f"{node_name} failed: {str(error)}",
            context=context or node_name,
            exception=error,
            log=False,
        )

        return error_info

    @staticmethod
    def public_record(error_info: Dict[str, Any]) -> Dict[str, Any]:
        """JSON으로 내보낼 수 있도록 예외 객체를 제외한 레코드를 반환합니다."""
        return {k: v for k, v in error_info.items() if k != "exception"}
