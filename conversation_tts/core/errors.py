"""
Error taxonomy for the conversation pipeline
"""
from typing import Any, Dict, Optional


class InvalidConversationRequest(ValueError):
    """Caller input rejected before a job exists (empty text, bad roster)."""


class RosterValidationError(InvalidConversationRequest):
    """Caller supplied an invalid speaker roster (raised before a job exists)."""


class ConversationPipelineError(Exception):
    """
    Fatal pipeline error tagged with the stage (and segment) responsible.

    Attributes:
        kind: machine-readable error class
        stage: pipeline stage where the failure happened
        segment_index: segment index, when a single segment is responsible
    """

    kind: str = "pipeline"
    default_stage: str = "pipeline"

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        segment_index: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        self.segment_index = segment_index

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "stage": self.stage,
            "segment_index": self.segment_index,
            "message": self.message,
        }


class StructuralPlanError(ConversationPipelineError):
    """Planner output is malformed or violates the roster."""

    kind = "structural_plan"
    default_stage = "segmentation"

    def __init__(
        self,
        message: str,
        segment_index: Optional[int] = None,
        field: Optional[str] = None,
        value: Any = None,
    ):
        super().__init__(message, segment_index=segment_index)
        self.field = field
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class SynthesisRefusal(ConversationPipelineError):
    """Backend kept declining the segment on content-policy grounds."""

    kind = "synthesis_refusal"
    default_stage = "synthesis"


class SynthesisTransientFailure(ConversationPipelineError):
    """Backend returned no audio (or raised) on every attempt."""

    kind = "synthesis_transient"
    default_stage = "synthesis"


class CombinationFailure(ConversationPipelineError):
    """Audio muxing failed. Never fatal; folded into combination_outcome."""

    kind = "combination"
    default_stage = "combination"
