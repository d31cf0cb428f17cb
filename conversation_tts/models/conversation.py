"""
Conversation job data models
"""
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SegmentStatus(str, Enum):
    PENDING = "pending"
    SYNTHESIZED = "synthesized"
    FAILED = "failed"


class JobStage(str, Enum):
    SEGMENTATION_COMPLETE = "segmentation_complete"
    SEGMENTS_GENERATED = "segments_generated"
    COMPLETED = "completed"
    FAILED = "failed"


class CombinationOutcome(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Speaker:
    """화자 (표시 이름 + Gemini 음성 이름)"""
    name: str
    voice: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "voice": self.voice}


@dataclass(frozen=True)
class ConversationRequest:
    text: str
    speakers: Tuple[Speaker, ...]


@dataclass
class Segment:
    """
    A two-speaker slice of the conversation, synthesized in one backend call.

    Attributes:
        index: planner-assigned index (unique, increasing in array order)
        speakers: exactly two roster speakers
        text: dialogue text, turns separated by newlines
        description: optional planner note
        status: pending -> synthesized | failed
        audio_file: file name under the session audio dir once synthesized
    """
    index: int
    speakers: Tuple[Speaker, Speaker]
    text: str
    description: Optional[str] = None
    status: SegmentStatus = SegmentStatus.PENDING
    audio_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "segmentIndex": self.index,
            "speakers": [s.to_dict() for s in self.speakers],
            "text": self.text,
            "description": self.description,
            "status": self.status.value,
            "audioFile": self.audio_file,
        }


@dataclass
class ConversationJob:
    """
    One run of the conversation pipeline. The snapshot produced by
    to_dict() is what the tracker persists at every checkpoint.
    """
    session_id: str
    request: ConversationRequest
    segments: List[Segment]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    stage: JobStage = JobStage.SEGMENTATION_COMPLETE
    combination_outcome: CombinationOutcome = CombinationOutcome.PENDING
    combined_audio_file: Optional[str] = None
    combination_error: Optional[str] = None
    segmentation_prompt: Optional[str] = None
    raw_segmentation: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    timings: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def touch(self) -> None:
        self.updated_at = time.time()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.id,
            "sessionId": self.session_id,
            "status": self.stage.value,
            "originalText": self.request.text,
            "speakers": [s.to_dict() for s in self.request.speakers],
            "segmentationPrompt": self.segmentation_prompt,
            "rawSegmentation": self.raw_segmentation,
            "segments": [s.to_dict() for s in self.segments],
            "combinationStatus": self.combination_outcome.value,
            "combinedAudioFile": self.combined_audio_file,
            "combinationError": self.combination_error,
            "error": self.error,
            "timings": self.timings,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class ConversationResult:
    """Outward success value of a pipeline run."""
    job_id: str
    session_id: str
    segments: List[Dict[str, Any]]
    combination_outcome: CombinationOutcome
    combined_audio_file: Optional[str]
    meta_file: str
    success: bool = True

    @property
    def combined_audio_url(self) -> Optional[str]:
        if not self.combined_audio_file:
            return None
        return f"/api/audio/{self.session_id}/{self.combined_audio_file}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "jobId": self.job_id,
            "sessionId": self.session_id,
            "segments": self.segments,
            "combinedAudioFile": self.combined_audio_file,
            "combinedAudioUrl": self.combined_audio_url,
            "combinationStatus": self.combination_outcome.value,
            "metaFile": self.meta_file,
        }

    @classmethod
    def from_job(cls, job: ConversationJob, meta_file: str) -> "ConversationResult":
        segments = []
        for segment in job.segments:
            segments.append({
                "segmentIndex": segment.index,
                "speakers": [s.to_dict() for s in segment.speakers],
                "audioFile": segment.audio_file,
                "audioUrl": f"/api/audio/{job.session_id}/{segment.audio_file}" if segment.audio_file else None,
                "status": segment.status.value,
                "description": segment.description,
            })
        return cls(
            job_id=job.id,
            session_id=job.session_id,
            segments=segments,
            combination_outcome=job.combination_outcome,
            combined_audio_file=job.combined_audio_file,
            meta_file=meta_file,
        )
