"""
Audio combiner
세그먼트 오디오를 하나의 대화 파일로 합치기
"""
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence

from pydub import AudioSegment

from ..core.constants import DIR_AUDIO, EXT_WAV, PREFIX_COMBINED_AUDIO
from ..core.errors import CombinationFailure
from ..models.conversation import CombinationOutcome, ConversationJob
from ..utils.logging import log_error, print_warning
from ..utils.text import now_ms, speaker_file_stem


class AudioMuxer(Protocol):
    def concatenate(self, inputs: Sequence[Path], output: Path) -> None:
        ...


class PydubMuxer:
    """pydub로 WAV 파일들을 순서대로 이어 붙입니다."""

    def concatenate(self, inputs: Sequence[Path], output: Path) -> None:
        combined = AudioSegment.empty()
        for path in inputs:
            combined += AudioSegment.from_wav(str(path))
        output.parent.mkdir(parents=True, exist_ok=True)
        combined.export(str(output), format="wav")


@dataclass
class CombinationResult:
    outcome: CombinationOutcome
    file: Optional[str] = None
    error: Optional[str] = None


class AudioCombiner:
    """
    Joins synthesized segments into one conversation file.

    A single segment is copied byte-for-byte. Two or more go through the
    muxer; a muxer failure leaves the job with combination_outcome=failed
    and no combined file, but the job itself still succeeds.
    """

    def __init__(self, store, muxer: Optional[AudioMuxer] = None):
        self.store = store
        self.muxer = muxer or PydubMuxer()

    def combine(self, job: ConversationJob, session_id: Optional[str] = None) -> CombinationResult:
        """
        Args:
            job: 모든 세그먼트가 합성된 작업
            session_id: 세션 ID (None이면 job.session_id)

        Returns:
            CombinationResult

        Raises:
            ValueError: 세그먼트가 없거나 오디오 파일이 없는 세그먼트가 있음
        """
        session_id = session_id or job.session_id
        if not job.segments:
            raise ValueError("Cannot combine a job with no segments")
        missing = [s.index for s in job.segments if not s.audio_file]
        if missing:
            raise ValueError(f"Segments without audio cannot be combined: {missing}")

        ordered = sorted(job.segments, key=lambda s: s.index)
        inputs = [self.store.path_for(session_id, DIR_AUDIO, s.audio_file) for s in ordered]

        names = [s.name for s in job.request.speakers]
        filename = speaker_file_stem(PREFIX_COMBINED_AUDIO, names, now_ms()) + EXT_WAV
        output = self.store.path_for(session_id, DIR_AUDIO, filename)

        if len(inputs) == 1:
            shutil.copyfile(inputs[0], output)
            self.store.register_file(session_id, DIR_AUDIO, filename)
            print(f"  ✓ Single segment copied as conversation audio: {filename}", flush=True)
            return CombinationResult(outcome=CombinationOutcome.SUCCESS, file=filename)

        try:
            self.muxer.concatenate(inputs, output)
        except Exception as e:
            failure = CombinationFailure(f"Failed to combine {len(inputs)} segments: {e}")
            failure.__cause__ = e
            log_error(str(failure), context="combine", exception=e)
            print_warning(
                f"{failure}. Individual segment files are still available.",
                context="combine",
            )
            if output.exists():
                output.unlink()
            return CombinationResult(outcome=CombinationOutcome.FAILED, error=str(failure))

        self.store.register_file(session_id, DIR_AUDIO, filename)
        print(f"  ✓ {len(inputs)} segments combined: {filename}", flush=True)
        return CombinationResult(outcome=CombinationOutcome.SUCCESS, file=filename)
