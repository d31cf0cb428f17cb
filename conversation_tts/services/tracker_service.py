"""
Job state tracker
작업 스냅샷(conversation_meta_<job_id>.json)을 세션 transcripts 폴더에 기록
"""
from pathlib import Path
from typing import Any, Dict

from ..core.constants import DIR_TRANSCRIPTS, EXT_JSON, PREFIX_JOB_SNAPSHOT
from ..models.conversation import ConversationJob


def snapshot_filename(job_id: str) -> str:
    return f"{PREFIX_JOB_SNAPSHOT}_{job_id}{EXT_JSON}"


class JobStateTracker:
    """
    Writes the full job snapshot at each checkpoint.

    Each write replaces the previous snapshot; the same job state always
    serializes to the same bytes. The tracker only records, it never decides
    whether a job succeeded.
    """

    def __init__(self, store):
        self.store = store

    def record(self, job: ConversationJob) -> Path:
        """
        Args:
            job: 현재 작업 상태

        Returns:
            기록된 스냅샷 파일 경로
        """
        filename = snapshot_filename(job.id)
        path = self.store.write_json(job.session_id, DIR_TRANSCRIPTS, filename, job.to_dict())
        print(f"  ✓ Job snapshot saved ({job.stage.value}): {filename}", flush=True)
        return path

    def load(self, session_id: str, job_id: str) -> Dict[str, Any]:
        """
        Raises:
            FileNotFoundError: 스냅샷이 없음
        """
        return self.store.read_json(session_id, DIR_TRANSCRIPTS, snapshot_filename(job_id))
