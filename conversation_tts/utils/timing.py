"""
Workflow timing utilities for Gemini Conversation TTS
작업(job) 단위 스텝 소요 시간 기록
"""
import time
import threading
from datetime import datetime
from typing import Callable, Dict, List


class WorkflowTimer:
    """
    Per-job stage timer. Each pipeline run owns one instance, so concurrent
    jobs never mix their measurements.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, List[dict]] = {}
        self._lock = threading.Lock()

    def start(self, step_name: str) -> float:
        """
        스텝 시작 시간을 기록합니다.

        Args:
            step_name: 스텝 이름 (예: "segmentation", "synthesis", "combine")

        Returns:
            시작 시간 (timestamp)
        """
        start_time = self._clock()
        with self._lock:
            self._entries.setdefault(step_name, []).append({
                "start_time": start_time,
                "start_time_str": datetime.fromtimestamp(start_time).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3],
                "end_time": None,
                "duration_seconds": None,
            })
        return start_time

    def end(self, step_name: str) -> float:
        """
        가장 최근에 시작된 미완료 스텝을 종료합니다.

        Returns:
            소요 시간 (초). 시작 기록이 없으면 0.0
        """
        end_time = self._clock()
        with self._lock:
            for entry in reversed(self._entries.get(step_name, [])):
                if entry["end_time"] is None:
                    entry["end_time"] = end_time
                    entry["duration_seconds"] = end_time - entry["start_time"]
                    return entry["duration_seconds"]
        return 0.0

    def summary(self) -> Dict[str, dict]:
        """
        완료된 스텝별 최근 소요 시간 요약을 반환합니다.
        """
        with self._lock:
            summary = {}
            for step_name, entries in self._entries.items():
                completed = [e for e in entries if e["duration_seconds"] is not None]
                if completed:
                    latest = completed[-1]
                    summary[step_name] = {
                        "duration_seconds": round(latest["duration_seconds"], 3),
                        "start_time_str": latest["start_time_str"],
                    }
            return summary
