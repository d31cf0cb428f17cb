"""
Text helpers shared by the planner, synthesizer and combiner
"""
import re
import time
from typing import Iterable


def sanitize_path_component(text: str) -> str:
    """파일명에 쓸 수 있도록 영문/숫자 이외의 문자를 '_'로 바꿉니다."""
    if not text:
        return ""
    return re.sub(r"[^A-Za-z0-9]", "_", text)[:100]


def speaker_file_stem(prefix: str, names: Iterable[str], timestamp_ms: int) -> str:
    """
    Deterministic artifact name from speaker names and a millisecond timestamp.

    e.g. ("multi", ["Alice", "Bob O."], 1700000000000) -> "multi_Alice_Bob_O__1700000000000"
    """
    parts = [prefix] + [sanitize_path_component(n) for n in names] + [str(timestamp_ms)]
    return "_".join(parts)


def now_ms() -> int:
    return int(time.time() * 1000)


def extract_json_text(response_text: str) -> str:
    """
    LLM 응답 텍스트에서 JSON 본문만 추출합니다.
    - ```json ... ``` 또는 ``` ... ``` 블록이 있으면 우선 추출
    - 그 외에는 첫 '['(또는 '{')부터 마지막 ']'(또는 '}')까지를 잘라 JSON 후보를 만듭니다.
    """
    if not response_text:
        return ""
    text = response_text.strip()

    fence = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL | re.IGNORECASE)
    if fence:
        return fence.group(1).strip()

    for opener, closer in (("[", "]"), ("{", "}")):
        first = text.find(opener)
        last = text.rfind(closer)
        if first != -1 and last > first:
            return text[first:last + 1].strip()
    return text
