"""
Segmentation planner
N명 화자 대화를 2인 세그먼트로 나누는 계획을 생성형 모델에 요청하고 검증
"""
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Protocol, Sequence, Union

import google.generativeai as genai

from ..core.constants import (
    EXT_JSON,
    DIR_PROMPTS,
    MAX_SEGMENTATION_INPUT_LENGTH,
    PREFIX_SEGMENTATION_PROMPT,
)
from ..core.errors import StructuralPlanError
from ..models.conversation import ConversationRequest, Segment, Speaker
from ..models.voice import KNOWN_VOICES
from ..utils.logging import log_error
from ..utils.text import extract_json_text, now_ms
from .roster_service import validate_segment_plan


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class GeminiTextGenerator:
    """
    google-generativeai 기반 텍스트 생성기.
    genai.configure()는 config.initialize_api_keys()에서 호출됩니다.
    """

    def __init__(self, model_name: Optional[str] = None):
        if model_name is None:
            from .. import config
            model_name = config.ORCHESTRATOR_MODEL_NAME
        self.model_name = model_name
        self._model = None

    def _get_model(self):
        if self._model is None:
            full_name = self.model_name if self.model_name.startswith("models/") else f"models/{self.model_name}"
            self._model = genai.GenerativeModel(full_name)
            print(f"  ✓ Model initialized: {self.model_name} ({full_name})", flush=True)
        return self._model

    def generate(self, prompt: str) -> str:
        response = self._get_model().generate_content(prompt)
        return response.text


def build_segmentation_prompt(text: str, speakers: Sequence[Speaker]) -> str:
    """
    세그먼테이션 프롬프트를 생성합니다.

    Args:
        text: 원본 대화 스크립트
        speakers: 요청 화자 목록 (이름/음성 조합 그대로 사용)

    Returns:
        프롬프트 문자열
    """
    speaker_lines = "\n".join(f"- {s.name} (voice: {s.voice})" for s in speakers)
    valid_voices = ", ".join(KNOWN_VOICES)

    return f"""
You are an AI assistant that segments multi-speaker conversations for text-to-speech generation.

TASK: Split the conversation below into consecutive segments. Each segment is rendered
by a text-to-speech system that accepts exactly 2 voices per request, so every segment
must contain exactly 2 speakers.

CRITICAL CONSTRAINTS:
1. Each segment must have exactly 2 speakers
2. Use ONLY the exact speaker names and voices from the INPUT SPEAKERS list below
3. NEVER invent speaker names or voice names
4. Each speaker object must use the exact name/voice combination given in the input

RULES:
1. Keep the dialogue natural and coherent; a speaker may have several consecutive lines
2. When a third speaker joins, start a new segment with enough context to flow naturally
3. Preserve the original speaker names and the meaning of every line
4. Put each turn on its own line as "Name: line", separated by \\n

INPUT TEXT: "{text}"

INPUT SPEAKERS (USE THESE EXACT NAME/VOICE COMBINATIONS ONLY):
{speaker_lines}

VALID VOICES (for reference): {valid_voices}

OUTPUT: Return a JSON array of conversation segments:
[
  {{
    "segmentIndex": 1,
    "speakers": [{{"name": "SpeakerA", "voice": "VoiceA"}}, {{"name": "SpeakerB", "voice": "VoiceB"}}],
    "text": "SpeakerA: Hello there!\\nSpeakerB: Hi, how are you?",
    "description": "Brief description of this segment"
  }}
]

Respond ONLY with the JSON array.
""".strip()


@dataclass
class PlanParsed:
    segments: List[Segment]


@dataclass
class PlanParseFailure:
    reason: str
    segment_index: Optional[int] = None


PlanParseResult = Union[PlanParsed, PlanParseFailure]


def _parse_speaker(raw: Any) -> Optional[Speaker]:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    voice = raw.get("voice")
    if not isinstance(name, str) or not isinstance(voice, str):
        return None
    return Speaker(name=name, voice=voice)


def parse_segmentation_response(raw: Optional[str]) -> PlanParseResult:
    """
    Parse the planner's raw reply into segments without trusting its shape.

    A missing segmentIndex falls back to the 1-based array position.
    Roster rules are not checked here (see validate_segment_plan).
    """
    if not raw or not raw.strip():
        return PlanParseFailure("Planner returned an empty response")

    candidate = extract_json_text(raw)
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as e:
        return PlanParseFailure(f"Planner response is not valid JSON: {e}")

    if not isinstance(payload, list):
        return PlanParseFailure(f"Planner response must be a JSON array, got {type(payload).__name__}")

    segments: List[Segment] = []
    for position, entry in enumerate(payload, start=1):
        if not isinstance(entry, dict):
            return PlanParseFailure(f"Segment {position} is not an object", segment_index=position)

        index = entry.get("segmentIndex", position)
        if index is None:
            index = position
        # bool은 int의 하위 클래스이므로 별도로 거부
        if isinstance(index, bool) or not isinstance(index, int):
            return PlanParseFailure(f"Segment {position} has a non-integer segmentIndex: {index!r}", segment_index=position)

        raw_speakers = entry.get("speakers")
        if not isinstance(raw_speakers, list):
            return PlanParseFailure(f"Segment {index} is missing a speakers array", segment_index=index)
        speakers = []
        for raw_speaker in raw_speakers:
            speaker = _parse_speaker(raw_speaker)
            if speaker is None:
                return PlanParseFailure(
                    f"Segment {index} has a malformed speaker entry: {raw_speaker!r}", segment_index=index
                )
            speakers.append(speaker)

        text = entry.get("text")
        if not isinstance(text, str):
            return PlanParseFailure(f"Segment {index} is missing its text", segment_index=index)

        description = entry.get("description")
        if description is not None and not isinstance(description, str):
            description = str(description)

        segments.append(Segment(
            index=index,
            speakers=tuple(speakers),
            text=text,
            description=description,
        ))

    return PlanParsed(segments=segments)


@dataclass
class SegmentationPlan:
    segments: List[Segment]
    prompt: str
    raw_response: str
    prompt_file: Optional[str] = None


class SegmentationPlanner:
    """
    Produces a validated two-speaker segment plan for a conversation request.

    The planner model is called exactly once per job; a bad plan fails the job.
    """

    def __init__(self, generator: TextGenerator, store):
        """
        Args:
            generator: TextGenerator 구현 (운영: GeminiTextGenerator)
            store: SessionStore (프롬프트 감사 기록 저장용)
        """
        self.generator = generator
        self.store = store

    def plan(self, request: ConversationRequest, session_id: str) -> SegmentationPlan:
        """
        프롬프트 기록 → 모델 호출 → 파싱 → 화자 검증.

        Raises:
            StructuralPlanError: 응답 파싱 실패 또는 화자 규칙 위반
        """
        if len(request.text) > MAX_SEGMENTATION_INPUT_LENGTH:
            raise StructuralPlanError(
                f"Conversation text is too long for segmentation "
                f"({len(request.text)} > {MAX_SEGMENTATION_INPUT_LENGTH} chars)",
                field="text",
            )

        prompt = build_segmentation_prompt(request.text, request.speakers)

        # 모델 호출 전에 감사 기록을 먼저 남김
        prompt_file = f"{PREFIX_SEGMENTATION_PROMPT}_{now_ms()}{EXT_JSON}"
        self.store.write_json(session_id, DIR_PROMPTS, prompt_file, {
            "originalText": request.text,
            "speakers": [s.to_dict() for s in request.speakers],
            "segmentationPrompt": prompt,
            "timestamp": datetime.now().isoformat(),
        })
        print(f"  ✓ Segmentation prompt saved: {prompt_file}", flush=True)

        raw_response = self.generator.generate(prompt)

        parsed = parse_segmentation_response(raw_response)
        if isinstance(parsed, PlanParseFailure):
            log_error(
                f"Failed to parse conversation segmentation: {parsed.reason}\n  Raw: {raw_response!r}",
                context="segmentation",
            )
            raise StructuralPlanError(
                f"Failed to parse conversation segmentation from planner: {parsed.reason}",
                segment_index=parsed.segment_index,
                field="response",
            )

        validate_segment_plan(parsed.segments, request.speakers)

        return SegmentationPlan(
            segments=parsed.segments,
            prompt=prompt,
            raw_response=raw_response,
            prompt_file=prompt_file,
        )
