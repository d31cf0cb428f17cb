"""
Speaker roster validation
세그먼트 계획과 요청 화자 목록을 검증하는 순수 함수 모음
"""
from typing import Any, Iterable, List, Optional, Sequence

from ..core.constants import MIN_CONVERSATION_SPEAKERS, SPEAKERS_PER_SEGMENT
from ..core.errors import RosterValidationError, StructuralPlanError
from ..models.conversation import Segment, Speaker
from ..models.voice import KNOWN_VOICES, is_known_voice


def _coerce_speaker(raw: Any) -> Speaker:
    if isinstance(raw, Speaker):
        return raw
    if isinstance(raw, dict):
        return Speaker(name=raw.get("name"), voice=raw.get("voice"))
    name = getattr(raw, "name", None)
    voice = getattr(raw, "voice", None)
    if name is None and voice is None:
        raise RosterValidationError(f"Speaker entry must have a name and a voice, got {raw!r}")
    return Speaker(name=name, voice=voice)


def _check_speaker(speaker: Speaker) -> None:
    if not isinstance(speaker.name, str) or not speaker.name.strip():
        raise RosterValidationError(
            f"Speaker name is required and must be a non-empty string for voice {speaker.voice}."
        )
    if not is_known_voice(speaker.voice):
        raise RosterValidationError(f'Invalid voice "{speaker.voice}" for speaker "{speaker.name}"')


def validate_roster(speakers: Optional[Iterable[Any]], minimum: int = MIN_CONVERSATION_SPEAKERS) -> List[Speaker]:
    """
    대화 요청의 화자 목록을 검증합니다.

    Args:
        speakers: Speaker 또는 {"name", "voice"} 딕셔너리 목록
        minimum: 최소 화자 수

    Returns:
        검증된 Speaker 리스트 (입력 순서 유지)

    Raises:
        RosterValidationError: 화자 수 부족, 이름 누락, 알 수 없는 음성, 이름 중복
    """
    roster = [_coerce_speaker(s) for s in (speakers or [])]
    if len(roster) < minimum:
        raise RosterValidationError(
            f"At least {minimum} speakers are required for conversation TTS, got {len(roster)}"
        )

    for speaker in roster:
        _check_speaker(speaker)

    seen = {}
    for speaker in roster:
        key = speaker.name.lower()
        if key in seen:
            raise RosterValidationError(
                f"Speakers must have unique names. Found duplicate speaker name \"{speaker.name}\" "
                f"(also used as \"{seen[key]}\")"
            )
        seen[key] = speaker.name
    return roster


def validate_duo(speakers: Optional[Iterable[Any]]) -> List[Speaker]:
    """Duo synthesis needs exactly two valid speakers."""
    roster = [_coerce_speaker(s) for s in (speakers or [])]
    if len(roster) != SPEAKERS_PER_SEGMENT:
        raise RosterValidationError(
            f"Exactly {SPEAKERS_PER_SEGMENT} speakers required for duo TTS, got {len(roster)}"
        )
    for speaker in roster:
        _check_speaker(speaker)
    return roster


def validate_segment_plan(segments: Sequence[Segment], roster: Sequence[Speaker]) -> None:
    """
    Check a parsed plan against the roster, segment by segment, in order.

    For each segment: exactly two different speakers, every voice known, every name on
    the roster (exact match), every voice equal to that roster entry's voice.
    Indices must be unique and strictly increasing; text must be non-empty.

    Raises:
        StructuralPlanError: first violation found, with segment_index and field
    """
    if not segments:
        raise StructuralPlanError("Planner returned no conversation segments", field="segments")

    by_name = {s.name: s for s in roster}
    previous_index: Optional[int] = None

    for segment in segments:
        idx = segment.index
        if len(segment.speakers) != SPEAKERS_PER_SEGMENT:
            raise StructuralPlanError(
                f"Segment {idx} does not have exactly {SPEAKERS_PER_SEGMENT} speakers "
                f"(got {len(segment.speakers)})",
                segment_index=idx,
                field="speakers",
                value=len(segment.speakers),
            )

        first, second = segment.speakers
        if first.name == second.name:
            raise StructuralPlanError(
                f"Segment {idx} uses speaker '{first.name}' twice; "
                f"each segment needs {SPEAKERS_PER_SEGMENT} different speakers",
                segment_index=idx,
                field="speakers",
                value=first.name,
            )

        for speaker in segment.speakers:
            if not is_known_voice(speaker.voice):
                raise StructuralPlanError(
                    f"Segment {idx} uses invalid voice '{speaker.voice}'. "
                    f"Valid voices are: {', '.join(KNOWN_VOICES)}",
                    segment_index=idx,
                    field="voice",
                    value=speaker.voice,
                )
            original = by_name.get(speaker.name)
            if original is None:
                raise StructuralPlanError(
                    f"Segment {idx} uses invalid speaker name '{speaker.name}'. "
                    f"Original speakers are: {', '.join(by_name)}",
                    segment_index=idx,
                    field="name",
                    value=speaker.name,
                )
            if original.voice != speaker.voice:
                raise StructuralPlanError(
                    f"Segment {idx} speaker '{speaker.name}' should use voice "
                    f"'{original.voice}', not '{speaker.voice}'",
                    segment_index=idx,
                    field="voice",
                    value=speaker.voice,
                )

        if not segment.text or not segment.text.strip():
            raise StructuralPlanError(
                f"Segment {idx} has empty text", segment_index=idx, field="text"
            )

        if previous_index is not None and idx <= previous_index:
            raise StructuralPlanError(
                f"Segment index {idx} is not greater than previous index {previous_index}",
                segment_index=idx,
                field="segmentIndex",
                value=idx,
            )
        previous_index = idx
