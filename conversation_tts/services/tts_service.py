"""
Segment synthesizer for two-speaker Gemini TTS
재시도 상태 머신 + 세그먼트 오디오 저장
"""
import re
import time
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Optional, Protocol, Sequence, Tuple

from pydub import AudioSegment

from ..core.constants import (
    DIR_AUDIO,
    EXT_WAV,
    PREFIX_SEGMENT_AUDIO,
    REFUSAL_FINISH_REASONS,
    SPEAKERS_PER_SEGMENT,
    TTS_CHANNELS,
    TTS_MAX_ATTEMPTS,
    TTS_REQUEST_TIMEOUT_SEC,
    TTS_RETRY_BASE_DELAY,
    TTS_SAMPLE_RATE,
    TTS_SAMPLE_WIDTH,
    TTS_SANITIZE_PATTERN,
)
from ..core.errors import SynthesisRefusal, SynthesisTransientFailure
from ..core.rate_limiter import RateLimiter, get_default_rate_limiter
from ..models.conversation import Speaker
from ..utils.logging import print_warning
from ..utils.text import now_ms, speaker_file_stem

# SpeechResult.kind
AUDIO = "audio"
REFUSAL = "refusal"
EMPTY = "empty"
ERROR = "error"


@dataclass
class SpeechResult:
    """
    One backend call, classified.

    kind:
        audio   - non-empty PCM in `audio`
        refusal - no audio, finish reason in REFUSAL_FINISH_REASONS
        empty   - no audio, any other (or no) finish reason
        error   - the call raised; `error` holds the exception
    """
    kind: str
    audio: Optional[bytes] = None
    finish_reason: Optional[str] = None
    error: Optional[BaseException] = None
    sample_rate: int = TTS_SAMPLE_RATE


@dataclass(frozen=True)
class SynthesisAttempt:
    attempt: int
    text: str
    last_error: Optional[str] = None


def sanitize_for_tts(text: str) -> str:
    """단어 문자(비ASCII 문자, 밑줄 포함)/공백과 : . , ! ? - 만 남기고 양끝 공백 제거"""
    return re.sub(TTS_SANITIZE_PATTERN, "", text or "").strip()


def describe_outcome(outcome: SpeechResult) -> str:
    if outcome.kind == REFUSAL:
        return f"TTS API refused to generate audio. Reason: {outcome.finish_reason}"
    if outcome.kind == EMPTY:
        reason = f" (finish reason: {outcome.finish_reason})" if outcome.finish_reason else ""
        return f"No audio data received from multi-speaker TTS API{reason}"
    if outcome.kind == ERROR:
        return f"{type(outcome.error).__name__}: {outcome.error}"
    return "audio received"


def next_attempt(
    state: SynthesisAttempt,
    outcome: SpeechResult,
    max_attempts: int = TTS_MAX_ATTEMPTS,
) -> Optional[SynthesisAttempt]:
    """
    Pure retry transition.

    Returns the next attempt to make, or None when `outcome` ends the loop
    with success (audio). Raises when the loop ends with failure.

    Raises:
        SynthesisRefusal: refusal on the final attempt
        SynthesisTransientFailure: empty/error on the final attempt
    """
    if outcome.kind == AUDIO:
        return None

    last_error = describe_outcome(outcome)
    is_last = state.attempt >= max_attempts

    if outcome.kind == REFUSAL:
        if is_last:
            raise SynthesisRefusal(
                f"{last_error}. This may be due to content policy restrictions "
                f"(refused {state.attempt} times)."
            )
        return SynthesisAttempt(state.attempt + 1, sanitize_for_tts(state.text), last_error)

    if is_last:
        raise SynthesisTransientFailure(
            f"Multi-speaker TTS failed after {state.attempt} attempts. Last error: {last_error}"
        )
    return SynthesisAttempt(state.attempt + 1, state.text, last_error)


class SpeechBackend(Protocol):
    def synthesize(self, text: str, speakers: Sequence[Speaker]) -> SpeechResult:
        ...


def _parse_pcm_rate_from_mime(mime_type: str) -> int:
    """
    예: 'audio/L16;codec=pcm;rate=24000' -> 24000
    실패 시 기본 TTS_SAMPLE_RATE 반환.
    """
    for part in (mime_type or "").split(";"):
        part = part.strip()
        if part.startswith("rate="):
            value = part.split("=", 1)[1]
            if value.isdigit():
                return int(value)
    return TTS_SAMPLE_RATE


class GeminiSpeechBackend:
    """
    google-genai multi-speaker TTS backend.
    Every call waits on the shared RateLimiter first.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        rate_limiter: Optional[RateLimiter] = None,
        timeout_sec: float = TTS_REQUEST_TIMEOUT_SEC,
        client=None,
    ):
        from .. import config
        self.model_name = model_name or config.TTS_MODEL_NAME
        self.rate_limiter = rate_limiter or get_default_rate_limiter()
        self.timeout_sec = timeout_sec
        self._api_key = api_key or config.get_api_key()
        self._client = client

    def _get_client(self):
        if self._client is None:
            from google import genai
            from google.genai import types
            if not self._api_key:
                raise RuntimeError("GEMINI_API_KEY is not set (.env or environment)")
            self._client = genai.Client(
                api_key=self._api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout_sec * 1000)),
            )
        return self._client

    @staticmethod
    def build_config(speakers: Sequence[Speaker]):
        from google.genai import types
        return types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                multi_speaker_voice_config=types.MultiSpeakerVoiceConfig(
                    speaker_voice_configs=[
                        types.SpeakerVoiceConfig(
                            speaker=s.name,
                            voice_config=types.VoiceConfig(
                                prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=s.voice)
                            ),
                        )
                        for s in speakers
                    ]
                )
            ),
        )

    def synthesize(self, text: str, speakers: Sequence[Speaker]) -> SpeechResult:
        waited = self.rate_limiter.wait_if_needed()
        if waited > 0:
            print(f"  ⏳ Rate limit: waited {waited:.1f}s", flush=True)

        try:
            response = self._get_client().models.generate_content(
                model=self.model_name,
                contents=text,
                config=self.build_config(speakers),
            )
        except Exception as e:
            return SpeechResult(kind=ERROR, error=e)

        candidates = getattr(response, "candidates", None) or []
        candidate = candidates[0] if candidates else None
        finish_reason = getattr(candidate, "finish_reason", None)
        if finish_reason is not None:
            finish_reason = getattr(finish_reason, "name", None) or str(finish_reason)

        blob = None
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        if parts:
            blob = getattr(parts[0], "inline_data", None)
        audio = getattr(blob, "data", None) if blob is not None else None

        if audio:
            return SpeechResult(
                kind=AUDIO,
                audio=audio,
                finish_reason=finish_reason,
                sample_rate=_parse_pcm_rate_from_mime(getattr(blob, "mime_type", "") or ""),
            )
        if finish_reason in REFUSAL_FINISH_REASONS:
            return SpeechResult(kind=REFUSAL, finish_reason=finish_reason)
        return SpeechResult(kind=EMPTY, finish_reason=finish_reason)


@dataclass
class SynthesizedAudio:
    audio_file: str
    attempts: int
    text: str
    speakers: Tuple[Speaker, ...]

    def to_dict(self, session_id: str) -> dict:
        return {
            "success": True,
            "audioFile": self.audio_file,
            "audioUrl": f"/api/audio/{session_id}/{self.audio_file}",
            "speakers": [s.to_dict() for s in self.speakers],
            "text": self.text,
            "attempts": self.attempts,
        }


def pcm_to_wav_bytes(pcm: bytes, sample_rate: int = TTS_SAMPLE_RATE) -> bytes:
    """PCM 16-bit LE mono -> WAV bytes"""
    seg = AudioSegment(
        data=pcm,
        sample_width=TTS_SAMPLE_WIDTH,
        frame_rate=sample_rate,
        channels=TTS_CHANNELS,
    )
    buf = BytesIO()
    seg.export(buf, format="wav")
    return buf.getvalue()


class SegmentSynthesizer:
    """
    Renders one two-speaker segment to a WAV file in the session audio dir.
    """

    def __init__(
        self,
        backend: SpeechBackend,
        store,
        max_attempts: int = TTS_MAX_ATTEMPTS,
        base_delay: float = TTS_RETRY_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            backend: SpeechBackend 구현 (운영: GeminiSpeechBackend)
            store: SessionStore
            max_attempts: 최대 시도 횟수
            base_delay: 재시도 대기 기본값 (초). 대기 = attempt * base_delay
            sleep: 대기 함수 (테스트용 주입)
        """
        self.backend = backend
        self.store = store
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    def synthesize(
        self,
        text: str,
        speakers: Sequence[Speaker],
        session_id: str,
        segment_index: Optional[int] = None,
    ) -> SynthesizedAudio:
        """
        재시도 루프를 실행하고 결과 오디오를 저장합니다.

        Raises:
            ValueError: 화자가 정확히 2명이 아님
            SynthesisRefusal: 마지막 시도까지 거부됨
            SynthesisTransientFailure: 마지막 시도까지 오디오 없음/예외
        """
        speakers = tuple(speakers)
        if len(speakers) != SPEAKERS_PER_SEGMENT:
            raise ValueError(
                f"Exactly {SPEAKERS_PER_SEGMENT} speakers required for multi-speaker TTS, got {len(speakers)}"
            )

        label = f"Segment {segment_index}" if segment_index is not None else "Duo"
        state = SynthesisAttempt(attempt=1, text=text)
        last_exception: Optional[BaseException] = None

        while True:
            print(f"  [{label}] TTS attempt {state.attempt}/{self.max_attempts}: \"{state.text[:100]}...\"", flush=True)
            outcome = self.backend.synthesize(state.text, speakers)
            if outcome.kind == ERROR:
                last_exception = outcome.error

            try:
                following = next_attempt(state, outcome, self.max_attempts)
            except (SynthesisRefusal, SynthesisTransientFailure) as e:
                e.segment_index = segment_index
                if isinstance(e, SynthesisTransientFailure) and last_exception is not None:
                    raise e from last_exception
                raise

            if following is None:
                break

            if outcome.kind == REFUSAL:
                print_warning(
                    f"{describe_outcome(outcome)}; retrying with cleaned text",
                    context=label,
                )
            else:
                print_warning(f"Attempt {state.attempt} failed: {describe_outcome(outcome)}", context=label)

            self._sleep(self.base_delay * state.attempt)
            state = following

        filename = self._unique_filename(session_id, [s.name for s in speakers])
        wav_bytes = pcm_to_wav_bytes(outcome.audio, outcome.sample_rate)
        self.store.write_bytes(session_id, DIR_AUDIO, filename, wav_bytes)
        print(f"  ✓ [{label}] Audio saved: {filename} (attempt {state.attempt})", flush=True)

        return SynthesizedAudio(
            audio_file=filename,
            attempts=state.attempt,
            text=state.text,
            speakers=speakers,
        )

    def _unique_filename(self, session_id: str, names) -> str:
        # 같은 화자 쌍이 같은 밀리초에 저장되면 덮어쓰지 않도록 타임스탬프를 올림
        timestamp = now_ms()
        while True:
            filename = speaker_file_stem(PREFIX_SEGMENT_AUDIO, names, timestamp) + EXT_WAV
            if not self.store.path_for(session_id, DIR_AUDIO, filename).exists():
                return filename
            timestamp += 1

    def synthesize_duo(self, text: str, speakers: Sequence[Speaker], session_id: str) -> SynthesizedAudio:
        """Two-speaker synthesis outside a conversation job."""
        return self.synthesize(text, speakers, session_id)
