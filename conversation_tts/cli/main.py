"""
Typer-based CLI application entry point
"""
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="conversation-tts",
    help="🎙️ Gemini Conversation TTS - 다중 화자 대화 합성기",
    add_completion=False,
    rich_markup_mode="rich"
)
console = Console()


def parse_speaker_option(value: str) -> dict:
    """'Name=Voice' 형식의 옵션을 화자 딕셔너리로 변환"""
    name, sep, voice = value.partition("=")
    if not sep or not name.strip() or not voice.strip():
        raise typer.BadParameter(f"Speaker must be given as Name=Voice, got '{value}'")
    return {"name": name.strip(), "voice": voice.strip()}


@app.command()
def convert(
    script: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="대화 스크립트 파일"),
    speaker: List[str] = typer.Option(..., "--speaker", "-s", help="화자 (Name=Voice), 3명 이상 반복 지정"),
    session: Optional[str] = typer.Option(None, "--session", help="기존 세션 ID (없으면 새로 생성)"),
):
    """
    대화 스크립트를 화자별 음성으로 합성합니다.
    """
    from ..config import initialize_api_keys
    from ..core.errors import ConversationPipelineError, InvalidConversationRequest
    from ..job_manager import build_default_pipeline
    from ..session_store import SessionNotFoundError

    speakers = [parse_speaker_option(v) for v in speaker]
    text = script.read_text(encoding="utf-8")

    console.print(Panel.fit(
        "[bold cyan]🎙️ Gemini Conversation TTS[/bold cyan]",
        border_style="cyan"
    ))
    console.print()

    if not initialize_api_keys():
        console.print("[red]✗[/red] GEMINI_API_KEY가 필요합니다 (.env 또는 환경 변수).")
        raise typer.Exit(code=1)

    pipeline = build_default_pipeline()
    try:
        result = pipeline.run(session, text, speakers)
    except (InvalidConversationRequest, SessionNotFoundError) as e:
        console.print(f"[red]✗[/red] 잘못된 요청: {e}")
        raise typer.Exit(code=2)
    except ConversationPipelineError as e:
        where = f" (segment {e.segment_index})" if e.segment_index is not None else ""
        console.print(f"[red]✗[/red] {e.kind} at {e.stage}{where}: {e.message}")
        raise typer.Exit(code=1)

    _print_result(result.to_dict())


def _print_result(result: dict) -> None:
    table = Table(title="세그먼트", box=box.ROUNDED, show_header=True, header_style="bold magenta")
    table.add_column("#", justify="center", style="cyan", width=4)
    table.add_column("화자", style="green")
    table.add_column("오디오 파일", style="yellow")
    for segment in result["segments"]:
        names = " & ".join(s["name"] for s in segment["speakers"])
        table.add_row(str(segment["segmentIndex"]), names, segment["audioFile"] or "-")
    console.print(table)

    if result["combinationStatus"] == "success":
        console.print(f"[green]✓[/green] 합본 오디오: {result['combinedAudioFile']}")
    else:
        console.print("[yellow]⚠[/yellow] 세그먼트 합치기 실패. 개별 세그먼트 파일은 사용할 수 있습니다.")
    console.print(f"  세션: {result['sessionId']}  작업: {result['jobId']}")
    console.print(f"  메타데이터: {result['metaFile']}")


@app.command()
def list_voices():
    """
    사용 가능한 음성 목록을 표시합니다.
    """
    from ..models.voice import VOICE_BANKS

    console.print(Panel.fit(
        "[bold cyan]🎤 사용 가능한 음성 목록[/bold cyan]",
        border_style="cyan"
    ))
    console.print()

    for group_key, bank in VOICE_BANKS.items():
        table = Table(
            title=bank["label"],
            box=box.ROUNDED,
            show_header=True,
            header_style="bold magenta"
        )
        table.add_column("번호", justify="center", style="cyan", width=6)
        table.add_column("음성 이름", style="green", width=25)
        table.add_column("스타일", style="white", width=16)
        table.add_column("기본값", justify="center", style="yellow", width=10)

        default_voice = bank.get("default", "")
        for idx, voice in enumerate(bank["voices"], 1):
            is_default = "✓" if voice["name"] == default_voice else ""
            table.add_row(str(idx), voice["name"], voice["style"], is_default)

        console.print(table)
        console.print()


@app.command()
def show_job(
    session: str = typer.Argument(..., help="세션 ID"),
    job_id: str = typer.Argument(..., help="작업 ID"),
):
    """
    저장된 작업 스냅샷을 표시합니다.
    """
    from ..services.tracker_service import JobStateTracker
    from ..session_store import SessionStore

    tracker = JobStateTracker(SessionStore())
    try:
        snapshot = tracker.load(session, job_id)
    except (FileNotFoundError, ValueError):
        console.print(f"[red]✗[/red] 작업 스냅샷을 찾을 수 없습니다: {session}/{job_id}")
        raise typer.Exit(code=1)

    console.print(Panel.fit(
        f"[bold cyan]작업 {job_id}[/bold cyan]\n"
        f"상태: {snapshot.get('status')}  합치기: {snapshot.get('combinationStatus')}",
        border_style="cyan"
    ))

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold magenta")
    table.add_column("#", justify="center", style="cyan", width=4)
    table.add_column("화자", style="green")
    table.add_column("상태", style="yellow")
    table.add_column("오디오 파일")
    for segment in snapshot.get("segments", []):
        names = " & ".join(s.get("name", "?") for s in segment.get("speakers", []))
        table.add_row(
            str(segment.get("segmentIndex")),
            names,
            segment.get("status", ""),
            segment.get("audioFile") or "-",
        )
    console.print(table)

    if snapshot.get("error"):
        console.print(f"[red]✗[/red] {json.dumps(snapshot['error'], ensure_ascii=False)}")


@app.command()
def serve():
    """
    REST API 서버를 실행합니다.
    """
    from ..server import main as run_server
    run_server()


if __name__ == "__main__":
    app()
