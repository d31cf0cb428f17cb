"""
Logging utilities for Gemini Conversation TTS
"""
import traceback
from datetime import datetime
from typing import Optional
from .. import config


def log_error(message: str, context: str = "general", exception: Optional[Exception] = None) -> None:
    """
    Append error messages to a log file with timestamps for troubleshooting.

    Args:
        message: Error message to log
        context: Context where the error occurred
        exception: Optional exception object
    """
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    error_msg = f"[{timestamp}] ({context}) {message}"
    if exception:
        error_msg += f"\n  Exception type: {type(exception).__name__}"
        error_msg += f"\n  Exception details: {str(exception)}"
        tb_str = ''.join(traceback.format_exception(type(exception), exception, exception.__traceback__))
        error_msg += f"\n  Traceback:\n{tb_str}"
    error_msg += "\n"

    try:
        log_path = config.ERROR_LOG_PATH
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(error_msg)
    except OSError as e:
        # 로그 파일을 쓸 수 없어도 파이프라인은 계속 진행
        print(f"⚠ [logging] Could not write error log: {e}", flush=True)


def print_error(
    message: str,
    context: str = "general",
    exception: Optional[Exception] = None,
    log: bool = True,
) -> None:
    """
    Print error message to console and log it to file.

    Args:
        message: Error message to display
        context: Context where the error occurred
        exception: Optional exception object
        log: Also append to the error log file
    """
    print(f"✗ [{context}] {message}", flush=True)

    if exception:
        print(f"  Exception type: {type(exception).__name__}", flush=True)

    if log:
        log_error(message, context, exception)


def print_warning(message: str, context: str = "general", exception: Optional[Exception] = None) -> None:
    """
    Print warning message to console.

    Args:
        message: Warning message to display
        context: Context where the warning occurred
        exception: Optional exception object
    """
    print(f"⚠ [{context}] {message}", flush=True)

    if exception:
        print(f"  Exception type: {type(exception).__name__}", flush=True)
        print(f"  Exception details: {str(exception)}", flush=True)
