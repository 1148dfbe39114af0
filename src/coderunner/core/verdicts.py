from __future__ import annotations
import signal
from typing import Iterable

from .models import ExecutionResult, JudgeVerdict, RunOutcome, Verdict
from .utils import decode, sanitize

INTERNAL_ERROR_MESSAGE = "An internal error occurred during code execution"
RUNTIME_ERROR_FALLBACK = "Runtime error or non-zero exit code"


def _signal_name(exit_code: int) -> str:
    try:
        return signal.Signals(-exit_code).name
    except ValueError:
        return f"signal {-exit_code}"


def from_outcome(outcome: RunOutcome, output_cap_bytes: int, identifiers: Iterable[str]) -> ExecutionResult:
    """Phân loại kết quả thô của runtime stage thành Verdict."""
    idents = list(identifiers)

    if outcome.timed_out:
        return ExecutionResult(
            verdict=Verdict.TIME_LIMIT_EXCEEDED,
            diagnostic="Time limit exceeded",
        )

    stdout = decode(outcome.stdout, output_cap_bytes)

    if outcome.output_capped:
        return ExecutionResult(
            verdict=Verdict.RUNTIME_ERROR,
            stdout=stdout,
            diagnostic=f"Output limit exceeded ({output_cap_bytes} bytes)",
        )

    if outcome.exit_code == 0:
        return ExecutionResult(verdict=Verdict.EXECUTED, stdout=stdout)

    err = decode(outcome.stderr, output_cap_bytes)
    if not err.strip():
        if outcome.exit_code is not None and outcome.exit_code < 0:
            err = f"Process terminated by {_signal_name(outcome.exit_code)}"
        else:
            err = RUNTIME_ERROR_FALLBACK
    return ExecutionResult(
        verdict=Verdict.RUNTIME_ERROR,
        stdout=stdout,
        diagnostic=sanitize(err, idents),
    )


def compilation_error(diagnostic: str, identifiers: Iterable[str]) -> ExecutionResult:
    return ExecutionResult(
        verdict=Verdict.COMPILATION_ERROR,
        diagnostic=sanitize(diagnostic, identifiers) or "Compilation failed",
    )


def bad_request(message: str) -> ExecutionResult:
    return ExecutionResult(verdict=Verdict.BAD_REQUEST, diagnostic=message)


def internal_error() -> ExecutionResult:
    return ExecutionResult(verdict=Verdict.INTERNAL_ERROR, diagnostic=INTERNAL_ERROR_MESSAGE)


def to_judge_verdict(verdict: Verdict) -> JudgeVerdict:
    """Rút gọn verdict của engine về tập verdict của lớp chấm bài (trừ Executed)."""
    if verdict == Verdict.COMPILATION_ERROR:
        return JudgeVerdict.COMPILATION_ERROR
    if verdict in (Verdict.RUNTIME_ERROR, Verdict.TIME_LIMIT_EXCEEDED):
        return JudgeVerdict.RUNTIME_ERROR
    return JudgeVerdict.ERROR
