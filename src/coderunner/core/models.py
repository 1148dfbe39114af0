from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


class Verdict(str, Enum):
    EXECUTED = "Executed"
    COMPILATION_ERROR = "Compilation Error"
    RUNTIME_ERROR = "Runtime Error"
    TIME_LIMIT_EXCEEDED = "Time Limit Exceeded"
    BAD_REQUEST = "Bad Request"
    INTERNAL_ERROR = "Internal Error"


class JudgeVerdict(str, Enum):
    ACCEPTED = "Accepted"
    WRONG_ANSWER = "Wrong Answer"
    COMPILATION_ERROR = "Compilation Error"
    RUNTIME_ERROR = "Runtime Error"
    ERROR = "Error"


class LanguageKind(str, Enum):
    INTERPRETED = "interpreted"  # chạy thẳng source
    NATIVE = "native"            # biên dịch ra binary
    MANAGED = "managed"          # biên dịch ra bytecode, chạy qua VM


@dataclass(frozen=True)
class ExecutionRequest:
    source_code: str
    language_id: str
    stdin: str = ""
    time_limit_ms: int = 5000
    output_cap_bytes: int = 1024 * 1024


@dataclass(frozen=True)
class LanguageProfile:
    id: str
    file_extension: str
    kind: LanguageKind
    run_command: Tuple[str, ...]
    compile_command: Optional[Tuple[str, ...]] = None
    interactive: bool = True
    entry_pattern: Optional[str] = None  # regex lấy tên entry-point từ source
    default_entry: Optional[str] = None
    artifact_suffix: Optional[str] = None  # ".out", ".class"...

    @property
    def requires_compile(self) -> bool:
        return self.compile_command is not None


@dataclass
class Workspace:
    id: str
    directory: Path
    source_path: Path
    entry_name: str
    artifact_path: Optional[Path] = None

    def files(self) -> List[Path]:
        out = [self.source_path]
        if self.artifact_path is not None:
            out.append(self.artifact_path)
        return out

    def identifiers(self) -> List[str]:
        """Các chuỗi nội bộ không được lọt ra ngoài qua thông báo lỗi."""
        idents = [str(p) for p in self.files()]
        idents += [str(self.directory), self.source_path.name]
        if self.artifact_path is not None:
            idents.append(self.artifact_path.name)
        idents.append(self.id)
        return idents


@dataclass
class RunOutcome:
    exit_code: Optional[int]
    stdout: bytes
    stderr: bytes
    timed_out: bool = False
    output_capped: bool = False
    duration_ms: float = 0.0


@dataclass
class ExecutionResult:
    verdict: Verdict
    stdout: str = ""
    diagnostic: str = ""
    execution_time_ms: float = 0.0
    memory_used_bytes: int = 0  # không đo bộ nhớ, luôn 0

    @property
    def success(self) -> bool:
        return self.verdict == Verdict.EXECUTED


@dataclass
class CallerLock:
    caller_id: str
    held_since: float


@dataclass(frozen=True)
class HiddenCase:
    input: str
    expected_output: str


@dataclass
class FailedCase:
    index: int
    input: str
    expected_output: str
    actual_output: str


@dataclass
class JudgeReport:
    verdict: JudgeVerdict
    output: str
    execution_time_ms: float
    cases_run: int
    failed_case: Optional[FailedCase] = None
    memory_used_bytes: int = 0


@dataclass
class RunReport:
    verdict: str
    output: str
    execution_time_ms: float
    input: str
    expected_output: str = ""
    actual_output: str = ""
    passed: bool = False
    memory_used_bytes: int = 0
