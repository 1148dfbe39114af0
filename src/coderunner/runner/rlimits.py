from __future__ import annotations
import math
import resource
from typing import Callable


def apply_rlimits(cpu_seconds: int, nofile: int) -> None:
    """
    Áp giới hạn ở cấp tiến trình: CPU time, số file descriptor.
    Chạy trong child trước execve nên không log được; limit nào OS không cho đặt thì giữ mặc định.
    """
    try:
        # soft < hard: hết soft nhận SIGXCPU, hết hard nhận SIGKILL
        resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds + 1))
    except (ValueError, OSError):
        pass
    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (nofile, nofile))
    except (ValueError, OSError):
        pass
    # không sinh core dump trong sandbox_dir
    try:
        resource.setrlimit(resource.RLIMIT_CORE, (0, 0))
    except (ValueError, OSError):
        pass


def make_preexec(time_limit_ms: int, grace_ms: int, nofile: int) -> Callable[[], None]:
    cpu_seconds = max(1, math.ceil((time_limit_ms + grace_ms) / 1000))

    def _preexec() -> None:
        apply_rlimits(cpu_seconds, nofile)

    return _preexec
