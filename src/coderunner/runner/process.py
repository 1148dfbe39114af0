from __future__ import annotations
import asyncio
import os
import signal
import time
from typing import Callable, List, Optional

import structlog

from ..core.models import RunOutcome

log = structlog.get_logger(__name__)

CHUNK = 4096
EXIT_POLL_S = 0.05


def kill_group(proc: asyncio.subprocess.Process, sig: int = signal.SIGKILL) -> None:
    """
    Gửi signal cho cả process group (child chạy với start_new_session).
    Gửi cả khi process chính đã thoát: pgid còn hợp lệ chừng nào group còn process con.
    """
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass


async def drain_into(stream: asyncio.StreamReader, buf: bytearray, cap: int) -> None:
    """Đọc stream tới EOF, chỉ giữ tối đa `cap` byte đầu."""
    while True:
        chunk = await stream.read(CHUNK)
        if not chunk:
            return
        room = cap - len(buf)
        if room > 0:
            buf += chunk[:room]


class _Capture:
    def __init__(self, cap: int):
        self.cap = cap
        self.stdout = bytearray()
        self.stderr = bytearray()
        self.capped = False


class ProcessRunner:
    """
    Chạy chương trình người dùng như một process độc lập:
      - env chỉ có PATH tối thiểu, không thừa hưởng môi trường của service
      - stdin chỉ được pipe khi ngôn ngữ hỗ trợ nhập liệu
      - timeout 2 lớp: SIGTERM đúng hạn, SIGKILL dự phòng sau grace_ms
      - stdout đọc dần, vượt output cap là SIGKILL ngay
    """

    def __init__(self, exec_path: str, grace_ms: int = 1000):
        self.exec_path = exec_path
        self.grace_ms = grace_ms

    async def run(
        self,
        argv: List[str],
        *,
        cwd: str,
        stdin: Optional[str],
        time_limit_ms: int,
        output_cap_bytes: int,
        preexec: Optional[Callable[[], None]] = None,
    ) -> RunOutcome:
        loop = asyncio.get_running_loop()
        start = time.monotonic()
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env={"PATH": self.exec_path},
            start_new_session=True,
            preexec_fn=preexec,
        )
        log.debug("run.spawned", pid=proc.pid, argv0=argv[0])

        cap = _Capture(output_cap_bytes)
        limit_s = time_limit_ms / 1000
        grace_s = self.grace_ms / 1000

        # lớp 2: backstop, kể cả khi SIGTERM không hạ được cả cây process
        backstop = loop.call_later(limit_s + grace_s, kill_group, proc, signal.SIGKILL)
        collect = asyncio.ensure_future(self._collect(proc, stdin, cap))
        timed_out = False
        try:
            done, _ = await asyncio.wait({collect}, timeout=limit_s)
            if not done:
                # lớp 1: hết giờ
                timed_out = True
                log.info("run.timeout", pid=proc.pid, limit_ms=time_limit_ms)
                kill_group(proc, signal.SIGTERM)
                done, _ = await asyncio.wait({collect}, timeout=grace_s + 1)
                if not done:
                    # process con đã tách session vẫn giữ pipe: bỏ, lấy phần đã đọc
                    collect.cancel()
                    kill_group(proc, signal.SIGKILL)
            if collect.done() and not collect.cancelled():
                collect.result()
        finally:
            backstop.cancel()
            # không để process nào của group sống sót sau lần chạy
            kill_group(proc, signal.SIGKILL)
            if proc.returncode is None:
                try:
                    await asyncio.wait_for(proc.wait(), timeout=grace_s)
                except asyncio.TimeoutError:
                    log.warning("run.zombie", pid=proc.pid)

        rc = proc.returncode
        if rc is not None and rc == -signal.SIGXCPU:
            timed_out = True

        duration_ms = (time.monotonic() - start) * 1000
        if cap.capped:
            log.info("run.output_capped", pid=proc.pid, cap=output_cap_bytes)
        return RunOutcome(
            exit_code=rc,
            stdout=bytes(cap.stdout),
            stderr=bytes(cap.stderr),
            timed_out=timed_out,
            output_capped=cap.capped and not timed_out,
            duration_ms=duration_ms,
        )

    async def _collect(self, proc: asyncio.subprocess.Process, stdin: Optional[str], cap: _Capture) -> None:
        assert proc.stderr is not None
        pumps = asyncio.gather(
            self._feed(proc, stdin),
            self._pump_stdout(proc, cap),
            drain_into(proc.stderr, cap.stderr, cap.cap),
        )
        try:
            # returncode có ngay khi process chính thoát, wait() thì có thể chờ tới khi pipe đóng
            while not pumps.done():
                if proc.returncode is not None:
                    # process con còn sót trong group giữ pipe: kill để pipe về EOF
                    kill_group(proc, signal.SIGKILL)
                    break
                await asyncio.wait({pumps}, timeout=EXIT_POLL_S)
            await pumps
        finally:
            if not pumps.done():
                pumps.cancel()
        await proc.wait()

    @staticmethod
    async def _feed(proc: asyncio.subprocess.Process, stdin: Optional[str]) -> None:
        if proc.stdin is None:
            return
        try:
            if stdin:
                proc.stdin.write(stdin.encode("utf-8"))
                await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # chương trình thoát/không đọc hết input
            pass
        finally:
            try:
                proc.stdin.close()
            except (BrokenPipeError, ConnectionResetError):
                pass

    @staticmethod
    async def _pump_stdout(proc: asyncio.subprocess.Process, cap: _Capture) -> None:
        assert proc.stdout is not None
        while True:
            chunk = await proc.stdout.read(CHUNK)
            if not chunk:
                return
            if cap.capped:
                continue  # xả pipe cho tới EOF
            cap.stdout += chunk
            if len(cap.stdout) > cap.cap:
                cap.capped = True
                del cap.stdout[cap.cap:]
                kill_group(proc, signal.SIGKILL)
