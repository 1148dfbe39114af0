from __future__ import annotations
import asyncio
import signal
from pathlib import Path
from typing import Mapping, Optional

import structlog

from ..core.errors import CompilationError
from ..core.models import LanguageProfile, Workspace
from ..core.utils import decode
from .languages import render
from .process import drain_into, kill_group

log = structlog.get_logger(__name__)


class Compiler:
    def __init__(self, exec_path: str, runtimes: Optional[Mapping[str, str]] = None, diagnostic_cap: int = 64 * 1024):
        self.exec_path = exec_path
        self.runtimes = runtimes or {}
        self.diagnostic_cap = diagnostic_cap

    async def compile(self, profile: LanguageProfile, ws: Workspace, time_limit_ms: int) -> Optional[Path]:
        """
        Biên dịch source trong workspace. Không chạy code người dùng ở bước này.
        Trả về đường dẫn artifact; lỗi -> CompilationError (chưa sanitize).
        """
        if not profile.requires_compile:
            return None

        argv = render(profile.compile_command, ws, self.runtimes)
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(ws.directory),
            env={"PATH": self.exec_path},
            start_new_session=True,
        )
        assert proc.stdout is not None and proc.stderr is not None
        # đọc dần, chỉ giữ tối đa diagnostic_cap byte mỗi stream
        out, err = bytearray(), bytearray()
        try:
            await asyncio.wait_for(
                asyncio.gather(
                    drain_into(proc.stdout, out, self.diagnostic_cap),
                    drain_into(proc.stderr, err, self.diagnostic_cap),
                    proc.wait(),
                ),
                timeout=time_limit_ms / 1000,
            )
        except asyncio.TimeoutError:
            kill_group(proc, signal.SIGKILL)
            await proc.wait()
            log.info("compile.timeout", workspace=ws.id, language=profile.id, limit_ms=time_limit_ms)
            raise CompilationError(f"Compilation timed out after {time_limit_ms} ms")

        if proc.returncode != 0:
            log.info("compile.failed", workspace=ws.id, language=profile.id, rc=proc.returncode)
            diag = decode(bytes(err), self.diagnostic_cap) or decode(bytes(out), self.diagnostic_cap)
            raise CompilationError(diag or f"Compiler exited with status {proc.returncode}")

        log.info("compile.ok", workspace=ws.id, language=profile.id)
        return ws.artifact_path
