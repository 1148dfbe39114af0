from __future__ import annotations
import time
from typing import Optional

import structlog

from ..core import verdicts
from ..core.errors import CompilationError, UnsupportedLanguage
from ..core.models import ExecutionRequest, ExecutionResult
from ..runner.compiler import Compiler
from ..runner.languages import render, resolve
from ..runner.process import ProcessRunner
from ..runner.rlimits import make_preexec
from ..runner.workspace import WorkspaceManager
from ..settings import Settings

log = structlog.get_logger(__name__)


class ExecutionEngine:
    """
    Ghép pipeline: workspace -> [compile] -> run -> sanitize -> verdict -> dispose.
    Không bao giờ raise ra ngoài: mọi kết quả đều là ExecutionResult.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.workspaces = WorkspaceManager(settings.sandbox_dir)
        self.compiler = Compiler(settings.exec_path, settings.runtimes, diagnostic_cap=settings.output_cap_bytes)
        self.runner = ProcessRunner(settings.exec_path, grace_ms=settings.kill_grace_ms)

    def request(self, code: str, language: str, stdin: Optional[str] = None) -> ExecutionRequest:
        return ExecutionRequest(
            source_code=code,
            language_id=language,
            stdin=stdin or "",
            time_limit_ms=self.settings.time_limit_ms,
            output_cap_bytes=self.settings.output_cap_bytes,
        )

    async def execute(self, req: ExecutionRequest) -> ExecutionResult:
        start = time.monotonic()
        try:
            result = await self._execute(req)
        except Exception:
            log.exception("engine.internal_error", language=req.language_id)
            result = verdicts.internal_error()
        result.execution_time_ms = (time.monotonic() - start) * 1000
        log.info(
            "engine.done",
            language=req.language_id,
            verdict=result.verdict.value,
            time_ms=round(result.execution_time_ms, 2),
        )
        return result

    async def _execute(self, req: ExecutionRequest) -> ExecutionResult:
        if not req.source_code or not req.source_code.strip():
            return verdicts.bad_request("Code and language are required")
        try:
            profile = resolve(req.language_id)
        except UnsupportedLanguage as e:
            return verdicts.bad_request(str(e))

        with self.workspaces.session(profile, req.source_code) as ws:
            idents = ws.identifiers()
            try:
                await self.compiler.compile(profile, ws, req.time_limit_ms)
            except CompilationError as e:
                return verdicts.compilation_error(e.diagnostic, idents)

            argv = render(profile.run_command, ws, self.settings.runtimes)
            outcome = await self.runner.run(
                argv,
                cwd=str(ws.directory),
                stdin=req.stdin if profile.interactive else None,
                time_limit_ms=req.time_limit_ms,
                output_cap_bytes=req.output_cap_bytes,
                preexec=make_preexec(req.time_limit_ms, self.settings.kill_grace_ms, self.settings.nofile_limit),
            )
            log.debug(
                "run.finished",
                workspace=ws.id,
                rc=outcome.exit_code,
                duration_ms=round(outcome.duration_ms, 2),
            )
            return verdicts.from_outcome(outcome, req.output_cap_bytes, idents)
