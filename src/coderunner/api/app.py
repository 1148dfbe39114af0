from __future__ import annotations
from typing import List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
import structlog

from ..core.models import ExecutionResult, HiddenCase, Verdict
from ..logging import setup_logging
from ..runner.languages import supported_languages
from ..services.admission import CallerLockRegistry
from ..services.engine import ExecutionEngine
from ..services.judge import JudgeService
from ..settings import Settings, load_settings
from .ratelimit import RateLimiter

log = structlog.get_logger(__name__)


# --------- Schemas ---------
class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ExecuteReq(BaseModel):
    code: Optional[str] = None
    language: Optional[str] = None
    input: Optional[str] = None


class ExecuteRes(_Camel):
    success: bool
    verdict: str
    output: str = ""
    error: str = ""
    execution_time_ms: float = Field(0, alias="executionTimeMs")
    memory_used_bytes: int = Field(0, alias="memoryUsedBytes")


class CaseReq(_Camel):
    input: str = ""
    expected_output: str = Field("", alias="expectedOutput")


class RunReq(BaseModel):
    code: Optional[str] = None
    language: Optional[str] = None
    input: Optional[str] = None  # có input tự nhập thì bỏ qua sample
    sample: Optional[CaseReq] = None


class FailedCaseRes(_Camel):
    input: str
    expected_output: str = Field(alias="expectedOutput")
    actual_output: str = Field(alias="actualOutput")
    passed: bool = False
    index: Optional[int] = None


class RunRes(_Camel):
    success: bool = True
    verdict: str
    output: str
    execution_time_ms: float = Field(0, alias="executionTimeMs")
    memory_used_bytes: int = Field(0, alias="memoryUsedBytes")
    failed_test_case: FailedCaseRes = Field(alias="failedTestCase")


class SubmitReq(_Camel):
    code: Optional[str] = None
    language: Optional[str] = None
    test_cases: List[CaseReq] = Field(default_factory=list, alias="testCases")


class SubmitRes(_Camel):
    success: bool = True
    verdict: str
    output: str
    execution_time_ms: float = Field(0, alias="executionTimeMs")
    memory_used_bytes: int = Field(0, alias="memoryUsedBytes")
    cases_run: int = Field(0, alias="casesRun")
    failed_test_case: Optional[FailedCaseRes] = Field(None, alias="failedTestCase")


_STATUS = {Verdict.BAD_REQUEST: 400, Verdict.INTERNAL_ERROR: 500}


def _execute_response(res: ExecutionResult) -> JSONResponse:
    body = ExecuteRes(
        success=res.success,
        verdict=res.verdict.value,
        output=res.stdout,
        error=res.diagnostic,
        execution_time_ms=res.execution_time_ms,
        memory_used_bytes=res.memory_used_bytes,
    )
    return JSONResponse(status_code=_STATUS.get(res.verdict, 200), content=body.model_dump(by_alias=True))


def _bad_request(message: str = "Code and language are required") -> JSONResponse:
    body = ExecuteRes(success=False, verdict=Verdict.BAD_REQUEST.value, error=message)
    return JSONResponse(status_code=400, content=body.model_dump(by_alias=True))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Code Runner API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    engine = ExecutionEngine(settings)
    locks = CallerLockRegistry()
    judge = JudgeService(engine, locks)
    app.state.settings = settings
    app.state.engine = engine
    app.state.locks = locks
    app.state.judge = judge

    limiter = RateLimiter(settings.rate_limit_max, settings.rate_limit_window_s)
    app.state.limiter = limiter

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        # giới hạn theo IP, /health không tính
        if request.url.path != "/health":
            client = request.client.host if request.client else ""
            if not limiter.hit(client):
                log.info("api.rate_limited", client=client, path=request.url.path)
                return JSONResponse(status_code=429, content={"detail": "Too Many Requests"})
        return await call_next(request)

    # --------- Endpoints ---------

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/languages")
    def languages():
        return {"languages": supported_languages()}

    @app.post("/")
    @app.post("/execute")
    async def execute(req: ExecuteReq, x_caller_id: str = Header("anon")):
        if not req.code or not req.language:
            return _bad_request()
        exec_req = engine.request(req.code, req.language, req.input)
        res = await locks.run(x_caller_id, lambda: engine.execute(exec_req))
        return _execute_response(res)

    @app.post("/run", response_model=RunRes)
    async def run(req: RunReq, x_caller_id: str = Header("anon")):
        if not req.code or not req.language:
            return _bad_request()
        sample = HiddenCase(req.sample.input, req.sample.expected_output) if req.sample else None
        rep = await judge.run(req.code, req.language, caller_id=x_caller_id, stdin=req.input, sample=sample)
        return RunRes(
            verdict=rep.verdict,
            output=rep.output,
            execution_time_ms=rep.execution_time_ms,
            memory_used_bytes=rep.memory_used_bytes,
            failed_test_case=FailedCaseRes(
                input=rep.input,
                expected_output=rep.expected_output,
                actual_output=rep.actual_output,
                passed=rep.passed,
            ),
        )

    @app.post("/submit", response_model=SubmitRes)
    async def submit(req: SubmitReq, x_caller_id: str = Header("anon")):
        if not req.code or not req.language:
            return _bad_request()
        cases = [HiddenCase(c.input, c.expected_output) for c in req.test_cases]
        rep = await judge.evaluate(req.code, req.language, cases, caller_id=x_caller_id)
        failed = None
        if rep.failed_case is not None:
            failed = FailedCaseRes(
                index=rep.failed_case.index,
                input=rep.failed_case.input,
                expected_output=rep.failed_case.expected_output,
                actual_output=rep.failed_case.actual_output,
            )
        return SubmitRes(
            verdict=rep.verdict.value,
            output=rep.output,
            execution_time_ms=rep.execution_time_ms,
            memory_used_bytes=rep.memory_used_bytes,
            cases_run=rep.cases_run,
            failed_test_case=failed,
        )

    @app.get("/")
    def root():
        return {"message": "Welcome to the code runner API"}

    return app
