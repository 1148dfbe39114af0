from __future__ import annotations
from typing import Optional, Sequence

import structlog

from ..core.models import (
    FailedCase,
    HiddenCase,
    JudgeReport,
    JudgeVerdict,
    RunReport,
    Verdict,
)
from ..core.verdicts import to_judge_verdict
from .admission import CallerLockRegistry
from .engine import ExecutionEngine

log = structlog.get_logger(__name__)


def _same(actual: str, expected: str) -> bool:
    return (actual or "").strip() == (expected or "").strip()


class JudgeService:
    """
    Lớp chấm bài phía trên engine. Bộ test ẩn do tầng lưu trữ đưa vào dưới dạng
    cặp (input, expected_output); service không quản lý vòng đời của chúng.
    """

    def __init__(self, engine: ExecutionEngine, locks: CallerLockRegistry):
        self.engine = engine
        self.locks = locks

    async def evaluate(
        self,
        code: str,
        language: str,
        cases: Sequence[HiddenCase],
        caller_id: str = "anon",
    ) -> JudgeReport:
        """Chạy lần lượt từng test, dừng ngay ở test đầu tiên sai/lỗi (các test sau không chạy)."""
        async with self.locks.hold(caller_id):
            total_ms = 0.0
            for index, case in enumerate(cases, start=1):
                res = await self.engine.execute(self.engine.request(code, language, case.input))
                total_ms += res.execution_time_ms

                if not res.success:
                    verdict = to_judge_verdict(res.verdict)
                    log.info("judge.failed", caller=caller_id, case=index, verdict=verdict.value)
                    return JudgeReport(
                        verdict=verdict,
                        output=res.diagnostic or "Error during execution",
                        execution_time_ms=total_ms,
                        cases_run=index,
                    )

                if not _same(res.stdout, case.expected_output):
                    log.info("judge.wrong_answer", caller=caller_id, case=index)
                    return JudgeReport(
                        verdict=JudgeVerdict.WRONG_ANSWER,
                        output=res.stdout,
                        execution_time_ms=total_ms,
                        cases_run=index,
                        failed_case=FailedCase(
                            index=index,
                            input=case.input.strip(),
                            expected_output=case.expected_output.strip(),
                            actual_output=res.stdout.strip(),
                        ),
                    )

            log.info("judge.accepted", caller=caller_id, cases=len(cases))
            return JudgeReport(
                verdict=JudgeVerdict.ACCEPTED,
                output="All test cases passed!",
                execution_time_ms=total_ms,
                cases_run=len(cases),
            )

    async def run(
        self,
        code: str,
        language: str,
        caller_id: str = "anon",
        stdin: Optional[str] = None,
        sample: Optional[HiddenCase] = None,
    ) -> RunReport:
        """
        Chạy thử: có input tự nhập thì chỉ trả kết quả chạy; không có thì so với sample.
        """
        custom = stdin is not None
        actual_input = stdin if custom else (sample.input if sample else "")
        expected = None if custom or sample is None else sample.expected_output.strip()

        async with self.locks.hold(caller_id):
            res = await self.engine.execute(self.engine.request(code, language, actual_input))

        shown = res.stdout if res.success else (res.diagnostic or res.stdout)
        actual = shown.strip()
        passed = False
        if not res.success:
            verdict = to_judge_verdict(res.verdict).value
        elif expected:
            passed = actual == expected
            verdict = (JudgeVerdict.ACCEPTED if passed else JudgeVerdict.WRONG_ANSWER).value
        else:
            verdict = Verdict.EXECUTED.value

        return RunReport(
            verdict=verdict,
            output=shown,
            execution_time_ms=res.execution_time_ms,
            input=actual_input.strip(),
            expected_output=expected or "",
            actual_output=actual,
            passed=passed,
        )
