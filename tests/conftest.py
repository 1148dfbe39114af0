import sys

import pytest

from coderunner.services.engine import ExecutionEngine
from coderunner.settings import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        sandbox_dir=tmp_path / "sbx",
        max_execution_time=2000,
        max_output_size=64,
        kill_grace_ms=1000,
        runtimes={"python3": sys.executable},
    )


@pytest.fixture
def engine(settings):
    return ExecutionEngine(settings)


@pytest.fixture
def leftovers(settings):
    def _list():
        d = settings.sandbox_dir
        return list(d.iterdir()) if d.exists() else []

    return _list
