import asyncio
import sys

import pytest

from coderunner.core.errors import CompilationError
from coderunner.core.models import LanguageKind, LanguageProfile, Workspace
from coderunner.runner.compiler import Compiler


def _profile(script):
    return LanguageProfile(
        id="fake",
        file_extension=".src",
        kind=LanguageKind.NATIVE,
        run_command=("{artifact}",),
        compile_command=(sys.executable, "-c", script),
    )


@pytest.fixture
def ws(tmp_path):
    src = tmp_path / "prog.src"
    src.write_text("", encoding="utf-8")
    return Workspace(id="w1", directory=tmp_path, source_path=src, entry_name="prog")


def test_compiler_diagnostic_is_capped(settings, ws):
    compiler = Compiler(settings.exec_path, diagnostic_cap=1024)
    script = "import sys; sys.stderr.write('e' * 100000); sys.exit(1)"
    with pytest.raises(CompilationError) as exc:
        asyncio.run(compiler.compile(_profile(script), ws, 5000))
    assert exc.value.diagnostic == "e" * 1024


def test_compiler_falls_back_to_stdout(settings, ws):
    compiler = Compiler(settings.exec_path)
    script = "import sys; print('bad token'); sys.exit(2)"
    with pytest.raises(CompilationError) as exc:
        asyncio.run(compiler.compile(_profile(script), ws, 5000))
    assert exc.value.diagnostic.strip() == "bad token"


def test_compiler_timeout(settings, ws):
    compiler = Compiler(settings.exec_path)
    with pytest.raises(CompilationError) as exc:
        asyncio.run(compiler.compile(_profile("import time; time.sleep(30)"), ws, 500))
    assert "timed out" in exc.value.diagnostic
