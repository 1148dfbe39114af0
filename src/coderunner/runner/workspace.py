from __future__ import annotations
import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog

from ..core.errors import WorkspaceError
from ..core.models import LanguageProfile, Workspace
from ..core.utils import new_execution_id
from .languages import entry_name

log = structlog.get_logger(__name__)


class WorkspaceManager:
    """
    Mỗi lần chạy có một thư mục riêng trong sandbox_dir:
      <sandbox_dir>/<id>/
        ├─ <id>.<ext> | <Entry>.java   (source, chỉ owner được đọc)
        └─ <id>.out   | <Entry>.class  (artifact sau khi biên dịch)
    Các lần chạy song song dùng chung sandbox_dir nhưng không bao giờ đụng thư mục của nhau.
    """

    def __init__(self, sandbox_dir: Path):
        # đảm bảo là absolute path
        self.sandbox_dir = sandbox_dir if sandbox_dir.is_absolute() else sandbox_dir.resolve()

    def allocate(self, profile: LanguageProfile, source_code: str) -> Workspace:
        ws_id = new_execution_id()
        directory = self.sandbox_dir / ws_id
        entry = entry_name(profile, source_code)
        stem = entry or ws_id
        source_path = directory / f"{stem}.{profile.file_extension}"
        artifact_path = directory / f"{stem}{profile.artifact_suffix}" if profile.artifact_suffix else None
        ws = Workspace(
            id=ws_id,
            directory=directory,
            source_path=source_path,
            entry_name=stem,
            artifact_path=artifact_path,
        )

        try:
            self.sandbox_dir.mkdir(parents=True, exist_ok=True)
            directory.mkdir(mode=0o700)
        except OSError as e:
            raise WorkspaceError(f"cannot allocate workspace: {e}") from e

        try:
            fd = os.open(source_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o400)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(source_code)
        except (OSError, UnicodeError) as e:
            self.dispose(ws)
            raise WorkspaceError(f"cannot write source: {e}") from e

        log.info("workspace.allocated", workspace=ws_id, language=profile.id)
        return ws

    def dispose(self, ws: Workspace) -> None:
        """Xoá toàn bộ file của workspace. Lỗi chỉ ghi log, không bao giờ raise."""
        for path in ws.files():
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                log.warning("cleanup.failed", workspace=ws.id, path=str(path), error=str(e))

        # file phụ (Main$1.class...) và mọi thứ chương trình tự ghi vào cwd
        try:
            shutil.rmtree(ws.directory)
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning("cleanup.failed", workspace=ws.id, path=str(ws.directory), error=str(e))
        else:
            log.info("workspace.disposed", workspace=ws.id)

    @contextmanager
    def session(self, profile: LanguageProfile, source_code: str) -> Iterator[Workspace]:
        ws = self.allocate(profile, source_code)
        try:
            yield ws
        finally:
            self.dispose(ws)
