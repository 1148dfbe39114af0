from __future__ import annotations


class EngineError(Exception):
    """Lỗi gốc của engine."""


class UnsupportedLanguage(EngineError):
    def __init__(self, language_id: str):
        super().__init__(f"Unsupported language: {language_id}")
        self.language_id = language_id


class WorkspaceError(EngineError):
    pass


class CompilationError(EngineError):
    def __init__(self, diagnostic: str):
        super().__init__("compilation failed")
        self.diagnostic = diagnostic
