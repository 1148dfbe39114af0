from __future__ import annotations
import re
from typing import Dict, List, Mapping, Optional, Tuple

from ..core.errors import UnsupportedLanguage
from ..core.models import LanguageKind, LanguageProfile, Workspace

JAVA_PUBLIC_TYPE = r"public\s+(?:(?:final|abstract|sealed)\s+)*(?:class|interface|enum|record)\s+(\w+)"

LANGUAGES: Dict[str, LanguageProfile] = {
    "python": LanguageProfile(
        id="python",
        file_extension="py",
        kind=LanguageKind.INTERPRETED,
        run_command=("python3", "{source}"),
    ),
    "javascript": LanguageProfile(
        id="javascript",
        file_extension="js",
        kind=LanguageKind.INTERPRETED,
        run_command=("node", "{source}"),
    ),
    "cpp": LanguageProfile(
        id="cpp",
        file_extension="cpp",
        kind=LanguageKind.NATIVE,
        compile_command=("g++", "{source}", "-o", "{artifact}", "-O2", "-static-libstdc++"),
        run_command=("{artifact}",),
        artifact_suffix=".out",
    ),
    "java": LanguageProfile(
        id="java",
        file_extension="java",
        kind=LanguageKind.MANAGED,
        compile_command=("javac", "-d", "{workdir}", "{source}"),
        run_command=("java", "-cp", "{workdir}", "{entry}"),
        entry_pattern=JAVA_PUBLIC_TYPE,
        default_entry="Main",
        artifact_suffix=".class",
    ),
}


def supported_languages() -> List[str]:
    return sorted(LANGUAGES)


def resolve(language_id: Optional[str]) -> LanguageProfile:
    profile = LANGUAGES.get((language_id or "").strip().lower())
    if profile is None:
        raise UnsupportedLanguage(str(language_id))
    return profile


def entry_name(profile: LanguageProfile, source_code: str) -> Optional[str]:
    """Tên entry-point suy ra từ source (Java: tên public type, mặc định Main)."""
    if not profile.entry_pattern:
        return None
    m = re.search(profile.entry_pattern, source_code)
    return m.group(1) if m else profile.default_entry


def render(template: Tuple[str, ...], ws: Workspace, runtimes: Optional[Mapping[str, str]] = None) -> List[str]:
    """
    Dựng argv từ template, thay từng phần tử riêng lẻ (không bao giờ qua shell,
    không split chuỗi). Phần tử đầu có thể được map sang binary cụ thể qua `runtimes`.
    """
    values = {
        "source": str(ws.source_path),
        "artifact": str(ws.artifact_path) if ws.artifact_path else "",
        "workdir": str(ws.directory),
        "entry": ws.entry_name,
    }
    argv = [part.format(**values) for part in template]
    if runtimes and argv and template[0] in runtimes:
        argv[0] = runtimes[template[0]]
    return argv
