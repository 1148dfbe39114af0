from __future__ import annotations
import secrets
from typing import Iterable


def new_execution_id() -> str:
    return secrets.token_hex(16)


def sanitize(text: str, identifiers: Iterable[str]) -> str:
    """
    Xoá mọi lần xuất hiện (khớp chính xác) của từng identifier khỏi text.
    Lặp tới khi không còn, vì xoá một chuỗi có thể ghép ra chuỗi khác.
    """
    if not text:
        return ""
    # chuỗi dài trước: xoá path đầy đủ trước khi xoá id nằm bên trong nó
    idents = sorted({i for i in identifiers if i}, key=len, reverse=True)
    while True:
        found = [i for i in idents if i in text]
        if not found:
            return text
        for ident in found:
            text = text.replace(ident, "")


def decode(data: bytes, limit: int | None = None) -> str:
    """
    Decode UTF-8 (byte lỗi -> U+FFFD), kết quả encode lại không quá `limit` byte.
    U+FFFD chiếm 3 byte nên có thể dài hơn byte gốc: cắt lại ở ký tự trọn vẹn cuối cùng.
    """
    if limit is None:
        return data.decode("utf-8", errors="replace")
    text = data[:limit].decode("utf-8", errors="replace")
    raw = text.encode("utf-8")
    if len(raw) <= limit:
        return text
    return raw[:limit].decode("utf-8", errors="ignore")
