from __future__ import annotations

import re
from collections.abc import Iterable

"""Header text canonicalization.

normalize_header() is the single join key between template columns and the
columns of every incoming file; every header comparison goes through it.
"""

__all__ = [
    "normalize_header",
    "normalize_headers",
]

_FULLWIDTH_ANNOTATION = re.compile(r"（.*?）")
_HALFWIDTH_ANNOTATION = re.compile(r"\(.*?\)")
_WHITESPACE = re.compile(r"\s+")


def normalize_header(raw: str | None) -> str:
    """Canonicalize header text.

    Steps: trim, drop CR/LF, remove （…） and (…) annotations (non-greedy),
    drop '*', remove all whitespace. Blank input -> "".

    >>> normalize_header(" 金额\\n（元）* ")
    '金额'
    """
    if raw is None:
        return ""
    s = str(raw).strip()
    if not s:
        return ""
    s = s.replace("\n", "").replace("\r", "").strip()
    s = _FULLWIDTH_ANNOTATION.sub("", s)
    s = _HALFWIDTH_ANNOTATION.sub("", s)
    s = s.replace("*", "")
    s = _WHITESPACE.sub("", s)
    return s.strip()


def normalize_headers(headers: Iterable[str | None] | None) -> list[str]:
    """Normalize a list of headers, dropping the ones that normalize to ""."""
    if not headers:
        return []
    out: list[str] = []
    for header in headers:
        value = normalize_header(header)
        if value:
            out.append(value)
    return out
