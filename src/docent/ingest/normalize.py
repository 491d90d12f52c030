"""Text normalization applied to every chunk before it is stored."""

from __future__ import annotations

import re

# C0 controls other than the whitespace ones (\t \n \v \f \r), plus DEL.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0e-\x1f\x7f]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Remove control characters, collapse whitespace runs, strip both ends.

    Empty input yields an empty string.
    """
    if not text:
        return ""
    text = _CONTROL_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()
