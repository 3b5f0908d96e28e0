"""Clean raw environment values before pydantic validates them.

Some ``.env`` loaders keep trailing comments, so ``TASK_MAX_RETRIES=5  # x``
reaches the settings as ``"5  # x"``.
"""

from __future__ import annotations

import re
from typing import Any

# A comment starts at a "#" that opens the value or follows whitespace.
_COMMENT = re.compile(r"(?:^|\s)#.*$", re.DOTALL)


def strip_inline_comment(value: str) -> str:
    """Drop a trailing ``# comment``; ``a#b`` is left as is."""
    return _COMMENT.sub("", value).strip()


def sanitize_inline_numeric(value: Any) -> Any:
    """``strip_inline_comment`` for numeric fields; blank results pass through unchanged."""
    if not isinstance(value, str):
        return value
    return strip_inline_comment(value) or value
