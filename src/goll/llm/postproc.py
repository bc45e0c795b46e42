"""Reasoning block removal for forwarded output.

Models such as deepseek-r1 wrap their chain of thought in
``<think>...</think>``. The block (markers included) is dropped before the
text becomes the next step's prompt; the raw response is still logged.
"""
from __future__ import annotations

import re
from functools import lru_cache

DEFAULT_OPEN_TAG = "<think>"
DEFAULT_CLOSE_TAG = "</think>"


@lru_cache(maxsize=8)
def _block_pattern(open_tag: str, close_tag: str) -> re.Pattern[str]:
    # Non-greedy: two blocks must not swallow the text between them.
    return re.compile(
        re.escape(open_tag) + r".*?" + re.escape(close_tag), re.DOTALL
    )


def strip_reasoning(
    text: str,
    open_tag: str = DEFAULT_OPEN_TAG,
    close_tag: str = DEFAULT_CLOSE_TAG,
) -> str:
    """Remove every complete reasoning block from ``text``.

    Unpaired markers are left in place. Idempotent: removal is repeated
    until no block remains, so markers joined by a removal are caught too.
    """
    pattern = _block_pattern(open_tag, close_tag)
    while open_tag in text:
        cleaned = pattern.sub("", text)
        if cleaned == text:
            break
        text = cleaned
    return text


__all__ = ["strip_reasoning", "DEFAULT_OPEN_TAG", "DEFAULT_CLOSE_TAG"]
