"""Text helpers for messages sent with Telegram's MarkdownV2 parse mode."""

from __future__ import annotations

MARKDOWN_V2_SPECIAL = "_*[]()~`>#+-=|{}.!"

_ESCAPE_TABLE = str.maketrans({char: "\\" + char for char in MARKDOWN_V2_SPECIAL})


def escape_markdown_v2(text: str) -> str:
    """Escape every MarkdownV2 control character so the text shows literally."""
    return text.translate(_ESCAPE_TABLE)


def trim(text: str, max_length: int) -> str:
    """Strip surrounding whitespace and keep at most ``max_length`` characters."""
    if max_length < 0:
        raise ValueError("max_length must not be negative")
    return text.strip()[:max_length]