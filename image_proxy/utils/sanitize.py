"""Escaping of user supplied free text before it is stored."""
from __future__ import annotations

import html


def escape_markup(text: str) -> str:
    """Escape HTML special characters (``& < > " '``) in *text*."""

    return html.escape(text, quote=True)
