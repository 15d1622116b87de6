"""Turn captured toolchain output into a line-for-line diagnostics transcript."""

from __future__ import annotations

import re

# CSI sequences (colors, cursor movement) and OSC sequences (hyperlinks, titles).
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")


def strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE.sub("", text)


def parse(captured: str) -> tuple[str, ...]:
    """Split *captured* into lines, keeping order and blank lines.

    Only terminal escape sequences are removed; no line is dropped, so
    colored and uncolored transcripts parse to the same result. Lines end
    at ``\\n`` or ``\\r\\n`` only; form feeds and other separators stay in
    the line they appear in.
    """
    text = strip_ansi(captured).replace("\r\n", "\n")
    if not text:
        return ()
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return tuple(lines)
