"""Exam prep redaction filter over raw note text."""

from __future__ import annotations

import re
from collections.abc import Iterable

from .constants import (
    CHECKLIST_PATTERN,
    DEFAULT_EXAM_PREP_TOOLS,
    EXAM_PREP_FALLBACK,
    FENCE_DELIMITER,
    SHELL_PROMPT_PATTERN,
)


def is_fence_line(line: str) -> bool:
    """Return True when the trimmed line opens or closes a fenced block."""
    return line.strip().startswith(FENCE_DELIMITER)


def build_tool_pattern(tools: Iterable[str]) -> re.Pattern[str] | None:
    """Compile a case-insensitive matcher for any of the given tool names.

    Args:
        tools: Tool names matched as plain substrings.

    Returns:
        re.Pattern[str] | None: Compiled pattern, or None when `tools` is empty.

    Examples:
        build_tool_pattern(["nmap", "gobuster"]).search("Ran GoBuster")
    """
    names = [re.escape(name) for name in dict.fromkeys(tools) if name]
    if not names:
        return None
    return re.compile("|".join(names), re.IGNORECASE)


def should_keep_line(line: str, tool_pattern: re.Pattern[str] | None) -> bool:
    """Decide whether a line outside a fenced block survives exam prep mode.

    Args:
        line: Raw line text.
        tool_pattern: Matcher built by `build_tool_pattern`.

    Returns:
        bool: True for checklist items, shell commands, and tool mentions.
    """
    if CHECKLIST_PATTERN.match(line.strip()):
        return True
    if SHELL_PROMPT_PATTERN.match(line):
        return True
    return tool_pattern is not None and tool_pattern.search(line) is not None


def filter_for_exam_prep(
    content: str,
    tools: Iterable[str] | None = None,
    fallback: str = EXAM_PREP_FALLBACK,
) -> str:
    """Keep only the lines of a note that are safe to show while studying.

    Fence lines and everything between them are kept verbatim; outside fences
    only checklist items, commands (``sudo ``, ``# ``, ``$ ``) and lines
    naming a retained tool are kept. Line order and text are unchanged.

    Args:
        content: Raw note text.
        tools: Tool names to retain. Defaults to `DEFAULT_EXAM_PREP_TOOLS`.
        fallback: Message returned when no line is kept.

    Returns:
        str: Kept lines joined by newlines, or `fallback`.

    Examples:
        filter_for_exam_prep("Intro\\n$ nmap -sV 10.0.0.1")  # "$ nmap -sV 10.0.0.1"
        filter_for_exam_prep("just prose")  # EXAM_PREP_FALLBACK
    """
    tool_pattern = build_tool_pattern(DEFAULT_EXAM_PREP_TOOLS if tools is None else tools)
    kept: list[str] = []
    in_code_block = False

    for line in content.split("\n"):
        if is_fence_line(line):
            in_code_block = not in_code_block
            kept.append(line)
            continue

        if in_code_block or should_keep_line(line, tool_pattern):
            kept.append(line)

    return "\n".join(kept) if kept else fallback
