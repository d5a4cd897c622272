"""Line-block rendering of notes to HTML."""

from __future__ import annotations

import re

from .config import NotebookConfig
from .constants import (
    BULLET_MARKER_PATTERN,
    BULLET_PATTERN,
    CODE_CLASS,
    FENCE_DELIMITER,
    LIST_CLASS,
    SCREENSHOT_CLASS,
    SCREENSHOT_PATTERN,
    SCREENSHOT_SENTINEL,
)
from .exam_prep import filter_for_exam_prep
from .inline import escape_attribute, escape_html, process_inline, protect_spans, restore_spans
from .models import LineKind, RenderContext, RenderState

_TRANSITIONS: dict[tuple[RenderState, LineKind], RenderState] = {
    (RenderState.NORMAL, LineKind.FENCE): RenderState.IN_CODE_BLOCK,
    (RenderState.NORMAL, LineKind.BULLET): RenderState.IN_LIST,
    (RenderState.NORMAL, LineKind.BLANK): RenderState.NORMAL,
    (RenderState.NORMAL, LineKind.TEXT): RenderState.NORMAL,
    (RenderState.IN_LIST, LineKind.FENCE): RenderState.IN_CODE_BLOCK,
    (RenderState.IN_LIST, LineKind.BULLET): RenderState.IN_LIST,
    (RenderState.IN_LIST, LineKind.BLANK): RenderState.NORMAL,
    (RenderState.IN_LIST, LineKind.TEXT): RenderState.NORMAL,
    (RenderState.IN_CODE_BLOCK, LineKind.FENCE): RenderState.NORMAL,
    (RenderState.IN_CODE_BLOCK, LineKind.CODE): RenderState.IN_CODE_BLOCK,
}

_OPEN_TAGS = {
    RenderState.IN_LIST: f'<ul class="{LIST_CLASS}">',
    RenderState.IN_CODE_BLOCK: f'<pre class="{CODE_CLASS}"><code>',
}

_CLOSE_TAGS = {
    RenderState.IN_LIST: "</ul>",
    RenderState.IN_CODE_BLOCK: "</code></pre>",
}


def classify_line(state: RenderState, line: str) -> LineKind:
    """Classify a line given the current renderer state.

    Args:
        state: State before the line is consumed.
        line: Line with trailing whitespace removed.

    Returns:
        LineKind: How the renderer should treat the line.

    Examples:
        classify_line(RenderState.NORMAL, "- item")  # LineKind.BULLET
        classify_line(RenderState.IN_CODE_BLOCK, "- item")  # LineKind.CODE
    """
    stripped = line.strip()
    if stripped.startswith(FENCE_DELIMITER):
        return LineKind.FENCE
    if state is RenderState.IN_CODE_BLOCK:
        return LineKind.CODE
    if BULLET_PATTERN.match(line):
        return LineKind.BULLET
    if not stripped:
        return LineKind.BLANK
    return LineKind.TEXT


def transition(ctx: RenderContext, kind: LineKind) -> None:
    """Move `ctx` to the state that follows a line of `kind`.

    Closes the container being left and opens the one being entered.
    """
    next_state = _TRANSITIONS[(ctx.state, kind)]
    if next_state is ctx.state:
        return

    close_tag = _CLOSE_TAGS.get(ctx.state)
    if close_tag:
        ctx.parts.append(close_tag)
    open_tag = _OPEN_TAGS.get(next_state)
    if open_tag:
        ctx.parts.append(open_tag)
    ctx.state = next_state


def close_open_block(ctx: RenderContext) -> None:
    """Close whichever container is still open at the end of input."""
    close_tag = _CLOSE_TAGS.get(ctx.state)
    if close_tag:
        ctx.parts.append(close_tag)
    ctx.state = RenderState.NORMAL


def _render_line(kind: LineKind, line: str) -> str:
    if kind is LineKind.FENCE:
        return ""
    if kind is LineKind.CODE:
        return f"{escape_html(line)}\n"
    if kind is LineKind.BULLET:
        return f"<li>{process_inline(BULLET_MARKER_PATTERN.sub('', line, count=1))}</li>"
    if kind is LineKind.BLANK:
        return "<br />"
    return f"<p>{process_inline(line)}</p>"


def _render_screenshot(match: re.Match[str]) -> str:
    path = escape_attribute(match.group(1).strip())
    return f'<figure class="{SCREENSHOT_CLASS}"><img src="{path}" alt="{path}" /></figure>'


def render_markdown(text: str) -> str:
    """Render note text to an HTML fragment.

    Supports paragraphs, ``- `` bullet lists, fenced code blocks, inline
    bold/italic/code spans, and ``![[path]]`` screenshot embeds. Screenshot
    embeds are shielded before the text is split into lines and expanded into
    ``<figure>`` elements once the HTML is assembled. Malformed input never
    raises: an unterminated fence is closed after the last line.

    Args:
        text: Raw note text.

    Returns:
        str: HTML fragment without an ``<html>`` or ``<body>`` wrapper.

    Examples:
        render_markdown("**bold** and *italic*")
        # "<p><strong>bold</strong> and <em>italic</em></p>"
    """
    marked, screenshots = protect_spans(
        text, SCREENSHOT_PATTERN, SCREENSHOT_SENTINEL, _render_screenshot
    )
    ctx = RenderContext()

    for raw_line in marked.split("\n"):
        line = raw_line.rstrip()
        kind = classify_line(ctx.state, line)
        transition(ctx, kind)
        ctx.parts.append(_render_line(kind, line))

    close_open_block(ctx)

    return restore_spans("".join(ctx.parts), screenshots, SCREENSHOT_SENTINEL)


def render_note(text: str, exam_prep: bool = False, config: NotebookConfig | None = None) -> str:
    """Render a note, optionally through the exam prep filter first.

    Args:
        text: Raw note text.
        exam_prep: When True, render only the lines kept by
            `filter_for_exam_prep`.
        config: Supplies extra retained tools and the fallback message
            variant. Defaults to a new `NotebookConfig`.

    Returns:
        str: HTML fragment.

    Examples:
        render_note("Walkthrough\\n$ sudo -l", exam_prep=True)
    """
    if exam_prep:
        config = config or NotebookConfig()
        text = filter_for_exam_prep(
            text, tools=config.retained_tools(), fallback=config.fallback_message()
        )
    return render_markdown(text)
