"""Inline span processing and HTML escaping."""

from __future__ import annotations

import re
from collections.abc import Callable

from .constants import BOLD_PATTERN, CODE_SPAN_PATTERN, INLINE_SENTINEL, ITALIC_PATTERN
from .models import ProtectedSpan

_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
)


def escape_html(text: str) -> str:
    """Escape HTML special characters in text content.

    The ampersand is replaced first so entities introduced by later
    replacements are not escaped twice.

    Args:
        text: Raw text.

    Returns:
        str: Text safe to embed between HTML tags.

    Examples:
        escape_html("<b> & 'x'")  # "&lt;b&gt; &amp; &#39;x&#39;"
    """
    for character, entity in _HTML_ESCAPES:
        text = text.replace(character, entity)
    return text


def escape_attribute(text: str) -> str:
    """Escape text for use inside a double-quoted HTML attribute.

    Same as `escape_html`, plus the backtick.

    Examples:
        escape_attribute("a`b")  # "a&#96;b"
    """
    return escape_html(text).replace("`", "&#96;")


def protect_spans(
    text: str,
    pattern: re.Pattern[str],
    sentinel: str,
    render: Callable[[re.Match[str]], str],
) -> tuple[str, list[ProtectedSpan]]:
    """Replace every match of `pattern` with an indexed sentinel token.

    Each match is recorded as a `ProtectedSpan` whose replacement is produced
    by `render`. Sentinel characters already present in `text` are recorded
    too, with their numeric character reference as replacement, so every
    token left in the output was produced here.

    Args:
        text: Text to scan.
        pattern: Pattern whose matches must be shielded.
        sentinel: Private-use character delimiting tokens.
        render: Builds the replacement markup for a match.

    Returns:
        tuple[str, list[ProtectedSpan]]: Text with tokens in place of the
            protected regions, and the span records indexed by token number.

    Examples:
        marked, spans = protect_spans("a `b`", CODE_SPAN_PATTERN, "\\ue000", render)
    """
    matcher = re.compile(f"(?:{pattern.pattern})|{re.escape(sentinel)}")
    spans: list[ProtectedSpan] = []

    def _substitute(match: re.Match[str]) -> str:
        original = match.group(0)
        if original == sentinel:
            replacement = f"&#{ord(sentinel)};"
        else:
            replacement = render(match)
        spans.append(ProtectedSpan(match.start(), match.end(), original, replacement))
        return f"{sentinel}{len(spans) - 1}{sentinel}"

    return matcher.sub(_substitute, text), spans


def restore_spans(text: str, spans: list[ProtectedSpan], sentinel: str) -> str:
    """Expand sentinel tokens produced by `protect_spans`.

    Tokens dropped from `text` in the meantime are simply not restored.

    Args:
        text: Text containing tokens.
        spans: Span records returned by `protect_spans`.
        sentinel: Sentinel character used when protecting.

    Returns:
        str: Text with each token replaced by its span's replacement.
    """
    if not spans:
        return text
    delimiter = re.escape(sentinel)
    token = re.compile(rf"{delimiter}(\d+){delimiter}")
    return token.sub(lambda match: spans[int(match.group(1))].replacement, text)


def _render_code_span(match: re.Match[str]) -> str:
    return f"<code>{escape_html(match.group(1))}</code>"


def process_inline(text: str) -> str:
    """Escape a line and apply bold, italic, and inline-code spans.

    Code spans are extracted before escaping so their content is escaped
    exactly once and never touched by the emphasis rules. Bold is applied
    before italic so ``**x**`` is not read as two italic markers. Unmatched
    markers stay as literal text.

    Args:
        text: A single line of note text.

    Returns:
        str: HTML-safe markup for the line.

    Examples:
        process_inline("**bold** and `a<b`")
        # "<strong>bold</strong> and <code>a&lt;b</code>"
    """
    marked, spans = protect_spans(text, CODE_SPAN_PATTERN, INLINE_SENTINEL, _render_code_span)
    marked = escape_html(marked)
    marked = BOLD_PATTERN.sub(r"<strong>\1</strong>", marked)
    marked = ITALIC_PATTERN.sub(r"<em>\1</em>", marked)
    return restore_spans(marked, spans, INLINE_SENTINEL)
