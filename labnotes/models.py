"""Data models for labnotes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from .constants import DEFAULT_LAB_STATUS


class RenderState(Enum):
    """Renderer states used while walking note lines.

    At most one block container is open at a time.

    Attributes:
        NORMAL: No container open.
        IN_LIST: Inside a ``<ul>`` bullet list.
        IN_CODE_BLOCK: Inside a fenced ``<pre><code>`` block.
    """

    NORMAL = auto()
    IN_LIST = auto()
    IN_CODE_BLOCK = auto()


class LineKind(Enum):
    """Classification of a single line for the renderer.

    Attributes:
        FENCE: A fence delimiter line.
        CODE: Any other line while a fence is open.
        BULLET: A ``- `` bullet item.
        BLANK: An empty or whitespace-only line.
        TEXT: Any other line.
    """

    FENCE = auto()
    CODE = auto()
    BULLET = auto()
    BLANK = auto()
    TEXT = auto()


@dataclass
class RenderContext:
    """Accumulated output and current state for one render call.

    Attributes:
        state: Current renderer state.
        parts: HTML fragments emitted so far.
    """

    state: RenderState = RenderState.NORMAL
    parts: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProtectedSpan:
    """A region of text shielded from escaping and span rules.

    Attributes:
        start: Zero-based start offset in the unprotected text.
        end: Exclusive end offset in the unprotected text.
        original: Source text of the region.
        replacement: Markup restored in place of the region.
    """

    start: int
    end: int
    original: str
    replacement: str


@dataclass
class LabRecord:
    """Canonical shape of a stored practice lab.

    Attributes:
        id: Stable identifier.
        name: Display name of the lab.
        platform: Where the lab is hosted.
        difficulty: Free-form difficulty label.
        status: One of ``not-started``, ``in-progress`` or ``completed``.
        notes: Markdown notes for the lab.
        tags: Free-form tags.
        updated_at: ISO-8601 timestamp of the last change, or empty.
    """

    id: str
    name: str
    platform: str = ""
    difficulty: str = ""
    status: str = DEFAULT_LAB_STATUS
    notes: str = ""
    tags: list[str] = field(default_factory=list)
    updated_at: str = ""


@dataclass
class Preferences:
    """User interface preferences.

    Attributes:
        dark_mode: Whether the dark theme is active.
        theme: ``light`` or ``dark``.
        exam_prep_mode: Whether notes render through the exam prep filter.
    """

    dark_mode: bool = False
    theme: str = "light"
    exam_prep_mode: bool = False
