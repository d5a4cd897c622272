"""
labnotes: personal lab-tracking notebook.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    labnotes render notes/lame.md --exam-prep

Library Usage:
    from labnotes import filter_for_exam_prep, render_markdown

    html = render_markdown("**Foothold** via `smbclient`")
    visible = filter_for_exam_prep(notes)
"""

from .config import NotebookConfig
from .constants import EXAM_PREP_FALLBACK, LEGACY_EXAM_PREP_FALLBACK
from .exam_prep import filter_for_exam_prep
from .exceptions import InvalidLabError, LabNotesError, LabNotFoundError, StorageError
from .inline import escape_attribute, escape_html, process_inline
from .labs import LabRepository, normalize_lab
from .models import LabRecord, Preferences
from .preferences import PreferencesRepository
from .renderer import render_markdown, render_note
from .storage import JsonFileStore, KeyValueStore, MemoryStore, PersistentValue

__version__ = "0.1.0"

__all__ = [
    # Rendering
    "render_markdown",
    "render_note",
    "process_inline",
    "escape_html",
    "escape_attribute",
    "filter_for_exam_prep",
    "EXAM_PREP_FALLBACK",
    "LEGACY_EXAM_PREP_FALLBACK",
    # Persistence
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "PersistentValue",
    "LabRepository",
    "PreferencesRepository",
    "normalize_lab",
    # Data models
    "LabRecord",
    "Preferences",
    "NotebookConfig",
    # Exceptions
    "LabNotesError",
    "StorageError",
    "InvalidLabError",
    "LabNotFoundError",
    # Version
    "__version__",
]
