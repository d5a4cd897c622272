"""Constants used across the labnotes package."""

from __future__ import annotations

import re

# Block syntax
FENCE_DELIMITER = "```"
BULLET_PATTERN = re.compile(r"^\s*- ")
BULLET_MARKER_PATTERN = re.compile(r"^\s*-\s*")
CHECKLIST_PATTERN = re.compile(r"^- \[[ xX]\]")
SHELL_PROMPT_PATTERN = re.compile(r"^\s*(sudo |# |\$ )")

# Inline syntax
CODE_SPAN_PATTERN = re.compile(r"`([^`]+)`")
BOLD_PATTERN = re.compile(r"\*\*(.+?)\*\*")
ITALIC_PATTERN = re.compile(r"\*(.+?)\*")
SCREENSHOT_PATTERN = re.compile(r"!\[\[(.+?)\]\]")

# Private-use characters that delimit protected span tokens
INLINE_SENTINEL = "\ue000"
SCREENSHOT_SENTINEL = "\ue001"

# Output class names
LIST_CLASS = "note-list"
CODE_CLASS = "note-code"
SCREENSHOT_CLASS = "note-screenshot"

# Exam prep
DEFAULT_EXAM_PREP_TOOLS = ("nmap", "msfconsole", "crackmapexec", "impacket")
EXAM_PREP_FALLBACK = "Exam Prep Mode active — walkthrough details are hidden."
# Byte-for-byte copy of the message stored by older versions (UTF-8 em dash
# decoded as cp1252).
LEGACY_EXAM_PREP_FALLBACK = "Exam Prep Mode active â€” walkthrough details are hidden."

# Storage keys
LABS_STORAGE_KEY = "my-advanced-labs"
PREFERENCES_STORAGE_KEY = "rootquest-preferences"
THEME_STORAGE_KEY = "theme"

# Lab records
LAB_STATUSES = ("not-started", "in-progress", "completed")
DEFAULT_LAB_STATUS = "not-started"
THEMES = ("light", "dark")

# Limits
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_LINE_LENGTH = 10_000
DEFAULT_STORAGE_PATH = ".labnotes.json"
NOTE_EXTENSIONS = (".md", ".markdown", ".txt")
