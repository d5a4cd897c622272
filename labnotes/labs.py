"""Lab collection persistence, normalization, and migration."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import asdict, replace
from datetime import datetime, timezone

from .constants import DEFAULT_LAB_STATUS, LAB_STATUSES, LABS_STORAGE_KEY
from .exceptions import InvalidLabError, LabNotFoundError
from .models import LabRecord
from .storage import KeyValueStore, PersistentValue

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _text(raw: dict, key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def is_legacy_record(raw: object) -> bool:
    """Return True for records in the old ``completed: bool`` shape."""
    return isinstance(raw, dict) and "completed" in raw and "status" not in raw


def derive_lab_id(raw: dict) -> str:
    """Return an id computed from the content of a stored record that has none.

    The same stored record always yields the same id, so the id shown by
    `LabRepository.load` can be used to address the record before it is
    rewritten.
    """
    content = json.dumps(raw, sort_keys=True, default=str)
    return uuid.uuid5(uuid.NAMESPACE_URL, f"labnotes:{content}").hex


def normalize_lab(raw: object) -> LabRecord:
    """Convert a stored mapping into a canonical `LabRecord`.

    Legacy records carrying ``completed`` instead of ``status`` map to
    ``completed`` or ``not-started``. Unknown statuses fall back to
    ``not-started`` and a missing id is derived with `derive_lab_id`.

    Args:
        raw: Parsed JSON value for one lab.

    Returns:
        LabRecord: Normalized record.

    Raises:
        InvalidLabError: If `raw` is not a mapping or has no usable name.

    Examples:
        normalize_lab({"name": "Lame", "completed": True}).status  # "completed"
    """
    if not isinstance(raw, dict):
        raise InvalidLabError(f"expected an object, got {type(raw).__name__}")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidLabError("missing name")

    if is_legacy_record(raw):
        status = "completed" if raw.get("completed") else DEFAULT_LAB_STATUS
    else:
        status = raw.get("status")
    if status not in LAB_STATUSES:
        if status is not None:
            logger.debug("Unknown status %r for lab %r; using %r", status, name, DEFAULT_LAB_STATUS)
        status = DEFAULT_LAB_STATUS

    lab_id = raw.get("id")
    if lab_id is None or lab_id == "":
        lab_id = derive_lab_id(raw)

    tags = raw.get("tags")
    if not isinstance(tags, list):
        tags = []

    return LabRecord(
        id=str(lab_id),
        name=name.strip(),
        platform=_text(raw, "platform"),
        difficulty=_text(raw, "difficulty"),
        status=status,
        notes=_text(raw, "notes"),
        tags=[str(tag) for tag in tags if str(tag).strip()],
        updated_at=_text(raw, "updated_at"),
    )


def _ensure_list(data: object) -> list:
    if not isinstance(data, list):
        raise TypeError(f"expected a list of labs, got {type(data).__name__}")
    return data


class LabRepository:
    """Lab collection stored as a JSON list under one key.

    Args:
        store: Backing key/value store.
        key: Storage key for the collection.
        clock: Returns the timestamp recorded in ``updated_at``.

    Examples:
        repo = LabRepository(JsonFileStore(Path(".labnotes.json")))
        lab = repo.add("Lame", platform="HTB")
        repo.set_status(lab.id, "completed")
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = LABS_STORAGE_KEY,
        clock: Callable[[], str] = _utc_now,
    ):
        self._value = PersistentValue(store, key, [], decode=_ensure_list)
        self._clock = clock

    def _normalize_all(self, raw_labs: list) -> tuple[list[LabRecord], int]:
        labs = []
        changed = 0
        for index, raw in enumerate(raw_labs):
            try:
                lab = normalize_lab(raw)
            except InvalidLabError as error:
                logger.warning("Skipping stored lab at index %d: %s", index, error)
                changed += 1
                continue
            labs.append(lab)
            if asdict(lab) != raw:
                changed += 1
        return labs, changed

    def load(self) -> list[LabRecord]:
        """Return all valid labs, skipping records that cannot be normalized."""
        labs, _ = self._normalize_all(self._value.load())
        return labs

    def save(self, labs: Iterable[LabRecord]) -> None:
        """Replace the stored collection."""
        self._value.save([asdict(lab) for lab in labs])

    def migrate(self) -> int:
        """Rewrite stored labs in canonical shape.

        Returns:
            int: Number of stored records that were rewritten or dropped. Zero
                when the collection is already canonical.
        """
        labs, changed = self._normalize_all(self._value.load())
        if changed:
            self.save(labs)
            logger.info("Migrated %d stored lab record(s)", changed)
        return changed

    def get(self, lab_id: str) -> LabRecord:
        """Return the lab with `lab_id`.

        Raises:
            LabNotFoundError: If no lab has that id.
        """
        for lab in self.load():
            if lab.id == lab_id:
                return lab
        raise LabNotFoundError(lab_id)

    def add(
        self,
        name: str,
        platform: str = "",
        difficulty: str = "",
        tags: Iterable[str] = (),
        notes: str = "",
    ) -> LabRecord:
        """Create a lab and append it to the collection.

        Raises:
            InvalidLabError: If `name` is empty.
        """
        lab = normalize_lab(
            {
                "id": uuid.uuid4().hex,
                "name": name,
                "platform": platform,
                "difficulty": difficulty,
                "tags": list(tags),
                "notes": notes,
                "updated_at": self._clock(),
            }
        )
        raw_labs = self._value.load()
        raw_labs.append(asdict(lab))
        self._value.save(raw_labs)
        return lab

    def _find(self, raw_labs: list, lab_id: str) -> tuple[int, LabRecord]:
        for index, raw in enumerate(raw_labs):
            try:
                lab = normalize_lab(raw)
            except InvalidLabError:
                continue
            if lab.id == lab_id:
                return index, lab
        raise LabNotFoundError(lab_id)

    def _update(self, lab_id: str, **changes: object) -> LabRecord:
        raw_labs = self._value.load()
        index, lab = self._find(raw_labs, lab_id)
        updated = replace(lab, updated_at=self._clock(), **changes)
        raw_labs[index] = asdict(updated)
        self._value.save(raw_labs)
        return updated

    def set_status(self, lab_id: str, status: str) -> LabRecord:
        """Change a lab's status.

        Raises:
            InvalidLabError: If `status` is not a known status.
            LabNotFoundError: If no lab has that id.
        """
        if status not in LAB_STATUSES:
            raise InvalidLabError(f"status must be one of: {', '.join(LAB_STATUSES)}")
        return self._update(lab_id, status=status)

    def set_notes(self, lab_id: str, notes: str) -> LabRecord:
        """Replace a lab's notes."""
        return self._update(lab_id, notes=notes)

    def remove(self, lab_id: str) -> None:
        """Delete a lab.

        Raises:
            LabNotFoundError: If no lab has that id.
        """
        raw_labs = self._value.load()
        index, _ = self._find(raw_labs, lab_id)
        del raw_labs[index]
        self._value.save(raw_labs)
