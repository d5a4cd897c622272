from __future__ import annotations

import json
import logging

import pytest

from labnotes.constants import LABS_STORAGE_KEY
from labnotes.exceptions import InvalidLabError, LabNotFoundError
from labnotes.labs import LabRepository, derive_lab_id, is_legacy_record, normalize_lab
from labnotes.models import LabRecord


def _fixed_clock() -> str:
    return "2026-01-02T03:04:05+00:00"


@pytest.fixture()
def repo(memory_store) -> LabRepository:
    return LabRepository(memory_store, clock=_fixed_clock)


def _stored(memory_store) -> list:
    return json.loads(memory_store.get(LABS_STORAGE_KEY))


def test_normalize_lab_canonical_record():
    lab = normalize_lab(
        {
            "id": "a1",
            "name": "  Lame ",
            "platform": "HTB",
            "difficulty": "easy",
            "status": "in-progress",
            "notes": "- [ ] smb",
            "tags": ["smb", "", 7],
            "updated_at": "2026-01-01T00:00:00+00:00",
        }
    )

    assert lab == LabRecord(
        id="a1",
        name="Lame",
        platform="HTB",
        difficulty="easy",
        status="in-progress",
        notes="- [ ] smb",
        tags=["smb", "7"],
        updated_at="2026-01-01T00:00:00+00:00",
    )


@pytest.mark.parametrize(("completed", "status"), [(True, "completed"), (False, "not-started")])
def test_normalize_lab_maps_legacy_completed_flag(completed, status):
    assert normalize_lab({"id": "x", "name": "Blue", "completed": completed}).status == status


def test_status_wins_over_legacy_flag():
    lab = normalize_lab({"id": "x", "name": "Blue", "completed": True, "status": "in-progress"})

    assert lab.status == "in-progress"


def test_unknown_status_falls_back():
    assert normalize_lab({"id": "x", "name": "Blue", "status": "pwned"}).status == "not-started"


def test_missing_id_is_derived_from_content():
    first = normalize_lab({"name": "Blue"})
    again = normalize_lab({"name": "Blue"})
    other = normalize_lab({"name": "Blue", "id": ""})

    assert first.id
    assert first.id == again.id
    assert first.id == derive_lab_id({"name": "Blue"})
    assert other.id != first.id


def test_numeric_id_becomes_string():
    assert normalize_lab({"id": 42, "name": "Blue"}).id == "42"


@pytest.mark.parametrize("raw", [None, "Lame", ["Lame"], {}, {"name": ""}, {"name": 3}])
def test_normalize_lab_rejects_invalid_records(raw):
    with pytest.raises(InvalidLabError):
        normalize_lab(raw)


def test_is_legacy_record():
    assert is_legacy_record({"name": "a", "completed": False})
    assert not is_legacy_record({"name": "a", "status": "completed", "completed": True})
    assert not is_legacy_record(["completed"])


def test_empty_repository_loads_empty_list(repo):
    assert repo.load() == []


def test_add_and_get(repo, memory_store):
    lab = repo.add("Lame", platform="HTB", difficulty="easy", tags=["smb"])

    assert repo.get(lab.id) == lab
    assert lab.status == "not-started"
    assert lab.updated_at == _fixed_clock()
    assert _stored(memory_store)[0]["name"] == "Lame"


def test_add_rejects_empty_name(repo):
    with pytest.raises(InvalidLabError):
        repo.add("   ")


def test_set_status(repo):
    lab = repo.add("Lame")

    updated = repo.set_status(lab.id, "completed")

    assert updated.status == "completed"
    assert repo.get(lab.id).status == "completed"


def test_set_status_rejects_unknown_status(repo):
    lab = repo.add("Lame")

    with pytest.raises(InvalidLabError):
        repo.set_status(lab.id, "done")


def test_set_notes(repo):
    lab = repo.add("Lame")

    repo.set_notes(lab.id, "$ nmap -sV lame")

    assert repo.get(lab.id).notes == "$ nmap -sV lame"


def test_remove(repo):
    keep = repo.add("Blue")
    drop = repo.add("Lame")

    repo.remove(drop.id)

    assert [lab.id for lab in repo.load()] == [keep.id]


@pytest.mark.parametrize("operation", ["get", "remove", "set_notes", "set_status"])
def test_unknown_id_raises(repo, operation):
    repo.add("Lame")
    args = {
        "get": (),
        "remove": (),
        "set_notes": ("text",),
        "set_status": ("completed",),
    }[operation]

    with pytest.raises(LabNotFoundError, match="missing"):
        getattr(repo, operation)("missing", *args)


def test_load_skips_invalid_records(memory_store, caplog):
    memory_store.set(LABS_STORAGE_KEY, json.dumps([{"id": "a", "name": "Lame"}, "junk"]))
    repo = LabRepository(memory_store)

    with caplog.at_level(logging.WARNING, logger="labnotes.labs"):
        labs = repo.load()

    assert [lab.name for lab in labs] == ["Lame"]
    assert "Skipping stored lab at index 1" in caplog.text


def test_load_with_corrupt_json_returns_empty(memory_store, caplog):
    memory_store.set(LABS_STORAGE_KEY, "[{broken")

    with caplog.at_level(logging.WARNING, logger="labnotes.storage"):
        assert LabRepository(memory_store).load() == []

    assert "Failed to parse stored value" in caplog.text


def test_load_with_non_list_returns_empty(memory_store):
    memory_store.set(LABS_STORAGE_KEY, '{"name": "Lame"}')

    assert LabRepository(memory_store).load() == []


def test_migrate_rewrites_legacy_records_once(memory_store):
    canonical = {
        "id": "b",
        "name": "Blue",
        "platform": "",
        "difficulty": "",
        "status": "in-progress",
        "notes": "",
        "tags": [],
        "updated_at": "",
    }
    memory_store.set(
        LABS_STORAGE_KEY,
        json.dumps([{"id": "a", "name": "Lame", "completed": True}, canonical, 5]),
    )
    repo = LabRepository(memory_store)

    assert repo.migrate() == 2
    stored = _stored(memory_store)
    assert [record["id"] for record in stored] == ["a", "b"]
    assert stored[0]["status"] == "completed"
    assert "completed" not in stored[0]
    assert stored[1] == canonical

    assert repo.migrate() == 0


def test_migrate_persists_generated_ids(memory_store):
    memory_store.set(LABS_STORAGE_KEY, json.dumps([{"name": "Lame"}]))
    repo = LabRepository(memory_store)

    assert repo.migrate() == 1
    first_id = repo.load()[0].id

    assert repo.load()[0].id == first_id


def test_migrate_on_empty_store_is_noop(repo, memory_store):
    assert repo.migrate() == 0
    assert memory_store.get(LABS_STORAGE_KEY) is None


def test_id_less_legacy_record_is_addressable_without_migrating(memory_store):
    memory_store.set(LABS_STORAGE_KEY, json.dumps([{"name": "Lame", "completed": True}]))
    repo = LabRepository(memory_store, clock=_fixed_clock)

    lab_id = repo.load()[0].id
    assert repo.load()[0].id == lab_id

    updated = repo.set_status(lab_id, "in-progress")

    assert updated.id == lab_id
    assert repo.get(lab_id).status == "in-progress"
    assert _stored(memory_store)[0]["id"] == lab_id


def test_add_keeps_unreadable_records(repo, memory_store):
    memory_store.set(LABS_STORAGE_KEY, json.dumps([{"id": "x", "title": "Lame"}]))

    lab = repo.add("Legacy")

    assert _stored(memory_store)[0] == {"id": "x", "title": "Lame"}
    assert [record["id"] for record in _stored(memory_store)] == ["x", lab.id]


def test_changes_leave_other_stored_records_untouched(repo, memory_store):
    legacy = {"id": "a", "name": "Lame", "completed": True}
    memory_store.set(
        LABS_STORAGE_KEY,
        json.dumps([legacy, "junk", {"id": "b", "name": "Blue", "status": "in-progress"}]),
    )

    repo.set_notes("b", "$ sudo -l")
    repo.remove("b")

    assert _stored(memory_store) == [legacy, "junk"]
    assert repo.migrate() == 2
