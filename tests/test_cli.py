from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from labnotes.cli import cli
from labnotes.constants import EXAM_PREP_FALLBACK, LABS_STORAGE_KEY

NOTE = """
Got a shell after a long detour.
- [ ] enumerate smb
$ nmap -sV 10.10.10.3
```
exploit/multi/samba/usermap_script
```
"""


def _write(tmp_path: Path, filename: str, content: str) -> Path:
    path = tmp_path / filename
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


@pytest.fixture()
def workspace(tmp_path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def invoke(cli_runner, workspace):
    storage = str(workspace / "store.json")

    def _invoke(*args: str):
        return cli_runner.invoke(cli, ["--storage", storage, *args])

    return _invoke


def test_render_prints_html(invoke, workspace):
    note = _write(workspace, "lame.md", NOTE)

    result = invoke("render", str(note))

    assert result.exit_code == 0
    assert result.output.startswith("<p>Got a shell after a long detour.</p>")
    assert '<ul class="note-list"><li>[ ] enumerate smb</li></ul>' in result.output
    assert '<pre class="note-code"><code>exploit/multi/samba/usermap_script\n' in result.output


def test_render_exam_prep_hides_prose(invoke, workspace):
    note = _write(workspace, "lame.md", NOTE)

    result = invoke("render", "--exam-prep", str(note))

    assert result.exit_code == 0
    assert "detour" not in result.output
    assert "<p>$ nmap -sV 10.10.10.3</p>" in result.output


def test_render_uses_stored_exam_prep_preference(invoke, workspace):
    note = _write(workspace, "lame.md", NOTE)

    assert invoke("prefs", "set", "--exam-prep").exit_code == 0
    filtered = invoke("render", str(note))
    forced = invoke("render", "--no-exam-prep", str(note))

    assert "detour" not in filtered.output
    assert "detour" in forced.output


def test_render_writes_output_file(invoke, workspace):
    note = _write(workspace, "lame.md", "**done**\n")
    target = workspace / "out" / "lame.html"

    result = invoke("render", str(note), "--output", str(target))

    assert result.exit_code == 0
    assert result.output == ""
    assert target.read_text(encoding="utf-8") == "<p><strong>done</strong></p><br />\n"


def test_render_missing_file(invoke, workspace):
    result = invoke("render", str(workspace / "missing.md"))

    assert result.exit_code != 0
    assert "does not exist" in result.output


def test_render_enforces_file_size(invoke, workspace, monkeypatch):
    note = _write(workspace, "big.md", "X" * 50)
    monkeypatch.setenv("LABNOTES_MAX_FILE_SIZE", "10")

    result = invoke("render", str(note))

    assert result.exit_code != 0
    assert "maximum allowed size" in result.output


def test_exam_prep_command(invoke, workspace):
    note = _write(workspace, "lame.md", NOTE)

    result = invoke("exam-prep", str(note))

    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "- [ ] enumerate smb",
        "$ nmap -sV 10.10.10.3",
        "```",
        "exploit/multi/samba/usermap_script",
        "```",
    ]


def test_exam_prep_command_fallback(invoke, workspace):
    note = _write(workspace, "prose.md", "Nothing to see.\n")

    result = invoke("exam-prep", str(note))

    assert result.output.strip() == EXAM_PREP_FALLBACK


def test_exam_prep_uses_configured_tools(cli_runner, workspace):
    _write(
        workspace,
        ".labnotes.toml",
        """
        [labnotes]
        storage_path = "store.json"
        exam_prep_tools = ["gobuster"]
        """,
    )
    note = _write(workspace, "box.md", "prose\ngobuster dir -u http://box\n")

    result = cli_runner.invoke(cli, ["exam-prep", str(note)])

    assert result.exit_code == 0
    assert result.output.strip() == "gobuster dir -u http://box"


def test_invalid_config_is_rejected(cli_runner, workspace):
    _write(
        workspace,
        ".labnotes.toml",
        """
        [labnotes]
        max_file_size = 0
        """,
    )
    note = _write(workspace, "box.md", "text\n")

    result = cli_runner.invoke(cli, ["render", str(note)])

    assert result.exit_code == 2
    assert "max_file_size" in result.output


def test_lab_lifecycle(invoke, workspace):
    added = invoke("labs", "add", "Lame", "--platform", "HTB", "--tag", "smb")
    assert added.exit_code == 0
    lab_id = added.output.strip()

    listed = invoke("labs", "list")
    assert listed.output.strip() == f"{lab_id}  not-started  Lame [HTB]"

    assert invoke("labs", "status", lab_id, "completed").exit_code == 0
    assert "completed" in invoke("labs", "list", "--status", "completed").output
    assert invoke("labs", "list", "--status", "in-progress").output == ""

    note = _write(workspace, "lame.md", NOTE)
    assert invoke("labs", "notes", lab_id, str(note)).exit_code == 0

    shown = invoke("labs", "show", lab_id, "--exam-prep")
    assert shown.exit_code == 0
    assert "detour" not in shown.output
    assert "<li>[ ] enumerate smb</li>" in shown.output

    assert invoke("labs", "remove", lab_id).exit_code == 0
    assert invoke("labs", "list").output == ""


def test_lab_status_rejects_unknown_status(invoke):
    lab_id = invoke("labs", "add", "Lame").output.strip()

    result = invoke("labs", "status", lab_id, "pwned")

    assert result.exit_code == 2


def test_unknown_lab_id(invoke):
    result = invoke("labs", "show", "nope")

    assert result.exit_code == 1
    assert "No lab with id 'nope'" in result.output


def test_labs_migrate(invoke, workspace):
    store = workspace / "store.json"
    store.write_text(
        json.dumps({LABS_STORAGE_KEY: json.dumps([{"id": "a", "name": "Lame", "completed": True}])}),
        encoding="utf-8",
    )

    first = invoke("labs", "migrate")
    second = invoke("labs", "migrate")

    assert first.output.strip() == "Migrated 1 lab record(s)."
    assert second.output.strip() == "Migrated 0 lab record(s)."
    assert invoke("labs", "list").output.strip() == "a  completed    Lame"


def test_corrupt_storage_does_not_break_cli(invoke, workspace):
    (workspace / "store.json").write_text("{corrupt", encoding="utf-8")

    result = invoke("prefs", "show")

    assert result.exit_code == 0
    assert "theme: light" in result.output


def test_prefs_set_and_show(invoke):
    assert invoke("prefs", "set", "--theme", "dark").exit_code == 0

    result = invoke("prefs", "show")

    assert result.output.splitlines() == [
        "theme: dark",
        "dark_mode: true",
        "exam_prep_mode: false",
    ]
