"""
Command-line interface for the lab notebook.
Renders notes to HTML, applies the exam prep filter, and manages stored labs
and preferences.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from .config import ConfigError, NotebookConfig, build_config
from .constants import LAB_STATUSES, THEMES
from .exam_prep import filter_for_exam_prep
from .exceptions import LabNotesError, NoteFileError
from .filesystem import (
    atomic_write_text,
    get_max_file_size,
    get_max_line_length,
    normalize_filepath,
    read_note,
)
from .labs import LabRepository
from .preferences import PreferencesRepository
from .renderer import render_note
from .storage import JsonFileStore

__all__ = ["cli"]


def _configure_logging(verbose: int) -> None:
    level = max(logging.WARNING - 10 * verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _store(config: NotebookConfig) -> JsonFileStore:
    return JsonFileStore(Path(config.storage_path).expanduser())


def _load_note(raw_path: str, config: NotebookConfig) -> str:
    try:
        filepath = normalize_filepath(raw_path)
    except ValueError as error:
        raise click.BadParameter(str(error)) from error

    try:
        max_file_size = get_max_file_size(default=config.max_file_size)
        max_line_length = get_max_line_length(default=config.max_line_length)
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    try:
        return read_note(filepath, max_file_size, max_line_length)
    except NoteFileError as error:
        raise click.ClickException(str(error)) from error


def _resolve_exam_prep(flag: bool | None, config: NotebookConfig) -> bool:
    if flag is not None:
        return flag
    return PreferencesRepository(_store(config)).load().exam_prep_mode


def _emit(content: str, output: Path | None) -> None:
    if output is None:
        click.echo(content)
        return
    try:
        atomic_write_text(output, content + "\n")
    except OSError as error:
        raise click.ClickException(f"Failed to write {output}: {error}") from error


@click.group()
@click.version_option()
@click.option(
    "--config-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory where configuration lookup starts (default: current directory)",
)
@click.option("--storage", help="Storage file to use instead of the configured one")
@click.option("-v", "--verbose", count=True, help="Increase logging verbosity")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None, storage: str | None, verbose: int):
    """
    Personal lab-tracking notebook.

    Examples:
        labnotes render notes/lame.md --exam-prep
        labnotes labs add "Lame" --platform HTB
    """
    _configure_logging(verbose)
    try:
        ctx.obj = build_config((config_dir or Path.cwd()).resolve(), storage_path=storage)
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error


@cli.command()
@click.argument("filepath", type=click.Path(dir_okay=False))
@click.option(
    "--exam-prep/--no-exam-prep",
    default=None,
    help="Filter the note before rendering (default: stored preference)",
)
@click.option(
    "-o", "--output", type=click.Path(dir_okay=False, path_type=Path), help="Write HTML to a file"
)
@click.pass_obj
def render(config: NotebookConfig, filepath: str, exam_prep: bool | None, output: Path | None):
    """Render a note file to an HTML fragment."""
    content = _load_note(filepath, config)
    try:
        exam_prep = _resolve_exam_prep(exam_prep, config)
    except LabNotesError as error:
        raise click.ClickException(str(error)) from error
    _emit(render_note(content, exam_prep=exam_prep, config=config), output)


@cli.command("exam-prep")
@click.argument("filepath", type=click.Path(dir_okay=False))
@click.pass_obj
def exam_prep_command(config: NotebookConfig, filepath: str):
    """Print only the lines of a note that exam prep mode keeps."""
    content = _load_note(filepath, config)
    click.echo(
        filter_for_exam_prep(
            content, tools=config.retained_tools(), fallback=config.fallback_message()
        )
    )


@cli.group()
def labs():
    """Manage stored labs."""


@labs.command("list")
@click.option("--status", type=click.Choice(LAB_STATUSES), help="Only show labs with this status")
@click.pass_obj
def list_labs(config: NotebookConfig, status: str | None):
    """List stored labs."""
    for lab in LabRepository(_store(config)).load():
        if status is not None and lab.status != status:
            continue
        platform = f" [{lab.platform}]" if lab.platform else ""
        click.echo(f"{lab.id}  {lab.status:<11}  {lab.name}{platform}")


@labs.command("add")
@click.argument("name")
@click.option("--platform", default="", help="Where the lab is hosted")
@click.option("--difficulty", default="", help="Difficulty label")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
@click.pass_obj
def add_lab(config: NotebookConfig, name: str, platform: str, difficulty: str, tags: tuple[str, ...]):
    """Add a lab."""
    try:
        lab = LabRepository(_store(config)).add(
            name, platform=platform, difficulty=difficulty, tags=tags
        )
    except LabNotesError as error:
        raise click.ClickException(str(error)) from error
    click.echo(lab.id)


@labs.command("status")
@click.argument("lab_id")
@click.argument("status", type=click.Choice(LAB_STATUSES))
@click.pass_obj
def set_lab_status(config: NotebookConfig, lab_id: str, status: str):
    """Change the status of a lab."""
    try:
        LabRepository(_store(config)).set_status(lab_id, status)
    except LabNotesError as error:
        raise click.ClickException(str(error)) from error


@labs.command("notes")
@click.argument("lab_id")
@click.argument("filepath", type=click.Path(dir_okay=False))
@click.pass_obj
def set_lab_notes(config: NotebookConfig, lab_id: str, filepath: str):
    """Replace the notes of a lab with the content of a note file."""
    content = _load_note(filepath, config)
    try:
        LabRepository(_store(config)).set_notes(lab_id, content)
    except LabNotesError as error:
        raise click.ClickException(str(error)) from error


@labs.command("show")
@click.argument("lab_id")
@click.option(
    "--exam-prep/--no-exam-prep",
    default=None,
    help="Filter the notes before rendering (default: stored preference)",
)
@click.pass_obj
def show_lab(config: NotebookConfig, lab_id: str, exam_prep: bool | None):
    """Render the notes of a lab to HTML."""
    try:
        lab = LabRepository(_store(config)).get(lab_id)
        exam_prep = _resolve_exam_prep(exam_prep, config)
    except LabNotesError as error:
        raise click.ClickException(str(error)) from error
    click.echo(render_note(lab.notes, exam_prep=exam_prep, config=config))


@labs.command("remove")
@click.argument("lab_id")
@click.pass_obj
def remove_lab(config: NotebookConfig, lab_id: str):
    """Delete a lab."""
    try:
        LabRepository(_store(config)).remove(lab_id)
    except LabNotesError as error:
        raise click.ClickException(str(error)) from error


@labs.command("migrate")
@click.pass_obj
def migrate_labs(config: NotebookConfig):
    """Rewrite stored labs in the current record format."""
    try:
        migrated = LabRepository(_store(config)).migrate()
    except LabNotesError as error:
        raise click.ClickException(str(error)) from error
    click.echo(f"Migrated {migrated} lab record(s).")


@cli.group()
def prefs():
    """Show or change preferences."""


@prefs.command("show")
@click.pass_obj
def show_prefs(config: NotebookConfig):
    """Print the stored preferences."""
    preferences = PreferencesRepository(_store(config)).load()
    click.echo(f"theme: {preferences.theme}")
    click.echo(f"dark_mode: {str(preferences.dark_mode).lower()}")
    click.echo(f"exam_prep_mode: {str(preferences.exam_prep_mode).lower()}")


@prefs.command("set")
@click.option("--theme", type=click.Choice(THEMES))
@click.option("--exam-prep/--no-exam-prep", default=None)
@click.pass_obj
def set_prefs(config: NotebookConfig, theme: str | None, exam_prep: bool | None):
    """Change preferences."""
    try:
        PreferencesRepository(_store(config)).update(theme=theme, exam_prep_mode=exam_prep)
    except LabNotesError as error:
        raise click.ClickException(str(error)) from error


if __name__ == "__main__":
    cli()
