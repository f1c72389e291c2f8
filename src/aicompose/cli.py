"""CLI entry point for aicompose."""

import click
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.table import Table
from aicompose.utils.logging import configure_logging, get_logger
from aicompose.models.config import Config
from aicompose.services.history_store import HistoryStore, default_history_path, history_key


logger = get_logger(__name__)
console = Console()


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from ~/.config/aicompose/config.yaml (or the given path).

    Returns:
        Validated Config instance

    Raises:
        click.ClickException: If config is missing, has invalid permissions, or validation fails
    """
    config_path = config_path or Path.home() / ".config" / "aicompose" / "config.yaml"

    try:
        config = Config.load(config_path)
        logger.info("config_loaded", path=str(config_path))
        return config
    except FileNotFoundError as e:
        logger.error("config_not_found", path=str(config_path))
        raise click.ClickException(str(e))
    except PermissionError as e:
        logger.error("config_permission_error", path=str(config_path))
        raise click.ClickException(str(e))
    except Exception as e:
        logger.error("config_validation_error", error=str(e))
        raise click.ClickException(f"Configuration validation failed:\n{e}")


def load_history_store(store_path: Optional[Path] = None) -> HistoryStore:
    """
    Load the dialog history store.

    Raises:
        click.ClickException: If the history file is malformed
    """
    store_path = store_path or default_history_path()
    try:
        return HistoryStore(store_path)
    except ValueError as e:
        logger.error("history_load_error", path=str(store_path), error=str(e))
        raise click.ClickException(f"{e}\nDelete the file or run: aicompose history --clear-all")


def _summarize(text: str, width: int = 40) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[:width - 1] + "…"


@click.group()
@click.version_option(version="0.1.0", prog_name="aicompose")
def cli():
    """aicompose: Generate replacement text for a content field with an LLM."""
    configure_logging()


@cli.command()
@click.argument("field_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--component-path",
    type=str,
    default=None,
    help="Content path of the edited component (enables component/page sources)",
)
@click.option("--field", "field_name", type=str, default=None, help="Name of the edited field")
@click.option("--richtext", is_flag=True, help="The field holds HTML")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file (default: ~/.config/aicompose/config.yaml)",
)
def edit(
    field_file: Path,
    component_path: Optional[str],
    field_name: Optional[str],
    richtext: bool,
    config_path: Optional[Path],
):
    """
    Open the content creation dialog for FIELD_FILE.

    The accepted text replaces the content of FIELD_FILE.

    Examples:
        aicompose edit teaser.txt
        aicompose edit teaser.html --richtext --component-path /content/site/en/jcr:content/teaser
    """
    logger.info("edit_command_started", field_file=str(field_file), component_path=component_path)

    config = load_config(config_path)
    store = load_history_store()
    key = history_key(field_file, component_path, field_name)

    from aicompose.services.llm_client import LLMClient
    from aicompose.services.generation import ContentGenerator
    from aicompose.services.content_retrieval import ContentRetriever
    from aicompose.tui.app import AIComposeApp

    llm_client = LLMClient(config=config.llm)
    logger.info("llm_client_initialized", endpoint=str(config.llm.endpoint), model=config.llm.model)

    generator = ContentGenerator(llm_client, temperature=config.dialog.temperature)
    retriever = ContentRetriever(config.content) if config.content else None

    app = AIComposeApp(
        field_file=field_file,
        config=config,
        history=store.entries(key),
        generator=generator,
        retriever=retriever,
        component_path=component_path,
        richtext=richtext,
    )

    try:
        result = app.run()
    finally:
        store.save()
        logger.info("history_saved", key=key, history_length=len(store.entries(key)))

    if result is None:
        click.echo("Cancelled, field unchanged.")
    else:
        click.echo(f"Wrote {len(result)} characters to {field_file}")

    logger.info("edit_command_completed", accepted=result is not None)


@cli.command()
@click.argument("field_file", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.option(
    "--component-path",
    type=str,
    default=None,
    help="Content path of the component (identifies the field instead of FIELD_FILE)",
)
@click.option("--field", "field_name", type=str, default=None, help="Name of the edited field")
@click.option("--clear", is_flag=True, help="Discard the stored history of this field")
@click.option("--clear-all", is_flag=True, help="Discard the stored history of all fields")
def history(
    field_file: Optional[Path],
    component_path: Optional[str],
    field_name: Optional[str],
    clear: bool,
    clear_all: bool,
):
    """
    Show or clear the stored dialog history.

    Without FIELD_FILE (and without --component-path) lists all fields with history.

    Examples:
        aicompose history                  # List fields with history
        aicompose history teaser.txt       # Show history of one field
        aicompose history teaser.txt --clear
    """
    store_path = default_history_path()

    if clear_all:
        # Without loading, so a malformed file can be discarded too
        store_path.unlink(missing_ok=True)
        logger.info("history_cleared_all", path=str(store_path))
        click.echo("Cleared all stored history.")
        return

    store = load_history_store(store_path)

    if field_file is None and component_path is None:
        keys = store.keys()
        if not keys:
            click.echo("No stored history.")
            return
        for key in sorted(keys):
            click.echo(f"{key}  ({len(store.entries(key))} entries)")
        return

    key = history_key(field_file, component_path, field_name)

    if clear:
        store.clear(key)
        store.save()
        logger.info("history_cleared", key=key)
        click.echo(f"Cleared history for {key}")
        return

    entries = store.entries(key)
    if not entries:
        click.echo(f"No stored history for {key}")
        return

    table = Table(title=key)
    table.add_column("#", justify="right")
    table.add_column("Prompt")
    table.add_column("Source")
    table.add_column("Response")
    for index, entry in enumerate(entries):
        table.add_row(
            str(index),
            _summarize(entry.prompt),
            entry.content_selector if entry.content_selector != "-" else _summarize(entry.source_content, 20),
            _summarize(entry.response),
        )
    console.print(table)


def main():
    """Main entry point for the console script."""
    cli()


if __name__ == "__main__":
    main()
