"""Command line entry points for the Redmine wiki export."""

import sys
from pathlib import Path

import click

from src.config.logger_config import logger
from src.config.settings import DEFAULT_CONFIG_FILE, ExportSettings, load_settings
from src.wiki_export.application.workflows.create_indexes import use_user_collation
from src.wiki_export.export import create_indexes, fix_links, run_export


def _load_or_exit(config_path: Path, require_url: bool = True) -> ExportSettings:
    settings = load_settings(config_path)
    if settings is None:
        logger.info("No configuration file found.")
        sys.exit(0)
    if require_url and not settings.redmine_url:
        logger.info("Cannot find redmine url in {}.", config_path)
        sys.exit(0)
    return settings


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="JSON file with redmineUrl, user, password, outputDir and insecure",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """Export Redmine wikis to a tree of markdown files."""
    use_user_collation()
    ctx.obj = {"config_path": config_path}


@cli.command()
@click.option("--no-progress", is_flag=True, help="Hide progress bars")
@click.pass_context
def export(ctx: click.Context, no_progress: bool) -> None:
    """Download every project's wiki pages and attachments."""
    settings = _load_or_exit(ctx.obj["config_path"])
    summary = run_export(settings, show_progress=not no_progress)
    click.echo(
        f"Exported {summary.pages_exported}/{summary.pages_listed} pages "
        f"from {summary.projects_total} projects "
        f"({summary.attachments_exported} attachments, {summary.attachments_failed} failed)"
    )


@cli.command(name="fix-links")
@click.pass_context
def fix_links_command(ctx: click.Context) -> None:
    """Rewrite Redmine links into relative markdown links."""
    settings = _load_or_exit(ctx.obj["config_path"])
    summary = fix_links(settings.output_dir, settings.redmine_url)
    click.echo(
        f"Updated {summary.files_changed}/{summary.files_scanned} files "
        f"({summary.attachments_missing} attachments not found)"
    )


@cli.command(name="create-indexes")
@click.pass_context
def create_indexes_command(ctx: click.Context) -> None:
    """Write an Index.md per project plus a top-level Index.md."""
    settings = _load_or_exit(ctx.obj["config_path"], require_url=False)
    summary = create_indexes(settings.output_dir)
    click.echo(f"Created indexes for {summary.projects_total} projects in {summary.main_index_path}")


@cli.command()
@click.option("--no-progress", is_flag=True, help="Hide progress bars")
@click.pass_context
def run(ctx: click.Context, no_progress: bool) -> None:
    """Export, fix links, then create indexes."""
    ctx.invoke(export, no_progress=no_progress)
    ctx.invoke(fix_links_command)
    ctx.invoke(create_indexes_command)
