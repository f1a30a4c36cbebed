"""Command line interface for the bundler.

Usage:
    bundler run                         # zip every file named in ./images
    bundler run a.png b.png             # explicit keys
    bundler run --from-bucket --prefix 2024/
    bundler run --keys-file keys.txt --ttl 900 --json
    bundler manifest --from-bucket
    bundler render-index --keys-file keys.txt -o index.html
    bundler link out_1700000000.zip
"""

from datetime import timedelta
from pathlib import Path
from typing import Optional
from uuid import uuid4

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bundler.lib.config_manager import ConfigManager
from bundler.lib.logging_config import setup_logging
from bundler.services.errors import BundlerError, ConfigError, FatalError, TemplateError
from bundler.services.index import IndexRenderer, load_index_template
from bundler.services.manifest import ManifestSource, resolve_manifest
from bundler.services.minio import MinIOConfig, create_bucket_pair
from bundler.services.pipeline import (
    BundleConfig,
    RunReport,
    create_pipeline,
    create_publisher,
    select_manifest_source,
)

app = typer.Typer(help="Collect objects into one zip archive and publish a time-limited link")
console = Console()
err_console = Console(stderr=True)

EXIT_FATAL = 1
EXIT_CONFIG = 2


# =============================================================================
# Helpers
# =============================================================================


def _load_config(manager: ConfigManager, **overrides) -> BundleConfig:
    try:
        return BundleConfig.from_config(manager, **overrides)
    except ConfigError as e:
        err_console.print(f"[red]Invalid configuration: {escape(str(e))}[/]")
        raise typer.Exit(EXIT_CONFIG)


def _minio_config(manager: ConfigManager) -> MinIOConfig:
    try:
        return MinIOConfig.from_config(manager)
    except ConfigError as e:
        err_console.print(f"[red]Invalid configuration: {escape(str(e))}[/]")
        raise typer.Exit(EXIT_CONFIG)


def _stores(manager: ConfigManager, config: BundleConfig):
    return create_bucket_pair(
        _minio_config(manager),
        config.source_bucket,
        config.destination_bucket,
        ensure_destination=config.ensure_destination_bucket,
    )


def _source_options(
    manager: ConfigManager,
    keys: Optional[list[str]],
    keys_file: Optional[Path],
    from_bucket: bool,
    prefix: Optional[str],
    from_dir: Optional[Path],
) -> dict:
    """Manifest source options, falling back to SOURCE_PREFIX and SOURCE_DIR."""
    return {
        "keys": keys,
        "keys_file": keys_file,
        "from_bucket": from_bucket,
        "prefix": prefix if prefix is not None else manager.get("SOURCE_PREFIX"),
        "directory": from_dir or Path(manager.get("SOURCE_DIR")),
    }


def _manifest_source(manager: ConfigManager, source_store, *options) -> ManifestSource:
    return select_manifest_source(source_store, **_source_options(manager, *options))


def _print_report(report: RunReport) -> None:
    table = Table(title=f"Run {report.run_id}")
    table.add_column("Key")
    table.add_column("Status", style="bold")
    table.add_column("Bytes", justify="right")
    table.add_column("Error")
    colors = {"written": "green", "skipped": "yellow", "failed": "red"}
    for item in report.items:
        color = colors[item.status.value]
        table.add_row(
            escape(item.key),
            f"[{color}]{item.status.value}[/]",
            str(item.bytes_written),
            escape(item.error or ""),
        )
    console.print(table)
    console.print(report.summary())


# =============================================================================
# Commands
# =============================================================================


@app.command()
def run(
    keys: Optional[list[str]] = typer.Argument(None, help="Explicit object keys"),
    keys_file: Optional[Path] = typer.Option(None, "--keys-file", help="File with one key per line"),
    from_bucket: bool = typer.Option(False, "--from-bucket", help="List keys from the source bucket"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Prefix for --from-bucket"),
    from_dir: Optional[Path] = typer.Option(None, "--from-dir", help="Directory whose file names are the keys"),
    source_bucket: Optional[str] = typer.Option(None, "--source-bucket", help="Bucket to fetch from"),
    dest_bucket: Optional[str] = typer.Option(None, "--dest-bucket", help="Bucket to upload the archive to"),
    ttl: Optional[int] = typer.Option(None, "--ttl", help="Link validity in seconds"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Parallel fetches"),
    on_fetch_failure: Optional[str] = typer.Option(
        None, "--on-fetch-failure", help="keep_empty or omit"
    ),
    template: Optional[Path] = typer.Option(None, "--template", help="Custom jinja2 index template"),
    work_dir: Optional[Path] = typer.Option(None, "--work-dir", help="Where the local zip is written"),
    as_json: bool = typer.Option(False, "--json", help="Print the run report as JSON"),
):
    """Build the archive, upload it and print a presigned link."""
    manager = ConfigManager()
    run_id_filter = setup_logging("bundler", manager.get("LOG_LEVEL"))

    config = _load_config(
        manager,
        source_bucket=source_bucket,
        destination_bucket=dest_bucket,
        link_ttl=timedelta(seconds=ttl) if ttl is not None else None,
        fetch_workers=workers,
        fetch_failure_policy=on_fetch_failure,
        index_template=template,
    )
    if work_dir is not None:
        config.archive.work_dir = work_dir

    try:
        pipeline = create_pipeline(
            config,
            _minio_config(manager),
            **_source_options(manager, keys, keys_file, from_bucket, prefix, from_dir),
        )
    except (ConfigError, TemplateError) as e:
        err_console.print(f"[red]Invalid configuration: {escape(str(e))}[/]")
        raise typer.Exit(EXIT_CONFIG)

    run_id = str(uuid4())
    run_id_filter.set_run_id(run_id)
    report: Optional[RunReport] = None
    try:
        report = pipeline.run(run_id=run_id)
    except FatalError as e:
        report = e.report
        err_console.print(f"[red]Run failed during {e.stage}: {escape(str(e))}[/]")
    finally:
        run_id_filter.set_run_id(None)

    if as_json and report is not None:
        typer.echo(report.model_dump_json(indent=2))
    elif report is not None and report.link is not None:
        _print_report(report)
        console.print(f"\n[bold]Archive:[/] {report.link.bucket}/{report.link.object_name}")
        console.print(f"[bold]Expires:[/] {report.link.expires_at.isoformat()}")
        typer.echo(report.link.url)

    if report is None or not report.succeeded:
        raise typer.Exit(EXIT_FATAL)


@app.command()
def manifest(
    keys_file: Optional[Path] = typer.Option(None, "--keys-file", help="File with one key per line"),
    from_bucket: bool = typer.Option(False, "--from-bucket", help="List keys from the source bucket"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Prefix for --from-bucket"),
    from_dir: Optional[Path] = typer.Option(None, "--from-dir", help="Directory whose file names are the keys"),
    source_bucket: Optional[str] = typer.Option(None, "--source-bucket", help="Bucket to list"),
):
    """Resolve and print the manifest without building anything."""
    manager = ConfigManager()
    config = _load_config(manager, source_bucket=source_bucket)
    source = _stores(manager, config)[0] if from_bucket else None

    try:
        resolved = resolve_manifest(
            _manifest_source(manager, source, None, keys_file, from_bucket, prefix, from_dir)
        )
    except BundlerError as e:
        err_console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(EXIT_FATAL)

    table = Table(title=f"Manifest ({resolved.source})")
    table.add_column("#", justify="right")
    table.add_column("Key")
    for position, key in enumerate(resolved, start=1):
        table.add_row(str(position), escape(key))
    console.print(table)
    console.print(f"{len(resolved)} keys")


@app.command("render-index")
def render_index_command(
    keys: Optional[list[str]] = typer.Argument(None, help="Explicit object keys"),
    keys_file: Optional[Path] = typer.Option(None, "--keys-file", help="File with one key per line"),
    from_dir: Optional[Path] = typer.Option(None, "--from-dir", help="Directory whose file names are the keys"),
    template: Optional[Path] = typer.Option(None, "--template", help="Custom jinja2 index template"),
    title: Optional[str] = typer.Option(None, "--title", help="Page title"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
):
    """Render the index page for a manifest."""
    manager = ConfigManager()
    try:
        resolved = resolve_manifest(
            _manifest_source(manager, None, keys, keys_file, False, None, from_dir)
        )
        configured = manager.get("INDEX_TEMPLATE")
        template_path = template or (Path(configured) if configured else None)
        renderer = IndexRenderer(
            load_index_template(template_path),
            title=title or manager.get("INDEX_TITLE"),
        )
        document = renderer.render(resolved)
    except BundlerError as e:
        err_console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(EXIT_FATAL)

    if output is None:
        typer.echo(document.decode("utf-8"), nl=False)
    else:
        output.write_bytes(document)
        console.print(f"[green]Wrote index for {len(resolved)} keys to {output}[/]")


@app.command()
def link(
    object_name: str = typer.Argument(..., help="Object key of an uploaded archive"),
    ttl: Optional[int] = typer.Option(None, "--ttl", help="Link validity in seconds"),
    dest_bucket: Optional[str] = typer.Option(None, "--dest-bucket", help="Bucket holding the archive"),
    as_json: bool = typer.Option(False, "--json", help="Print the link as JSON"),
):
    """Issue a fresh link for an archive that was already uploaded."""
    manager = ConfigManager()
    config = _load_config(
        manager,
        destination_bucket=dest_bucket,
        link_ttl=timedelta(seconds=ttl) if ttl is not None else None,
    )
    _, destination = _stores(manager, config)
    publisher = create_publisher(config, destination)

    try:
        access_link = publisher.issue_link(object_name)
    except BundlerError as e:
        err_console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(EXIT_FATAL)

    if as_json:
        typer.echo(access_link.model_dump_json(indent=2))
    else:
        console.print(f"[bold]Expires:[/] {access_link.expires_at.isoformat()}")
        typer.echo(access_link.url)


@app.command("config")
def show_config():
    """Show resolved configuration (credentials masked)."""
    manager = ConfigManager()
    table = Table(title="Configuration")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in manager.get_all(mask_sensitive=True).items():
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
