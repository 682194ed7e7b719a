import asyncio
import json
import logging
import os
import sys
import time

import click
import yaml

from i18nsync import extractor, updater
from i18nsync.classes import ExtractOptions, ProgressInfo, UpdateOptions
from i18nsync.config import Config

logger = logging.getLogger(__name__)


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _progress(progress: ProgressInfo) -> None:
    logger.debug(
        f"Processed {os.path.basename(progress.file)} ({progress.current}/{progress.total})"
    )


def _read_catalog(path: str) -> dict[str, str]:
    try:
        return updater.read_catalog(path)
    except (json.JSONDecodeError, updater.CatalogFormatError) as exc:
        logger.error(f"Cannot read {path}: {exc}")
        sys.exit(1)


def _coverage_color(percentage: int) -> str:
    if percentage >= 90:
        return "green"
    if percentage >= 70:
        return "yellow"
    return "red"


@click.group()
@click.option("--config-folder", default="config", help="Configuration folder path.")
@click.version_option(package_name="i18nsync")
@click.pass_context
def cli(ctx: click.Context, config_folder: str) -> None:
    try:
        config = Config.load(config_folder)
    except (yaml.YAMLError, TypeError) as exc:
        logger.error(sys._getframe().f_code.co_name + " " + str(exc))
        sys.exit(1)

    config.configure_logging()
    ctx.obj = config


@cli.command("extract")
@click.option("-s", "--source", default=None, help="Source directory.")
@click.option("-o", "--output", default=None, help="Output catalog file.")
@click.option("-i", "--include", default=None, help="Include patterns (comma-separated).")
@click.option("-e", "--exclude", default=None, help="Exclude patterns (comma-separated).")
@click.option(
    "--function-names", default=None, help="Function names to detect (comma-separated)."
)
@click.option("--fallback-to-regex", is_flag=True, help="Use pattern extraction on parse errors.")
@click.option("--dry-run", is_flag=True, help="Preview changes without writing.")
@click.pass_obj
def extract(
    config: Config,
    source: str | None,
    output: str | None,
    include: str | None,
    exclude: str | None,
    function_names: str | None,
    fallback_to_regex: bool,
    dry_run: bool,
) -> None:
    settings = config.extract
    source = source or settings.source
    output = output or settings.output
    options = ExtractOptions(
        include=_split(include) if include else settings.include,
        exclude=_split(exclude) if exclude else list(settings.exclude),
        function_names=_split(function_names) if function_names else list(settings.function_names),
        fallback_to_regex=fallback_to_regex or settings.fallback_to_regex,
        on_progress=_progress,
    )

    started = time.monotonic()
    registry = extractor.default_registry(options)
    logger.info(f"Plugins: {', '.join(p.name for p in registry.list())}")

    results = asyncio.run(extractor.extract_from_directory(source, options, registry))
    merged = extractor.merge_results(results)
    strings = {item.key: item.key for item in merged}

    existing = _read_catalog(output)
    updated = updater.reconcile(strings, existing)

    if dry_run:
        click.secho("\nExtracted strings:", fg="cyan")
        for key in strings:
            if key not in existing:
                click.secho(f"  + {key}", fg="green")
        unused = updater.find_unused(strings, existing)
        if unused:
            click.secho("\nKeys in locale but not in source:", fg="yellow")
            for key in unused:
                click.secho(f"  ? {key}", fg="yellow")
    else:
        updater.write_catalog(
            output, updated, sort=config.catalog.sort, pretty=config.catalog.pretty
        )

    click.secho(f"\nScanned {len(results)} occurrences", fg="cyan")
    click.secho(f"Found {len(strings)} unique strings", fg="cyan")
    click.secho(f"Time: {time.monotonic() - started:.1f}s", fg="cyan")


@cli.command("update")
@click.argument("source")
@click.argument("targets", nargs=-1, required=True)
@click.option("-f", "--flush", is_flag=True, help="Remove keys not present in the source.")
@click.option("--remove-untranslated", is_flag=True, help="Replace entries whose value is the key.")
@click.option("--validate-params", is_flag=True, help="Flag translations with mismatched parameters.")
@click.option("--dry-run", is_flag=True, help="Preview changes without writing.")
@click.pass_obj
def update(
    config: Config,
    source: str,
    targets: tuple[str, ...],
    flush: bool,
    remove_untranslated: bool,
    validate_params: bool,
    dry_run: bool,
) -> None:
    options = UpdateOptions(
        flush=flush,
        remove_untranslated=remove_untranslated,
        validate_params=validate_params,
        return_stats=True,
    )
    source_data = _read_catalog(source)

    for target in targets:
        target_data = _read_catalog(target)
        outcome = updater.reconcile(source_data, target_data, options)
        updated, stats = outcome.result, outcome.stats

        if dry_run:
            click.secho(f"\nChanges for {target}:", fg="cyan")
            for key in updated:
                if key not in target_data:
                    click.secho(f"  + {key}: {updated[key]}", fg="green")
            for key in target_data:
                if key not in updated:
                    click.secho(f"  - {key}", fg="red")
        else:
            updater.write_catalog(
                target, updated, sort=config.catalog.sort, pretty=config.catalog.pretty
            )
        logger.info(
            f"{target}: {stats.added} added, {stats.removed} removed, {stats.unchanged} unchanged"
        )

    click.secho(f"Updated {len(targets)} locale files", fg="green")


@cli.command("status")
@click.argument("source")
@click.argument("targets", nargs=-1, required=True)
def status(source: str, targets: tuple[str, ...]) -> None:
    source_data = _read_catalog(source)
    click.secho("\nTranslation Coverage Report", fg="cyan")
    click.secho(f"Source: {source} ({len(source_data)} keys)\n", fg="cyan")

    for target in targets:
        result = updater.coverage(source_data, _read_catalog(target))
        filled = result.percentage // 5
        bar = "█" * filled + "░" * (20 - filled)
        click.echo(f"{os.path.basename(target)}:")
        click.echo(f"  {bar} " + click.style(f"{result.percentage}%", fg=_coverage_color(result.percentage)))
        click.echo(f"  {result.translated}/{result.total} translated, {result.missing} missing\n")


@cli.command("missing")
@click.argument("source")
@click.argument("target")
def missing(source: str, target: str) -> None:
    keys = updater.find_missing(_read_catalog(source), _read_catalog(target))
    if not keys:
        click.secho("All translations are complete!", fg="green")
        return
    click.secho(f"Missing {len(keys)} translations:\n", fg="yellow")
    for key in keys:
        click.secho(f"  - {key}", fg="yellow")


@cli.command("unused")
@click.argument("source")
@click.argument("target")
def unused(source: str, target: str) -> None:
    keys = updater.find_unused(_read_catalog(source), _read_catalog(target))
    if not keys:
        click.secho("No unused keys found!", fg="green")
        return
    click.secho(f"Found {len(keys)} unused keys:\n", fg="yellow")
    for key in keys:
        click.secho(f"  - {key}", fg="yellow")


@cli.command("plugins")
@click.pass_obj
def plugins(config: Config) -> None:
    options = ExtractOptions(function_names=list(config.extract.function_names))
    for plugin in extractor.default_registry(options).list():
        state = "available" if plugin.is_available() else "unavailable"
        click.echo(f"{plugin.name:<12} {', '.join(plugin.extensions):<24} {state}")
