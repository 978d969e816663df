"""CLI entry point for build-changelog."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from loguru import logger

from .commits import CommitExtractor
from .errors import ChangelogError
from .log import DEFAULT_LOG_LEVEL, LOG_LEVEL_ENV, configure
from .models import Changelog
from .pipeline import FORMATS, ChangelogBuilder, render
from .references import collect_references
from .resolver import TagRangeResolver
from .settings import ChangelogSettings, load_settings
from .shell import step
from .snapshot import read_snapshot, write_snapshot
from .vcs import GitExecutor

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@contextmanager
def engine_errors() -> Iterator[None]:
    """Report engine errors as click failures (exit code 1)."""
    try:
        yield
    except ChangelogError as exc:
        raise click.ClickException(str(exc)) from exc


def _settings(ctx: click.Context) -> ChangelogSettings:
    return load_settings(ctx.obj["config"])


def _resolver(settings: ChangelogSettings, executor: GitExecutor) -> TagRangeResolver:
    return TagRangeResolver(executor, settings.convention(), settings.variants, logger)


def _builder(settings: ChangelogSettings) -> ChangelogBuilder:
    executor = GitExecutor(logger=logger)
    extractor = CommitExtractor(executor, settings.revert_marker, logger=logger)
    return ChangelogBuilder(_resolver(settings, executor), extractor, settings, logger)


def _build(builder: ChangelogBuilder, variant: str, snapshot: Path | None) -> Changelog:
    if snapshot is None:
        return builder.build(variant)
    tag = read_snapshot(snapshot)
    if tag.build_variant != variant:
        raise click.ClickException(
            f"Snapshot {snapshot} holds tag '{tag.name}' of variant "
            f"'{tag.build_variant}', not '{variant}'"
        )
    return builder.build_for_tag(tag)


snapshot_option = click.option(
    "--snapshot",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Anchor at the build tag captured by the snapshot command.",
)


@click.group()
@click.version_option(package_name="build-changelog")
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="TOML file with a [tool.build-changelog] table. [default: ./pyproject.toml]",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    envvar=LOG_LEVEL_ENV,
    default=DEFAULT_LOG_LEVEL,
    show_default=True,
    help="Minimum level of log messages written to stderr.",
)
@click.pass_context
def cli(ctx: click.Context, config: Path | None, log_level: str) -> None:
    """Changelogs between consecutive build tags."""
    configure(log_level)
    ctx.obj = {"config": config}


@cli.command()
@click.argument("variant")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Snapshot file to write.",
)
@click.pass_context
def snapshot(ctx: click.Context, variant: str, output: Path) -> None:
    """Capture the current build tag of VARIANT for later commands."""
    with engine_errors():
        settings = _settings(ctx)
        step(f"Capturing build tag of {variant}")
        resolver = _resolver(settings, GitExecutor(logger=logger))
        tag_range = resolver.find_tag_range(variant)
        if tag_range is None:
            raise click.ClickException(f"No build tag found for variant '{variant}'")
        write_snapshot(output, tag_range.current)
    click.echo(f"✓ Wrote {tag_range.current.name} to {output}", err=True)


@cli.command()
@click.argument("variant")
@snapshot_option
@click.option(
    "--format",
    "fmt",
    type=click.Choice(FORMATS),
    default="plain",
    show_default=True,
    help="Output format.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the changelog to a file instead of stdout.",
)
@click.pass_context
def generate(
    ctx: click.Context,
    variant: str,
    snapshot: Path | None,
    fmt: str,
    output: Path | None,
) -> None:
    """Print the changelog of VARIANT's current build."""
    with engine_errors():
        settings = _settings(ctx)
        changelog = _build(_builder(settings), variant, snapshot)
        text = render(changelog, fmt, settings.for_variant(variant))

    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    click.echo(f"✓ Wrote changelog to {output}", err=True)


@cli.command()
@click.argument("variant")
@snapshot_option
@click.pass_context
def references(ctx: click.Context, variant: str, snapshot: Path | None) -> None:
    """Print the issue keys mentioned in VARIANT's changelog, one per line."""
    with engine_errors():
        settings = _settings(ctx)
        if settings.for_variant(variant).reference_pattern is None:
            raise click.ClickException(
                "No reference-pattern configured in [tool.build-changelog]"
            )
        changelog = _build(_builder(settings), variant, snapshot)
    for ref in collect_references(changelog.references):
        click.echo(ref)


@cli.command("last-tag")
@click.pass_context
def last_tag(ctx: click.Context) -> None:
    """Print the most recent build tag across all configured variants."""
    with engine_errors():
        settings = _settings(ctx)
        if not settings.variants:
            raise click.ClickException(
                "No variants configured; set variants in [tool.build-changelog]"
            )
        tag = _resolver(settings, GitExecutor(logger=logger)).find_recent_build_tag()
    if tag is None:
        raise click.ClickException("No build tags found")
    click.echo(tag.name)


@cli.command("next-tag")
@click.argument("variant")
@click.pass_context
def next_tag(ctx: click.Context, variant: str) -> None:
    """Print the name the next build tag of VARIANT would get."""
    with engine_errors():
        settings = _settings(ctx)
        resolver = _resolver(settings, GitExecutor(logger=logger))
        tag_range = resolver.find_tag_range(variant)
        name = resolver.convention.next_name(
            tag_range.current if tag_range else None, variant
        )
    click.echo(name)
