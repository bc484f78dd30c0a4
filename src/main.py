"""
Provisioning planner — CLI entrypoint.

Usage:
    python -m src.main --help
    python -m src.main resolve --catalog catalog.yml --profile profile.json --install sdk
    python -m src.main query --catalog catalog.yml component.identity sdk
    python -m src.main profile show --profile profile.json
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from src import __version__
from src.core.observability.logging_config import setup_cli_logging

# Exit codes for `resolve`
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFLICT = 2

_STATUS_COLORS = {
    "ok": "green",
    "partial_conflict": "yellow",
    "unsatisfiable": "red",
    "malformed_request": "red",
    "cancelled": "yellow",
}

_file = click.Path(dir_okay=False, path_type=Path)


@click.group()
@click.version_option(version=__version__, prog_name="planner")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=_file,
    default=None,
    help="Path to planner.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: Path | None,
) -> None:
    """Provisioning planner — compute install plans from a component catalog."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path

    # ── Logging setup (once, at process start) ──────────────────
    setup_cli_logging(debug=debug, verbose=verbose, quiet=quiet)


def _parse_assignments(values: tuple[str, ...]) -> dict[str, str | None]:
    """``KEY=VALUE`` pairs; ``KEY=`` unsets the property."""
    props: dict[str, str | None] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"Expected KEY=VALUE, got {item!r}", param_hint="--set")
        props[key.strip()] = value if value else None
    return props


def _echo_status(status: str) -> None:
    click.secho(f"Status: {status}", fg=_STATUS_COLORS.get(status, "white"), bold=True)


@cli.command()
@click.option("--catalog", "catalogs", type=_file, multiple=True, required=True,
              help="Catalog YAML file (repeatable, merged in order).")
@click.option("--profile", "profile_path", type=_file, default=None,
              help="Profile JSON file (missing file means an empty profile).")
@click.option("--request", "request_path", type=_file, default=None,
              help="Request YAML file.")
@click.option("--install", multiple=True, metavar="REF", help="Component to install (id or id@version).")
@click.option("--install-optional", multiple=True, metavar="REF", help="Component to install if possible.")
@click.option("--remove", multiple=True, metavar="REF", help="Component to remove.")
@click.option("--set", "assignments", multiple=True, metavar="KEY=VALUE",
              help="Set a profile property (KEY= removes it).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--apply", is_flag=True, help="Save the resulting profile.")
@click.pass_context
def resolve(
    ctx: click.Context,
    catalogs: tuple[Path, ...],
    profile_path: Path | None,
    request_path: Path | None,
    install: tuple[str, ...],
    install_optional: tuple[str, ...],
    remove: tuple[str, ...],
    assignments: tuple[str, ...],
    as_json: bool,
    apply: bool,
) -> None:
    """Compute a provisioning plan."""
    from src.core.config.loader import RequestSpec
    from src.core.use_cases.resolve import resolve_files

    extra = RequestSpec(
        install=list(install),
        install_optional=list(install_optional),
        remove=list(remove),
        properties=_parse_assignments(assignments),
    )
    outcome = resolve_files(
        catalogs,
        profile_path=profile_path,
        request_path=request_path,
        request=extra,
        settings_path=ctx.obj.get("config_path"),
        apply=apply,
    )

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2, sort_keys=True))
    elif outcome.error:
        click.secho(f"❌ {outcome.error}", fg="red")
    else:
        _print_resolution(outcome, quiet=ctx.obj.get("quiet", False))

    if outcome.error or outcome.result is None:
        sys.exit(EXIT_ERROR)
    status = str(outcome.result.status)
    if status == "ok":
        sys.exit(EXIT_OK)
    if status in ("partial_conflict", "unsatisfiable"):
        sys.exit(EXIT_CONFLICT)
    sys.exit(EXIT_ERROR)


def _print_resolution(outcome, quiet: bool) -> None:
    result = outcome.result
    _echo_status(str(result.status))

    if result.error:
        click.echo(f"   {result.error}")
        return

    plan = result.plan
    if plan.operands:
        click.echo()
        click.secho(f"   Plan ({len(plan.operands)} operands):", fg="white", bold=True)
        for operand in plan.operands:
            color = "green" if operand.kind == "install" else "red"
            click.secho(f"     {operand}", fg=color)
    elif not quiet:
        click.echo("   Nothing to do.")

    if plan.property_changes:
        click.echo()
        click.secho("   Properties:", fg="white", bold=True)
        for key, value in sorted(plan.property_changes.items()):
            click.echo(f"     {key} = {value}" if value is not None else f"     {key} (removed)")

    conflicts = [s for s in plan.request_status.roots if not s.satisfied and s.reason]
    if conflicts:
        click.echo()
        click.secho("   Conflicts:", fg="red", bold=True)
        for root in conflicts:
            label = " (optional)" if root.optional else ""
            click.echo(f"     • {root.component.ref}{label}")
            for line in root.reason.render(depth=3):
                click.echo(line)

    if plan.warnings and not quiet:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warning in plan.warnings:
            click.echo(f"   • {warning}")

    if outcome.applied:
        click.echo()
        click.secho(f"✅ Profile saved to {outcome.profile_path}", fg="green")

    if not quiet and not result.stats.optimal:
        click.echo()
        click.secho("   Search budget reached; the plan may not be optimal.", fg="yellow")
    click.echo()


@cli.command()
@click.argument("namespace")
@click.argument("name")
@click.option("--catalog", "catalogs", type=_file, multiple=True, required=True,
              help="Catalog YAML file (repeatable).")
@click.option("--range", "version_range", default=None, help="Version range, e.g. [1.0,2.0).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def query(
    namespace: str,
    name: str,
    catalogs: tuple[Path, ...],
    version_range: str | None,
    as_json: bool,
) -> None:
    """List components providing NAMESPACE/NAME."""
    from src.core.use_cases.query import query_catalogs

    outcome = query_catalogs(catalogs, namespace, name, version_range)

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2, sort_keys=True))
        sys.exit(1 if outcome.error else 0)

    if outcome.error:
        click.secho(f"❌ {outcome.error}", fg="red")
        sys.exit(1)

    if not outcome.components:
        click.echo(f"No component provides {namespace}/{name} {outcome.range}")
        return

    for component in outcome.components:
        flags = " [singleton]" if component.singleton else ""
        click.echo(f"{component.ref}{flags}")


@cli.group()
def profile() -> None:
    """Installation profile commands."""


@profile.command("show")
@click.option("--profile", "profile_path", type=_file, required=True, help="Profile JSON file.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def profile_show(profile_path: Path, as_json: bool) -> None:
    """Show installed components and roots."""
    from src.core.persistence.profile_file import load_profile

    current = load_profile(profile_path)

    if as_json:
        click.echo(json.dumps(current.model_dump(mode="json"), indent=2, sort_keys=True))
        return

    click.secho(f"\n📋 Profile '{current.profile_id}'", fg="cyan", bold=True)
    click.secho(f"   Installed: {len(current.installed)}", fg="white", bold=True)
    for component in current.installed:
        marker = " (root)" if current.is_root(component) else ""
        click.echo(f"     • {component.ref}{marker}")

    if current.properties:
        click.echo()
        click.secho("   Properties:", fg="white", bold=True)
        for key, value in sorted(current.properties.items()):
            click.echo(f"     {key} = {value}")
    click.echo()


def main() -> None:
    """Entry point for ``python -m src.main``."""
    cli(obj={})


if __name__ == "__main__":
    main()
