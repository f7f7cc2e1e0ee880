"""CLI entry point — command definitions using Click.

Commands:
    init      Generate a template config file
    parse     Resolve a project's findings from ReSharper reports
    command   Print the inspectcode command line for a project
    rules     List the rule catalog
"""

import json
import logging
import sys
from typing import Any

import click

from resharper_sonar import __version__


# ---------------------------------------------------------------------------
# Helpers shared by all data commands
# ---------------------------------------------------------------------------

def _load_config(ctx: click.Context):
    """Load the config. Exits on error."""
    from resharper_sonar.config import ConfigError, load

    try:
        return load(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


def _make_catalog(config, from_server: bool):
    """Build the rule catalog from the packaged rules or from the server."""
    from resharper_sonar.rules import RuleCatalog

    if not from_server:
        return RuleCatalog.load(config.language, custom_rules=config.custom_rules)

    if not config.has_server:
        click.echo("Configuration error: --from-server needs 'server.url' (or SONAR_URL)", err=True)
        sys.exit(1)

    from resharper_sonar.client import SonarClient

    client = SonarClient(url=config.server.url, token=config.server.token)
    return RuleCatalog.from_server(client, config.language, custom_rules=config.custom_rules)


def _emit_json(data: Any, ctx: click.Context) -> None:
    """Write JSON to stdout or to the file specified by --output."""
    obj = ctx.obj
    indent = 2 if obj["pretty"] else None
    text = json.dumps(data, indent=indent, ensure_ascii=False)

    output_path: str | None = obj["output_path"]
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Report written to '{output_path}'", err=True)
    else:
        click.echo(text)


def _handle_errors(func):
    """Decorator that maps package exceptions to a message and exit code 1."""
    import functools

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from resharper_sonar.client import (
            AuthenticationError,
            NetworkError,
            SonarClientError,
        )
        from resharper_sonar.command import AmbiguousSettingsError, CommandError
        from resharper_sonar.config import ProjectNotFoundError
        from resharper_sonar.parser import ReportNotFoundError, ReportReadError

        try:
            return func(*args, **kwargs)
        except ProjectNotFoundError as exc:
            click.echo(f"Project error: {exc}", err=True)
            sys.exit(1)
        except ReportNotFoundError as exc:
            click.echo(f"Not found: {exc}", err=True)
            sys.exit(1)
        except ReportReadError as exc:
            click.echo(f"Report error: {exc}", err=True)
            sys.exit(1)
        except AmbiguousSettingsError as exc:
            click.echo(f"Ambiguous settings: {exc}", err=True)
            sys.exit(1)
        except CommandError as exc:
            click.echo(f"Command error: {exc}", err=True)
            sys.exit(1)
        except AuthenticationError as exc:
            click.echo(f"Authentication error: {exc}", err=True)
            sys.exit(1)
        except NetworkError as exc:
            click.echo(f"Network error: {exc}", err=True)
            sys.exit(1)
        except SonarClientError as exc:
            click.echo(f"SonarQube error: {exc}", err=True)
            sys.exit(1)

    return wrapper


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default="resharper-config.yaml", show_default=True,
              help="Path to the configuration file.")
@click.option("--output", "output_path", default=None,
              help="Write JSON output to a file instead of stdout.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON output.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable verbose logging.")
@click.version_option(__version__, prog_name="resharper-sonar")
@click.pass_context
def cli(ctx: click.Context, config_path: str, output_path: str | None,
        pretty: bool, verbose: bool) -> None:
    """ReSharper report importer — resolve inspectcode findings, export as JSON."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["output_path"] = output_path
    ctx.obj["pretty"] = pretty


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="resharper-config.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template resharper-config.yaml file."""
    from resharper_sonar.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your solution path and project directories.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------

@cli.command("parse")
@click.argument("project")
@click.option("--report", "report_pattern", default=None,
              help="Report path or glob (overrides 'report_path' from the config).")
@click.option("--format", "output_format", type=click.Choice(["report", "generic"]),
              default="report", show_default=True,
              help="'generic' emits SonarQube's generic issue import format.")
@click.option("--from-server", is_flag=True, default=False,
              help="Load the rule catalog from the configured SonarQube server.")
@click.pass_context
@_handle_errors
def parse_command(ctx: click.Context, project: str, report_pattern: str | None,
                  output_format: str, from_server: bool) -> None:
    """Resolve the findings of PROJECT from its ReSharper report(s)."""
    from resharper_sonar.parser import ReportParser, find_reports
    from resharper_sonar.reports.violations import build_report, to_generic_issues
    from resharper_sonar.sinks import CollectingSink

    config = _load_config(ctx)
    vs_project = config.resolve_project(project)
    solution = config.get_solution()
    catalog = _make_catalog(config, from_server)

    sink = CollectingSink()
    parser = ReportParser(
        catalog, solution, vs_project, sink,
        include_all_files=config.include_all_files,
        charset=config.source_charset,
    )
    reports = find_reports(solution, vs_project, report_pattern or config.report_path)
    results = [parser.parse(path) for path in reports]

    if output_format == "generic":
        _emit_json(to_generic_issues(sink.violations), ctx)
    else:
        _emit_json(build_report(project, catalog.repository, sink.violations, results), ctx)


# ---------------------------------------------------------------------------
# command
# ---------------------------------------------------------------------------

@cli.command("command")
@click.argument("project")
@click.option("--report-file", default=None,
              help="Where inspectcode writes its report (default: 'report_path').")
@click.pass_context
@_handle_errors
def command_command(ctx: click.Context, project: str, report_file: str | None) -> None:
    """Print the inspectcode command line for PROJECT as a JSON list."""
    from resharper_sonar.command import build_command, executable_path

    config = _load_config(ctx)
    vs_project = config.resolve_project(project)
    solution = config.get_solution()

    argv = build_command(
        solution, vs_project,
        executable=executable_path(config.inspectcode.install_dir),
        report_file=solution.expand(report_file or config.report_path),
        settings_pattern=config.inspectcode.settings_file,
        extra_args=config.inspectcode.extra_args,
    )
    _emit_json(argv, ctx)


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------

@cli.command("rules")
@click.option("--from-server", is_flag=True, default=False,
              help="Load the rule catalog from the configured SonarQube server.")
@click.pass_context
@_handle_errors
def rules_command(ctx: click.Context, from_server: bool) -> None:
    """List the rules of the catalog."""
    config = _load_config(ctx)
    catalog = _make_catalog(config, from_server)
    _emit_json({
        "repository": catalog.repository,
        "total":      len(catalog),
        "rules":      [rule.to_dict() for rule in catalog],
    }, ctx)
