"""main.py — CLI entry point for Incident Triage.

Uses **Click** for command parsing and **Rich** for output.

Usage examples::

    python main.py analyze --logs app.log --cpu 85 --db-latency 400 --rps High
    tail -n 200 app.log | python main.py analyze --logs - --json
    python main.py analyze -l "12:00 DB timeout" -l "12:02 DB connection reset"
    python main.py providers
    python main.py validate
    python main.py version
"""

from __future__ import annotations

from typing import Optional, TextIO, Tuple

import click
from pydantic import ValidationError
from rich.markup import escape

from integration.cli import (
    console,
    display_error,
    display_providers_table,
    display_verdict_panel,
    read_log_lines,
)
from integration.config_manager import ConfigManager, SystemConfig
from integration.logger import bind_request, command_logger, setup_logging, unbind_request
from triage import __version__
from triage.agent import IncidentAnalyzer
from triage.errors import ConfigurationError
from triage.schema import MetricSample

EXIT_INVALID_INPUT = 1
EXIT_BAD_CONFIG = 2
EXIT_NOT_CONFIGURED = 3


# ── Click group ────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="triage")
@click.option(
    "--config",
    "config_path",
    default="config.yaml",
    envvar="TRIAGE_CONFIG",
    help="Path to config.yaml.",
    type=click.Path(),
)
@click.pass_context
def cli(ctx: click.Context, config_path: str) -> None:
    """🔎 Incident Triage

    Root-cause suggestions for incident logs: a text-generation backend
    proposes a cause, log evidence and metrics decide the verdict.

    \b
    Quick start:
      export GROQ_API_KEY=... AI_PROVIDER=groq
      python main.py analyze --logs app.log --cpu 85
      python main.py --help
    """
    ctx.ensure_object(dict)

    try:
        cfg: Optional[SystemConfig] = ConfigManager.load(config_path)
    except Exception as exc:
        ctx.obj["config_error"] = exc
        cfg = None

    ctx.obj["config"] = cfg
    setup_logging(cfg.system.log_level if cfg else "INFO")

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _require_config(ctx: click.Context) -> SystemConfig:
    cfg = ctx.obj.get("config")
    if cfg is None:
        console.print(f"[red]Failed to load config:[/red] {escape(str(ctx.obj.get('config_error')))}")
        raise SystemExit(EXIT_BAD_CONFIG)
    return cfg


# ── analyze ────────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--logs",
    "log_file",
    type=click.File("r", encoding="utf-8"),
    default=None,
    help="Log file, one line per entry ('-' for stdin).",
)
@click.option("--line", "-l", "lines", multiple=True, help="A single log line (repeatable).")
@click.option("--cpu", type=float, default=None, help="CPU utilisation percent (0-100).")
@click.option("--db-latency", type=float, default=None, help="Database latency in ms.")
@click.option("--rps", default=None, help="Request-rate label, e.g. 'High'.")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON on stdout.")
@click.pass_context
def analyze(
    ctx: click.Context,
    log_file: Optional[TextIO],
    lines: Tuple[str, ...],
    cpu: Optional[float],
    db_latency: Optional[float],
    rps: Optional[str],
    as_json: bool,
) -> None:
    """Analyze log lines plus metrics and print a verdict.

    \b
    Examples:
      python main.py analyze --logs app.log --cpu 85 --db-latency 400 --rps High
      python main.py analyze -l "404 Not Found for /foo" --json
    """
    cfg = _require_config(ctx)
    log = command_logger("analyze")

    log_lines = read_log_lines(log_file, lines)
    if not log_lines:
        display_error(ValueError("No log lines given; use --logs FILE or --line TEXT."), "input")
        raise SystemExit(EXIT_INVALID_INPUT)

    try:
        metrics = MetricSample(cpu=cpu, db_latency=db_latency, requests_per_sec=rps)
    except ValidationError as exc:
        display_error(exc, "metrics")
        raise SystemExit(EXIT_INVALID_INPUT) from exc

    with IncidentAnalyzer(ConfigManager.to_analyzer_config(cfg)) as analyzer:
        correlation_id = bind_request(analyzer.provider)
        try:
            log.info("analysis_started", lines=len(log_lines))
            result = analyzer.analyze(log_lines, metrics, correlation_id=correlation_id)
            log.info(
                "analysis_finished",
                likely_cause=result.verdict.likely_cause,
                confidence=result.verdict.confidence,
                signal=result.signal,
                degraded=result.degraded,
            )
        except ConfigurationError as exc:
            log.error("analysis_not_configured", detail=str(exc))
            display_error(exc, "configuration")
            raise SystemExit(EXIT_NOT_CONFIGURED) from exc
        finally:
            unbind_request()

    if as_json:
        click.echo(result.model_dump_json(indent=2))
    else:
        display_verdict_panel(result)


# ── providers ──────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def providers(ctx: click.Context) -> None:
    """List text-generation backends and whether credentials are set.

    \b
    Example:
      python main.py providers
    """
    cfg = _require_config(ctx)
    display_providers_table(ConfigManager.to_analyzer_config(cfg))


# ── validate ───────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate the configuration file.

    \b
    Example:
      python main.py --config config.yaml validate
    """
    cfg = ctx.obj.get("config")
    if cfg is None:
        console.print(f"[red]Invalid config:[/red] {escape(str(ctx.obj.get('config_error')))}")
        raise SystemExit(EXIT_INVALID_INPUT)

    issues = ConfigManager.validate(cfg)
    if issues:
        console.print("[yellow]⚠ Validation issues:[/yellow]")
        for issue in issues:
            console.print(f"  • {escape(issue)}")
        raise SystemExit(EXIT_INVALID_INPUT)

    console.print("[green]✅ Configuration is valid.[/green]")
    console.print(f"  Version    : {cfg.system.version}")
    console.print(f"  Log level  : {cfg.system.log_level}")
    console.print(f"  Provider   : {cfg.llm.provider}")
    console.print(f"  Backends   : {', '.join(cfg.llm.backends)}")


# ── version ────────────────────────────────────────────────────────


@cli.command()
def version() -> None:
    """Show version and dependency information.

    \b
    Example:
      python main.py version
    """
    import platform

    console.print("[bold]Incident Triage[/bold]")
    console.print(f"  Version  : {__version__}")
    console.print(f"  Python   : {platform.python_version()}")

    deps = {
        "click": "click",
        "rich": "rich",
        "pydantic": "pydantic",
        "structlog": "structlog",
        "pyyaml": "yaml",
        "httpx": "httpx",
        "groq": "groq",
        "prometheus": "prometheus_client",
    }
    for label, mod in deps.items():
        try:
            m = __import__(mod)
            ver = getattr(m, "__version__", getattr(m, "VERSION", "?"))
            console.print(f"  {label:12s}: {ver}")
        except ImportError:
            console.print(f"  {label:12s}: [dim]not installed[/dim]")


# ── entry point ────────────────────────────────────────────────────

if __name__ == "__main__":
    cli()
