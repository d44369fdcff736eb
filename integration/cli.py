"""CLI helpers — input reading, output formatting, Rich widgets."""

from __future__ import annotations

from typing import List, Optional, Sequence, TextIO

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from triage.config import AnalyzerConfig
from triage.schema import AnalysisResult

console = Console(stderr=True)


# ── input helpers ──────────────────────────────────────────────────


def read_log_lines(stream: Optional[TextIO], extra: Sequence[str] = ()) -> List[str]:
    """Collect log lines from *stream* (one per line) followed by *extra*.

    Blank lines are dropped here; trimming and dedup happen in the core.
    """
    lines: List[str] = []
    if stream is not None:
        lines.extend(line.rstrip("\r\n") for line in stream)
    lines.extend(extra)
    return [line for line in lines if line.strip()]


# ── formatting helpers ─────────────────────────────────────────────


def format_confidence(confidence: float) -> str:
    """Format *confidence* (0.0-1.0) as a coloured percentage."""
    pct = confidence * 100
    if pct >= 85:
        return f"[green]{pct:.0f}%[/green]"
    if pct >= 60:
        return f"[yellow]{pct:.0f}%[/yellow]"
    return f"[red]{pct:.0f}%[/red]"


# ── Rich widgets ───────────────────────────────────────────────────


def display_verdict_panel(result: AnalysisResult) -> None:
    """Display a panel summarising one analysis."""
    verdict = result.verdict
    summary = result.summary

    if result.degraded:
        status, border = "[yellow]⚠ Backend unavailable: see next steps[/yellow]", "yellow"
    else:
        status, border = "[green]✅ Incident Analysis Complete[/green]", "green"

    source = f"log signal '{result.signal}'" if result.signal else result.provider
    body = (
        f"{status}\n\n"
        f"Root Cause : {escape(verdict.likely_cause)}  ({format_confidence(verdict.confidence)})\n"
        f"Next Steps : {escape(verdict.next_steps)}\n"
        f"Source     : [cyan]{escape(source)}[/cyan]\n"
        f"Logs       : {summary.total_original} lines → {summary.after_dedup} entries, "
        f"{summary.distinct_windows} window(s)"
    )

    console.print(
        Panel(body, title=f"Verdict [{result.correlation_id}]", border_style=border, padding=(1, 2)),
    )


def display_error(error: Exception, context: str = "") -> None:
    """Display a formatted error panel."""
    msg = f"[red]✗ Error{f' ({context})' if context else ''}[/red]\n\n{escape(str(error))}"
    console.print(Panel(msg, title="Error", border_style="red", padding=(1, 2)))


def display_providers_table(config: AnalyzerConfig) -> None:
    """Print a Rich table of backends, marking the selected one."""
    table = Table(
        title="Text-Generation Backends",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Provider", style="cyan", no_wrap=True)
    table.add_column("Model", style="white")
    table.add_column("Credential", style="yellow")
    table.add_column("Selected", style="green")

    selected = config.provider.strip().lower()
    for name, backend in config.backends.items():
        table.add_row(
            name,
            backend.model or "—",
            "set" if backend.has_credential else f"missing ({backend.credential_env_var})",
            "★" if name == selected else "",
        )

    console.print(table)
