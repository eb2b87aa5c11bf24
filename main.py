from __future__ import annotations

import signal
from dataclasses import dataclass
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from models.reply import CycleReport, OutcomeKind
from services.auth_service import AuthService
from services.auto_reply_cycle import AutoReplyCycle
from services.gmail_service import GmailService
from services.label_registry import LabelRegistry
from services.message_scanner import UnrepliedMessageScanner
from services.persistence_service import UnmarkedReplyStore
from services.reply_composer import ReplyComposer
from services.reply_dispatcher import ReplyDispatcher
from services.scheduler import CycleScheduler
from services.statistics_service import StatisticsService
from utils.config import AppConfig, load_config
from utils.logger import configure_logging


OUTCOME_STYLES = {
    OutcomeKind.REPLIED: "green",
    OutcomeKind.SKIPPED_ALREADY_REPLIED: "dim",
    OutcomeKind.FAILED: "red",
}


@dataclass(slots=True)
class AppContext:
    config: AppConfig
    stats: StatisticsService
    unmarked_store: UnmarkedReplyStore
    console: Console


def build_context(env_file: str) -> AppContext:
    config = load_config(env_file)
    configure_logging(config.log_dir, config.log_level)
    return AppContext(
        config=config,
        stats=StatisticsService(config.stats_file),
        unmarked_store=UnmarkedReplyStore(config.db_path),
        console=Console(),
    )


def build_cycle(app: AppContext) -> AutoReplyCycle:
    """Authenticate and wire the reply workflow around one Gmail session."""

    gmail = GmailService(app.config, AuthService(app.config))
    return AutoReplyCycle(
        registry=LabelRegistry(gmail, label_name=app.config.label_name),
        scanner=UnrepliedMessageScanner(gmail),
        composer=ReplyComposer(app.config.reply_body),
        dispatcher=ReplyDispatcher(gmail),
        unmarked_store=app.unmarked_store,
    )


@click.group()
@click.option("--env-file", default=".env", show_default=True, help="Path to the .env file")
@click.pass_context
def cli(ctx: click.Context, env_file: str) -> None:
    """Out-of-office auto-replies for a Gmail inbox."""

    try:
        ctx.obj = build_context(env_file)
    except ValueError as exc:  # invalid settings
        raise click.ClickException(str(exc)) from exc


@cli.command("run-once")
@click.pass_obj
def run_once(app: AppContext) -> None:
    """Run a single auto-reply cycle and print its outcomes."""

    report = _build_cycle_or_fail(app).run_cycle()
    app.stats.record_cycle(report)
    _print_report(app, report)
    if report.aborted:
        raise click.ClickException(f"Cycle aborted: {report.abort_reason}")


@cli.command("schedule")
@click.option("--min-interval", type=int, default=None, help="Lower bound of the random interval in seconds")
@click.option("--max-interval", type=int, default=None, help="Upper bound of the random interval in seconds")
@click.option("--run-first/--wait-first", default=True, help="Run a cycle immediately before waiting")
@click.pass_obj
def schedule_cycles(app: AppContext, min_interval: Optional[int], max_interval: Optional[int], run_first: bool) -> None:
    """Run auto-reply cycles on a randomized interval until interrupted."""

    low = min_interval or app.config.min_interval
    high = max_interval or app.config.max_interval
    try:
        scheduler = CycleScheduler(
            _build_cycle_or_fail(app),
            min_interval=low,
            max_interval=high,
            on_report=lambda report: _record_scheduled(app, report),
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--min-interval/--max-interval") from exc

    # Ctrl+C and SIGTERM both let the message in flight finish before stopping.
    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, lambda *_: scheduler.stop())
    app.console.print(
        f"Checking {app.config.user_id} every {low}-{high} second(s). Press Ctrl+C to stop."
    )
    try:
        if run_first:
            scheduler.run_now()
        scheduler.run_forever()
    except KeyboardInterrupt:
        scheduler.stop()
    app.console.print("Scheduler stopped.")


@cli.command("ensure-label")
@click.pass_obj
def ensure_label(app: AppContext) -> None:
    """Create the processed label if it does not exist."""

    gmail = GmailService(app.config, AuthService(app.config))
    label_id = LabelRegistry(gmail, label_name=app.config.label_name).ensure_label()
    app.console.print(f"Label {app.config.label_name} is ready (id: {label_id}).")


@cli.command("stats")
@click.pass_obj
def stats(app: AppContext) -> None:
    """Display local cycle statistics."""

    snapshot = app.stats.snapshot()
    if not snapshot:
        app.console.print("No stats recorded yet.")
        return

    table = Table(title="Auto-reply stats")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Cycles", str(snapshot.get("cycles", 0)))
    table.add_row("Aborted cycles", str(snapshot.get("aborted_cycles", 0)))
    table.add_row("Replied", str(snapshot.get("replied", 0)))
    table.add_row("Skipped (already replied)", str(snapshot.get("skipped", 0)))
    table.add_row("Failed", str(snapshot.get("failed", 0)))
    table.add_row("Sent but unlabeled", str(snapshot.get("duplicate_risk", 0)))
    app.console.print(table)

    pending = app.unmarked_store.pending()
    if pending:
        pending_table = Table(title="Awaiting relabel")
        pending_table.add_column("Message ID", overflow="fold")
        pending_table.add_column("Sent at")
        for entry in pending:
            pending_table.add_row(entry.message_id, entry.sent_at.isoformat(timespec="seconds"))
        app.console.print(pending_table)


def main() -> None:
    cli(standalone_mode=True)


def _build_cycle_or_fail(app: AppContext) -> AutoReplyCycle:
    try:
        return build_cycle(app)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc


def _record_scheduled(app: AppContext, report: CycleReport) -> None:
    app.stats.record_cycle(report)
    app.console.print(
        f"Scheduled cycle: replied {report.replied}, skipped {report.skipped}, failed {report.failed}"
        + (" (aborted)" if report.aborted else "")
    )


def _print_report(app: AppContext, report: CycleReport) -> None:
    if report.aborted:
        return
    if not report.outcomes:
        app.console.print("[bold green]No unread messages needed a reply.[/bold green]")
        return

    table = Table(title="Cycle outcomes")
    table.add_column("Message ID", overflow="fold")
    table.add_column("Outcome")
    table.add_column("Reason")
    for outcome in report.outcomes:
        style = OUTCOME_STYLES[outcome.kind]
        label = "sent, not labeled" if outcome.duplicate_risk else outcome.kind.value
        table.add_row(outcome.message_id, f"[{style}]{label}[/{style}]", outcome.reason or "")
    app.console.print(table)


if __name__ == "__main__":
    main()
