#!/usr/bin/env python3
"""
Jira Weekly CLI

使用 Typer + Rich 顯示本週與上週的工時表，並可直接記錄工時
"""

import logging
import time
from datetime import datetime
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from .errors import AuthError, ValidationError, WorklogError
from .matrix import AggregationMatrix, format_duration
from .scheduler import RefreshScheduler, WeeklyReport
from .session import SessionManager
from .writer import create_worklog, parse_hours

app = typer.Typer(
    name="jira-weekly",
    help="Jira 每週工時表：檢視與記錄 worklog",
    no_args_is_help=False,
)
console = Console()

STARTED_INPUT_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d")


def setup_logging(verbose: bool = False):
    """設定 logging，輸出到 stderr"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def get_session_manager() -> SessionManager:
    """建立 SessionManager（測試時替換）"""
    return SessionManager()


def _ask(label: str, default: str = "", password: bool = False) -> str:
    if default:
        return Prompt.ask(label, default=default, password=password)
    return Prompt.ask(label, password=password)


def _fail(error: WorklogError):
    console.print(f"[red]✗ {escape(str(error))}[/red]")
    raise typer.Exit(code=1)


def parse_started_input(value: Optional[str]) -> Optional[datetime]:
    """解析 --started 參數（本地時間）"""
    if not value:
        return None
    for fmt in STARTED_INPUT_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    raise ValidationError(f"Invalid start time: {value!r} (expected YYYY-MM-DD HH:MM)")


def require_login(manager: SessionManager):
    """使用已儲存的帳密登入，失敗則結束程式"""
    session = manager.try_auto_login()
    if session is None:
        console.print("[yellow]尚未登入，請先執行 `jira-weekly login`[/yellow]")
        raise typer.Exit(code=1)
    return session


def build_scheduler(manager: SessionManager, **kwargs) -> RefreshScheduler:
    config = manager.config
    return RefreshScheduler(
        client=manager.client,
        current_user=manager.display_name,
        jql=config.jql,
        interval=config.refresh_interval,
        week_start=config.week_start,
        **kwargs,
    )


def matrix_table(title: str, matrix: AggregationMatrix) -> Table:
    """把週工時矩陣轉成 Rich 表格"""
    table = Table(title=title)
    table.add_column("Issue", style="cyan", min_width=12)
    for day in matrix.days:
        table.add_column(f"{day:%a}\n{day:%m/%d}", justify="right")
    table.add_column("Total", style="bold magenta", justify="right")

    for issue in matrix.issues:
        cells = [format_duration(matrix.cell(issue, day)) for day in matrix.days]
        table.add_row(issue, *cells, format_duration(matrix.row_totals[issue]))

    table.add_section()
    totals = [format_duration(matrix.column_totals[day]) for day in matrix.days]
    table.add_row("Total", *totals, format_duration(matrix.grand_total), style="bold")
    return table


def display_report(report: WeeklyReport, display_name: Optional[str] = None):
    """顯示本週與上週工時表"""
    header = f"[bold]Logged in as {escape(display_name)}[/bold]" if display_name else "[bold]Logged in[/bold]"
    console.print(f"{header} [dim]Last refresh: {report.refreshed_at:%Y-%m-%d %H:%M}[/dim]\n")

    for title, matrix, empty_text in (
        ("This Week", report.current_week, "No worklogs for this week."),
        ("Previous Week", report.previous_week, "No worklogs for previous week."),
    ):
        if matrix.is_empty:
            console.print(f"[bold]{title}[/bold]")
            console.print(f"[dim]{empty_text}[/dim]\n")
        else:
            console.print(matrix_table(title, matrix))
            console.print()


def refresh_and_display(manager: SessionManager):
    scheduler = build_scheduler(manager)
    try:
        with console.status("Loading worklogs…"):
            report = scheduler.refresh()
    except WorklogError as e:
        _fail(e)
    if report is not None:
        display_report(report, manager.display_name)


@app.command()
def login(
    url: Optional[str] = typer.Option(None, "--url", help="Jira URL"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="Jira 帳號"),
):
    """登入 Jira 並儲存帳密"""
    manager = get_session_manager()
    config = manager.config

    url = url or _ask("Jira URL", default=config.jira_url)
    username = username or _ask("Username", default=config.jira_username)
    password = _ask("Password", password=True)
    if not url or not username or not password:
        _fail(ValidationError("URL、帳號與密碼皆為必填"))

    try:
        with console.status("Connecting..."):
            session = manager.login(url, username, password)
    except AuthError as e:
        _fail(e)

    manager.remember_credentials()
    console.print(f"[green]✓ Logged in as {escape(session.display_name or '')}[/green]")


@app.command()
def logout():
    """登出並刪除已儲存的密碼"""
    manager = get_session_manager()
    manager.forget_credentials()
    manager.logout()
    console.print("[green]✓ 已登出[/green]")


@app.command()
def status():
    """顯示目前配置與登入狀態"""
    manager = get_session_manager()
    config = manager.config

    table = Table(title="⚙️ 配置")
    table.add_column("項目", style="cyan")
    table.add_column("值")
    table.add_row("Jira URL", escape(config.jira_url) or "[dim]未設定[/dim]")
    table.add_row("Username", escape(config.jira_username) or "[dim]未設定[/dim]")
    table.add_row("JQL", escape(config.jql))
    table.add_row("Refresh interval", f"{config.refresh_interval}s")
    console.print(table)

    if not config.is_configured():
        console.print("[yellow]尚未登入，請先執行 `jira-weekly login`[/yellow]")
        return

    session = manager.try_auto_login()
    if session:
        console.print(f"[green]✓ Connected as: {escape(session.display_name or '')}[/green]")
    else:
        console.print("[red]✗ 無法使用已儲存的帳密登入[/red]")


@app.command()
def week():
    """顯示本週與上週的工時表"""
    manager = get_session_manager()
    require_login(manager)
    refresh_and_display(manager)


@app.command("log")
def log_time(
    issue_key: str = typer.Argument(..., help="Issue key, e.g. PROJ-123"),
    hours: str = typer.Argument(..., help="時數，e.g. 1.5"),
    comment: str = typer.Option("", "--comment", "-c", help="說明"),
    started: Optional[str] = typer.Option(None, "--started", "-s", help="開始時間 (YYYY-MM-DD HH:MM)，預設現在"),
):
    """記錄工時，完成後重新整理工時表"""
    try:
        hours_value = parse_hours(hours)
        started_at = parse_started_input(started)
    except ValidationError as e:
        _fail(e)

    manager = get_session_manager()
    require_login(manager)

    try:
        create_worklog(manager.client, issue_key, hours_value, started=started_at, comment=comment)
    except WorklogError as e:
        _fail(e)

    console.print(f"[green]✓ 已記錄 {format_duration(int(hours_value * 3600))} 到 {escape(issue_key.strip())}[/green]\n")
    refresh_and_display(manager)


@app.command()
def watch():
    """持續顯示工時表，定時重新整理（Ctrl+C 結束）"""
    manager = get_session_manager()
    require_login(manager)

    scheduler = build_scheduler(
        manager,
        on_update=lambda report: display_report(report, manager.display_name),
        on_error=lambda error: console.print(f"[red]✗ {escape(str(error))}[/red]"),
    )
    console.print(f"[dim]每 {scheduler.interval} 秒重新整理，Ctrl+C 結束[/dim]\n")
    scheduler.start()
    try:
        while scheduler.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop(timeout=5)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="顯示除錯訊息"),
):
    """
    Jira Weekly - 每週工時表

    使用方式:
      jira-weekly                  # 顯示本週與上週工時
      jira-weekly login            # 登入 Jira
      jira-weekly log PROJ-1 1.5   # 記錄 1.5 小時
      jira-weekly watch            # 每 5 分鐘自動重新整理
    """
    setup_logging(verbose)
    if ctx.invoked_subcommand is None:
        week()


if __name__ == "__main__":
    app()
