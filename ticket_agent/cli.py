"""Ticket Agent CLI - turn assigned Jira issues into agent-written branches."""

import threading

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ticket_agent.core.config import settings
from ticket_agent.core.database import create_tables
from ticket_agent.core.errors import AppError
from ticket_agent.core.log import configure_logging
from ticket_agent.models import TaskStatus
from ticket_agent.services import TaskService
from ticket_agent.services.orchestrator import Orchestrator, StartOptions

app = typer.Typer(help="Ticket Agent CLI", no_args_is_help=True)

console = Console()


def _print_banner(options: StartOptions) -> None:
    console.print("[bold]=== Ticket Agent ===[/bold]")
    console.print(f"  Domain: {options.domain}")
    console.print(f"  Jira Status Filter: {options.jira_status}")
    console.print(f"  Poll Interval: {options.interval}s")
    console.print(f"  Concurrency: {options.concurrency}")
    console.print(f"  Repository: {options.repository_url}")
    console.print(f"  Base Branch: {options.base_branch}")
    console.print("  Using: assignee = currentUser()\n")


@app.command("start")
def start(
    email: str = typer.Option(
        None, "--email", "-e", envvar="ATLASSIAN_EMAIL", help="Atlassian account email"
    ),
    token: str = typer.Option(
        None,
        "--token",
        "-t",
        envvar="ATLASSIAN_API_TOKEN",
        help="Atlassian API token",
        show_default=False,
    ),
    domain: str = typer.Option(
        None,
        "--domain",
        "-d",
        envvar="ATLASSIAN_DOMAIN",
        help="Atlassian domain (e.g. mycompany.atlassian.net)",
    ),
    jira_status: str = typer.Option(
        None,
        "--jira-status",
        "-s",
        envvar="ATLASSIAN_JIRA_STATUS",
        help="Jira status to pick issues from (e.g. 'To Do')",
    ),
    interval: int = typer.Option(
        60,
        "--interval",
        "-i",
        envvar="ATLASSIAN_INTERVAL",
        help="Polling interval in seconds",
    ),
    concurrency: int = typer.Option(
        5,
        "--concurrency",
        "-c",
        envvar="ATLASSIAN_CONCURRENCY",
        help="Maximum number of tasks worked on in parallel",
    ),
    repository_url: str = typer.Option(
        None,
        "--repository-url",
        "-r",
        envvar="REPOSITORY_URL",
        help="Git repository URL to clone for task work",
    ),
    base_branch: str = typer.Option(
        "main",
        "--base-branch",
        "-b",
        envvar="BASE_BRANCH",
        help="Branch that pull requests target",
    ),
):
    """Poll Jira and run the coding agent on new issues."""
    try:
        options = StartOptions(
            email=email or "",
            token=token or "",
            domain=domain or "",
            jira_status=jira_status or "",
            interval=interval,
            concurrency=concurrency,
            repository_url=repository_url or "",
            base_branch=base_branch or "",
        )
    except ValidationError as e:
        console.print("[red]✗[/red] Invalid options:")
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            console.print(f"  --{field.replace('_', '-')}: {error['msg']}")
        raise typer.Exit(1) from None

    configure_logging(settings.log_level)
    _print_banner(options)

    stop_event = threading.Event()
    try:
        Orchestrator(options).run(stop_event)
    except KeyboardInterrupt:
        stop_event.set()
        console.print("\n[yellow]Stopped[/yellow]")
    except AppError as e:
        console.print(f"[red]✗[/red] Fatal error: {e}")
        raise typer.Exit(1) from e


@app.command("list")
def list_tasks(
    status: TaskStatus = typer.Option(
        None, "--status", "-s", case_sensitive=False, help="Only show this status"
    ),
    limit: int = typer.Option(
        50, "--limit", "-n", min=1, help="Number of tasks to show"
    ),
):
    """List stored tasks, newest first."""
    try:
        create_tables()
        tasks, total = TaskService.list_tasks(status=status, limit=limit)
    except AppError as e:
        console.print(f"[red]✗[/red] Could not read tasks: {e}")
        raise typer.Exit(1) from e

    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(title=f"Tasks (showing {len(tasks)} of {total})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Jira Key", style="white")
    table.add_column("Status", style="magenta")
    table.add_column("Jira Status", style="white")
    table.add_column("Created At", style="dim")

    for task in tasks:
        table.add_row(
            str(task.id),
            task.external_key,
            TaskStatus(task.status).value,
            task.external_status,
            task.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)
    console.print(f"\nTotal: {total} task(s)")


if __name__ == "__main__":
    app()
