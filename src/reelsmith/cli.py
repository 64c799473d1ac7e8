"""Command-line interface using Typer."""

import asyncio
import json
from typing import Optional

import typer
from fastapi.websockets import WebSocketState
from rich.console import Console
from rich.table import Table

from reelsmith import __version__
from reelsmith.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="reelsmith",
    help="Reelsmith - prompt-to-video generation CLI",
    add_completion=False,
)

console = Console()

STATUS_STYLES = {
    "completed": "green",
    "failed": "red",
    "pending": "dim",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Reelsmith v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Reelsmith - turn a one-line idea into a finished video."""
    pass


class ConsoleObserver:
    """Progress observer that prints events to the terminal."""

    client_state = WebSocketState.CONNECTED

    def __init__(self, task_id: str | None = None) -> None:
        self.task_id = task_id

    async def send_text(self, data: str) -> None:
        event = json.loads(data)
        if self.task_id and event.get("taskId") != self.task_id:
            return
        console.print(f"[cyan]{event['progress']:>3}%[/cyan] {event['message']}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """Start the API server."""
    import uvicorn

    from reelsmith.config import settings

    uvicorn.run(
        "reelsmith.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload or settings.api_reload,
    )


@app.command("init-db")
def init_db_command() -> None:
    """Create database tables."""
    from reelsmith.db.session import init_db

    try:
        init_db()
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)
    console.print("[bold green]✓ Database initialized[/bold green]")


async def _run_generation(prompt: str, user_id: str | None) -> str:
    from reelsmith.db.session import init_db
    from reelsmith.services.broadcaster import ProgressBroadcaster
    from reelsmith.services.pipeline import create_pipeline

    init_db()
    broadcaster = ProgressBroadcaster()
    pipeline = create_pipeline(broadcaster)

    observer = ConsoleObserver()
    broadcaster.register(observer)
    created = await pipeline.create_task(prompt, user_id)
    observer.task_id = created.task_id
    console.print(f"[dim]Task ID: {created.task_id}[/dim]")

    await pipeline.drain()
    return created.task_id


@app.command()
def generate(
    prompt: str = typer.Argument(..., help="One-line description of the video"),
    user_id: Optional[str] = typer.Option(None, "--user", "-u", help="User ID to record"),
) -> None:
    """Generate a video in-process, printing progress as it goes."""
    if not prompt.strip():
        console.print("[bold red]Prompt must not be empty[/bold red]")
        raise typer.Exit(code=2)

    console.print("[bold blue]Generating video...[/bold blue]")
    task_id = asyncio.run(_run_generation(prompt.strip(), user_id))
    _print_task(task_id)


def _print_task(task_id: str) -> None:
    from reelsmith.db.store import SqlTaskStore

    store = SqlTaskStore()
    task = store.get_task(task_id)
    if task is None:
        console.print(f"[bold red]Task not found: {task_id}[/bold red]")
        raise typer.Exit(code=1)

    table = Table(title=f"Task {task.id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Status", f"[{STATUS_STYLES.get(task.status, 'yellow')}]{task.status}[/]")
    table.add_row("Progress", f"{task.progress}%")
    table.add_row("Input", task.user_input[:100])
    if task.script:
        table.add_row("Title", task.script.title)
    if task.output_url:
        table.add_row("Output", task.output_url)
    if task.error:
        table.add_row("Error", f"[red]{task.error}[/red]")
    console.print(table)

    scenes = store.list_scenes(task_id)
    if scenes:
        scene_table = Table(title="Scenes")
        scene_table.add_column("#", style="cyan")
        scene_table.add_column("Status")
        scene_table.add_column("Duration")
        scene_table.add_column("Visual prompt")
        scene_table.add_column("Clip / error")
        for scene in scenes:
            scene_table.add_row(
                str(scene.scene_number),
                f"[{STATUS_STYLES.get(scene.status, 'yellow')}]{scene.status}[/]",
                f"{scene.duration_seconds:g}s",
                scene.visual_prompt[:50],
                (scene.video_url or scene.error or "")[:60],
            )
        console.print(scene_table)

    if task.status == "failed":
        raise typer.Exit(code=1)


@app.command()
def status(
    task_id: str = typer.Argument(..., help="The task ID to check"),
) -> None:
    """Show a task and its scenes."""
    _print_task(task_id)


@app.command("list")
def list_tasks(
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum tasks to show"),
    offset: int = typer.Option(0, "--offset", "-o", help="Tasks to skip"),
) -> None:
    """List tasks, newest first."""
    from reelsmith.db.store import SqlTaskStore

    tasks = SqlTaskStore().list_tasks(limit=limit, offset=offset)
    if not tasks:
        console.print("[dim]No tasks found[/dim]")
        return

    table = Table(title="Tasks")
    table.add_column("ID", style="cyan")
    table.add_column("Status")
    table.add_column("Progress")
    table.add_column("Input")
    table.add_column("Created")
    for task in tasks:
        table.add_row(
            task.id,
            f"[{STATUS_STYLES.get(task.status, 'yellow')}]{task.status}[/]",
            f"{task.progress}%",
            task.user_input[:40],
            task.created_at.strftime("%Y-%m-%d %H:%M") if task.created_at else "",
        )
    console.print(table)


@app.command()
def health() -> None:
    """Check the health of a running API server."""
    import httpx

    from reelsmith.config import settings

    url = f"http://{settings.api_host}:{settings.api_port}/health/ready"

    try:
        response = httpx.get(url, timeout=10)
        data = response.json()
    except httpx.RequestError as e:
        console.print(f"[bold red]Cannot connect to API: {e}[/bold red]")
        console.print("[dim]Is the API server running?[/dim]")
        raise typer.Exit(code=1)

    table = Table(title="Service Health")
    table.add_column("Component", style="cyan")
    table.add_column("Status")

    table.add_row("Database", "✓" if data.get("database") else "✗")
    for component, healthy in (data.get("components") or {}).items():
        table.add_row(component, "✓" if healthy else "✗")

    console.print(table)

    if data.get("ready"):
        console.print("[bold green]All services healthy![/bold green]")
    else:
        console.print("[bold yellow]Some services unhealthy[/bold yellow]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
