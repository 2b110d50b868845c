"""Command-line interface for VibeDev.

This module provides a Typer-based CLI for operating a VibeDev database.

Commands:
- init: Create the database and seed categories
- add-user: Create or update a user
- status: Show configuration and platform statistics
- projects: List projects in trending, top or newest order
- profile: Show a user's profile stats and projects
- like: Toggle a like on a project
- view: Record a project view
- feature: Feature or unfeature a project (admin)
- delete-project: Delete a project with its engagement rows
- suspend: Suspend or reinstate a user (admin)
- set-role: Change a user's role (admin)
- metrics: Print Prometheus metrics

Actions run as the user given with ``--as``.

Example:
    $ vibedev init
    $ vibedev add-user alice --role admin
    $ vibedev --as alice like my-cool-app
    $ vibedev projects --sort trending
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from vibedev.app import VibeDevApp
from vibedev.config import EntityKind, Role, SortMode, settings
from vibedev.database import DatabaseManager
from vibedev.errors import ActionResult, VibeDevError
from vibedev.identity import CurrentUser, StaticIdentity
from vibedev.logging import set_request_context, setup_logging
from vibedev.metrics import generate_metrics_output
from vibedev.models import UserRow
from vibedev.repository import Filters
from vibedev.utils import new_id

# Initialize CLI app
app = typer.Typer(
    name="vibedev",
    help="VibeDev community backend: projects, engagement and moderation",
    add_completion=False,
)
console = Console()

OPERATOR = CurrentUser(id="cli-operator", username="cli", role=Role.ADMIN)


# =============================================================================
# Helper Functions
# =============================================================================


def configure_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, set DEBUG level; otherwise the configured level
    """
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_logs=settings.log_json,
        log_file=settings.data_dir / "vibedev.log" if settings.log_to_file else None,
    )


def run_async(coro):
    """Run async coroutine in event loop.

    Args:
        coro: Coroutine to run

    Returns:
        Result of coroutine execution
    """
    return asyncio.run(coro)


def open_app(ctx: typer.Context) -> VibeDevApp:
    """Open the database selected by the global options as the ``--as`` user."""
    options = ctx.obj or {}
    vibe = VibeDevApp(DatabaseManager(options.get("database"))).initialize()
    if options.get("acting_as"):
        vibe = vibe.as_user(options["acting_as"])
    return vibe


def require_acting_user(ctx: typer.Context) -> str:
    username = (ctx.obj or {}).get("acting_as")
    if not username:
        console.print("❌ [bold red]This command needs --as USERNAME[/bold red]")
        raise typer.Exit(code=1)
    return username


def report(result: ActionResult, success_message: str) -> dict[str, Any]:
    """Print an action result; exit with code 1 when it failed."""
    if not result.success:
        console.print(f"❌ [bold red]{result.error}[/bold red]")
        raise typer.Exit(code=1)
    console.print(f"✅ [bold green]{success_message}[/bold green]")
    return result.data or {}


async def resolve_project_id(vibe: VibeDevApp, id_or_slug: str) -> str:
    project = await vibe.projects.get_project(id_or_slug)
    if project is None:
        console.print(f"❌ [bold red]Project not found: {id_or_slug}[/bold red]")
        raise typer.Exit(code=1)
    return project["id"]


async def resolve_user_id(vibe: VibeDevApp, username: str) -> str:
    rows = await vibe.gateway.select(UserRow, Filters.where(username=username), limit=1)
    if not rows:
        console.print(f"❌ [bold red]User not found: {username}[/bold red]")
        raise typer.Exit(code=1)
    return rows[0].id


def parse_role(value: str) -> int:
    """Role from a name (admin, moderator, user) or its number."""
    if value.isdigit():
        return int(value)
    try:
        return int(Role[value.upper()])
    except KeyError:
        console.print(f"❌ [bold red]Unknown role: {value}[/bold red]")
        raise typer.Exit(code=1)


# =============================================================================
# Global Options
# =============================================================================


@app.callback()
def main_options(
    ctx: typer.Context,
    database: Optional[Path] = typer.Option(
        None,
        "--db",
        help="SQLite database path (defaults to settings.database_path)",
    ),
    acting_as: Optional[str] = typer.Option(
        None,
        "--as",
        help="Username to act as",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """VibeDev command-line tools."""
    configure_logging(verbose)
    set_request_context(request_id=new_id(), user_id=acting_as)
    ctx.obj = {"database": database, "acting_as": acting_as}


# =============================================================================
# CLI Commands
# =============================================================================


@app.command()
def init(
    ctx: typer.Context,
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Force re-initialization (recreate database)",
    ),
) -> None:
    """Initialize database and seed project categories.

    Examples:
        # Initialize database
        $ vibedev init

        # Force re-initialization
        $ vibedev init --force
    """
    console.print("🏗️  [bold cyan]VibeDev Initialization[/bold cyan]\n")

    db_path = Path((ctx.obj or {}).get("database") or settings.database_path)
    if db_path.exists() and str(db_path) != ":memory:":
        if not force:
            console.print(f"⚠️  Database already exists at {db_path}\nUse --force to recreate it.")
            return
        db_path.unlink()

    try:
        db = DatabaseManager(db_path)
        db.initialize()
        seeded = db.seed_categories()
        db.close()
    except Exception as e:
        console.print(f"\n❌ [bold red]Initialization failed: {e}[/bold red]")
        raise typer.Exit(code=1)

    console.print(f"✅ Database created at [yellow]{db_path}[/yellow]")
    console.print(f"🏷️  Seeded {seeded} categories")
    console.print("\n✅ [bold green]Initialization complete![/bold green]")


@app.command("add-user")
def add_user(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Unique username"),
    display_name: Optional[str] = typer.Option(None, "--name", help="Display name"),
    role: str = typer.Option("user", "--role", "-r", help="admin, moderator or user"),
) -> None:
    """Create or update a user."""
    data: dict[str, Any] = {"username": username, "role": parse_role(role)}
    if display_name:
        data["display_name"] = display_name

    vibe = open_app(ctx)
    try:
        user = vibe.db.upsert_user(data)
        console.print(f"✅ [bold green]User {user.username} ({Role(user.role).name.lower()})[/bold green]")
    finally:
        vibe.close()


@app.command()
def status(ctx: typer.Context) -> None:
    """Show configuration and platform statistics.

    Examples:
        $ vibedev status
    """
    console.print("📊 [bold cyan]VibeDev Status[/bold cyan]\n")

    vibe = open_app(ctx)
    try:
        config_table = Table(title="Configuration", show_header=False)
        config_table.add_column("Key", style="cyan")
        config_table.add_column("Value", style="yellow")
        config_table.add_row("Environment", settings.environment.value)
        config_table.add_row("Database Path", str(vibe.db.database_path))
        config_table.add_row("Upload Endpoint", settings.upload_endpoint or "-")
        config_table.add_row("Upload Token", settings.redact_token())
        config_table.add_row("Stats Procedure", "on" if settings.stats_procedure_enabled else "off")
        console.print(config_table)
        console.print()

        stats = run_async(vibe.with_identity(StaticIdentity(OPERATOR)).analytics.get_platform_stats())

        stats_table = Table(title="Platform Statistics")
        stats_table.add_column("Metric", style="cyan")
        stats_table.add_column("Count", justify="right", style="green")
        for key, value in stats.items():
            stats_table.add_row(key.replace("_", " ").capitalize(), f"{value:,}")
        console.print(stats_table)
    except VibeDevError as e:
        console.print(f"\n❌ [bold red]Status failed: {e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        vibe.close()


@app.command()
def projects(
    ctx: typer.Context,
    sort: SortMode = typer.Option(SortMode.TRENDING, "--sort", "-s", help="trending, top or newest"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Category key"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Projects to consider"),
) -> None:
    """List projects in listing order."""
    vibe = open_app(ctx)
    try:
        cards = run_async(vibe.projects.fetch_projects_with_sorting(sort, category, limit))
    finally:
        vibe.close()

    table = Table(title=f"Projects ({sort.value})")
    table.add_column("Slug", style="cyan")
    table.add_column("Title")
    table.add_column("Category", style="magenta")
    table.add_column("Likes", justify="right", style="green")
    table.add_column("Created", style="yellow")
    for card in cards:
        table.add_row(card["slug"], card["title"], card["category"], str(card["likes_count"]), card["created_at"])
    console.print(table)


@app.command()
def profile(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Profile username"),
) -> None:
    """Show profile stats and latest projects of a user."""
    vibe = open_app(ctx)

    async def _profile():
        profiles = vibe.profiles
        return await asyncio.gather(
            profiles.get_profile_stats(username),
            profiles.get_user_projects(username),
        )

    try:
        stats, cards = run_async(_profile())
    finally:
        vibe.close()

    console.print(f"👤 [bold cyan]{username}[/bold cyan]")
    console.print(
        f"  • Projects: {stats['projects']}  • Posts: {stats['posts']}"
        f"  • Likes: {stats['likes']}  • Views: {stats['views']}\n"
    )

    table = Table(title="Projects")
    table.add_column("Slug", style="cyan")
    table.add_column("Likes", justify="right", style="green")
    table.add_column("Views", justify="right", style="green")
    table.add_column("Comments", justify="right", style="green")
    for card in cards:
        table.add_row(
            card["slug"], str(card["likes_count"]), str(card["views_count"]), str(card["comments_count"])
        )
    console.print(table)


@app.command()
def like(
    ctx: typer.Context,
    project: str = typer.Argument(..., help="Project id or slug"),
) -> None:
    """Toggle the acting user's like on a project."""
    require_acting_user(ctx)
    vibe = open_app(ctx)

    async def _like():
        project_id = await resolve_project_id(vibe, project)
        result = await vibe.likes.toggle_like(project_id, EntityKind.PROJECT)
        status = await vibe.likes.get_like_status(project_id, EntityKind.PROJECT)
        return result, status

    try:
        result, like_status = run_async(_like())
    finally:
        vibe.close()

    data = report(result, "Like toggled")
    console.print(f"❤️  {'Liked' if data['is_liked'] else 'Unliked'} ({like_status['total_likes']} total)")


@app.command()
def view(
    ctx: typer.Context,
    project: str = typer.Argument(..., help="Project id or slug"),
    session_id: Optional[str] = typer.Option(None, "--session", help="Viewer session id"),
) -> None:
    """Record a view of a project."""
    vibe = open_app(ctx)

    async def _view():
        project_id = await resolve_project_id(vibe, project)
        user = await vibe.identity.current_user()
        await vibe.views.record_view(EntityKind.PROJECT, project_id, session_id, user.id if user else None)
        return await vibe.views.count_views(EntityKind.PROJECT, project_id)

    try:
        total = run_async(_view())
    finally:
        vibe.close()
    console.print(f"👀 {total} views")


@app.command()
def feature(
    ctx: typer.Context,
    project: str = typer.Argument(..., help="Project id or slug"),
    off: bool = typer.Option(False, "--off", help="Remove the featured flag"),
) -> None:
    """Feature or unfeature a project."""
    require_acting_user(ctx)
    vibe = open_app(ctx)

    async def _feature():
        project_id = await resolve_project_id(vibe, project)
        return await vibe.admin.toggle_project_featured(project_id, featured=not off)

    try:
        result = run_async(_feature())
    finally:
        vibe.close()
    report(result, f"Project {'unfeatured' if off else 'featured'}")


@app.command("delete-project")
def delete_project(
    ctx: typer.Context,
    project: str = typer.Argument(..., help="Project id or slug"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a project with its comments, likes and views."""
    require_acting_user(ctx)
    if not yes:
        typer.confirm(f"Delete project {project}?", abort=True)
    vibe = open_app(ctx)

    async def _delete():
        project_id = await resolve_project_id(vibe, project)
        return await vibe.projects.delete_project(project_id)

    try:
        result = run_async(_delete())
    finally:
        vibe.close()
    report(result, "Project deleted")


@app.command()
def suspend(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="User to suspend"),
    reason: Optional[str] = typer.Option(None, "--reason", help="Suspension reason"),
    lift: bool = typer.Option(False, "--lift", help="Reinstate instead of suspending"),
) -> None:
    """Suspend or reinstate a user."""
    require_acting_user(ctx)
    vibe = open_app(ctx)

    async def _suspend():
        user_id = await resolve_user_id(vibe, username)
        if lift:
            return await vibe.admin.unsuspend_user(user_id)
        return await vibe.admin.suspend_user(user_id, reason)

    try:
        result = run_async(_suspend())
    finally:
        vibe.close()
    report(result, f"User {username} {'reinstated' if lift else 'suspended'}")


@app.command("set-role")
def set_role(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="User to change"),
    role: str = typer.Argument(..., help="admin, moderator, user or 0-2"),
) -> None:
    """Change a user's role."""
    require_acting_user(ctx)
    new_role = parse_role(role)
    vibe = open_app(ctx)

    async def _set_role():
        user_id = await resolve_user_id(vibe, username)
        return await vibe.admin.update_user_role(user_id, new_role)

    try:
        result = run_async(_set_role())
    finally:
        vibe.close()
    report(result, f"Role of {username} updated")


@app.command()
def metrics() -> None:
    """Print metrics in Prometheus text format."""
    console.print(generate_metrics_output().decode("utf-8"), highlight=False, markup=False)


def main() -> None:
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
