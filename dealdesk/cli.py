"""DealDesk CLI - bootstrap and tenant administration."""

from __future__ import annotations

import asyncio
import secrets

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .bootstrap import bootstrap
from .database import async_session_factory, engine
from .errors import DomainError
from .logging_setup import configure_logging
from .services import auth_svc, limit_svc, organization_svc, plan_svc

app = typer.Typer(
    name="dealdesk",
    help="DealDesk CRM administration - bootstrap, plans and organizations",
    no_args_is_help=True,
)
console = Console()


def _run(coro):
    try:
        return asyncio.run(coro)
    except DomainError as exc:
        console.print(f"[red]{exc.kind}:[/red] {exc.message}")
        raise typer.Exit(code=1) from exc


@app.command()
def init():
    """Create tables (SQLite) and the built-in plans."""
    configure_logging()

    async def _init():
        async with async_session_factory() as db:
            await bootstrap(engine, db)
            return await plan_svc.list_plans(db)

    plans = _run(_init())
    console.print(Panel(f"{len(plans)} plans available", title="DealDesk initialized"))


@app.command()
def plans():
    """List subscription plans and their quotas."""

    async def _plans():
        async with async_session_factory() as db:
            return await plan_svc.list_plans(db)

    table = Table(title="Plans")
    table.add_column("Name", style="cyan")
    table.add_column("Price", justify="right")
    for column in ("Users", "Deals", "Pipelines", "Contacts", "Automations"):
        table.add_column(column, justify="right")
    table.add_column("Features", style="green")

    for plan in _run(_plans()):
        table.add_row(
            plan.name,
            f"{plan.price:.2f}",
            *(
                "∞" if value == -1 else str(value)
                for value in (
                    plan.max_users,
                    plan.max_deals,
                    plan.max_pipelines,
                    plan.max_contacts,
                    plan.max_automations,
                )
            ),
            ", ".join(plan.features or []),
        )
    console.print(table)


@app.command("create-org")
def create_org(
    name: str,
    owner_email: str = typer.Option(..., "--owner-email", help="Owner account email"),
    owner_name: str = typer.Option("", "--owner-name", help="Name for a new owner account"),
):
    """Create an organization; the owner account is created if missing."""

    async def _create():
        async with async_session_factory() as db:
            user = await auth_svc.get_user_by_email(db, owner_email)
            password = None
            if user is None:
                password = secrets.token_urlsafe(12)
                user = await auth_svc.register_user(
                    db, owner_email, owner_name or owner_email.split("@")[0], password
                )
            org = await organization_svc.create_organization(db, user.id, name)
            return org, password

    org, password = _run(_create())
    lines = [f"Slug: [bold]{org.slug}[/bold]", f"Plan: {org.plan.name}", f"Owner: {owner_email}"]
    if password:
        lines.append(f"Temporary password: [yellow]{password}[/yellow]")
    console.print(Panel("\n".join(lines), title=f"Organization {org.name}"))


@app.command("set-plan")
def set_plan(slug: str, plan: str):
    """Move an organization to another plan."""

    async def _set():
        async with async_session_factory() as db:
            org = await organization_svc.get_by_slug(db, slug)
            return await organization_svc.change_plan(db, org.id, plan)

    org = _run(_set())
    console.print(f"[green]{org.slug}[/green] is now on plan [bold]{org.plan.name}[/bold]")


@app.command()
def usage(slug: str):
    """Show quota usage for an organization."""

    async def _usage():
        async with async_session_factory() as db:
            org = await organization_svc.get_by_slug(db, slug)
            return org, await limit_svc.get_usage(db, org.id)

    org, rows = _run(_usage())
    table = Table(title=f"Usage - {org.name} ({org.plan.name})")
    table.add_column("Resource", style="cyan")
    table.add_column("Current", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Used", justify="right")
    for resource, row in rows.items():
        limit = "∞" if row["limit"] == -1 else str(row["limit"])
        style = "red" if row["percentage"] >= 100 else "green"
        table.add_row(
            resource, str(row["current"]), limit, f"[{style}]{row['percentage']}%[/{style}]"
        )
    console.print(table)


@app.command()
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Run the DealDesk API."""
    console.print(f"[bold cyan]Starting DealDesk at http://{host}:{port}[/bold cyan]")
    uvicorn.run("dealdesk.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
