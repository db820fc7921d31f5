"""Upload forms CLI - form administration and the web server."""

import asyncio
import json
import uuid
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="uploadforms",
    help="Upload forms: custom file-upload forms mirrored to Google Sheets",
    no_args_is_help=True,
)
console = Console()

forms_app = typer.Typer(help="Form management")
app.add_typer(forms_app, name="forms")

STATUS_STYLES = {"Published": "green", "Draft": "yellow", "Expired": "red"}


def _parse_id(form_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(form_id)
    except ValueError:
        console.print(f"[red]Invalid form ID: {form_id}[/red]")
        raise typer.Exit(1)


def _run(coro) -> Any:
    return asyncio.run(coro)


async def _with_db(fn):
    from . import database

    await database.create_tables()
    try:
        async with database.async_session_factory() as db:
            return await fn(db)
    finally:
        await database.engine.dispose()


def _require_form(form):
    if not form:
        console.print("[red]Form not found[/red]")
        raise typer.Exit(1)
    return form


@forms_app.command("list")
def forms_list(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """List all forms, newest first."""
    from .schemas.form import FormResponse
    from .services import form_svc

    async def _list(db):
        return [FormResponse.from_form(f) for f in await form_svc.list_forms(db)]

    forms = _run(_with_db(_list))

    if json_output:
        console.print_json(json.dumps([f.model_dump(mode="json") for f in forms]))
        return

    table = Table(title=f"Forms ({len(forms)})")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Status")
    table.add_column("Accepting")
    table.add_column("Protection")
    for f in forms:
        style = STATUS_STYLES.get(f.status, "white")
        table.add_row(
            str(f.id),
            f.title or "-",
            f"[{style}]{f.status}[/{style}]",
            "yes" if f.is_accepting_responses else "no",
            f.access_protection_type,
        )
    console.print(table)


@forms_app.command("publish")
def forms_publish(form_id: str = typer.Argument(..., help="Form ID")):
    """Validate and publish a form."""
    from .services import form_svc
    from .services.publish_rules import validate_for_publish

    parsed = _parse_id(form_id)

    async def _publish(db):
        form = _require_form(await form_svc.get_form(db, parsed))
        errors = validate_for_publish(form)
        if not errors:
            await form_svc.publish_form(db, parsed)
        return errors

    errors = _run(_with_db(_publish))
    if errors:
        console.print("[red]Cannot publish:[/red]")
        for message in errors:
            console.print(f"  - {message}")
        raise typer.Exit(1)
    console.print(f"[green]Published {form_id}[/green]")


@forms_app.command("toggle")
def forms_toggle(form_id: str = typer.Argument(..., help="Form ID")):
    """Flip whether a published form accepts responses."""
    from .services import form_svc
    from .services.form_status import is_expired

    parsed = _parse_id(form_id)

    async def _toggle(db):
        form = _require_form(await form_svc.get_form(db, parsed))
        if not form.is_published:
            return "Form must be published before it can accept responses"
        target = not form.is_accepting_responses
        if target and is_expired(form):
            return "This form has expired"
        await form_svc.update_form(db, parsed, is_accepting_responses=target)
        return target

    result = _run(_with_db(_toggle))
    if isinstance(result, str):
        console.print(f"[red]{result}[/red]")
        raise typer.Exit(1)
    state = "[green]accepting responses[/green]" if result else "[yellow]closed[/yellow]"
    console.print(f"Form {form_id} is now {state}")


@forms_app.command("delete")
def forms_delete(
    form_id: str = typer.Argument(..., help="Form ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a form and all of its submissions."""
    from .services import form_svc

    parsed = _parse_id(form_id)
    if not yes:
        typer.confirm(f"Delete form {form_id} and its submissions?", abort=True)

    async def _delete(db):
        return await form_svc.delete_form(db, parsed)

    if not _run(_with_db(_delete)):
        console.print("[red]Form not found[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted {form_id}[/green]")


@forms_app.command("enable-responses")
def forms_enable_responses(form_id: str = typer.Argument(..., help="Form ID")):
    """Mark a form published and accepting responses, skipping validation."""
    from .services import form_svc

    parsed = _parse_id(form_id)

    async def _enable(db):
        return await form_svc.publish_form(db, parsed)

    form = _require_form(_run(_with_db(_enable)))
    console.print(f"[green]{form.title} is published and accepting responses[/green]")


@app.command("serve")
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Launch the upload forms web app."""
    import uvicorn

    console.print(f"[bold cyan]Starting Upload Forms at http://{host}:{port}[/bold cyan]")
    uvicorn.run("uploadforms.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
