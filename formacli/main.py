"""Main entry point for the formacli application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
import typer
from typing_extensions import Annotated

from formacli import __version__
from formacli.core.command_handler import CommandHandler
from formacli.core.services.auth_service import AuthService
from formacli.core.services.resource_service import COLLECTIONS, ResourceService
from formacli.infrastructure.cli.display import ConsoleDisplay
from formacli.infrastructure.config.settings import (
    get_base_url,
    get_config,
    get_credentials_file,
    get_queue_delay,
    get_request_timeout,
    get_retry_policy,
    load_configuration,
)
from formacli.infrastructure.http.api_client import ApiClient
from formacli.infrastructure.monitoring.logger_setup import resolve_log_level, setup_logging
from formacli.infrastructure.resilience.api_retry import ApiRetryService
from formacli.infrastructure.resilience.request_queue import RequestQueueService
from formacli.infrastructure.storage.token_store import FileTokenStore

logger = logging.getLogger(__name__)


def build_http_client(timeout: float) -> httpx.AsyncClient:
    """The HTTP client every request goes through."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=5.0))


# --- Dependency Injection Container (Manual) ---

def create_dependencies(base_url: Optional[str] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one CLI invocation.

    This acts as the Composition Root. Nothing here is a process-wide
    singleton; every object is passed to the ones that need it.
    """
    dependencies: Dict[str, Any] = {}
    timeout = get_request_timeout()

    dependencies['ui'] = ConsoleDisplay()
    dependencies['token_store'] = FileTokenStore(get_credentials_file())
    dependencies['retry_service'] = ApiRetryService(policy=get_retry_policy())
    dependencies['request_queue'] = RequestQueueService(inter_request_delay=get_queue_delay())
    dependencies['api_client'] = ApiClient(
        base_url=base_url or get_base_url(),
        token_store=dependencies['token_store'],
        retry_service=dependencies['retry_service'],
        request_queue=dependencies['request_queue'],
        http_client=build_http_client(timeout),
        timeout=timeout,
    )
    dependencies['auth_service'] = AuthService(dependencies['api_client'])
    dependencies['resource_service'] = ResourceService(dependencies['api_client'])
    dependencies['command_handler'] = CommandHandler(
        auth_service=dependencies['auth_service'],
        resource_service=dependencies['resource_service'],
        ui=dependencies['ui'],
    )
    logger.debug("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="formacli",
    help="Command-line client for the formation-center API, with retries, rate-limit handling and token refresh.",
    add_completion=False,
)


def _deps(ctx: typer.Context) -> Dict[str, Any]:
    if ctx.obj is None:
        ctx.obj = create_dependencies()
    return ctx.obj


def run_async(ctx: typer.Context, command: Callable[[CommandHandler, Dict[str, Any]], Awaitable[bool]]) -> None:
    """Runs one async command, closes the client and maps failure to exit code 1."""
    deps = _deps(ctx)

    async def runner() -> bool:
        try:
            return await command(deps['command_handler'], deps)
        finally:
            await deps['api_client'].aclose()

    if not asyncio.run(runner()):
        raise typer.Exit(code=1)


def _parse_json(raw: str, option: str = "--data") -> Dict[str, Any]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Invalid JSON: {e}", param_hint=option)
    if not isinstance(value, dict):
        raise typer.BadParameter("Expected a JSON object", param_hint=option)
    return value


def _parse_params(pairs: Optional[List[str]]) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'", param_hint="--param")
        params[key] = value
    return params


ResourceArg = Annotated[str, typer.Argument(help=f"One of: {', '.join(COLLECTIONS)}.")]
IdArg = Annotated[str, typer.Argument(help="Record identifier.")]
DataOption = Annotated[str, typer.Option("--data", "-d", help="JSON object body.")]
ParamOption = Annotated[Optional[List[str]], typer.Option("--param", "-q", help="Query parameter as key=value (repeatable).")]


# --- Authentication Commands ---

@app.command()
def login(
    ctx: typer.Context,
    username: Annotated[str, typer.Option("--username", "-u", prompt=True)],
    password: Annotated[str, typer.Option("--password", "-P", prompt=True, hide_input=True)],
):
    """Log in and store the session tokens."""
    run_async(ctx, lambda h, d: h.handle_login({'username': username, 'password': password}))


@app.command()
def register(
    ctx: typer.Context,
    email: Annotated[str, typer.Option("--email", prompt=True)],
    password: Annotated[str, typer.Option("--password", "-P", prompt=True, hide_input=True, confirmation_prompt=True)],
    first_name: Annotated[str, typer.Option("--first-name", prompt=True)],
    last_name: Annotated[str, typer.Option("--last-name", prompt=True)],
    center_name: Annotated[str, typer.Option("--center-name", prompt=True)],
):
    """Create an account and store the session tokens."""
    user_data = {
        'email': email,
        'password': password,
        'firstName': first_name,
        'lastName': last_name,
        'centerName': center_name,
    }
    run_async(ctx, lambda h, d: h.handle_register(user_data))


@app.command()
def logout(ctx: typer.Context):
    """End the session. Local credentials are removed even if the server is unreachable."""
    run_async(ctx, lambda h, d: h.handle_logout())


@app.command()
def profile(ctx: typer.Context):
    """Show the logged-in user's profile."""
    run_async(ctx, lambda h, d: h.handle_profile())


# --- Collection Commands ---

@app.command(name="list")
def list_command(ctx: typer.Context, resource: ResourceArg, param: ParamOption = None):
    """List records of a collection."""
    params = _parse_params(param)
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].list(resource, params), title=resource.capitalize()))


@app.command()
def show(ctx: typer.Context, resource: ResourceArg, resource_id: IdArg):
    """Show one record."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].get(resource, resource_id)))


@app.command()
def create(ctx: typer.Context, resource: ResourceArg, data: DataOption):
    """Create a record from a JSON object."""
    payload = _parse_json(data)
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].create(resource, payload)))


@app.command()
def update(ctx: typer.Context, resource: ResourceArg, resource_id: IdArg, data: DataOption):
    """Update a record with the fields of a JSON object."""
    updates = _parse_json(data)
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].update(resource, resource_id, updates)))


@app.command()
def delete(ctx: typer.Context, resource: ResourceArg, resource_id: IdArg):
    """Delete a record."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].delete(resource, resource_id)))


@app.command()
def search(ctx: typer.Context, query: Annotated[str, typer.Argument(help="Search text.")]):
    """Search candidates."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].search_candidates(query), title="Candidates"))


@app.command(name="formation-stats")
def formation_stats(ctx: typer.Context, formation_id: IdArg):
    """Show enrolment statistics for a formation."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].get_formation_stats(formation_id)))


@app.command()
def receipt(ctx: typer.Context, payment_id: IdArg):
    """Show the receipt of a payment."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].get_payment_receipt(payment_id)))


@app.command(name="certificate-pdf")
def certificate_pdf(ctx: typer.Context, certificate_id: IdArg):
    """Generate the PDF of a certificate."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].generate_certificate_pdf(certificate_id)))


@app.command(name="verify-certificate")
def verify_certificate(ctx: typer.Context, number: Annotated[str, typer.Argument(help="Certificate number.")]):
    """Check a certificate number (no login needed)."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].verify_certificate(number)))


@app.command(name="mark-read")
def mark_read(
    ctx: typer.Context,
    notification_id: Annotated[Optional[str], typer.Argument(help="Notification id; omit with --all.")] = None,
    all_notifications: Annotated[bool, typer.Option("--all", help="Mark every notification as read.")] = False,
):
    """Mark notifications as read."""
    if all_notifications:
        run_async(ctx, lambda h, d: h.run(d['resource_service'].mark_all_notifications_as_read))
    elif notification_id:
        run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].mark_notification_as_read(notification_id)))
    else:
        raise typer.BadParameter("Give a notification id or --all")


# --- Aggregates ---

@app.command()
def dashboard(
    ctx: typer.Context,
    charts: Annotated[Optional[str], typer.Option("--charts", help="Chart data for a range (e.g. 'month').")] = None,
    activity: Annotated[Optional[int], typer.Option("--activity", help="Show the N most recent activities.")] = None,
):
    """Show dashboard statistics, charts or recent activity."""
    if charts:
        run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].get_dashboard_charts(charts)))
    elif activity:
        run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].get_recent_activity(activity), title="Recent activity"))
    else:
        run_async(ctx, lambda h, d: h.run(d['resource_service'].get_dashboard_stats))


@app.command()
def report(
    ctx: typer.Context,
    report_type: Annotated[str, typer.Argument(help="Report type, e.g. 'payments'.")],
    export: Annotated[Optional[str], typer.Option("--export", help="Export format, e.g. 'pdf' or 'csv'.")] = None,
    param: ParamOption = None,
):
    """Generate or export a report."""
    params = _parse_params(param)
    if export:
        run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].export_report(report_type, export, params)))
    else:
        run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].generate_report(report_type, params)))


@app.command()
def settings(
    ctx: typer.Context,
    key: Annotated[Optional[str], typer.Argument(help="Setting key; omit to show all.")] = None,
    value: Annotated[Optional[str], typer.Option("--set", help="New value for KEY.")] = None,
    data: Annotated[Optional[str], typer.Option("--data", "-d", help="JSON object replacing several settings.")] = None,
):
    """Show or change settings."""
    if data is not None:
        updates = _parse_json(data)
        run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].update_settings(updates)))
    elif key and value is not None:
        run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].set_setting(key, value)))
    elif key:
        run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].get_setting(key)))
    else:
        run_async(ctx, lambda h, d: h.run(d['resource_service'].get_settings, title="Settings"))


# --- Files, Sync & Backup ---

@app.command()
def upload(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True)],
    file_type: Annotated[str, typer.Option("--type", help="Document type stored with the file.")] = "document",
):
    """Upload a file."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].upload_file(file, file_type)))


@app.command(name="delete-file")
def delete_file(ctx: typer.Context, file_id: IdArg):
    """Delete an uploaded file."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].delete_file(file_id)))


@app.command()
def sync(
    ctx: typer.Context,
    status: Annotated[bool, typer.Option("--status", help="Only show the sync status.")] = False,
):
    """Trigger a data sync, or show its status."""
    if status:
        run_async(ctx, lambda h, d: h.run(d['resource_service'].get_sync_status))
    else:
        run_async(ctx, lambda h, d: h.run(d['resource_service'].sync_data))


@app.command()
def backup(ctx: typer.Context):
    """Create a backup on the server."""
    run_async(ctx, lambda h, d: h.run(d['resource_service'].backup_data))


@app.command()
def restore(ctx: typer.Context, backup_id: IdArg):
    """Restore a backup."""
    run_async(ctx, lambda h, d: h.run(lambda: d['resource_service'].restore_data(backup_id)))


# --- Service Info & Raw Access ---

@app.command()
def health(ctx: typer.Context):
    """Check that the API is up."""
    run_async(ctx, lambda h, d: h.run(d['resource_service'].health_check))


@app.command()
def version(ctx: typer.Context):
    """Show the client and API versions."""
    typer.echo(f"formacli {__version__}")
    run_async(ctx, lambda h, d: h.run(d['resource_service'].get_api_version))


@app.command()
def get(
    ctx: typer.Context,
    endpoint: Annotated[str, typer.Argument(help="Path below the base URL, e.g. /formations/3/capacity.")],
    param: ParamOption = None,
):
    """Send an authenticated GET to any endpoint."""
    params = _parse_params(param)
    run_async(ctx, lambda h, d: h.run(lambda: d['api_client'].request(endpoint, params=params)))


@app.callback()
def main_callback(
    ctx: typer.Context,
    base_url: Annotated[Optional[str], typer.Option("--base-url", envvar="FORMACLI_BASE_URL", help="API root URL.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log retries and requests.")] = False,
):
    """Formation-center API client."""
    load_configuration()
    log_level = resolve_log_level('DEBUG' if verbose else get_config('logging.level'))
    setup_logging(log_level=log_level, log_file=get_config('logging.file'))
    ctx.obj = create_dependencies(base_url=base_url)


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
