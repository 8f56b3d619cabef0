"""homeconfig CLI - signed access to the configuration service."""

import asyncio
import json
import sys
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any, NoReturn, ParamSpec, TypeVar

import click
from rich.console import Console
from rich.table import Table

from homeconfig.common.settings import ConfigurationError, Settings, get_settings
from homeconfig.common.signing import RequestSigner, canonical_body
from homeconfig.editor.config_client import ConfigServiceClient, ConfigServiceError
from homeconfig.editor.transfer import ConfigImportError, export_config, load_config_file

console = Console()

P = ParamSpec("P")
R = TypeVar("R")


def async_command(f: Callable[P, Coroutine[Any, Any, R]]) -> Callable[P, R]:
    """Decorator to run async commands."""

    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return asyncio.run(f(*args, **kwargs))

    wrapper.__name__ = f.__name__
    wrapper.__doc__ = f.__doc__
    return wrapper


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


def _client(ctx: click.Context) -> ConfigServiceClient:
    settings: Settings = ctx.obj["settings"]
    try:
        return ConfigServiceClient(settings)
    except ConfigurationError as exc:
        _fail(str(exc))


def _user_id(ctx: click.Context) -> str:
    user_id = ctx.obj.get("user_id")
    if not user_id:
        _fail("--user-id is required for this command")
    return user_id


@click.group()
@click.option(
    "--service-url",
    default=None,
    help="Configuration service base URL",
)
@click.option(
    "--user-id",
    envvar="HOMECONFIG_USER_ID",
    default=None,
    help="Caller identity sent as X-User-Id",
)
@click.pass_context
def cli(ctx: click.Context, service_url: str | None, user_id: str | None) -> None:
    """homeconfig CLI - Manage home screen configurations."""
    settings = get_settings()
    if service_url:
        settings = settings.model_copy(update={"config_service_url": service_url})

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["user_id"] = user_id


# === Service ===


@cli.command("serve")
@click.option("--host", default=None, help="Bind host (default from settings)")
@click.option("--port", type=int, default=None, help="Bind port (default from settings)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the configuration service."""
    import uvicorn

    from homeconfig.common.logging import setup_logging
    from homeconfig.configservice.main import create_app

    settings: Settings = ctx.obj["settings"]
    setup_logging(settings.log_level, json_format=settings.log_json)
    try:
        app = create_app(settings)
    except ConfigurationError as exc:
        _fail(str(exc))

    uvicorn.run(
        app,
        host=host or settings.service_host,
        port=port or settings.service_port,
        log_level=settings.log_level.lower(),
    )


@cli.command("sign")
@click.option("--method", "-m", default="GET", show_default=True, help="HTTP method")
@click.option("--path", "-p", required=True, help="Request path, e.g. /api/configurations")
@click.option("--body", "-b", default=None, help="JSON body (compacted before signing)")
@click.option("--body-file", type=click.Path(dir_okay=False), help="Read JSON body from a file")
@click.option("--as-json", is_flag=True, help="Print headers as a JSON object")
@click.pass_context
def sign_cmd(
    ctx: click.Context,
    method: str,
    path: str,
    body: str | None,
    body_file: str | None,
    as_json: bool,
) -> None:
    """Print the auth headers for a single request."""
    settings: Settings = ctx.obj["settings"]
    user_id = _user_id(ctx)

    if body_file:
        body = Path(body_file).read_text(encoding="utf-8")

    body_text = ""
    if body:
        try:
            body_text = canonical_body(json.loads(body))
        except json.JSONDecodeError as exc:
            _fail(f"Body is not valid JSON: {exc.msg}")

    try:
        signer = RequestSigner(settings.signing_credentials())
    except ConfigurationError as exc:
        _fail(str(exc))

    headers = signer.headers(user_id, method.upper(), path, body_text)

    if as_json:
        click.echo(json.dumps(headers, indent=2))
        return

    table = Table(title=f"{method.upper()} {path}")
    table.add_column("Header", style="cyan")
    table.add_column("Value", style="green")
    for name, value in headers.items():
        table.add_row(name, value)
    console.print(table)
    if body_text:
        console.print(f"Signed body: {body_text}")


# === Configurations ===


@cli.command("list")
@click.pass_context
@async_command
async def list_configs(ctx: click.Context) -> None:
    """List configurations owned by the user."""
    user_id = _user_id(ctx)
    async with _client(ctx) as client:
        try:
            configs = await client.list_configs(user_id)
        except ConfigServiceError as exc:
            _fail(str(exc))

    if not configs:
        console.print("[yellow]No configurations[/yellow]")
        return

    table = Table(title=f"Configurations for {user_id}")
    table.add_column("ID", style="cyan")
    table.add_column("Updated", style="green")
    table.add_column("Title")
    table.add_column("Images", justify="right")

    for config in configs:
        data = config.get("data", {})
        table.add_row(
            config.get("id", ""),
            config.get("updatedAt", ""),
            data.get("textSection", {}).get("title", ""),
            str(len(data.get("carousel", {}).get("images", []))),
        )

    console.print(table)


@cli.command("show")
@click.option("--id", "config_id", required=True, help="Configuration ID")
@click.pass_context
@async_command
async def show_config(ctx: click.Context, config_id: str) -> None:
    """Show one configuration."""
    user_id = _user_id(ctx)
    async with _client(ctx) as client:
        try:
            config = await client.get_config(user_id, config_id)
        except ConfigServiceError as exc:
            _fail(str(exc))

    if config is None:
        _fail(f"Configuration {config_id} not found")
    console.print_json(json.dumps(config))


@cli.command("export")
@click.option("--id", "config_id", required=True, help="Configuration ID")
@click.option("--output", "-o", help="Output file (default: stdout)")
@click.pass_context
@async_command
async def export_cmd(ctx: click.Context, config_id: str, output: str | None) -> None:
    """Export a configuration to JSON."""
    user_id = _user_id(ctx)
    async with _client(ctx) as client:
        try:
            config = await client.get_config(user_id, config_id)
        except ConfigServiceError as exc:
            _fail(str(exc))

    if config is None:
        _fail(f"Configuration {config_id} not found")

    document = export_config(config)
    if output:
        Path(output).write_text(document, encoding="utf-8")
        console.print(f"[green]Configuration exported to: {output}[/green]")
    else:
        click.echo(document, nl=False)


@cli.command("import")
@click.option("--file", "-f", "file_path", required=True, help="JSON file to import")
@click.option("--id", "config_id", default=None, help="Replace this configuration instead of creating")
@click.pass_context
@async_command
async def import_cmd(ctx: click.Context, file_path: str, config_id: str | None) -> None:
    """Validate a JSON file and store it."""
    user_id = _user_id(ctx)
    try:
        data = load_config_file(file_path)
    except ConfigImportError as exc:
        _fail(str(exc))

    async with _client(ctx) as client:
        try:
            if config_id:
                stored = await client.update_config(user_id, config_id, data)
            else:
                stored = await client.create_config(user_id, data)
        except ConfigServiceError as exc:
            _fail(str(exc))

    console.print(f"[green]Configuration {stored.get('id')} saved[/green]")


@cli.command("delete")
@click.option("--id", "config_id", required=True, help="Configuration ID")
@click.pass_context
@async_command
async def delete_cmd(ctx: click.Context, config_id: str) -> None:
    """Delete a configuration."""
    user_id = _user_id(ctx)
    async with _client(ctx) as client:
        try:
            deleted = await client.delete_config(user_id, config_id)
        except ConfigServiceError as exc:
            _fail(str(exc))

    if not deleted:
        _fail(f"Configuration {config_id} not found")
    console.print(f"[green]Configuration {config_id} deleted[/green]")


def main() -> None:
    """CLI entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
