"""CLI commands for running API definitions and templates."""

import json
import logging
import sys
from pathlib import Path

import click
import structlog

from src.api.executor import execute
from src.api.loader import normalize_data_type
from src.api.models import Definition, DefinitionConfig, parse_duration
from src.api.registry import ApiRegistry
from src.errors import ApiRelayError, UnsuccessfulStatusError
from src.observability.logging import configure_logging, level_from_name
from src.settings import AppSettings, get_settings
from src.transport.models import TransportResponse


logger = structlog.get_logger()

DEFAULT_TEMPLATE_FILE = Path("./configs/apis.yaml")
DEFAULT_CLI_TIMEOUT = "30s"
ADHOC_DEFINITION_NAME = "cli-tools-api"
OUTPUT_SEPARATOR = "-" * 32


def _setup(ctx: click.Context) -> AppSettings:
    """Configure logging from the group options and return the settings."""
    settings: AppSettings = ctx.obj["settings"]
    level = logging.DEBUG if ctx.obj["verbose"] else level_from_name(settings.log_level)
    json_logs = ctx.obj["json_logs"]
    if json_logs is None:
        json_logs = settings.json_logs
    configure_logging(level=level, json_format=json_logs)
    return settings


def _parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    """Turn repeated ``-H "Key: Value"`` options into a header mapping."""
    headers: dict[str, str] = {}
    for value in values:
        key, sep, content = value.partition(":")
        if not sep or not key.strip():
            msg = f"expected 'Key: Value', got {value!r}"
            raise click.BadParameter(msg, param_hint="'-H' / '--header'")
        headers[key.strip()] = content.strip()
    return headers


def _parse_values(values: str) -> dict[str, str]:
    """Decode the ``-v`` JSON object of template variables."""
    if not values:
        return {}
    try:
        decoded = json.loads(values)
    except json.JSONDecodeError as e:
        msg = f"invalid JSON: {e}"
        raise click.BadParameter(msg, param_hint="'-v' / '--values'") from e
    if not isinstance(decoded, dict) or not all(
        isinstance(v, str) for v in decoded.values()
    ):
        msg = "expected a JSON object of string values"
        raise click.BadParameter(msg, param_hint="'-v' / '--values'")
    return decoded


def _read_data_file(path: Path) -> tuple[str, bytes]:
    """Read a yaml/json data file, returning its data type and content."""
    data_type = normalize_data_type(path.suffix.lstrip("."))
    return data_type, path.read_bytes()


def _echo_response(response: TransportResponse) -> None:
    click.echo(f"Status: {response.status_code}")
    click.echo(f"Content-Type: {response.content_type}")
    click.echo(OUTPUT_SEPARATOR)
    click.echo(response.text)
    click.echo(OUTPUT_SEPARATOR)


def _run_definition(settings: AppSettings, definition: Definition) -> None:
    """Execute a parsed definition and print the outcome.

    Exits with status 1 on any relay error.
    """
    transport = settings.build_transport(retry=not definition.uses_fallback)
    try:
        response = execute(definition, transport=transport)
    except UnsuccessfulStatusError as e:
        _echo_response(e.response)
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    except ApiRelayError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    _echo_response(response)


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-V", is_flag=True, help="Enable debug logging.")
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default: API_RELAY_JSON_LOGS or false).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool | None) -> None:
    """HTTP API relay CLI."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["json_logs"] = json_logs
    ctx.obj["settings"] = get_settings()


@cli.command()
@click.argument("url")
@click.option("--method", "-X", default="GET", help="HTTP method (GET, POST, etc.).")
@click.option(
    "--header",
    "-H",
    "headers",
    multiple=True,
    help='HTTP header as "Key: Value" (repeatable).',
)
@click.option("--data", "-d", default="", help="HTTP request body.")
@click.option(
    "--timeout",
    "-t",
    default=DEFAULT_CLI_TIMEOUT,
    help="Request timeout, e.g. 30s, 500ms, 1m (default: 30s).",
)
@click.pass_context
def api(  # noqa: PLR0913
    ctx: click.Context,
    url: str,
    method: str,
    headers: tuple[str, ...],
    data: str,
    timeout: str,
) -> None:
    """Send an ad-hoc request to URL.

    \b
    Examples:
      api-relay api https://httpbin.org/get -H "Accept: application/json"
      api-relay api https://httpbin.org/post -X POST -d '{"name": "John"}'
    """
    settings = _setup(ctx)
    try:
        seconds = parse_duration(timeout)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'-t' / '--timeout'") from e

    try:
        definition = Definition(
            name=ADHOC_DEFINITION_NAME,
            method=method,
            url=url,
            headers=_parse_headers(headers),
            body=data,
            config=DefinitionConfig(timeout=max(seconds, 0.0)),
        ).parse()
    except ApiRelayError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    logger.info(
        "cli_api_started",
        component="cli",
        method=definition.method,
        timeout=definition.config.timeout,
    )
    _run_definition(settings, definition)


@cli.command("api-run")
@click.argument("name")
@click.option(
    "--file",
    "-f",
    "file_path",
    default=DEFAULT_TEMPLATE_FILE,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Definitions file, yaml or json.",
)
@click.pass_context
def api_run(ctx: click.Context, name: str, file_path: Path) -> None:
    """Load definitions from a file and run the one called NAME."""
    settings = _setup(ctx)
    registry = ApiRegistry()
    try:
        data_type, data = _read_data_file(file_path)
        count = registry.register_definition_data(data_type, data)
        definition = registry.get_definition(name)
    except ApiRelayError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    logger.info(
        "cli_api_run_started",
        component="cli",
        definition=name,
        file=str(file_path),
        registered=count,
    )
    _run_definition(settings, definition)


@cli.command("api-template")
@click.argument("name")
@click.option(
    "--template",
    "-t",
    "template_path",
    default=DEFAULT_TEMPLATE_FILE,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Template file, yaml or json.",
)
@click.option(
    "--values",
    "-v",
    default="",
    help="Template variables as a JSON object.",
)
@click.pass_context
def api_template(
    ctx: click.Context, name: str, template_path: Path, values: str
) -> None:
    """Render the template called NAME and run it.

    \b
    Examples:
      api-relay api-template eip
      api-relay api-template geo -t ./configs/apis.yaml
      api-relay api-template weather -v '{"city": "beijing", "lang": "zh"}'
    """
    settings = _setup(ctx)
    variables = _parse_values(values)
    registry = ApiRegistry()
    try:
        data_type, data = _read_data_file(template_path)
        registry.register_template_data(data_type, data)
        definition = registry.get_template(name).render(variables)
    except ApiRelayError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    logger.info(
        "cli_api_template_started",
        component="cli",
        template=name,
        file=str(template_path),
        definition=definition.name,
    )
    _run_definition(settings, definition)
