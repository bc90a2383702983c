"""Command line adapter for the forwarder.

Purpose
-------
Run the forwarding pipeline from a shell: resolve flags and the deployment
environment variables, feed newline-delimited records into a forwarder, and
drain it on exit.

Contents
--------
* :func:`cli` - click group with ``--traceback`` and ``--use-dotenv`` switches.
* ``info`` / ``forward`` subcommands.
* :func:`main` - entry point wrapping :func:`lib_cli_exit_tools.run_cli`.

System Role
-----------
Presentation layer only. It installs a Rich log handler for the process; the
library modules never configure logging themselves.
"""

from __future__ import annotations

import json
import logging
import os
from typing import IO, Iterator, Sequence

import click
import lib_cli_exit_tools
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler

from . import __init__conf__
from . import config as config_module
from .config import DEFAULT_HOST, DEFAULT_QUEUE_MAXSIZE, DEFAULT_RESERVED_FIELDS, DEFAULT_TIMEOUT, DEFAULT_WORKERS, ForwarderConfig, parse_seconds
from .domain.errors import ConstructionFailure
from .domain.events import ForwardEvent
from .runtime import build_forwarder, summary_info

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

logger = logging.getLogger(__name__)


class SecondsParamType(click.ParamType):
    """Seconds option accepting ``none`` or ``0`` for no limit, like the environment loader."""

    name = "seconds"

    def convert(self, value: object, param: click.Parameter | None, ctx: click.Context | None) -> float | None:
        if value is None or isinstance(value, (int, float)):
            return None if not value else float(value)
        try:
            return parse_seconds(str(value), name=param.name if param is not None else self.name)
        except ConstructionFailure as exc:
            self.fail(str(exc), param, ctx)


SECONDS = SecondsParamType()


def _configure_logging(debug: bool) -> None:
    """Route records to stderr through Rich; DEBUG when ``--debug`` is set."""
    root = logging.getLogger()
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        root.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    root.setLevel(logging.DEBUG if debug else logging.INFO)


def iter_records(stream: IO[str]) -> Iterator[tuple[int, ForwardEvent | None]]:
    """Yield ``(line_number, event)`` for each non-blank input line.

    Lines starting with ``{`` must be ``{"fields": {...}, "message": "..."}``
    records; any other line is forwarded as a plain message without fields.
    Malformed records are logged and yielded as ``None``.
    """

    for line_number, raw in enumerate(stream, start=1):
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        if not line.lstrip().startswith("{"):
            yield line_number, ForwardEvent({}, line)
            continue
        try:
            data = json.loads(line)
            if "message" not in data:
                raise ValueError("record has no 'message' key")
            yield line_number, ForwardEvent.from_dict(data)
        except (TypeError, ValueError) as exc:
            logger.error("Skipping malformed record on line %d: %s", line_number, exc)
            yield line_number, None


@click.group(invoke_without_command=True, context_settings=CLICK_CONTEXT_SETTINGS)
@click.version_option(version=__init__conf__.version, prog_name=__init__conf__.shell_command, message="%(version)s")
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python tracebacks on errors.",
)
@click.option(
    "--use-dotenv/--no-use-dotenv",
    default=False,
    help=f"Load environment variables from the nearest .env first (also enabled by {config_module.DOTENV_ENV_VAR}=1).",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool, use_dotenv: bool) -> None:
    """Forward structured log events to a Log Insight ingestion stream."""

    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback

    explicit: bool | None = None
    if ctx.get_parameter_source("use_dotenv") is not ParameterSource.DEFAULT:
        explicit = use_dotenv
    if config_module.should_use_dotenv(explicit=explicit, env_value=os.getenv(config_module.DOTENV_ENV_VAR)):
        config_module.enable_dotenv()

    if ctx.invoked_subcommand is None:
        click.echo(summary_info(), nl=False)


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print package metadata."""

    click.echo(summary_info(), nl=False)


@cli.command("forward", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--insight-server", envvar="INSIGHT_SERVER", default=DEFAULT_HOST, show_default=True, help="Log Insight server address.")
@click.option(
    "--insight-server-port",
    envvar="INSIGHT_SERVER_PORT",
    type=click.IntRange(1, 65535),
    default=443,
    show_default=True,
    help="Log Insight server port.",
)
@click.option("--insight-server-token", envvar="INSIGHT_SERVER_TOKEN", default="", help="Bearer token for the ingestion stream.")
@click.option(
    "--insight-reserved-fields",
    envvar="INSIGHT_RESERVED_FIELDS",
    default=DEFAULT_RESERVED_FIELDS,
    show_default=True,
    help="Comma delimited list of field names renamed to cf_<name>.",
)
@click.option(
    "--insight-has-json-log-msg/--no-insight-has-json-log-msg",
    envvar="INSIGHT_HAS_JSON_LOG_MSG",
    default=False,
    help="Merge keys of JSON log messages into the payload.",
)
@click.option(
    "--concurrent-workers",
    envvar="CONCURRENT_WORKERS",
    type=click.IntRange(min=1),
    default=DEFAULT_WORKERS,
    show_default=True,
    help="Number of concurrent senders pulling events from the queue.",
)
@click.option(
    "--queue-size",
    envvar="INSIGHT_QUEUE_SIZE",
    type=click.IntRange(min=1),
    default=DEFAULT_QUEUE_MAXSIZE,
    show_default=True,
    help="Events buffered before input reading blocks.",
)
@click.option(
    "--skip-ssl-validation/--no-skip-ssl-validation",
    envvar="SKIP_SSL_VALIDATION",
    default=False,
    help="Do not verify the server certificate. Please don't.",
)
@click.option("--noop/--no-noop", envvar="INSIGHT_NOOP", default=False, help="Discard events instead of sending them.")
@click.option("--debug/--no-debug", envvar="DEBUG", default=False, help="Log every POST and its response.")
@click.option(
    "--request-timeout",
    envvar="INSIGHT_REQUEST_TIMEOUT",
    type=SECONDS,
    default=DEFAULT_TIMEOUT,
    show_default=True,
    help="Seconds before a POST is abandoned.",
)
@click.option(
    "--drain-timeout",
    envvar="INSIGHT_DRAIN_TIMEOUT",
    type=SECONDS,
    default=DEFAULT_TIMEOUT,
    show_default=True,
    help="Seconds to wait for queued events on exit.",
)
@click.option(
    "--input",
    "input_stream",
    type=click.File("r", encoding="utf-8", errors="replace"),
    default="-",
    show_default=True,
    help="Newline-delimited records to forward ('-' reads stdin).",
)
def cli_forward(
    *,
    insight_server: str,
    insight_server_port: int,
    insight_server_token: str,
    insight_reserved_fields: str,
    insight_has_json_log_msg: bool,
    concurrent_workers: int,
    queue_size: int,
    skip_ssl_validation: bool,
    noop: bool,
    debug: bool,
    request_timeout: float | None,
    drain_timeout: float | None,
    input_stream: IO[str],
) -> None:
    """Forward records from INPUT and drain the queue before exiting."""

    _configure_logging(debug)
    try:
        settings = ForwarderConfig(
            host=insight_server,
            port=insight_server_port,
            token=insight_server_token,
            reserved_fields=insight_reserved_fields,
            has_json_log_msg=insight_has_json_log_msg,
            workers=concurrent_workers,
            queue_maxsize=queue_size,
            insecure_skip_verify=skip_ssl_validation,
            debug=debug,
            noop=noop,
            request_timeout=request_timeout,
            drain_timeout=drain_timeout,
        )
        forwarder = build_forwarder(settings)
    except ConstructionFailure as exc:
        raise click.UsageError(str(exc)) from exc

    if not forwarder.connect() and not debug:
        forwarder.close()
        raise click.ClickException("Failed connecting to the Log Insight server; check settings and try again")
    logger.info("Connected to Log Insight; forwarding records")

    submitted = skipped = 0
    try:
        for _line_number, event in iter_records(input_stream):
            if event is None:
                skipped += 1
                continue
            if forwarder.submit(event.fields, event.message):
                submitted += 1
    except KeyboardInterrupt:
        logger.warning("Interrupted; stop reading and start draining")
    finally:
        report = forwarder.close(drain_timeout)

    click.echo(
        f"submitted={submitted} skipped={skipped} delivered={report.delivered} "
        f"failed={report.failed} discarded={report.discarded} timed_out={str(report.timed_out).lower()}"
    )


def main(argv: Sequence[str] | None = None, *, restore_traceback: bool = True) -> int:
    """Run the CLI through ``lib_cli_exit_tools`` and return the exit code.

    Parameters
    ----------
    argv:
        Optional argument list; ``None`` consumes ``sys.argv``.
    restore_traceback:
        Reset the traceback preferences changed by ``--traceback`` afterwards
        so embedding hosts keep their own settings.
    """

    previous = (lib_cli_exit_tools.config.traceback, lib_cli_exit_tools.config.traceback_force_color)
    try:
        return lib_cli_exit_tools.run_cli(
            cli,
            argv=list(argv) if argv is not None else None,
            prog_name=__init__conf__.shell_command,
        )
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback, lib_cli_exit_tools.config.traceback_force_color = previous


__all__ = ["cli", "iter_records", "main"]
