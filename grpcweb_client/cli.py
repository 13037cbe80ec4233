"""Command-line interface for calling gRPC-Web endpoints.

Sends one already-serialized request message and prints the raw response
messages, so it works without generated stubs.

Usage::

    grpcweb-client call https://api.example.com/helloworld.Greeter/SayHello --data 0a05776f726c64
    grpcweb-client call URL --format binary --data-file request.bin -H "authorization: Bearer x"

"""

from __future__ import annotations

import base64
import json
import logging
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any

import typer

from grpcweb_client._client import GrpcWebClient, MethodInfo
from grpcweb_client._common import GrpcWebError
from grpcweb_client._encoding import WireFormat
from grpcweb_client._transport import HttpxRequestor
from grpcweb_client.logging_utils import configure_logging
from grpcweb_client.status import RpcStatus

app = typer.Typer(
    name="grpcweb-client",
    help="CLI client for gRPC-Web endpoints.",
    add_completion=False,
    no_args_is_help=True,
)


class LogFormat(StrEnum):
    """Log output format."""

    text = "text"
    json = "json"


@app.callback()
def _main() -> None:
    """Call gRPC-Web methods from the command line."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_requestor(timeout: float | None) -> HttpxRequestor:
    """Create the requestor used by ``call``."""
    return HttpxRequestor(timeout=timeout)


def _parse_headers(values: list[str]) -> dict[str, str]:
    """Parse ``name: value`` header options.

    Raises:
        typer.BadParameter: If a value has no colon.

    """
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected 'name: value', got: {raw}")
        headers[name.strip()] = value.strip()
    return headers


def _read_payload(data: str | None, data_file: Path | None) -> bytes:
    """Return the request payload from ``--data`` (hex) or ``--data-file``."""
    if data is not None and data_file is not None:
        raise typer.BadParameter("--data and --data-file are mutually exclusive")
    if data_file is not None:
        return data_file.read_bytes()
    if data is None:
        return b""
    try:
        return bytes.fromhex(data)
    except ValueError:
        raise typer.BadParameter(f"--data must be hex, got: {data}") from None


def _emit_error(e: GrpcWebError) -> None:
    """Write a client error to stderr as JSON."""
    err: dict[str, object] = {"type": type(e).__name__, "message": e.message}
    if e.code is not None:
        err["code"] = e.code
    typer.echo(json.dumps({"error": err}), err=True)


# ---------------------------------------------------------------------------
# call command
# ---------------------------------------------------------------------------


@app.command()
def call(
    url: Annotated[str, typer.Argument(help="Full method URL, e.g. https://host/pkg.Service/Method")],
    wire_format: Annotated[WireFormat, typer.Option("--format", "-f", help="Wire format")] = WireFormat.TEXT,
    data: Annotated[str | None, typer.Option("--data", "-d", help="Request payload as hex")] = None,
    data_file: Annotated[
        Path | None, typer.Option("--data-file", exists=True, dir_okay=False, help="Request payload file")
    ] = None,
    header: Annotated[list[str] | None, typer.Option("--header", "-H", help="Extra header 'name: value'")] = None,
    timeout: Annotated[float | None, typer.Option("--timeout", "-t", help="Request timeout in seconds")] = None,
    log_level: Annotated[str, typer.Option("--log-level", help="Log level for grpcweb_client loggers")] = "WARNING",
    log_format: Annotated[LogFormat, typer.Option("--log-format", help="Log output format")] = LogFormat.text,
) -> None:
    """Send one request and print each response message and the final status."""
    payload = _read_payload(data, data_file)
    metadata = _parse_headers(header or [])
    package_logger = logging.getLogger("grpcweb_client")
    previous_level = package_logger.level
    try:
        handler = configure_logging(log_level, json_output=log_format == LogFormat.json)
    except ValueError:
        raise typer.BadParameter(f"Unknown log level: {log_level}") from None

    outcome: list[RpcStatus | GrpcWebError] = []

    def _on_result(error: RpcStatus | GrpcWebError | None, message: Any) -> None:
        if error is None:
            typer.echo(json.dumps({"message": base64.b64encode(message).decode("ascii")}))
        else:
            outcome.append(error)

    try:
        with _build_requestor(timeout) as requestor:
            client = GrpcWebClient(requestor, format=wire_format)
            client.rpc_call(url, payload, metadata, MethodInfo(response_deserializer=bytes, name=url), _on_result)
    finally:
        package_logger.removeHandler(handler)
        package_logger.setLevel(previous_level)

    if not outcome:
        typer.echo(json.dumps({"error": {"type": "ProtocolError", "message": "no terminal status"}}), err=True)
        raise typer.Exit(1)
    terminal = outcome[0]
    if isinstance(terminal, GrpcWebError):
        _emit_error(terminal)
        raise typer.Exit(1)
    typer.echo(json.dumps({"status": {"code": terminal.code, "message": terminal.message}}))
    if not terminal.ok:
        raise typer.Exit(1)


def main() -> None:
    """Console script entry point."""
    app()
