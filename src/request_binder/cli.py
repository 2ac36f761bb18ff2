"""CLI adapter for ``request_binder`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let developers try a record declaration against a hand-written request
without standing up a web server: ``bind`` fills a dataclass and prints it as
JSON, ``presence`` answers which dotted keys a JSON body carried.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command that wires global traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_bind` – binds a request described by options into ``module:Class``.
* :func:`cli_presence` – evaluates dotted keys against a payload.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer. It builds a
:class:`~request_binder.adapters.request.default.Request`, calls the
composition root (:class:`~request_binder.core.Binder`) and leaves exit codes
to ``lib_cli_exit_tools``.
"""

from __future__ import annotations

import dataclasses
import importlib
import json
import sys
from importlib import metadata
from pathlib import Path
from typing import Any, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.decoders.structured import JSONBodyDecoder
from .adapters.request.default import Request
from .core import Binder
from .domain.kinds import new_record
from .domain.presence import PresenceTable

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000

METHOD_CHOICES: Final[tuple[str, ...]] = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


def _resolve_version() -> str:
    """Return the installed package version, or ``"0.0.0"`` when not installed."""

    try:
        return metadata.version("request_binder")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Bind HTTP request data into dataclass records",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="request_binder",
    message="request_binder version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("request_binder")
    except metadata.PackageNotFoundError:
        click.echo("request_binder (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'request_binder')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("bind", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("target")
@click.option(
    "--method",
    default="GET",
    show_default=True,
    type=click.Choice(METHOD_CHOICES, case_sensitive=False),
    help="HTTP method of the simulated request",
)
@click.option("--url", default="/", show_default=True, help="Request URL including the query string")
@click.option("--param", "params", multiple=True, help="Routed path parameter as name=value (repeatable)")
@click.option("--header", "headers", multiple=True, help='Request header as "Name: value" (repeatable)')
@click.option("--body", default=None, help="Request body text")
@click.option(
    "--body-file",
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
    default=None,
    help="Read the request body from a file",
)
@click.option("--content-type", default=None, help="Content type (defaults to the Content-Type header)")
@click.option("--validate/--no-validate", default=True, show_default=True, help="Run tag validation after binding")
@click.option(
    "--fallback/--no-fallback",
    default=False,
    show_default=True,
    help="Delegate to the default binder for targets without sections",
)
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
def cli_bind(
    target: str,
    method: str,
    url: str,
    params: Sequence[str],
    headers: Sequence[str],
    body: Optional[str],
    body_file: Optional[Path],
    content_type: Optional[str],
    validate: bool,
    fallback: bool,
    indent: Optional[int],
) -> None:
    """Bind a simulated request into ``TARGET`` (``module:DataclassName``) and print it as JSON.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["bind", "request_binder.domain.presence:PresenceTable", "--fallback"])
    >>> result.exit_code
    0
    """

    cls = _load_target(target)
    request = Request(
        method,
        url=url,
        path_params=[_split_pair(item, "=", "--param") for item in params],
        headers=_collect_headers(headers),
        body=_read_body(body, body_file),
        content_type=content_type,
    )
    instance = new_record(cls) if dataclasses.is_dataclass(cls) else cls()
    binder = Binder(fallback_to_default=fallback) if validate else Binder(validator=None, fallback_to_default=fallback)
    binder.bind(instance, request)
    click.echo(json.dumps(_jsonable(instance), indent=indent, default=str))


@cli.command("presence", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("keys", nargs=-1)
@click.option("--body", default=None, help="JSON body text")
@click.option(
    "--body-file",
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
    default=None,
    help="Read the JSON body from a file",
)
def cli_presence(keys: Sequence[str], body: Optional[str], body_file: Optional[Path]) -> None:
    """Report which dotted KEYS the JSON body carried.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["presence", "--body", '{"a": {"b": 1}}', "a.b", "a.c"])
    >>> result.output.strip()
    '{"a.b": true, "a.c": false}'
    """

    data = JSONBodyDecoder().decode(_read_body(body, body_file))
    table = PresenceTable.from_payload(data) if isinstance(data, dict) else PresenceTable()
    click.echo(json.dumps({key: table.exists(key) for key in keys}))


def _load_target(target: str) -> type:
    """Import ``module:Name`` and return the class it names."""

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise click.BadParameter("TARGET must look like module:ClassName", param_hint="TARGET")
    module = importlib.import_module(module_name)
    try:
        found = getattr(module, attribute)
    except AttributeError as exc:
        raise click.BadParameter(f"{module_name} has no attribute {attribute!r}", param_hint="TARGET") from exc
    if not isinstance(found, type):
        raise click.BadParameter(f"{target} is not a class", param_hint="TARGET")
    return found


def _split_pair(item: str, separator: str, hint: str) -> tuple[str, str]:
    name, found, value = item.partition(separator)
    if not found or not name.strip():
        raise click.BadParameter(f"expected name{separator}value, got {item!r}", param_hint=hint)
    return name.strip(), value.strip() if separator == ":" else value


def _collect_headers(items: Sequence[str]) -> dict[str, list[str]]:
    collected: dict[str, list[str]] = {}
    for item in items:
        name, value = _split_pair(item, ":", "--header")
        collected.setdefault(name, []).append(value)
    return collected


def _read_body(body: Optional[str], body_file: Optional[Path]) -> bytes:
    if body is not None and body_file is not None:
        raise click.UsageError("use either --body or --body-file, not both")
    if body_file is not None:
        return body_file.read_bytes()
    return (body or "").encode("utf-8")


def _jsonable(instance: Any) -> Any:
    if dataclasses.is_dataclass(instance) and not isinstance(instance, type):
        return dataclasses.asdict(instance)
    return instance


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="request_binder",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
