"""End-to-end CLI coverage for the commands exposed by request-binder.

The ``bind`` command imports its target by ``module:Class``; the records used
here live in this module and are addressed through ``__name__``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import lib_cli_exit_tools
from click.testing import CliRunner

from request_binder import BadRequestError, cli, param


@dataclass
class CliPath:
    user_id: int = param("id", default=0)


@dataclass
class CliHeader:
    name: str = param("X-Name", default="", validate="required")


@dataclass
class CliBody:
    title: str = ""
    count: int = 0


@dataclass
class CliOrder:
    path: CliPath = field(default_factory=CliPath)
    header: CliHeader = field(default_factory=CliHeader)
    body: CliBody = field(default_factory=CliBody)


@dataclass
class CliFlat:
    q: str = ""


@dataclass
class CliQuery:
    term: str


@dataclass
class CliRequiredSections:
    query: CliQuery


def _runner() -> CliRunner:
    """Return a fresh CLI runner so each test starts from a clean state."""

    return CliRunner()


def _target(name: str) -> str:
    return f"{__name__}:{name}"


def test_cli_bind_outputs_json() -> None:
    result = _runner().invoke(
        cli.cli,
        [
            "bind",
            _target("CliOrder"),
            "--method",
            "post",
            "--param",
            "id=42",
            "--header",
            "X-Name: Ada",
            "--content-type",
            "application/json",
            "--body",
            '{"title": "book", "count": 2}',
        ],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {
        "path": {"user_id": 42},
        "header": {"name": "Ada"},
        "body": {"title": "book", "count": 2},
    }


def test_cli_bind_reads_body_file_and_indents(tmp_path: Path) -> None:
    body_file = tmp_path / "body.json"
    body_file.write_text('{"title": "file"}', encoding="utf-8")

    result = _runner().invoke(
        cli.cli,
        [
            "bind",
            _target("CliOrder"),
            "--method",
            "PUT",
            "--header",
            "X-Name: Ada",
            "--header",
            "Content-Type: application/json",
            "--body-file",
            str(body_file),
            "--indent",
            "2",
        ],
    )

    assert result.exit_code == 0, result.output
    assert '\n  "body": {' in result.output
    assert json.loads(result.output)["body"]["title"] == "file"


def test_cli_bind_validation_toggle() -> None:
    failing = _runner().invoke(cli.cli, ["bind", _target("CliOrder")])
    passing = _runner().invoke(cli.cli, ["bind", _target("CliOrder"), "--no-validate"])

    assert failing.exit_code != 0
    assert isinstance(failing.exception, BadRequestError)
    assert passing.exit_code == 0
    assert json.loads(passing.output)["header"] == {"name": ""}


def test_cli_bind_fallback_for_flat_records() -> None:
    result = _runner().invoke(cli.cli, ["bind", _target("CliFlat"), "--url", "/?q=term", "--fallback"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"q": "term"}


def test_cli_bind_allocates_records_without_defaults() -> None:
    result = _runner().invoke(cli.cli, ["bind", _target("CliRequiredSections"), "--url", "/?term=ada"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"query": {"term": "ada"}}


def test_cli_bind_rejects_malformed_target() -> None:
    result = _runner().invoke(cli.cli, ["bind", "no_colon_here"])

    assert result.exit_code != 0
    assert "module:ClassName" in result.output


def test_cli_bind_rejects_malformed_param() -> None:
    result = _runner().invoke(cli.cli, ["bind", _target("CliOrder"), "--param", "novalue"])

    assert result.exit_code != 0
    assert "expected name=value" in result.output


def test_cli_presence_reports_each_key() -> None:
    result = _runner().invoke(
        cli.cli,
        ["presence", "--body", '{"user": {"name": "Ada"}, "tags": []}', "user.name", "user.age", "tags"],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"user.name": True, "user.age": False, "tags": True}


def test_cli_presence_on_non_object_payload() -> None:
    result = _runner().invoke(cli.cli, ["presence", "--body", "[1, 2]", "0"])

    assert json.loads(result.output) == {"0": False}


def test_cli_info_runs() -> None:
    result = _runner().invoke(cli.cli, ["info"])

    assert result.exit_code == 0
    assert "request_binder" in result.output


def test_main_returns_non_zero_for_binding_errors() -> None:
    assert cli.main(["bind", _target("CliOrder")]) != 0


def test_cli_info_handles_missing_metadata(monkeypatch) -> None:
    def _raise_pkg_not_found(*_args, **_kwargs):
        raise cli.metadata.PackageNotFoundError()

    monkeypatch.setattr(cli.metadata, "metadata", _raise_pkg_not_found)
    result = _runner().invoke(cli.cli, ["info"])

    assert result.exit_code == 0
    assert "metadata unavailable" in result.output


def test_main_restores_traceback_flag() -> None:
    lib_cli_exit_tools.config.traceback = False
    cli.main(["--traceback", "info"])

    assert lib_cli_exit_tools.config.traceback is False
