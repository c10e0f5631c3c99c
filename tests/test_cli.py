from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from svcindex import cli

SOURCES = {
    "pkg/__init__.py": "",
    "pkg/api.py": "from typing import Protocol\n\n\nclass Greeter(Protocol):\n    def greet(self) -> str: ...\n",
    "pkg/impl.py": (
        "from svcindex import provides\n"
        "from pkg.api import Greeter\n\n\n"
        "@provides(priority=10)\n"
        "class Loud(Greeter):\n    pass\n\n\n"
        "@provides()\n"
        "class Quiet(Greeter):\n    pass\n"
    ),
}


def _invoke(args: list[str]):
    runner = CliRunner()
    return runner.invoke(cli.app, args)


def test_cli_help_lists_subcommands() -> None:
    result = _invoke(["--help"])
    assert result.exit_code == 0
    for command in ("build", "scan", "show"):
        assert command in result.output


def test_build_writes_registry(write_sources) -> None:
    root = write_sources(SOURCES)
    result = _invoke(["build", str(root / "pkg"), "--root", str(root)])
    assert result.exit_code == 0, result.output
    registry = root / "build" / "META-INF" / "services" / "pkg.api.Greeter"
    assert registry.read_text(encoding="utf-8") == (
        "# priority 10\npkg.impl.Loud\n# priority 0\npkg.impl.Quiet\n"
    )
    assert "Indexed 2 provider(s) for 1 contract(s)." in result.output


def test_build_honours_config_file(write_sources) -> None:
    root = write_sources(
        {
            **SOURCES,
            "svcindex.toml": '[registry]\noutput_dir = "out"\nregistry_prefix = "services"\n',
        }
    )
    result = _invoke(["build", str(root / "pkg"), "--root", str(root)])
    assert result.exit_code == 0, result.output
    assert (root / "out" / "services" / "pkg.api.Greeter").exists()


def test_build_exit_code_reflects_errors(write_sources) -> None:
    root = write_sources(
        {
            **SOURCES,
            "pkg/bad.py": "from svcindex import provides\n\n\n@provides()\nclass Orphan:\n    pass\n",
        }
    )
    failing = _invoke(["build", str(root / "pkg"), "--root", str(root)])
    assert failing.exit_code == 1
    assert "Cannot infer contract type for 'pkg.bad.Orphan'" in failing.output

    lenient = _invoke(
        ["build", str(root / "pkg"), "--root", str(root), "--no-fail-on-errors"]
    )
    assert lenient.exit_code == 0


def test_scan_prints_registry_without_writing(write_sources) -> None:
    root = write_sources(SOURCES)
    result = _invoke(["scan", str(root / "pkg"), "--root", str(root)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload == {
        "pkg.api.Greeter": [
            {"name": "pkg.impl.Loud", "priority": 10},
            {"name": "pkg.impl.Quiet", "priority": 0},
        ]
    }
    assert not (root / "build").exists()


def test_show_lists_registry_in_order(tmp_path: Path) -> None:
    target = tmp_path / "build" / "META-INF" / "services" / "pkg.Api"
    target.parent.mkdir(parents=True)
    target.write_text("b.Low\n# priority 4\na.High # preferred\n", encoding="utf-8")
    result = _invoke(["show", "pkg.Api", "--root", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["4\ta.High", "0\tb.Low"]


def test_show_of_missing_registry_is_empty(tmp_path: Path) -> None:
    result = _invoke(["show", "pkg.Missing", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert result.output == ""


def test_build_reports_failed_writes_separately(write_sources) -> None:
    root = write_sources(
        {
            **SOURCES,
            "pkg/other.py": (
                "from svcindex import provides\n\n\n"
                "class Base:\n    pass\n\n\n"
                "@provides()\n"
                "class Impl(Base):\n    pass\n"
            ),
        }
    )
    blocked = root / "build" / "META-INF" / "services" / "pkg.api.Greeter"
    blocked.mkdir(parents=True)

    result = _invoke(["build", str(root / "pkg"), "--root", str(root)])

    assert result.exit_code == 1
    assert "Indexed 1 provider(s) for 1 contract(s)." in result.output
    assert "Failed to write 1 contract(s): pkg.api.Greeter" in result.output
    assert (root / "build" / "META-INF" / "services" / "pkg.other.Base").exists()
