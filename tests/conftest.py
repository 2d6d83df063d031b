"""Test fixtures and utilities."""

import textwrap
from pathlib import Path
from typing import Callable, Optional

import click.testing
import pytest

from svnkit.config import Config
from svnkit.instance import WorkingCopy
from svnkit.registry import ProcessRegistry

ENV_VARS = [
    "SVNKIT_BINARY",
    "SVNKIT_ADMIN_BINARY",
    "SVNKIT_USERNAME",
    "SVNKIT_PASSWORD",
    "SVNKIT_CONFIG_DIR",
    "SVNKIT_NON_INTERACTIVE",
    "SVNKIT_NO_AUTH_CACHE",
    "SVNKIT_TIMEOUT",
]


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch, tmp_path: Path):
    """Keep the user's svnkit environment and config file out of tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SVNKIT_CONFIG", str(tmp_path / "no-such-config"))


@pytest.fixture
def registry() -> ProcessRegistry:
    """Fresh registry, isolated from the process-wide default."""
    return ProcessRegistry()


@pytest.fixture
def wc_root(tmp_path: Path) -> Path:
    """Directory that looks like a working copy root."""
    root = tmp_path / "wc"
    (root / ".svn").mkdir(parents=True)
    return root


@pytest.fixture
def make_wc(wc_root: Path, registry: ProcessRegistry) -> Callable[..., WorkingCopy]:
    """Build a WorkingCopy on wc_root with an explicit config."""

    def _make(**config_kwargs) -> WorkingCopy:
        config_kwargs.setdefault("non_interactive", False)
        return WorkingCopy(wc_root, config=Config(**config_kwargs), registry=registry)

    return _make


@pytest.fixture
def wc(make_wc) -> WorkingCopy:
    """Working copy with no default switches or options."""
    return make_wc()


@pytest.fixture
def fake_svn(tmp_path: Path) -> Callable[..., Path]:
    """
    Write an executable standing in for the svn binary.

    The script records its arguments in bin/args and its working directory in
    bin/cwd, prints the given stdout and stderr, then exits with exit_code.
    """

    def _make(
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
        sleep: Optional[float] = None,
    ) -> Path:
        bindir = tmp_path / "bin"
        bindir.mkdir(exist_ok=True)
        (bindir / "stdout").write_text(stdout)
        (bindir / "stderr").write_text(stderr)
        sleep_line = f"exec sleep {sleep}" if sleep else ""
        script = bindir / "svn"
        script.write_text(
            textwrap.dedent(
                f"""\
                #!/bin/sh
                printf '%s\\n' "$@" > "{bindir}/args"
                pwd > "{bindir}/cwd"
                cat "{bindir}/stdout"
                cat "{bindir}/stderr" >&2
                {sleep_line}
                exit {exit_code}
                """
            )
        )
        script.chmod(0o755)
        return script

    return _make


@pytest.fixture
def svn_args() -> Callable[[Path], list[str]]:
    """Read back the arguments the fake svn binary was last called with."""

    def _read(script: Path) -> list[str]:
        return (script.parent / "args").read_text().splitlines()

    return _read


@pytest.fixture
def runner() -> click.testing.CliRunner:
    """Click CliRunner for testing CLI commands."""
    return click.testing.CliRunner()


@pytest.fixture
def info_xml() -> str:
    return INFO_XML


@pytest.fixture
def log_xml() -> str:
    return LOG_XML


@pytest.fixture
def list_xml() -> str:
    return LIST_XML


INFO_XML = """<?xml version="1.0" encoding="UTF-8"?>
<info>
<entry kind="dir" path="." revision="42">
<url>file:///srv/repo/trunk</url>
<relative-url>^/trunk</relative-url>
<repository>
<root>file:///srv/repo</root>
<uuid>0c9e5a1e-3c1f-4b8a-9b3e-6f2f1c0d9a11</uuid>
</repository>
<commit revision="40">
<author>alice</author>
<date>2024-03-05T10:20:30.123456Z</date>
</commit>
</entry>
</info>
"""

LOG_XML = """<?xml version="1.0" encoding="UTF-8"?>
<log>
<logentry revision="7">
<author>bob</author>
<date>2024-03-06T08:00:00.000000Z</date>
<paths>
<path action="M" kind="file" prop-mods="false" text-mods="true">/trunk/a.txt</path>
<path action="A" kind="file" copyfrom-path="/trunk/a.txt" copyfrom-rev="6">/trunk/b.txt</path>
</paths>
<msg>Copy a to b</msg>
</logentry>
<logentry revision="6">
<author>alice</author>
<date>2024-03-05T08:00:00.000000Z</date>
<msg>Edit a</msg>
</logentry>
</log>
"""

LIST_XML = """<?xml version="1.0" encoding="UTF-8"?>
<lists>
<list path=".">
<entry kind="dir">
<name>docs</name>
<commit revision="3">
<author>carol</author>
<date>2024-01-01T00:00:00.000000Z</date>
</commit>
</entry>
<entry kind="file">
<name>README</name>
<size>128</size>
<commit revision="5">
<author>dave</author>
<date>2024-02-01T00:00:00.000000Z</date>
</commit>
</entry>
</list>
</lists>
"""
