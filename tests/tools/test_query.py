from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dissect.rpmdb.c_rpm import c_rpm
from dissect.rpmdb.helpers import config
from dissect.rpmdb.tools.query import main as rpmdb_query
from tests._utils import build_hash_db, build_package

if TYPE_CHECKING:
    from pathlib import Path


def test_query_strings(capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch, packages_path: Path) -> None:
    with monkeypatch.context() as m:
        m.setattr("sys.argv", ["rpmdb-query", "-s", str(packages_path)])

        assert rpmdb_query() == 0

        out, _ = capsys.readouterr()

    lines = out.splitlines()
    assert len(lines) == 2
    assert all(line.startswith("<rpm/package ") for line in lines)
    assert "name='bash'" in lines[0]
    assert "name='coreutils'" in lines[1]
    assert "rpm/package/file" not in out


def test_query_files(capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch, packages_path: Path) -> None:
    with monkeypatch.context() as m:
        m.setattr("sys.argv", ["rpmdb-query", "-s", "--files", str(packages_path)])

        assert rpmdb_query() == 0

        out, _ = capsys.readouterr()

    file_lines = [line for line in out.splitlines() if line.startswith("<rpm/package/file ")]
    assert len(file_lines) == 3
    assert "/usr/bin/bash" in file_lines[0]
    assert "/etc/profile" in file_lines[2]
    assert "is_config=True" in file_lines[2]


def test_query_json(capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch, packages_path: Path) -> None:
    with monkeypatch.context() as m:
        m.setattr("sys.argv", ["rpmdb-query", "-j", str(packages_path)])

        assert rpmdb_query() == 0

        out, _ = capsys.readouterr()

    assert '"bash"' in out
    assert '"coreutils"' in out


def test_query_config_file(
    capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, packages_path: Path
) -> None:
    tmp_path.joinpath(config.CONFIG_NAME).write_text("OUTPUT_FILES = True\n")

    with monkeypatch.context() as m:
        m.setattr("sys.argv", ["rpmdb-query", "-s", str(packages_path)])

        assert rpmdb_query() == 0

        out, _ = capsys.readouterr()

    assert "<rpm/package/file " in out


def test_query_skip_invalid(
    capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, bash_blob: bytes
) -> None:
    path = tmp_path.joinpath("Packages")
    path.write_bytes(build_hash_db([bash_blob, b"\x00" * 8, build_package("zsh")]))

    with monkeypatch.context() as m:
        m.setattr("sys.argv", ["rpmdb-query", "-s", str(path)])
        assert rpmdb_query() == 1
        out, _ = capsys.readouterr()
        assert "name='bash'" in out
        assert "name='zsh'" not in out

        m.setattr("sys.argv", ["rpmdb-query", "-s", "--skip-invalid", str(path)])
        assert rpmdb_query() == 0
        out, _ = capsys.readouterr()
        assert "name='bash'" in out
        assert "name='zsh'" in out


def test_query_skip_invalid_file_list(
    capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, bash_blob: bytes
) -> None:
    broken = build_package(
        "broken",
        extra=[
            (c_rpm.Tag.DIRINDEXES, c_rpm.TagType.INT32, [3]),
            (c_rpm.Tag.BASENAMES, c_rpm.TagType.STRING_ARRAY, ["bin"]),
            (c_rpm.Tag.DIRNAMES, c_rpm.TagType.STRING_ARRAY, ["/usr/"]),
        ],
    )
    path = tmp_path.joinpath("Packages")
    path.write_bytes(build_hash_db([broken, bash_blob]))

    with monkeypatch.context() as m:
        m.setattr("sys.argv", ["rpmdb-query", "-s", "--skip-invalid", str(path)])

        assert rpmdb_query() == 0

        out, _ = capsys.readouterr()

    assert "name='broken'" not in out
    assert "name='bash'" in out


def test_query_unreadable_database(
    capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, packages_path: Path
) -> None:
    missing = tmp_path.joinpath("missing", "Packages")

    with monkeypatch.context() as m:
        m.setattr("sys.argv", ["rpmdb-query", "-s", str(missing), str(packages_path)])

        assert rpmdb_query() == 1

        out, _ = capsys.readouterr()

    # The remaining databases are still processed
    assert "name='bash'" in out


def test_query_version(capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch, packages_path: Path) -> None:
    with monkeypatch.context() as m:
        m.setattr("sys.argv", ["rpmdb-query", "--version", str(packages_path)])

        with pytest.raises(SystemExit) as exc:
            rpmdb_query()

        out, _ = capsys.readouterr()

    assert exc.value.code == 0
    assert "version" in out
