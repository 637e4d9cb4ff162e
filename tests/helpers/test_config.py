from __future__ import annotations

from pathlib import Path
from tempfile import TemporaryDirectory

from dissect.rpmdb.helpers import config


def test_load_config() -> None:
    # FS layout:
    #
    # temp_dir1
    #   config_file
    #   symlink_dir2 -> ../temp_dir2
    # temp_dir2

    with TemporaryDirectory() as temp_dir1, TemporaryDirectory() as temp_dir2:
        # create symlink in temp_dir1 pointing to temp_dir2
        symlink = Path(temp_dir1).joinpath("symlink")
        symlink.symlink_to(temp_dir2)

        config_file = Path(temp_dir1).joinpath(config.CONFIG_NAME)
        config_file.write_text('CONFIG_FILE = "found"')

        result = config.load(symlink)
        assert result.CONFIG_FILE == "found"


def test_load_config_next_to_database(tmp_path: Path) -> None:
    rpm_dir = tmp_path.joinpath("var/lib/rpm")
    rpm_dir.mkdir(parents=True)
    database = rpm_dir.joinpath("Packages")
    database.write_bytes(b"")

    tmp_path.joinpath("var", config.CONFIG_NAME).write_text("SKIP_INVALID = True\n")

    result = config.load([database])
    assert result.SKIP_INVALID is True
    assert result.OUTPUT_FILES is False


def test_load_config_defaults(tmp_path: Path) -> None:
    result = config.load(tmp_path.joinpath("does/not/exist"))

    assert result.SKIP_INVALID is False
    assert result.OUTPUT_FILES is False

    assert config.load(None).SKIP_INVALID is False


def test_load_config_constants_only(tmp_path: Path) -> None:
    tmp_path.joinpath(config.CONFIG_NAME).write_text(
        "import os\n"
        "OUTPUT_FILES = True\n"
        "SKIP_INVALID = os.getenv('SKIP')\n"
        "A = B = 1\n"
        "obj.attr = 2\n"
    )

    result = config.load(tmp_path)

    assert result.OUTPUT_FILES is True
    assert result.SKIP_INVALID is False
    assert not hasattr(result, "A")
    assert not hasattr(result, "os")
