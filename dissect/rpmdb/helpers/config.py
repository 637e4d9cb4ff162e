from __future__ import annotations

import ast
import importlib.machinery
import importlib.util
import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import ModuleType

log = logging.getLogger(__name__)

CONFIG_NAME = ".rpmdbcfg.py"

DEFAULTS = {
    "SKIP_INVALID": False,
    "OUTPUT_FILES": False,
}


def load(paths: list[Path | str] | Path | str | None) -> ModuleType:
    """Load the first configuration file found near the provided path(s).

    Keys from ``DEFAULTS`` are always present on the returned module, values from the
    configuration file take precedence.
    """

    if isinstance(paths, (Path, str)):
        paths = [paths]

    config_spec = importlib.machinery.ModuleSpec("config", None)
    config = importlib.util.module_from_spec(config_spec)
    config.__dict__.update(DEFAULTS)

    if config_file := _find_config_file(paths):
        log.debug("Loading configuration from %s", config_file)
        config.__dict__.update(_parse_ast(config_file.read_bytes()))

    return config


def _parse_ast(code: bytes) -> dict[str, str | int | bool]:
    # Only plain constant assignments, the file is never executed
    obj = {}

    module = ast.parse(code)
    if not isinstance(module, ast.Module):
        log.debug("Config did not parse to a module AST -- skipping")
        return obj

    for statement in module.body:
        if (
            not isinstance(statement, ast.Assign)
            or len(statement.targets) != 1
            or not isinstance(statement.value, ast.Constant)
        ):
            log.debug("Skipping non-constant assignment")
            continue

        target = statement.targets[0]
        if not isinstance(target, ast.Name) or not isinstance(target.ctx, ast.Store):
            log.debug("Skipping non-name assignment store")
            continue

        obj[target.id] = statement.value.value

    return obj


def _find_config_file(paths: list[Path | str] | None) -> Path | None:
    """Find a config file next to, or in any parent directory of, the given path(s).

    Parts of the path are allowed to not exist, or the last part may be a database file.
    The root directory ('/') is never searched.
    """

    if not paths:
        return None

    for path in paths:
        if not path:
            continue

        cur_path = Path(path).absolute()
        if cur_path.is_file():
            cur_path = cur_path.parent

        while cur_path.exists() and cur_path.name != "":
            if (cur_config := cur_path.joinpath(CONFIG_NAME)).is_file():
                return cur_config
            cur_path = cur_path.parent

    return None
