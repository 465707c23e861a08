"""
Path resolution helpers for repository-root anchored behavior.

These helpers ensure relative paths are interpreted from the repository
root (or JOBLEDGER_ROOT override), not the process cwd.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from config import DEFAULT_DB_RELATIVE_PATH


def get_repo_root() -> Path:
    """
    Resolve the repository root.

    Resolution order:
    1. JOBLEDGER_ROOT environment variable
    2. Parent of mcp-server-python directory
    """
    root_env = os.getenv("JOBLEDGER_ROOT")
    if root_env:
        return Path(root_env).expanduser().resolve()

    # path_resolution.py is under mcp-server-python/utils/
    return Path(__file__).resolve().parents[2]


def resolve_repo_relative_path(path: Union[str, Path]) -> Path:
    """
    Resolve absolute path directly; resolve relative path from repo root.
    """
    path_obj = Path(path)
    if path_obj.is_absolute():
        return path_obj
    return get_repo_root() / path_obj


def resolve_db_path(db_path: str | None = None) -> Path:
    """
    Resolve database path with consistent precedence across DB tools.

    Resolution order:
    1. Explicit `db_path` argument
    2. `JOBLEDGER_DB`
    3. `JOBLEDGER_ROOT/data/jobledger.db`
    4. `<repo_root>/data/jobledger.db`
    """
    if db_path is not None:
        return resolve_repo_relative_path(db_path)

    db_env = os.getenv("JOBLEDGER_DB")
    if db_env:
        return resolve_repo_relative_path(db_env)

    root_env = os.getenv("JOBLEDGER_ROOT")
    if root_env:
        return Path(root_env).expanduser().resolve() / DEFAULT_DB_RELATIVE_PATH

    return resolve_repo_relative_path(DEFAULT_DB_RELATIVE_PATH)
