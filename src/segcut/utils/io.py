"""File I/O utilities: atomic writes, YAML handling, best-effort deletes."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path

from ruamel.yaml import YAML

from segcut.models.export import DeleteOutcome
from segcut.utils.progress import log_warning
from segcut.utils.retry import retry_fs

_yaml = YAML()
_yaml.preserve_quotes = True
_yaml.default_flow_style = False

DELETE_CONCURRENCY = 5


def write_atomic(path: Path | str, data: str) -> None:
    """Write UTF-8 text to a file atomically (write to temp, then rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        suffix=path.suffix,
        delete=False,
    ) as tmp:
        tmp.write(data)
        tmp_path = Path(tmp.name)

    tmp_path.replace(path)


def read_yaml(path: Path | str) -> dict:
    """Read a YAML file and return as dict."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        return dict(_yaml.load(f) or {})


def write_yaml(path: Path | str, data: dict) -> None:
    """Write a dict to a YAML file atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        suffix=path.suffix,
        delete=False,
    ) as tmp:
        _yaml.dump(data, tmp)
        tmp_path = Path(tmp.name)

    tmp_path.replace(path)


def path_exists(path: Path | str) -> bool:
    return os.path.lexists(path)


def is_writable(path: Path | str) -> bool:
    return os.access(path, os.W_OK)


@retry_fs()
def unlink_with_retry(path: Path | str) -> None:
    """Delete a file, retrying while it is locked. Missing files are fine."""
    Path(path).unlink(missing_ok=True)


def _delete_one(path: Path | str) -> DeleteOutcome:
    try:
        unlink_with_retry(path)
    except OSError as e:
        return DeleteOutcome(path=str(path), ok=False, error=str(e))
    return DeleteOutcome(path=str(path), ok=True)


def try_delete_files(paths: Iterable[Path | str]) -> list[DeleteOutcome]:
    """Delete files best-effort. Failures are logged and returned, never raised."""
    paths = list(paths)
    if not paths:
        return []

    with ThreadPoolExecutor(max_workers=DELETE_CONCURRENCY) as pool:
        outcomes = list(pool.map(_delete_one, paths))

    for outcome in outcomes:
        if not outcome.ok:
            log_warning(f"Failed to delete {outcome.path}: {outcome.error}")
    return outcomes


@contextmanager
def transient_files(paths: Iterable[Path | str]) -> Iterator[list[Path]]:
    """Scope for intermediate files; they are deleted on every exit path."""
    owned = [Path(p) for p in paths]
    try:
        yield owned
    finally:
        try_delete_files(owned)
