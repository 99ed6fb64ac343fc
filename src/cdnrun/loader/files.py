"""Files hosts: caller-supplied virtual source files consulted before the CDN.

A files host is anything with ``has(pathname)`` and ``get(pathname)``; either
may return an awaitable. Pathnames are relative to the virtual root with no
leading ``./`` or ``/``.
"""

from __future__ import annotations

import asyncio
import inspect
import posixpath
from pathlib import Path
from typing import Any, Awaitable, Mapping, Optional, Protocol, Union, runtime_checkable


@runtime_checkable
class FilesHost(Protocol):
    """Read-only capability pair over virtual source files."""

    def has(self, pathname: str) -> Union[bool, Awaitable[bool]]:
        ...

    def get(self, pathname: str) -> Union[str, Awaitable[str]]:
        ...


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it."""
    if inspect.isawaitable(value):
        return await value
    return value


def normalize_pathname(pathname: str) -> str:
    """Normalize a virtual pathname: ``./a//b/../c.js`` -> ``a/c.js``."""
    parts = [p for p in pathname.replace("\\", "/").split("/") if p and p != "."]
    if not parts:
        return ""
    normalized = posixpath.normpath("/".join(parts))
    return normalized.lstrip("/") if normalized != "." else ""


class DictFilesHost:
    """Files host over an in-memory ``{pathname: source}`` mapping."""

    def __init__(self, files: Mapping[str, str]):
        self._files = {normalize_pathname(k): v for k, v in files.items()}

    def has(self, pathname: str) -> bool:
        return normalize_pathname(pathname) in self._files

    def get(self, pathname: str) -> str:
        return self._files[normalize_pathname(pathname)]

    def __len__(self) -> int:
        return len(self._files)


class DirectoryFilesHost:
    """Files host reading lazily from a directory on disk."""

    def __init__(self, root: Union[str, Path], encoding: str = "utf-8"):
        self._root = Path(root).resolve()
        self._encoding = encoding

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, pathname: str) -> Optional[Path]:
        relative = normalize_pathname(pathname)
        if not relative or relative.startswith(".."):
            return None
        return self._root / relative

    async def has(self, pathname: str) -> bool:
        path = self._path(pathname)
        if path is None:
            return False
        return await asyncio.to_thread(path.is_file)

    async def get(self, pathname: str) -> str:
        path = self._path(pathname)
        if path is None:
            raise FileNotFoundError(pathname)
        return await asyncio.to_thread(path.read_text, encoding=self._encoding)


class _EmptyFilesHost:
    def has(self, pathname: str) -> bool:
        return False

    def get(self, pathname: str) -> str:
        raise KeyError(pathname)


def as_files_host(files: Any) -> FilesHost:
    """Coerce user input (None, mapping or host object) into a files host."""
    if files is None:
        return _EmptyFilesHost()
    if isinstance(files, FilesHost) and not isinstance(files, Mapping):
        return files
    if isinstance(files, Mapping):
        return DictFilesHost(files)
    raise TypeError(f"files must be a mapping or provide has()/get(), got {type(files).__name__}")
