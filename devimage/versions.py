"""
versions.py

Responsibility: Load and parse the version matrix into a deterministic, typed model.

The matrix document has a single top-level key:

    {"combinations": [
        {"go_version": "1.23.2", "python_version": "3.12.7",
         "platforms": ["linux/amd64", "linux/arm64"]},
        ...
    ]}

Parsing is all-or-nothing: any malformed entry rejects the whole matrix.
The installer and the build driver treat the parsed result as the single
source of truth.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import yaml

from devimage.errors import DevImageError


class VersionsError(DevImageError, ValueError):
    pass


@dataclass(frozen=True)
class MatrixEntry:
    """One (Go version, Python version, platforms) combination."""

    go_version: str
    python_version: str
    platforms: tuple[str, ...]

    @property
    def label(self) -> str:
        return f"Go {self.go_version} + Python {self.python_version}"

    @property
    def tag_suffix(self) -> str:
        return f"go{self.go_version}-py{self.python_version}"

    @property
    def platform_arg(self) -> str:
        return ",".join(self.platforms)


@dataclass(frozen=True)
class VersionMatrix:
    """Ordered, immutable sequence of matrix entries (file order)."""

    entries: tuple[MatrixEntry, ...]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[MatrixEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> MatrixEntry:
        return self.entries[index]

    def filter(self, *, go: str | None = None, python: str | None = None) -> list[MatrixEntry]:
        """
        Return entries matching every given filter exactly, in file order.
        A filter left as None (or empty) matches everything.
        """
        return [
            e
            for e in self.entries
            if (not go or e.go_version == go) and (not python or e.python_version == python)
        ]


def _required_str(item: dict[str, Any], key: str, index: int) -> str:
    value = item.get(key)
    if value is None or isinstance(value, (dict, list, bool)):
        raise VersionsError(f"No versions available: combination #{index + 1} has no valid `{key}`.")
    text = str(value).strip()
    if not text:
        raise VersionsError(f"No versions available: combination #{index + 1} has an empty `{key}`.")
    return text


def _parse_entry(item: Any, index: int) -> MatrixEntry:
    if not isinstance(item, dict):
        raise VersionsError(f"No versions available: combination #{index + 1} must be an object.")

    go_version = _required_str(item, "go_version", index)
    python_version = _required_str(item, "python_version", index)

    platforms_raw = item.get("platforms")
    if not isinstance(platforms_raw, list) or not platforms_raw:
        raise VersionsError(
            f"No versions available: combination #{index + 1} must list at least one platform."
        )
    platforms = tuple(str(p).strip() for p in platforms_raw)
    if any(not p for p in platforms):
        raise VersionsError(f"No versions available: combination #{index + 1} has an empty platform.")

    return MatrixEntry(go_version=go_version, python_version=python_version, platforms=platforms)


def matrix_from_data(data: Any) -> VersionMatrix:
    """
    Build a `VersionMatrix` from an already-decoded document.
    """
    if not isinstance(data, dict):
        raise VersionsError("No versions available: the matrix must be an object with `combinations`.")

    combos = data.get("combinations")
    if not isinstance(combos, list) or not combos:
        raise VersionsError("No versions available: `combinations` is missing or empty.")

    return VersionMatrix(entries=tuple(_parse_entry(item, i) for i, item in enumerate(combos)))


def parse_versions(text: str) -> VersionMatrix:
    """
    Parse JSON matrix text into a `VersionMatrix`.
    """
    if not text or not text.strip():
        raise VersionsError("No versions available: the matrix document is empty.")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise VersionsError(f"No versions available: malformed matrix JSON ({e.msg}).") from e
    return matrix_from_data(data)


def load_versions(path: str | Path) -> VersionMatrix:
    """
    Load a matrix file. `.yaml`/`.yml` files are read with PyYAML; anything
    else is treated as JSON.
    """
    p = Path(path)
    if not p.is_file():
        raise VersionsError(f"No versions available: matrix file not found at {p}")
    text = p.read_text(encoding="utf-8")

    if p.suffix.lower() in {".yaml", ".yml"}:
        if not text.strip():
            raise VersionsError(f"No versions available: {p} is empty.")
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise VersionsError(f"No versions available: malformed matrix YAML in {p}.") from e
        return matrix_from_data(data)

    return parse_versions(text)
