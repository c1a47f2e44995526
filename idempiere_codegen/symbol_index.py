"""
Symbol Index
============
Builds the set of fully-qualified class names and packages shipped in a
platform p2 repository, by listing the ``.class`` entries of every jar.

Only top-level classes are indexed: ``Outer$Inner`` collapses to ``Outer``.
The scan is all-or-nothing; one unreadable archive aborts the build so
callers never see a partial index.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Set

logger = logging.getLogger("idempiere_codegen.symbol_index")

_CLASS_SUFFIX = ".class"


class SymbolIndexError(Exception):
    """Raised when an artifact root cannot be scanned."""


@dataclass(frozen=True)
class SymbolIndex:
    """Immutable set of known class and package names.

    Attributes:
        classes: Fully-qualified top-level class names.
        packages: Package names owning at least one indexed class.
    """

    classes: frozenset
    packages: frozenset

    def has_class(self, fqcn: str) -> bool:
        return fqcn in self.classes

    def has_package(self, package: str) -> bool:
        return package in self.packages

    def __len__(self) -> int:
        return len(self.classes)


def class_name_from_entry(entry_name: str) -> Optional[str]:
    """Map a jar entry name to a top-level class name.

    Args:
        entry_name: Entry path inside the archive (``org/foo/Bar$1.class``).

    Returns:
        ``org.foo.Bar``, or None for non-class entries and the
        ``module-info`` / ``package-info`` descriptors.
    """
    if entry_name.endswith("/") or not entry_name.endswith(_CLASS_SUFFIX):
        return None
    name = entry_name[: -len(_CLASS_SUFFIX)].replace("/", ".")
    if name == "module-info" or name.endswith(".module-info") or name.endswith(".package-info"):
        return None
    inner = name.find("$")
    if inner > 0:
        name = name[:inner]
    return name or None


def _index_archive(archive: Path, classes: Set[str], packages: Set[str]) -> None:
    with zipfile.ZipFile(archive) as jar:
        for info in jar.infolist():
            if info.is_dir():
                continue
            name = class_name_from_entry(info.filename)
            if name is None:
                continue
            classes.add(name)
            dot = name.rfind(".")
            if dot > 0:
                packages.add(name[:dot])


def build_symbol_index(root, archive_suffix: str = ".jar") -> SymbolIndex:
    """Scan every archive under ``root`` and build a :class:`SymbolIndex`.

    Scans ``root/plugins`` when present (p2 repository layout), otherwise
    ``root`` itself.

    Args:
        root: Artifact root directory.
        archive_suffix: File suffix identifying archives.

    Returns:
        The built index.

    Raises:
        SymbolIndexError: If ``root`` is not a directory.
        OSError, zipfile.BadZipFile, ValueError: If any archive cannot be
            read (ValueError includes undecodable entry names).
    """
    root = Path(root)
    if not root.is_dir():
        raise SymbolIndexError(f"Not a directory: {root}")

    plugins_dir = root / "plugins"
    scan_root = plugins_dir if plugins_dir.is_dir() else root

    classes: Set[str] = set()
    packages: Set[str] = set()
    archives = sorted(p for p in scan_root.rglob(f"*{archive_suffix}") if p.is_file())
    for archive in archives:
        _index_archive(archive, classes, packages)

    logger.info(
        "Indexed %d classes in %d packages from %d archives under %s",
        len(classes), len(packages), len(archives), scan_root,
    )
    return SymbolIndex(classes=frozenset(classes), packages=frozenset(packages))

