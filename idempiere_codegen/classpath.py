"""
Classpath Resolver
==================
Locates the iDempiere p2 repository for a plugin and hands out a cached
:class:`~idempiere_codegen.symbol_index.SymbolIndex` for it.

Resolution order:
  1. ``$IDEMPIERE_HOME`` (the directory itself or its repository subdir)
  2. Walking upward from the plugin directory, at each level checking the
     ``idempiere`` sibling checkout and then the level itself.

Indexes are cached per normalized repository path for the lifetime of the
resolver.  The lock only guards the cache dict; archive scans run outside
it, so two callers racing on a cold root may both scan (harmless, the
result is identical).
"""

from __future__ import annotations

import logging
import os
import zipfile
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional

from idempiere_codegen.config import ClasspathConfig
from idempiere_codegen.symbol_index import SymbolIndex, SymbolIndexError, build_symbol_index

logger = logging.getLogger("idempiere_codegen.classpath")

_REPOSITORY_MARKERS = ("content.jar", "content.xml", "artifacts.jar", "artifacts.xml")


def is_p2_repository(path) -> bool:
    """Return True if ``path`` is a directory holding p2 repository metadata."""
    if path is None:
        return False
    path = Path(path)
    if not path.is_dir():
        return False
    return any((path / marker).is_file() for marker in _REPOSITORY_MARKERS)


def find_p2_repository(path, repository_subdir: str = "org.idempiere.p2/target/repository") -> Optional[Path]:
    """Return ``path`` or ``path/<repository_subdir>`` if either is a p2 repository.

    Args:
        path: Candidate directory (may be None or missing).
        repository_subdir: Conventional location of the built repository
            relative to an iDempiere source checkout.

    Returns:
        The repository directory, or None.
    """
    if path is None:
        return None
    path = Path(path)
    if is_p2_repository(path):
        return path
    nested = path / repository_subdir
    if is_p2_repository(nested):
        return nested
    return None


class ClasspathResolver:
    """Finds the target platform and caches one symbol index per repository.

    Args:
        config: ``ClasspathConfig`` (uses defaults if None).
        builder: Callable building an index from a repository path.
            Injected so tests can count scans.
    """

    def __init__(
        self,
        config: Optional[ClasspathConfig] = None,
        builder: Optional[Callable[..., SymbolIndex]] = None,
    ):
        self._config = config or ClasspathConfig()
        self._builder = builder or build_symbol_index
        self._cache: Dict[Path, Optional[SymbolIndex]] = {}
        self._lock = Lock()
        self.scan_count = 0

    def find_repository(self, plugin_dir=None) -> Optional[Path]:
        """Locate the p2 repository for ``plugin_dir``.

        Args:
            plugin_dir: Plugin being edited (may be None).

        Returns:
            Repository path, or None when nothing matches.
        """
        subdir = self._config.repository_subdir

        home = os.getenv(self._config.home_env)
        if home and home.strip():
            repo = find_p2_repository(Path(home.strip()), subdir)
            if repo is not None:
                return repo

        if plugin_dir is None:
            return None

        current = Path(plugin_dir).absolute().resolve()
        while True:
            repo = find_p2_repository(current / self._config.sibling_dir_name, subdir)
            if repo is not None:
                return repo
            repo = find_p2_repository(current, subdir)
            if repo is not None:
                return repo
            if current.parent == current:
                return None
            current = current.parent

    def resolve(self, plugin_dir=None) -> Optional[SymbolIndex]:
        """Return the symbol index for the plugin's target platform.

        Returns:
            The cached or freshly built index, or None if no repository is
            found or the scan failed.
        """
        repo = self.find_repository(plugin_dir)
        if repo is None:
            logger.debug("No p2 repository found for %s", plugin_dir)
            return None
        return self.get_or_build(repo)

    def get_or_build(self, repo) -> Optional[SymbolIndex]:
        """Get-or-build the index for a repository path."""
        key = Path(repo).absolute().resolve()
        with self._lock:
            if key in self._cache:
                return self._cache[key]

        index = self._build_safely(key)

        with self._lock:
            return self._cache.setdefault(key, index)

    def clear(self) -> None:
        """Drop every cached index."""
        with self._lock:
            self._cache.clear()

    def _build_safely(self, repo: Path) -> Optional[SymbolIndex]:
        with self._lock:
            self.scan_count += 1
        try:
            return self._builder(repo, self._config.archive_suffix)
        except (OSError, ValueError, zipfile.BadZipFile, SymbolIndexError) as e:
            # ValueError covers undecodable entry names (UnicodeDecodeError)
            logger.warning("Could not index target platform at %s: %s", repo, e)
            return None
