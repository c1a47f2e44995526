"""
Output Guardrails
=================
Validation of AI-generated files before they are written to disk.

This is a best-effort lexical resolver, not a compiler.  References are
found with regular expressions and checked for existence against the
resolution scope:

  - JDK/runtime prefixes (``java.``, ``jdk.``, ``org.w3c.``, ...)
  - the target platform symbol index (p2 repository jars)
  - types declared by the files in the same generated batch
  - sources already present under the plugin's ``src/`` tree

Severity policy:
  1. Path traversal       : always BLOCKER, with or without a classpath
  2. Unexpected package   : WARN
  3. Empty content        : WARN
  4. Unresolved reference : BLOCKER under a platform-core namespace
                            (``org.idempiere.``, ``org.compiere.``,
                            ``org.adempiere.``), WARN everywhere else
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from idempiere_codegen.models import (
    GeneratedCode,
    GeneratedFile,
    Severity,
    ValidationIssue,
    has_blocking_issue,
)
from idempiere_codegen.symbol_index import SymbolIndex

logger = logging.getLogger("idempiere_codegen.guardrails")

IMPORT_RE = re.compile(r"^\s*import\s+([\w.]+)(\.\*)?\s*;", re.MULTILINE)
STATIC_IMPORT_RE = re.compile(r"^\s*import\s+static\s+([\w.]+)\.(?:\w+|\*)\s*;", re.MULTILINE)
PACKAGE_RE = re.compile(r"^\s*package\s+([\w.]+)\s*;", re.MULTILINE)
TYPE_RE = re.compile(
    r"^\s*(?:public\s+)?(?:abstract\s+|final\s+|sealed\s+|non-sealed\s+)?"
    r"(?:class|interface|enum|record)\s+([A-Za-z_][A-Za-z0-9_]*)\b",
    re.MULTILINE,
)
FQCN_RE = re.compile(r"\b(?:[a-z_][a-z0-9_]*\.)+[A-Z][A-Za-z0-9_$]*\b")
_DECLARATION_LINE_RE = re.compile(r"^\s*(?:import|package)\b")

PLATFORM_UNRESOLVED = (
    "Could not resolve iDempiere target platform "
    "(org.idempiere.p2/target/repository); skipped classpath checks for {path}"
)


def has_traversal_segment(path: str) -> bool:
    """Return True if ``path`` contains a ``..`` segment (either separator)."""
    return any(part == ".." for part in re.split(r"[\\/]", path))


def _is_absolute(path: str) -> bool:
    return path.startswith(("/", "\\")) or bool(re.match(r"^[A-Za-z]:[\\/]", path))


def outer_class(name: str) -> str:
    """Trim a dotted name after its first capitalised segment (the top-level type)."""
    parts = name.split(".")
    for i, part in enumerate(parts):
        if part[:1].isupper():
            return ".".join(parts[: i + 1])
    return name


class ResolutionScope:
    """Symbols considered known while validating one generated batch.

    Assembled fresh for every :meth:`GuardrailValidator.validate` call.
    """

    def __init__(
        self,
        index: SymbolIndex,
        runtime_prefixes: Iterable[str],
        generated_classes: Set[str],
        generated_packages: Set[str],
        plugin_dir: Optional[Path] = None,
    ):
        self.index = index
        self.runtime_prefixes = tuple(runtime_prefixes)
        self.generated_classes = generated_classes
        self.generated_packages = generated_packages
        self.src_dir = Path(plugin_dir) / "src" if plugin_dir is not None else None

    def _is_runtime(self, symbol: str) -> bool:
        return symbol.startswith(self.runtime_prefixes)

    def has_class(self, fqcn: str) -> bool:
        if self._is_runtime(fqcn):
            return True
        if fqcn in self.generated_classes:
            return True
        if self.index.has_class(fqcn):
            return True
        if self.src_dir is None or not fqcn:
            return False
        return (self.src_dir / (fqcn.replace(".", "/") + ".java")).is_file()

    def has_package(self, package: str) -> bool:
        if self._is_runtime(package):
            return True
        if package in self.generated_packages:
            return True
        if self.index.has_package(package):
            return True
        if self.src_dir is None or not package:
            return False
        return (self.src_dir / package.replace(".", "/")).is_dir()


class GuardrailValidator:
    """Checks a generated file set before it touches disk.

    Stateless apart from the injected resolver, so one instance can be
    shared by every call site that needs validation.

    Usage::

        validator = GuardrailValidator(resolver=ClasspathResolver())
        issues = validator.validate(code, "org.example.plugin", plugin_dir)
        if validator.has_blocking_issue(issues):
            ...  # fall back to templates

    Args:
        resolver: ``ClasspathResolver`` used to obtain the symbol index.
            When None, classpath checks are skipped.
        config: ``GuardrailConfig`` (uses defaults if None).
    """

    def __init__(self, resolver=None, config=None):
        if config is None:
            from idempiere_codegen.config import GuardrailConfig
            config = GuardrailConfig()
        self._config = config
        self._resolver = resolver

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    def validate(
        self,
        code: GeneratedCode,
        plugin_id: str,
        plugin_dir=None,
    ) -> List[ValidationIssue]:
        """Validate every file of ``code``.

        Args:
            code: Parsed AI output.
            plugin_id: Target plugin id, which is also its base package.
            plugin_dir: Target plugin directory.  When None, classpath
                checks are skipped and each source file gets an advisory.

        Returns:
            All issues, in file order.
        """
        index = self._resolve_index(plugin_dir)
        scope = None
        if index is not None:
            classes, packages = self._collect_generated_types(code.files)
            scope = ResolutionScope(
                index,
                self._config.runtime_prefixes,
                classes,
                packages,
                Path(plugin_dir) if plugin_dir is not None else None,
            )

        issues: List[ValidationIssue] = []
        for generated in code.files:
            issues.extend(self._check_file(generated, plugin_id, scope))

        if issues:
            logger.info(
                "Guardrails found %d issue(s), %d blocking",
                len(issues), sum(1 for i in issues if i.blocking),
            )
        return issues

    def has_blocking_issue(self, issues: Iterable[ValidationIssue]) -> bool:
        return has_blocking_issue(issues)

    def is_critical(self, symbol: str) -> bool:
        """Return True if ``symbol`` lives in a platform-core namespace."""
        return symbol.startswith(tuple(self._config.critical_prefixes))

    # ------------------------------------------------------------------ #
    # Internal                                                             #
    # ------------------------------------------------------------------ #

    def _resolve_index(self, plugin_dir) -> Optional[SymbolIndex]:
        if plugin_dir is None or self._resolver is None:
            return None
        return self._resolver.resolve(plugin_dir)

    def _check_file(
        self,
        generated: GeneratedFile,
        plugin_id: str,
        scope: Optional[ResolutionScope],
    ) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        path = generated.path

        if has_traversal_segment(path):
            issues.append(ValidationIssue(
                Severity.BLOCKER, f"Path traversal detected: {path}", path=path,
            ))
        elif _is_absolute(path):
            issues.append(ValidationIssue(
                Severity.BLOCKER, f"Absolute path not allowed: {path}", path=path,
            ))

        if generated.is_java:
            if generated.content is not None and f"package {plugin_id}" not in generated.content:
                issues.append(ValidationIssue(
                    Severity.WARN, f"Unexpected package in {path}", path=path,
                ))
            if scope is not None:
                issues.extend(self._check_references(generated, scope))
            else:
                issues.append(ValidationIssue(
                    Severity.WARN, PLATFORM_UNRESOLVED.format(path=path), path=path,
                ))

        if generated.is_blank:
            issues.append(ValidationIssue(
                Severity.WARN, f"Empty content for {path}", path=path,
            ))

        return issues

    def _check_references(
        self, generated: GeneratedFile, scope: ResolutionScope
    ) -> List[ValidationIssue]:
        content = generated.content
        if not content:
            return []

        issues: List[ValidationIssue] = []
        seen: Set[str] = set()

        for match in IMPORT_RE.finditer(content):
            imported, wildcard = match.group(1), match.group(2) is not None
            if imported in seen:
                continue
            seen.add(imported)
            if wildcard:
                if not scope.has_package(imported):
                    issues.append(self._unresolved(
                        f"Unresolved wildcard import package: {imported} in {generated.path}",
                        imported, generated.path,
                    ))
            elif not scope.has_class(imported):
                issues.append(self._unresolved(
                    f"Unresolved import: {imported} in {generated.path}",
                    imported, generated.path,
                ))

        # import static a.b.Owner.member; and import static a.b.Owner.*;
        for match in STATIC_IMPORT_RE.finditer(content):
            owner = outer_class(match.group(1))
            if owner in seen:
                continue
            seen.add(owner)
            if not scope.has_class(owner):
                issues.append(self._unresolved(
                    f"Unresolved static import: {owner} in {generated.path}",
                    owner, generated.path,
                ))

        body = "\n".join(
            line for line in content.splitlines() if not _DECLARATION_LINE_RE.match(line)
        )
        for match in FQCN_RE.finditer(body):
            fqcn = match.group()
            if fqcn in seen:
                continue
            seen.add(fqcn)
            if not scope.has_class(fqcn):
                issues.append(self._unresolved(
                    f"Unresolved class reference: {fqcn} in {generated.path}",
                    fqcn, generated.path,
                ))

        return issues

    def _unresolved(self, message: str, symbol: str, path: str) -> ValidationIssue:
        severity = Severity.BLOCKER if self.is_critical(symbol) else Severity.WARN
        return ValidationIssue(severity, message, symbol=symbol, path=path)

    @staticmethod
    def _collect_generated_types(
        files: Iterable[GeneratedFile],
    ) -> Tuple[Set[str], Set[str]]:
        classes: Set[str] = set()
        packages: Set[str] = set()
        for generated in files:
            if not generated.is_java or not generated.content:
                continue
            package_match = PACKAGE_RE.search(generated.content)
            if package_match is None:
                continue
            package = package_match.group(1)
            packages.add(package)
            for type_match in TYPE_RE.finditer(generated.content):
                classes.add(f"{package}.{type_match.group(1)}")
        return classes, packages
