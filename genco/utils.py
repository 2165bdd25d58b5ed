# File: genco/utils.py
"""
Genco - Utility Functions & Helpers
====================================
Identifier derivations, staged file I/O and small timing/metric helpers used
throughout the generation pipeline.

Naming derivations are the contract that keeps artifacts linked: every
synthesizer derives parameter names, method names and query constants
through the functions below and nothing else.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import FrozenSet, List, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("genco.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# C# keywords that cannot be used as bare local/parameter names
_CSHARP_KEYWORDS: FrozenSet[str] = frozenset({
    "abstract", "as", "base", "bool", "break", "byte", "case", "catch",
    "char", "checked", "class", "const", "continue", "decimal", "default",
    "delegate", "do", "double", "else", "enum", "event", "explicit",
    "extern", "false", "finally", "fixed", "float", "for", "foreach",
    "goto", "if", "implicit", "in", "int", "interface", "internal", "is",
    "lock", "long", "namespace", "new", "null", "object", "operator",
    "out", "override", "params", "private", "protected", "public",
    "readonly", "ref", "return", "sbyte", "sealed", "short", "sizeof",
    "stackalloc", "static", "string", "struct", "switch", "this", "throw",
    "true", "try", "typeof", "uint", "ulong", "unchecked", "unsafe",
    "ushort", "using", "virtual", "void", "volatile", "while",
})


# ---------------------------------------------------------------------------
# Cached naming derivations
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Initial-lowercase form used for parameters and locals.

    Only the first character changes; the rest is kept as declared.

    Examples:
        >>> to_camel_case("CreatedAt")
        'createdAt'
        >>> to_camel_case("ID")
        'iD'
    """
    if not name:
        return ""
    return name[0].lower() + name[1:]


@functools.lru_cache(maxsize=None)
def to_variable_name(name: str) -> str:
    """``to_camel_case`` escaped with ``@`` when it collides with a C# keyword."""
    camel: str = to_camel_case(name)
    if camel in _CSHARP_KEYWORDS:
        return f"@{camel}"
    return camel


@functools.lru_cache(maxsize=None)
def to_constant_case(name: str) -> str:
    """Upper-cased form used for generated constant references."""
    return name.upper()


def is_identifier(name: str) -> bool:
    return bool(_IDENTIFIER_RE.match(name))


# ---------------------------------------------------------------------------
# Code formatting helpers
# ---------------------------------------------------------------------------


def indent_lines(lines: Sequence[str], level: int = 1, size: int = 4) -> List[str]:
    """Indent a list of lines, leaving blank lines empty. O(n)."""
    prefix: str = " " * (level * size)
    return [prefix + line if line.strip() else "" for line in lines]


def quote_csharp(value: str) -> str:
    """Wrap *value* in a regular C# string literal."""
    escaped: str = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def stage_file(path: Path, content: str) -> Path:
    """
    Write *content* to a temporary sibling of *path* and return the
    temporary path.  Nothing is visible at *path* until ``commit_staged``.
    """
    ensure_directory(path.parent)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(content.encode("utf-8"))
    except OSError:
        discard_staged(Path(tmp_path))
        raise
    logger.debug("Staged %s as %s", path, tmp_path)
    return Path(tmp_path)


def commit_staged(staged: Path, target: Path) -> None:
    """Atomically move a staged file into place."""
    os.replace(staged, target)
    logger.debug("Committed %s", target)


def discard_staged(staged: Path) -> None:
    try:
        staged.unlink()
    except FileNotFoundError:
        pass


def backup_file(path: Path) -> Optional[Path]:
    """
    Move an existing regular file at *path* aside and return the backup
    path; ``None`` when there is nothing to back up.
    """
    if not path.is_file():
        return None
    fd, backup = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".bak",
    )
    os.close(fd)
    try:
        os.replace(path, backup)
    except OSError:
        discard_staged(Path(backup))
        raise
    logger.debug("Backed up %s as %s", path, backup)
    return Path(backup)


def restore_backup(backup: Optional[Path], target: Path) -> None:
    """Undo a commit: put the backup back, or remove a newly created file."""
    if backup is not None:
        os.replace(backup, target)
    else:
        target.unlink(missing_ok=True)
    logger.debug("Restored %s", target)


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string. O(n)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline stages.

    Usage:
        with Timer("validate") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.info("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_camel_case",
    "to_variable_name",
    "to_constant_case",
    "is_identifier",
    "indent_lines",
    "quote_csharp",
    "ensure_directory",
    "stage_file",
    "commit_staged",
    "discard_staged",
    "backup_file",
    "restore_backup",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("genco.utils loaded - %d public symbols.", len(__all__))
