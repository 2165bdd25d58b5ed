# File: genco/primitives.py
"""
Genco - Primitive Lookup Tables
================================
Every per-primitive decision the generator makes lives here, keyed by the
closed ``PrimitiveKind`` enum:

    - target-language type names (plain and nullable filter form)
    - whether pagination filters on the primitive as a from/to range
    - the allowed ``Depends.when`` state tokens and the guard expression
      each token renders to
    - which validation kinds a primitive accepts

The validator and all synthesizers read from these tables, so they cannot
drift apart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from genco.models import ConfigurationError, Dialect, PrimitiveKind, ValidationKind

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("genco.primitives")


# ---------------------------------------------------------------------------
# Table rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WhenState:
    """One legal ``when`` token and the C# guard it renders to."""

    token: str
    condition: str  # format string, ``{member}`` is the accessed property

    def render(self, member: str) -> str:
        return self.condition.format(member=member)


@dataclass(frozen=True, slots=True)
class PrimitiveSpec:
    """Everything the generator knows about one primitive kind."""

    kind: PrimitiveKind
    target_type: str
    filter_type: str
    range_filter: bool
    when_states: Tuple[WhenState, ...]

    @property
    def when_tokens(self) -> List[str]:
        return [state.token for state in self.when_states]

    def find_when(self, token: Optional[str]) -> Optional[WhenState]:
        """Case-insensitive token lookup."""
        if token is None:
            return None
        wanted: str = token.strip().casefold()
        for state in self.when_states:
            if state.token.casefold() == wanted:
                return state
        return None


# ---------------------------------------------------------------------------
# The tables
# ---------------------------------------------------------------------------

_NUMERIC_STATES: Tuple[WhenState, ...] = (
    WhenState("Zero", "{member} == 0"),
    WhenState("NotZero", "{member} != 0"),
    WhenState("Positive", "{member} > 0"),
    WhenState("Negative", "{member} < 0"),
)

_PRIMITIVES: Dict[PrimitiveKind, PrimitiveSpec] = {
    PrimitiveKind.INT: PrimitiveSpec(
        kind=PrimitiveKind.INT,
        target_type="int",
        filter_type="int?",
        range_filter=False,
        when_states=_NUMERIC_STATES,
    ),
    PrimitiveKind.DECIMAL: PrimitiveSpec(
        kind=PrimitiveKind.DECIMAL,
        target_type="decimal",
        filter_type="decimal?",
        range_filter=False,
        when_states=_NUMERIC_STATES,
    ),
    PrimitiveKind.DATETIME: PrimitiveSpec(
        kind=PrimitiveKind.DATETIME,
        target_type="DateTime",
        filter_type="DateTime?",
        range_filter=True,
        when_states=(
            WhenState("Past", "{member} < DateTime.Now"),
            WhenState("Future", "{member} > DateTime.Now"),
            WhenState("Default", "{member} == default(DateTime)"),
            WhenState("NotDefault", "{member} != default(DateTime)"),
        ),
    ),
    PrimitiveKind.STRING: PrimitiveSpec(
        kind=PrimitiveKind.STRING,
        target_type="string",
        filter_type="string",
        range_filter=False,
        when_states=(
            WhenState("Null", "{member} == null"),
            WhenState("NotNull", "{member} != null"),
            WhenState("Empty", "string.IsNullOrWhiteSpace({member})"),
            WhenState("NotEmpty", "!string.IsNullOrWhiteSpace({member})"),
        ),
    ),
    PrimitiveKind.BOOL: PrimitiveSpec(
        kind=PrimitiveKind.BOOL,
        target_type="bool",
        filter_type="bool?",
        range_filter=False,
        when_states=(
            WhenState("True", "{member}"),
            WhenState("False", "!{member}"),
        ),
    ),
}

# Primitives each validation kind may be attached to
_VALIDATION_PRIMITIVES: Dict[ValidationKind, FrozenSet[PrimitiveKind]] = {
    ValidationKind.REQUIRED: frozenset(PrimitiveKind),
    ValidationKind.UNIQUE: frozenset(
        {
            PrimitiveKind.INT,
            PrimitiveKind.DECIMAL,
            PrimitiveKind.DATETIME,
            PrimitiveKind.STRING,
        }
    ),
    ValidationKind.EMAIL: frozenset({PrimitiveKind.STRING}),
    ValidationKind.POSITIVE: frozenset({PrimitiveKind.INT, PrimitiveKind.DECIMAL}),
    ValidationKind.PAST: frozenset({PrimitiveKind.DATETIME}),
    ValidationKind.FUTURE: frozenset({PrimitiveKind.DATETIME}),
}


# ---------------------------------------------------------------------------
# Lenient parsers (used by the validator, never raise)
# ---------------------------------------------------------------------------


def parse_primitive(raw: Optional[str]) -> Optional[PrimitiveKind]:
    """Map a schema token to a ``PrimitiveKind``; ``None`` if unrecognised."""
    if not raw:
        return None
    try:
        return PrimitiveKind(raw.strip().lower())
    except ValueError:
        return None


def parse_dialect(raw: Optional[str]) -> Optional[Dialect]:
    """Map a schema token to a ``Dialect``; ``None`` if unrecognised."""
    if not raw:
        return None
    try:
        return Dialect(raw.strip().lower())
    except ValueError:
        return None


def parse_validation_kind(raw: Optional[str]) -> Optional[ValidationKind]:
    """Map a schema token to a ``ValidationKind``; ``None`` if unrecognised."""
    if not raw:
        return None
    try:
        return ValidationKind(raw.strip().lower())
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Strict resolvers (used by synthesizers, raise ConfigurationError)
# ---------------------------------------------------------------------------


def resolve_primitive(raw: Optional[str]) -> PrimitiveKind:
    kind: Optional[PrimitiveKind] = parse_primitive(raw)
    if kind is None:
        raise ConfigurationError(f'Primitive "{raw}" not implemented')
    return kind


def resolve_dialect(raw: Optional[str]) -> Dialect:
    dialect: Optional[Dialect] = parse_dialect(raw)
    if dialect is None:
        raise ConfigurationError(f'Database "{raw}" not implemented')
    return dialect


def get_primitive_spec(kind: PrimitiveKind) -> PrimitiveSpec:
    """Return the table row for *kind*; a missing row is a generator defect."""
    spec: Optional[PrimitiveSpec] = _PRIMITIVES.get(kind)
    if spec is None:
        raise ConfigurationError(f'Primitive "{kind.value}" not implemented')
    return spec


def spec_for(raw: Optional[str]) -> PrimitiveSpec:
    """Shortcut: resolve a raw token straight to its ``PrimitiveSpec``."""
    return get_primitive_spec(resolve_primitive(raw))


def allowed_primitives(kind: ValidationKind) -> FrozenSet[PrimitiveKind]:
    allowed: Optional[FrozenSet[PrimitiveKind]] = _VALIDATION_PRIMITIVES.get(kind)
    if allowed is None:
        raise ConfigurationError(f'Validation "{kind.value}" not implemented')
    return allowed


__all__: List[str] = [
    "WhenState",
    "PrimitiveSpec",
    "parse_primitive",
    "parse_dialect",
    "parse_validation_kind",
    "resolve_primitive",
    "resolve_dialect",
    "get_primitive_spec",
    "spec_for",
    "allowed_primitives",
]
