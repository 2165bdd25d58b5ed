# File: genco/models.py
"""
Genco - Core Data Models
========================
Pydantic V2 models representing the declarative schema document and the
generation configuration.  These models are the single source of truth for
the whole pipeline: Load → Validate → Synthesize → Persist.

The schema models are deliberately lenient about *content* (blank names,
unknown primitive tokens, unknown dialects are accepted at load time) so the
validator can report every problem in one pass.  They are strict about
*shape*: wrong JSON types and unknown keys fail the load.
"""

from __future__ import annotations

import hashlib
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("genco.models")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ConfigurationError(RuntimeError):
    """
    Raised when generation hits a case the generator does not implement
    (unknown dialect, unknown primitive, missing lookup entry).

    Not a schema diagnostic: it aborts the run immediately and is never
    added to the validation log.
    """


# ---------------------------------------------------------------------------
# Enums - closed vocabularies
# ---------------------------------------------------------------------------


class PrimitiveKind(str, Enum):
    """Field types understood by the generator."""

    INT = "int"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    STRING = "string"
    BOOL = "bool"


class Dialect(str, Enum):
    """Target data-access backends."""

    MYSQL = "mysql"
    ORACLE = "oracle"


class ValidationKind(str, Enum):
    """Constraints that can be attached to a property."""

    REQUIRED = "required"
    UNIQUE = "unique"
    EMAIL = "email"
    POSITIVE = "positive"
    PAST = "past"
    FUTURE = "future"


SYNTHESIZER_NAMES: Tuple[str, ...] = (
    "class",
    "query",
    "repository",
    "validator",
    "service",
    "controller",
)


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Schema document
# ---------------------------------------------------------------------------


class Depends(BaseModel):
    """This validation applies only when property ``on`` is in state ``when``."""

    model_config = _SHARED_CONFIG

    on: Optional[str] = Field(default=None, description="Referenced property name.")
    when: Optional[str] = Field(default=None, description="State token for ``on``.")

    @model_validator(mode="before")
    @classmethod
    def _undo_yaml11_booleans(cls, data: Any) -> Any:
        """
        Plain ``yaml.safe_load`` turns an unquoted ``on:`` key into ``True``
        and ``when: True`` into a bool; map both back to strings.
        """
        if not isinstance(data, dict):
            return data
        fixed: Dict[Any, Any] = {}
        for key, value in data.items():
            if key is True:
                key = "on"
            if isinstance(value, bool):
                value = "True" if value else "False"
            fixed[key] = value
        return fixed

    @property
    def is_blank(self) -> bool:
        return not (self.on or "").strip() and not (self.when or "").strip()

    @property
    def is_complete(self) -> bool:
        return bool((self.on or "").strip()) and bool((self.when or "").strip())


class Validation(BaseModel):
    """One constraint attached to a property."""

    model_config = _SHARED_CONFIG

    kind: str = Field(
        default="",
        validation_alias=AliasChoices("type", "kind"),
        serialization_alias="type",
        description="Validation kind token, e.g. 'required'.",
    )
    depends: Optional[Depends] = Field(
        default=None, description="Optional conditional-activation clause."
    )

    def __repr__(self) -> str:
        return f"<Validation {self.kind}>"


class Property(BaseModel):
    """One field of an entity."""

    model_config = _SHARED_CONFIG

    name: str = Field(default="", description="Property name as declared.")
    column: str = Field(default="", description="Storage column name.")
    primitive: str = Field(default="", description="Primitive kind token.")
    is_primary_key: bool = Field(
        default=False,
        validation_alias=AliasChoices("isPrimaryKey", "is_primary_key"),
        serialization_alias="isPrimaryKey",
    )
    validations: List[Validation] = Field(default_factory=list)

    def __repr__(self) -> str:
        pk_flag: str = " PK" if self.is_primary_key else ""
        return f"<Property {self.name} {self.primitive}{pk_flag}>"


class PreAction(BaseModel):
    """Before insert/update, assign ``expression`` to property ``target``."""

    model_config = _SHARED_CONFIG

    target: str = Field(
        default="",
        validation_alias=AliasChoices("property", "target"),
        serialization_alias="property",
    )
    expression: str = Field(
        default="",
        validation_alias=AliasChoices("set", "expression"),
        serialization_alias="set",
    )

    def __repr__(self) -> str:
        return f"<PreAction {self.target} = {self.expression}>"


class Entity(BaseModel):
    """
    One data aggregate to scaffold.

    Drives every synthesizer: entity class, queries, repository,
    validators, service and controller.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(default="", description="Entity (and table) name.")
    properties: List[Property] = Field(default_factory=list)
    pre_inserts: List[PreAction] = Field(
        default_factory=list,
        validation_alias=AliasChoices("preInserts", "pre_inserts"),
        serialization_alias="preInserts",
    )
    pre_updates: List[PreAction] = Field(
        default_factory=list,
        validation_alias=AliasChoices("preUpdates", "pre_updates"),
        serialization_alias="preUpdates",
    )

    @field_validator("pre_inserts", "pre_updates", mode="before")
    @classmethod
    def _none_as_empty(cls, v: object) -> object:
        return [] if v is None else v

    @property
    def primary_keys(self) -> List[Property]:
        return [p for p in self.properties if p.is_primary_key]

    def find_property(self, name: Optional[str]) -> Optional[Property]:
        """Case-insensitive lookup; the first declaration wins."""
        if name is None:
            return None
        wanted: str = name.casefold()
        for prop in self.properties:
            if prop.name.casefold() == wanted:
                return prop
        return None

    def __repr__(self) -> str:
        return f"<Entity {self.name} ({len(self.properties)} props)>"


class Project(BaseModel):
    """The root model: one generation unit."""

    model_config = _SHARED_CONFIG

    name: str = Field(default="", description="Project / root namespace name.")
    dialect: str = Field(
        default="",
        validation_alias=AliasChoices("dialect", "database"),
        serialization_alias="dialect",
        description="Target dialect token, e.g. 'mysql'.",
    )
    entities: List[Entity] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def entity_count(self) -> int:
        return len(self.entities)

    @computed_field  # type: ignore[misc]
    @property
    def total_properties(self) -> int:
        return sum(len(e.properties) for e in self.entities)

    def __repr__(self) -> str:
        return (
            f"<Project {self.name} [{self.dialect}] "
            f"{self.entity_count} entities, {self.total_properties} properties>"
        )


# ---------------------------------------------------------------------------
# Generation output
# ---------------------------------------------------------------------------


class Artifact(BaseModel):
    """One generated output unit: a relative path plus its text."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = Field(..., min_length=1, description="Relative file path.")
    content: str = Field(..., description="Full file content.")

    @computed_field  # type: ignore[misc]
    @property
    def line_count(self) -> int:
        if not self.content:
            return 0
        return self.content.count("\n") + (0 if self.content.endswith("\n") else 1)

    @computed_field  # type: ignore[misc]
    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))

    @computed_field  # type: ignore[misc]
    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.content.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """Settings that control a generation run (not part of the schema)."""

    model_config = _SHARED_CONFIG

    output_dir: str = Field(
        default="./generated", description="Root directory for generated code."
    )
    overwrite_existing: bool = Field(
        default=True,
        description="Replace files that already exist in output_dir.",
    )
    generate_manifest: bool = Field(
        default=True, description="Write genco-manifest.json next to the output."
    )
    indent_size: int = Field(default=4, ge=2, le=8, description="Indentation width.")
    synthesizers: List[str] = Field(
        default_factory=lambda: list(SYNTHESIZER_NAMES),
        description="Enabled synthesizers, in generation order.",
    )

    @field_validator("synthesizers")
    @classmethod
    def _known_synthesizers(cls, v: List[str]) -> List[str]:
        unknown: List[str] = [s for s in v if s not in SYNTHESIZER_NAMES]
        if unknown:
            raise ValueError(
                f"Unknown synthesizer(s): {unknown}. "
                f"Available: {', '.join(SYNTHESIZER_NAMES)}"
            )
        if len(v) != len(set(v)):
            raise ValueError(f"Duplicate synthesizer names: {v}")
        return v


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ConfigurationError",
    "PrimitiveKind",
    "Dialect",
    "ValidationKind",
    "SYNTHESIZER_NAMES",
    "Depends",
    "Validation",
    "Property",
    "PreAction",
    "Entity",
    "Project",
    "Artifact",
    "GenerationConfig",
]

logger.debug("genco.models loaded - %d public symbols.", len(__all__))
