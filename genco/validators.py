# File: genco/validators.py
"""
Genco - Schema Validators
=========================
A **pure-function validation pipeline** over the models in ``genco.models``.

Two families of checks run here:

* structural checks, one function per node type (project, entity,
  property, validation, depends, pre-action), which look at a node's own
  fields only;
* cross-referential checks, which resolve ``Depends.on`` and
  ``PreAction.property`` against the owning entity's properties and check
  ``Depends.when`` against the referenced primitive's token table.

Every check appends to a ``ValidationResult`` instead of raising, so one run
reports every problem.  The exception is a ``Depends`` aimed at a property
whose primitive has no table entry: there is no state table to check it
against, so ``resolve_depends`` raises ``ConfigurationError``.
``validate_project`` works on a deep copy of the
input and returns that copy with references rewritten to the declared casing
of the property they resolved to; the synthesizers consume that copy and
never do case-insensitive lookups of their own.

Usage by downstream modules:
    from genco.validators import validate_project
    result = validate_project(project)
    if result.has_errors:
        ...
    canonical = result.project
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from genco.models import (
    Dialect,
    Entity,
    PreAction,
    PrimitiveKind,
    Project,
    Property,
    Validation,
    ValidationKind,
)
from genco.primitives import (
    PrimitiveSpec,
    allowed_primitives,
    get_primitive_spec,
    parse_dialect,
    parse_primitive,
    parse_validation_kind,
    resolve_primitive,
)
from genco.utils import is_identifier, to_variable_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("genco.validators")

_DIALECT_VALUES: str = ", ".join(d.value for d in Dialect)
_PRIMITIVE_VALUES: str = ", ".join(p.value for p in PrimitiveKind)
_VALIDATION_VALUES: str = ", ".join(v.value for v in ValidationKind)

# Parameters and locals of the generated paginate method
_PAGINATE_FIXED_NAMES: Tuple[str, ...] = (
    "offset",
    "limit",
    "filter",
    "paginated",
    "total",
    "pagination",
)


# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class Diagnostic:
    """Lightweight diagnostic descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """
    Accumulates ``Diagnostic`` instances produced by the pipeline.

    ``project`` is the canonicalized copy of the validated schema; it is set
    by ``validate_project`` and left ``None`` by the individual checks.
    """

    __slots__ = ("_items", "project")

    def __init__(self) -> None:
        self._items: List[Diagnostic] = []
        self.project: Optional[Project] = None

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(Diagnostic("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(Diagnostic("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[Diagnostic]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[Diagnostic]:
        return list(self._items)

    @property
    def diagnostics(self) -> List[str]:
        """Messages of every item, in the order they were produced."""
        return [item.message for item in self._items]

    @property
    def codes(self) -> List[str]:
        return [item.code for item in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            prefix: str = "✗" if item.is_error else "⚠"
            lines.append(f"  {prefix} [{item.code}] {item.message}")
        return "\n".join(lines)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


# ---------------------------------------------------------------------------
# Structural checks (one node at a time)
# ---------------------------------------------------------------------------


def validate_project_fields(project: Project) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"project": project.name}

    if _blank(project.name):
        result.add_error("PROJECT_NAME_EMPTY", "Project \"name\" must not be empty", ctx)

    if parse_dialect(project.dialect) is None:
        result.add_error(
            "UNKNOWN_DIALECT",
            f"Project \"{project.name}\" has an unknown dialect ({project.dialect}). "
            f"Allowed values: {_DIALECT_VALUES}",
            ctx,
        )

    if not project.entities:
        result.add_error(
            "NO_ENTITIES",
            f"Project \"{project.name}\" must declare at least one entity",
            ctx,
        )

    seen: Set[str] = set()
    for entity in project.entities:
        folded: str = entity.name.casefold()
        if folded and folded in seen:
            result.add_error(
                "DUPLICATE_ENTITY_NAME",
                f"Entity \"{entity.name}\" is declared more than once in "
                f"\"{project.name}\" project",
                {**ctx, "entity": entity.name},
            )
        seen.add(folded)

    return result


def validate_entity_fields(entity: Entity) -> ValidationResult:
    """
    Name, property count and primary-key count of one entity.

    Duplicate property names are only a warning: every lookup resolves to
    the first declaration.
    """
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"entity": entity.name}

    if _blank(entity.name):
        result.add_error("ENTITY_NAME_EMPTY", "Entity \"name\" must not be empty", ctx)
    elif not is_identifier(entity.name):
        result.add_error(
            "INVALID_ENTITY_NAME",
            f"Entity \"{entity.name}\" is not a valid identifier",
            ctx,
        )

    if not entity.properties:
        result.add_error(
            "NO_PROPERTIES",
            f"Entity \"{entity.name}\" must declare at least one property",
            ctx,
        )
        return result

    pk_count: int = len(entity.primary_keys)
    if pk_count != 1:
        result.add_error(
            "PRIMARY_KEY_COUNT",
            f"Entity \"{entity.name}\" must have exactly one primary key "
            f"property, found {pk_count}",
            {**ctx, "primary_keys": [p.name for p in entity.primary_keys]},
        )

    seen: Set[str] = set()
    for prop in entity.properties:
        folded: str = prop.name.casefold()
        if folded and folded in seen:
            result.add_warning(
                "DUPLICATE_PROPERTY_NAME",
                f"Property \"{prop.name}\" is declared more than once in "
                f"\"{entity.name}\" entity; references resolve to the first one",
                {**ctx, "property": prop.name},
            )
        seen.add(folded)

    return result


def validate_pagination_parameters(entity: Entity) -> ValidationResult:
    """
    Names the generated paginate method derives from the entity's properties.

    The method takes ``offset``, ``limit`` and one filter per property
    (``from<P>``/``to<P>`` for range primitives) and declares a few locals of
    its own; any two of these sharing a name would not compile.
    """
    result: ValidationResult = ValidationResult()
    # name -> property that produced it; "" marks a fixed name
    owners: Dict[str, str] = {name: "" for name in _PAGINATE_FIXED_NAMES}

    for prop in entity.properties:
        if _blank(prop.name):
            continue
        kind: Optional[PrimitiveKind] = parse_primitive(prop.primitive)
        names: List[str]
        if kind is not None and get_primitive_spec(kind).range_filter:
            names = [
                f"from{prop.name}",
                f"to{prop.name}",
                f"parsedFrom{prop.name}",
                f"parsedTo{prop.name}",
            ]
        else:
            names = [to_variable_name(prop.name)]

        for name in names:
            owner: Optional[str] = owners.get(name)
            if owner is None:
                owners[name] = prop.name
                continue
            if owner and owner.casefold() == prop.name.casefold():
                # DUPLICATE_PROPERTY_NAME already covers it
                continue
            clash: str = (
                "a name the paginate method uses itself"
                if not owner
                else f"the one derived from property \"{owner}\""
            )
            result.add_error(
                "PAGINATION_PARAMETER_CLASH",
                f"Property \"{prop.name}\" from \"{entity.name}\" entity derives the "
                f"paginate name \"{name}\", which clashes with {clash}",
                {"entity": entity.name, "property": prop.name, "name": name},
            )

    return result


def validate_property_fields(entity: Entity, prop: Property) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"entity": entity.name, "property": prop.name}

    if _blank(prop.name):
        result.add_error(
            "PROPERTY_NAME_EMPTY",
            f"Property \"name\" from \"{entity.name}\" entity must not be empty",
            ctx,
        )
    elif not is_identifier(prop.name):
        result.add_error(
            "INVALID_PROPERTY_NAME",
            f"Property \"{prop.name}\" from \"{entity.name}\" entity is not a "
            f"valid identifier",
            ctx,
        )

    if _blank(prop.column):
        result.add_error(
            "PROPERTY_COLUMN_EMPTY",
            f"Property \"{prop.name}\" from \"{entity.name}\" entity must have a "
            f"\"column\"",
            ctx,
        )

    if parse_primitive(prop.primitive) is None:
        result.add_error(
            "UNKNOWN_PRIMITIVE",
            f"Property \"{prop.name}\" from \"{entity.name}\" entity has an unknown "
            f"primitive ({prop.primitive}). Allowed values: {_PRIMITIVE_VALUES}",
            ctx,
        )

    return result


def validate_validation_fields(
    entity: Entity, prop: Property, validation: Validation
) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {
        "entity": entity.name,
        "property": prop.name,
        "validation": validation.kind,
    }

    kind: Optional[ValidationKind] = parse_validation_kind(validation.kind)
    if kind is None:
        result.add_error(
            "UNKNOWN_VALIDATION",
            f"Validation \"{validation.kind}\" from \"{prop.name}\" property is not "
            f"recognised. Allowed values: {_VALIDATION_VALUES}",
            ctx,
        )
        return result

    primitive: Optional[PrimitiveKind] = parse_primitive(prop.primitive)
    if primitive is not None and primitive not in allowed_primitives(kind):
        allowed: str = ", ".join(
            p.value for p in PrimitiveKind if p in allowed_primitives(kind)
        )
        result.add_error(
            "VALIDATION_PRIMITIVE_MISMATCH",
            f"Validation \"{validation.kind}\" from \"{prop.name}\" property cannot be "
            f"applied to primitive ({prop.primitive}). Allowed primitives: {allowed}",
            ctx,
        )

    return result


def validate_depends_fields(
    entity: Entity, prop: Property, validation: Validation
) -> ValidationResult:
    """A ``Depends`` clause is either fully empty or fully populated."""
    result: ValidationResult = ValidationResult()
    depends = validation.depends
    if depends is None or depends.is_blank or depends.is_complete:
        return result

    result.add_error(
        "DEPENDS_INCOMPLETE",
        f"Depends' \"on\" ({depends.on}) and \"when\" ({depends.when}) from "
        f"\"{prop.name}\" property must be both filled or both empty",
        {"entity": entity.name, "property": prop.name, "validation": validation.kind},
    )
    return result


def validate_pre_action_fields(
    entity: Entity, action: PreAction, stage: str
) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"entity": entity.name, "stage": stage}

    if _blank(action.target):
        result.add_error(
            "PRE_ACTION_PROPERTY_EMPTY",
            f"PreAction \"property\" from \"{entity.name}\" entity ({stage}) must "
            f"not be empty",
            ctx,
        )

    if _blank(action.expression):
        result.add_error(
            "PRE_ACTION_SET_EMPTY",
            f"PreAction \"set\" for \"{action.target}\" from \"{entity.name}\" "
            f"entity ({stage}) must not be empty",
            ctx,
        )

    return result


# ---------------------------------------------------------------------------
# Cross-referential checks (mutate the node they are given)
# ---------------------------------------------------------------------------


def resolve_depends(
    entity: Entity, prop: Property, validation: Validation
) -> ValidationResult:
    """
    Resolve ``depends.on`` against *entity* and check ``depends.when``.

    On a match ``depends.on`` is rewritten to the declared casing.

    Raises:
        ConfigurationError: the referenced property's primitive has no
            token table; there is no way to check ``depends.when``.
    """
    result: ValidationResult = ValidationResult()
    depends = validation.depends
    if depends is None or not depends.is_complete:
        return result

    ctx: Dict[str, Any] = {
        "entity": entity.name,
        "property": prop.name,
        "on": depends.on,
        "when": depends.when,
    }

    matched: Optional[Property] = entity.find_property(depends.on)
    if matched is None:
        result.add_error(
            "DEPENDENCY_NOT_MET",
            f"Depends' \"on\" ({depends.on}) and \"when\" ({depends.when}) from "
            f"\"{prop.name}\" property has a dependency not met",
            ctx,
        )
        return result

    if depends.on != matched.name:
        logger.debug("Canonicalising depends.on %r → %r", depends.on, matched.name)
        depends.on = matched.name

    spec: PrimitiveSpec = get_primitive_spec(resolve_primitive(matched.primitive))
    if spec.find_when(depends.when) is None:
        result.add_error(
            "DEPENDENCY_WHEN_NOT_ALLOWED",
            f"Depends' \"on\" ({depends.on}) and \"when\" ({depends.when}) from "
            f"\"{prop.name}\" property has a \"when\" ({depends.when}) not allowed "
            f"for its \"on\" ({depends.on}) primitive ({matched.primitive}). "
            f"Allowed values: {', '.join(spec.when_tokens)}",
            {**ctx, "allowed": spec.when_tokens},
        )

    return result


def resolve_pre_action(entity: Entity, action: PreAction, stage: str) -> ValidationResult:
    """Resolve ``action.target`` against *entity*, rewriting it on a match."""
    result: ValidationResult = ValidationResult()
    if _blank(action.target):
        return result

    matched: Optional[Property] = entity.find_property(action.target)
    if matched is None:
        result.add_error(
            "PRE_ACTION_NOT_MET",
            f"PreAction \"set\" ({action.expression}) and \"property\" "
            f"({action.target}) from \"{entity.name}\" entity has a dependency "
            f"not met",
            {"entity": entity.name, "stage": stage, "property": action.target},
        )
        return result

    if action.target != matched.name:
        logger.debug("Canonicalising pre-action %r → %r", action.target, matched.name)
        action.target = matched.name

    return result


# ---------------------------------------------------------------------------
# Master entry point
# ---------------------------------------------------------------------------


def validate_project(project: Project) -> ValidationResult:
    """
    **Master validation entry point.**

    Walks the schema in declaration order (project, then per entity: the
    entity itself, its pre-inserts, its pre-updates, then each property and
    each of its validations) and collects every diagnostic.  The input is
    not modified; ``result.project`` holds the canonicalized copy.

    Raises:
        ConfigurationError: a Depends targets a property whose primitive
            has no lookup table entry.
    """
    canonical: Project = project.model_copy(deep=True)
    result: ValidationResult = ValidationResult()
    result.project = canonical

    logger.debug("Project \"%s\":", canonical.name)
    result.merge(validate_project_fields(canonical))

    for entity in canonical.entities:
        logger.debug("Entity \"%s\" from \"%s\" project:", entity.name, canonical.name)
        result.merge(validate_entity_fields(entity))
        result.merge(validate_pagination_parameters(entity))

        for stage, actions in (
            ("preInserts", entity.pre_inserts),
            ("preUpdates", entity.pre_updates),
        ):
            for action in actions:
                result.merge(validate_pre_action_fields(entity, action, stage))
                result.merge(resolve_pre_action(entity, action, stage))

        for prop in entity.properties:
            logger.debug("Property \"%s\" from \"%s\" entity:", prop.name, entity.name)
            result.merge(validate_property_fields(entity, prop))

            for validation in prop.validations:
                result.merge(validate_validation_fields(entity, prop, validation))
                result.merge(validate_depends_fields(entity, prop, validation))
                result.merge(resolve_depends(entity, prop, validation))

    for item in result.all_items:
        if item.is_error:
            logger.error("%s", item.message)
        else:
            logger.warning("%s", item.message)

    if result.has_errors:
        logger.error("Validation FAILED. %s", result.summary())
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "Diagnostic",
    "ValidationResult",
    "validate_project_fields",
    "validate_entity_fields",
    "validate_pagination_parameters",
    "validate_property_fields",
    "validate_validation_fields",
    "validate_depends_fields",
    "validate_pre_action_fields",
    "resolve_depends",
    "resolve_pre_action",
    "validate_project",
]

logger.debug("genco.validators loaded - %d public symbols.", len(__all__))
