# File: genco/templates.py
"""
Genco - Artifact Synthesizers
=============================
Expands each entity of a validated ``Project`` into C# source artifacts:

    1. Entity class          (``Common/Domain/Entities/<E>.cs``)
    2. Query constants       (``Common/Queries/<E>Query.cs``)
    3. Dapper repository     (``Common/Repositories/<E>Repository.cs``)
    4. FluentValidation      (``Common/Validators/<E>Validator.cs``)
    5. Service layer         (``Common/Services/<E>Service.cs``)
    6. API controller        (``Api/Controllers/<E>Controller.cs``)

Every synthesizer builds a ``SourceUnit`` tree (see ``genco.codegen``) and
renders it once.  Method names, query constant names and parameter lists
come from the shared helpers in this module, so the repository call sites,
the query class, the validators, the service and the controller all agree
without a separate linking pass.

Synthesizers are pure: no I/O, no mutation of the model.  An unknown
dialect or primitive, or an entity without exactly one primary key, raises
``ConfigurationError`` and aborts the whole run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Type

from genco.codegen import (
    INDENT,
    AutoProperty,
    Constant,
    Constructor,
    CSharpRenderer,
    FieldDecl,
    Method,
    MethodSignature,
    Parameter,
    SourceUnit,
    TypeDecl,
)
from genco.models import (
    Artifact,
    ConfigurationError,
    Dialect,
    Entity,
    GenerationConfig,
    PreAction,
    PrimitiveKind,
    Project,
    Property,
    Validation,
    ValidationKind,
)
from genco.primitives import (
    PrimitiveSpec,
    WhenState,
    parse_validation_kind,
    resolve_dialect,
    resolve_primitive,
    get_primitive_spec,
)
from genco.utils import quote_csharp, to_constant_case, to_variable_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("genco.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DAY_START: time = time(0, 0, 0)
DAY_END: time = time(23, 59, 59)


# ---------------------------------------------------------------------------
# Per-entity context (computed once, shared by every synthesizer)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PropertyContext:
    """Derived names and types of one property."""

    name: str
    variable: str
    column: str
    constant: str
    kind: PrimitiveKind
    spec: PrimitiveSpec
    is_key: bool

    @property
    def type_name(self) -> str:
        return self.spec.target_type

    @property
    def filter_type(self) -> str:
        return self.spec.filter_type

    @property
    def is_range(self) -> bool:
        return self.spec.range_filter

    @property
    def from_name(self) -> str:
        return f"from{self.name}"

    @property
    def to_name(self) -> str:
        return f"to{self.name}"


@dataclass(frozen=True, slots=True)
class EntityContext:
    project_name: str
    dialect: Dialect
    name: str
    variable: str
    properties: Tuple[PropertyContext, ...]
    key: PropertyContext
    entity: Entity

    @property
    def non_key_properties(self) -> Tuple[PropertyContext, ...]:
        return tuple(p for p in self.properties if not p.is_key)

    def property_named(self, name: Optional[str]) -> PropertyContext:
        """Exact lookup; names were canonicalized by the validator."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        raise ConfigurationError(
            f'Entity "{self.name}" has no property "{name}"; '
            f"was the schema validated?"
        )


def _property_context(prop: Property) -> PropertyContext:
    kind: PrimitiveKind = resolve_primitive(prop.primitive)
    return PropertyContext(
        name=prop.name,
        variable=to_variable_name(prop.name),
        column=prop.column,
        constant=to_constant_case(prop.name),
        kind=kind,
        spec=get_primitive_spec(kind),
        is_key=prop.is_primary_key,
    )


def build_entity_context(project: Project, entity: Entity) -> EntityContext:
    """
    Resolve dialect, primitives and primary key for *entity*.

    Raises:
        ConfigurationError: unknown dialect/primitive, or not exactly one
            primary key.
    """
    dialect: Dialect = resolve_dialect(project.dialect)
    keys: List[Property] = entity.primary_keys
    if len(keys) != 1:
        raise ConfigurationError(
            f'Entity "{entity.name}" must have exactly one primary key, '
            f"found {len(keys)}"
        )
    properties: Tuple[PropertyContext, ...] = tuple(
        _property_context(p) for p in entity.properties
    )
    key: PropertyContext = next(p for p in properties if p.is_key)
    return EntityContext(
        project_name=project.name,
        dialect=dialect,
        name=entity.name,
        variable=to_variable_name(entity.name),
        properties=properties,
        key=key,
        entity=entity,
    )


# ---------------------------------------------------------------------------
# Shared naming derivations (the cross-artifact contract)
# ---------------------------------------------------------------------------


def repository_interface_name(ctx: EntityContext) -> str:
    return f"I{ctx.name}Repository"


def service_interface_name(ctx: EntityContext) -> str:
    return f"I{ctx.name}Service"


def query_class_name(ctx: EntityContext) -> str:
    return f"{ctx.name}Query"


def exists_by_method_name(prop: PropertyContext) -> str:
    return f"ExistsBy{prop.name}Async"


def exists_by_different_method_name(prop: PropertyContext, key: PropertyContext) -> str:
    return f"ExistsBy{prop.name}AndDifferentThan{key.name}Async"


def exists_by_constant_name(prop: PropertyContext) -> str:
    return f"EXISTS_BY_{prop.constant}"


def exists_by_different_constant_name(prop: PropertyContext, key: PropertyContext) -> str:
    return f"EXISTS_BY_{prop.constant}_AND_DIFFERENT_{key.constant}"


def _field_name(variable: str) -> str:
    return f"_{variable.lstrip('@')}"


# ---------------------------------------------------------------------------
# Shared parameter lists
# ---------------------------------------------------------------------------


def pagination_parameters(ctx: EntityContext, attribute: str = "") -> Tuple[Parameter, ...]:
    """
    ``offset, limit`` plus one filter per property, in declaration order.

    Range-filtered primitives (datetime) contribute a ``from``/``to`` pair.
    """
    params: List[Parameter] = [
        Parameter("int", "offset", attribute),
        Parameter("int", "limit", attribute),
    ]
    for prop in ctx.properties:
        if prop.is_range:
            params.append(Parameter(prop.filter_type, prop.from_name, attribute))
            params.append(Parameter(prop.filter_type, prop.to_name, attribute))
        else:
            params.append(Parameter(prop.filter_type, prop.variable, attribute))
    return tuple(params)


def pagination_filter_bindings(ctx: EntityContext) -> List[Tuple[str, str]]:
    """
    (SQL parameter name, C# value) pairs bound by the paginate call.

    Range filters bind the normalized ``parsedFrom``/``parsedTo`` locals.
    """
    bindings: List[Tuple[str, str]] = []
    for prop in ctx.properties:
        if prop.is_range:
            bindings.append((prop.from_name, f"parsedFrom{prop.name}"))
            bindings.append((prop.to_name, f"parsedTo{prop.name}"))
        else:
            bindings.append((prop.column, prop.variable))
    return bindings


def normalize_range(
    from_value: Optional[datetime], to_value: Optional[datetime]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    The day-range normalization the generated paginate code performs:
    ``from`` moves to the start of its day, ``to`` to the last second of it.
    ``None`` stays ``None``.
    """
    start: Optional[datetime] = (
        datetime.combine(from_value.date(), DAY_START) if from_value is not None else None
    )
    end: Optional[datetime] = (
        datetime.combine(to_value.date(), DAY_END) if to_value is not None else None
    )
    return start, end


@dataclass(frozen=True, slots=True)
class CrudSignatures:
    insert: MethodSignature
    update: MethodSignature
    delete: MethodSignature
    get: MethodSignature
    list: MethodSignature
    paginate: MethodSignature

    def as_tuple(self) -> Tuple[MethodSignature, ...]:
        return (self.insert, self.update, self.delete, self.get, self.list, self.paginate)


def crud_signatures(ctx: EntityContext) -> CrudSignatures:
    """Signatures shared verbatim by the repository and the service."""
    key = Parameter(ctx.key.type_name, ctx.key.variable)
    entity = Parameter(ctx.name, ctx.variable)
    return CrudSignatures(
        insert=MethodSignature("InsertAsync", f"Task<{ctx.key.type_name}>", (entity,)),
        update=MethodSignature("UpdateAsync", "Task", (key, entity)),
        delete=MethodSignature("DeleteAsync", "Task", (key,)),
        get=MethodSignature("GetAsync", f"Task<{ctx.name}>", (key,)),
        list=MethodSignature("ListAsync", f"Task<IList<{ctx.name}>>"),
        paginate=MethodSignature(
            "PaginateAsync", f"Task<Pagination<{ctx.name}>>", pagination_parameters(ctx)
        ),
    )


def exists_signatures(ctx: EntityContext) -> List[Tuple[PropertyContext, MethodSignature]]:
    return [
        (
            prop,
            MethodSignature(
                exists_by_method_name(prop),
                "Task<bool>",
                (Parameter(prop.type_name, prop.variable),),
            ),
        )
        for prop in ctx.properties
    ]


def exists_different_signatures(
    ctx: EntityContext,
) -> List[Tuple[PropertyContext, MethodSignature]]:
    """One per non-key property; the key itself is never in this family."""
    key: PropertyContext = ctx.key
    return [
        (
            prop,
            MethodSignature(
                exists_by_different_method_name(prop, key),
                "Task<bool>",
                (
                    Parameter(prop.type_name, prop.variable),
                    Parameter(key.type_name, key.variable),
                ),
            ),
        )
        for prop in ctx.non_key_properties
    ]


# ---------------------------------------------------------------------------
# Dependency-injection helper
# ---------------------------------------------------------------------------


def _injected(
    dependencies: Sequence[Tuple[str, str]],
) -> Tuple[Tuple[FieldDecl, ...], Tuple[Parameter, ...], List[str]]:
    """Fields, constructor parameters and null-guard lines for (type, name) pairs."""
    fields: List[FieldDecl] = []
    params: List[Parameter] = []
    body: List[str] = []
    for type_name, variable in dependencies:
        field: str = _field_name(variable)
        fields.append(FieldDecl(type_name, field))
        params.append(Parameter(type_name, variable))
        body.append(
            f"{field} = {variable} ?? throw new ArgumentNullException(nameof({variable}));"
        )
    return tuple(fields), tuple(params), body


def _anonymous_object(prefix: str, assignments: Sequence[Tuple[str, str]], suffix: str) -> List[str]:
    lines: List[str] = [f"{prefix}new", "{"]
    for i, (name, value) in enumerate(assignments):
        comma: str = "" if i == len(assignments) - 1 else ","
        lines.append(f"{INDENT}{name} = {value}{comma}")
    lines.append("}" + suffix)
    return lines


# ---------------------------------------------------------------------------
# Base synthesizer
# ---------------------------------------------------------------------------


class EntityTemplate:
    """
    One artifact kind, generated once per entity.

    Subclasses implement ``artifact_path`` and ``build_unit``.
    """

    name: str = ""

    def __init__(self, renderer: Optional[CSharpRenderer] = None) -> None:
        self._renderer: CSharpRenderer = renderer or CSharpRenderer()

    def artifact_path(self, ctx: EntityContext) -> str:
        raise NotImplementedError

    def build_unit(self, ctx: EntityContext) -> SourceUnit:
        raise NotImplementedError

    def build(self, project: Project, entity: Entity) -> SourceUnit:
        """Structured (pre-render) form of the artifact for *entity*."""
        return self.build_unit(build_entity_context(project, entity))

    def generate_entity(self, project: Project, entity: Entity) -> Artifact:
        ctx: EntityContext = build_entity_context(project, entity)
        content: str = self._renderer.render(self.build_unit(ctx))
        artifact = Artifact(path=self.artifact_path(ctx), content=content)
        logger.debug(
            "Generated %s for '%s': %d lines.", self.name, entity.name, artifact.line_count
        )
        return artifact

    def generate(self, project: Project) -> List[Artifact]:
        return [self.generate_entity(project, entity) for entity in project.entities]


# ===========================================================================
# 1. Entity class
# ===========================================================================


class ClassTemplate(EntityTemplate):
    """Plain entity class with one auto-property per schema property."""

    name = "class"

    def artifact_path(self, ctx: EntityContext) -> str:
        return f"Common/Domain/Entities/{ctx.name}.cs"

    def build_unit(self, ctx: EntityContext) -> SourceUnit:
        decl = TypeDecl(
            kind="class",
            name=ctx.name,
            properties=tuple(AutoProperty(p.type_name, p.name) for p in ctx.properties),
        )
        return SourceUnit(
            namespace=f"{ctx.project_name}.Domain.Entities",
            usings=("System",),
            types=(decl,),
        )


# ===========================================================================
# 2. Query constants
# ===========================================================================


@dataclass(frozen=True, slots=True)
class SqlDialect:
    """Dialect-specific SQL fragments."""

    prefix: str
    paging: Tuple[str, ...]
    insert_tail: Callable[[EntityContext], Tuple[str, ...]]
    exists: Callable[[str], str]


_SQL_DIALECTS: Dict[Dialect, SqlDialect] = {
    Dialect.MYSQL: SqlDialect(
        prefix="@",
        paging=("LIMIT @limit OFFSET @offset",),
        insert_tail=lambda ctx: ("SELECT LAST_INSERT_ID();",),
        exists=lambda inner: f"SELECT EXISTS({inner})",
    ),
    Dialect.ORACLE: SqlDialect(
        prefix=":",
        paging=("OFFSET :offset ROWS FETCH NEXT :limit ROWS ONLY",),
        insert_tail=lambda ctx: (f"RETURNING {ctx.key.column} INTO :{ctx.key.column}",),
        exists=lambda inner: f"SELECT CASE WHEN EXISTS({inner}) THEN 1 ELSE 0 END FROM DUAL",
    ),
}


def sql_dialect(dialect: Dialect) -> SqlDialect:
    sql: Optional[SqlDialect] = _SQL_DIALECTS.get(dialect)
    if sql is None:
        raise ConfigurationError(f'Database "{dialect.value}" not implemented')
    return sql


class QueryTemplate(EntityTemplate):
    """
    Static class of SQL constants referenced by the repository.

    Bind-parameter names equal column names, except the pagination range
    filters which bind ``from<Prop>``/``to<Prop>``.
    """

    name = "query"

    def artifact_path(self, ctx: EntityContext) -> str:
        return f"Common/Queries/{ctx.name}Query.cs"

    def build_unit(self, ctx: EntityContext) -> SourceUnit:
        sql: SqlDialect = sql_dialect(ctx.dialect)
        p: str = sql.prefix
        table: str = ctx.name
        key: PropertyContext = ctx.key
        key_match: str = f"{key.column} = {p}{key.column}"
        select: str = "SELECT " + ", ".join(f"{x.column} AS {x.name}" for x in ctx.properties)
        non_key: Tuple[PropertyContext, ...] = ctx.non_key_properties

        constants: List[Constant] = [
            Constant(
                "INSERT",
                (
                    f"INSERT INTO {table} ({', '.join(x.column for x in non_key)})",
                    f"VALUES ({', '.join(p + x.column for x in non_key)})"
                    + (";" if ctx.dialect == Dialect.MYSQL else ""),
                )
                + sql.insert_tail(ctx),
            ),
            Constant(
                "UPDATE",
                (
                    f"UPDATE {table}",
                    "SET " + ", ".join(f"{x.column} = {p}{x.column}" for x in non_key),
                    f"WHERE {key_match}",
                ),
            ),
            Constant("DELETE", (f"DELETE FROM {table}", f"WHERE {key_match}")),
            Constant("GET", (select, f"FROM {table}", f"WHERE {key_match}")),
            Constant("LIST", (select, f"FROM {table}")),
        ]

        filters: List[str] = self._filter_lines(ctx, p)
        constants.append(
            Constant(
                "PAGINATE",
                (select, f"FROM {table}")
                + tuple(filters)
                + (f"ORDER BY {key.column}",)
                + sql.paging,
            )
        )
        constants.append(
            Constant("PAGINATE_COUNT", ("SELECT COUNT(*)", f"FROM {table}") + tuple(filters))
        )

        for prop in ctx.properties:
            inner: str = f"SELECT 1 FROM {table} WHERE {prop.column} = {p}{prop.column}"
            constants.append(Constant(exists_by_constant_name(prop), (sql.exists(inner),)))

        for prop in non_key:
            inner = (
                f"SELECT 1 FROM {table} WHERE {prop.column} = {p}{prop.column} "
                f"AND {key.column} <> {p}{key.column}"
            )
            constants.append(
                Constant(exists_by_different_constant_name(prop, key), (sql.exists(inner),))
            )

        decl = TypeDecl(kind="static class", name=query_class_name(ctx), constants=tuple(constants))
        return SourceUnit(namespace=f"{ctx.project_name}.Queries", types=(decl,))

    def _filter_lines(self, ctx: EntityContext, p: str) -> List[str]:
        conditions: List[str] = []
        for prop in ctx.properties:
            col: str = prop.column
            if prop.is_range:
                conditions.append(f"({p}{prop.from_name} IS NULL OR {col} >= {p}{prop.from_name})")
                conditions.append(f"({p}{prop.to_name} IS NULL OR {col} <= {p}{prop.to_name})")
            else:
                conditions.append(f"({p}{col} IS NULL OR {col} = {p}{col})")
        return [("WHERE " if i == 0 else "AND ") + c for i, c in enumerate(conditions)]


# ===========================================================================
# 3. Repository
# ===========================================================================


@dataclass(frozen=True, slots=True)
class BoundParameter:
    """One ``DynamicParameters.Add`` call of the generated insert."""

    name: str
    value: str
    direction: str  # "Input" | "Output"

    def render(self, collection: str = "parameters") -> str:
        return (
            f'{collection}.Add("{self.name}", {self.value}, '
            f"direction: ParameterDirection.{self.direction});"
        )


@dataclass(frozen=True, slots=True)
class InsertPlan:
    """How the generated insert obtains the new primary key."""

    key_retrieval: str  # "scalar" | "output"
    bindings: Tuple[BoundParameter, ...]
    execute: Tuple[str, ...]


def _input_bindings(ctx: EntityContext) -> Tuple[BoundParameter, ...]:
    return tuple(
        BoundParameter(p.column, f"{ctx.variable}.{p.name}", "Input")
        for p in ctx.non_key_properties
    )


def _scalar_insert(ctx: EntityContext) -> InsertPlan:
    key: PropertyContext = ctx.key
    return InsertPlan(
        key_retrieval="scalar",
        bindings=_input_bindings(ctx),
        execute=(
            f"var {key.variable} = await _sqlService.ExecuteScalarAsync<{key.type_name}>("
            f"{query_class_name(ctx)}.INSERT, CommandType.Text, parameters);",
        ),
    )


def _output_parameter_insert(ctx: EntityContext) -> InsertPlan:
    key: PropertyContext = ctx.key
    output = BoundParameter(key.column, f"{ctx.variable}.{key.name}", "Output")
    return InsertPlan(
        key_retrieval="output",
        bindings=(output,) + _input_bindings(ctx),
        execute=(
            f"await _sqlService.ExecuteAsync({query_class_name(ctx)}.INSERT, "
            f"CommandType.Text, parameters);",
            "",
            f'var {key.variable} = parameters.Get<{key.type_name}>("{key.column}");',
        ),
    )


_INSERT_STRATEGIES: Dict[Dialect, Callable[[EntityContext], InsertPlan]] = {
    Dialect.MYSQL: _scalar_insert,
    Dialect.ORACLE: _output_parameter_insert,
}


def insert_plan(ctx: EntityContext) -> InsertPlan:
    strategy: Optional[Callable[[EntityContext], InsertPlan]] = _INSERT_STRATEGIES.get(ctx.dialect)
    if strategy is None:
        raise ConfigurationError(f'Database "{ctx.dialect.value}" not implemented')
    return strategy(ctx)


def update_assignments(ctx: EntityContext) -> List[Tuple[str, str]]:
    """Column → value for UPDATE, declaration order, key from its own parameter."""
    return [
        (p.column, ctx.key.variable if p.is_key else f"{ctx.variable}.{p.name}")
        for p in ctx.properties
    ]


_WHO: str = "User {_authenticatedService.GetUserKey()}"


class RepositoryTemplate(EntityTemplate):
    """
    Dapper repository: interface plus implementation.

    Operations: insert, update, delete, get, list, paginate,
    ``ExistsBy<P>Async`` for every property and
    ``ExistsBy<P>AndDifferentThan<K>Async`` for every non-key property.
    """

    name = "repository"

    def artifact_path(self, ctx: EntityContext) -> str:
        return f"Common/Repositories/{ctx.name}Repository.cs"

    def build_unit(self, ctx: EntityContext) -> SourceUnit:
        crud: CrudSignatures = crud_signatures(ctx)
        exists = exists_signatures(ctx)
        exists_different = exists_different_signatures(ctx)

        signatures: Tuple[MethodSignature, ...] = (
            crud.as_tuple()
            + tuple(sig for _, sig in exists)
            + tuple(sig for _, sig in exists_different)
        )
        interface = TypeDecl(
            kind="interface", name=repository_interface_name(ctx), signatures=signatures
        )

        fields, params, guards = _injected(
            (
                (f"ILogger<{ctx.name}Repository>", "logger"),
                ("ISqlService", "sqlService"),
                ("IAuthenticatedService", "authenticatedService"),
            )
        )
        methods: List[Method] = [
            Method(crud.insert, self._insert_body(ctx)),
            Method(crud.update, self._update_body(ctx)),
            Method(crud.delete, self._delete_body(ctx)),
            Method(crud.get, self._get_body(ctx)),
            Method(crud.list, self._list_body(ctx)),
            Method(crud.paginate, self._paginate_body(ctx)),
        ]
        methods.extend(Method(sig, self._exists_body(ctx, prop)) for prop, sig in exists)
        methods.extend(
            Method(sig, self._exists_different_body(ctx, prop)) for prop, sig in exists_different
        )

        implementation = TypeDecl(
            kind="class",
            name=f"{ctx.name}Repository",
            bases=(interface.name,),
            fields=fields,
            constructor=Constructor(params, tuple(guards)),
            methods=tuple(methods),
        )

        p: str = ctx.project_name
        return SourceUnit(
            namespace=f"{p}.Repositories",
            usings=(
                f"{p}.Domain.Entities",
                f"{p}.Domain.Models.Responses",
                f"{p}.Queries",
                f"{p}.Services",
                "Dapper",
                "Microsoft.Extensions.Logging",
                "System",
                "System.Collections.Generic",
                "System.Data",
                "System.Linq",
                "System.Threading.Tasks",
            ),
            types=(interface, implementation),
        )

    # -----------------------------------------------------------------
    # Method bodies
    # -----------------------------------------------------------------

    def _insert_body(self, ctx: EntityContext) -> Tuple[str, ...]:
        plan: InsertPlan = insert_plan(ctx)
        key: str = ctx.key.variable
        lines: List[str] = [
            f'_logger.LogDebug($"{_WHO} is inserting a new {ctx.name} - {{{ctx.variable}}}");',
            "",
            "var parameters = new DynamicParameters();",
        ]
        lines.extend(b.render() for b in plan.bindings)
        lines.append("")
        lines.extend(plan.execute)
        lines.extend(
            [
                "",
                f'_logger.LogDebug($"{ctx.name} {{{key}}} inserted");',
                "",
                f"return {key};",
            ]
        )
        return tuple(lines)

    def _update_body(self, ctx: EntityContext) -> Tuple[str, ...]:
        key: str = ctx.key.variable
        lines: List[str] = [
            f'_logger.LogDebug($"{_WHO} is updating {ctx.name} {{{key}}} - {{{ctx.variable}}}");',
            "",
        ]
        lines.extend(
            _anonymous_object(
                f"await _sqlService.ExecuteAsync({query_class_name(ctx)}.UPDATE, CommandType.Text, ",
                update_assignments(ctx),
                ");",
            )
        )
        lines.extend(["", f'_logger.LogDebug($"{ctx.name} {{{key}}} updated");'])
        return tuple(lines)

    def _delete_body(self, ctx: EntityContext) -> Tuple[str, ...]:
        key: PropertyContext = ctx.key
        lines: List[str] = [
            f'_logger.LogDebug($"{_WHO} is deleting {ctx.name} {{{key.variable}}}");',
            "",
        ]
        lines.extend(
            _anonymous_object(
                f"await _sqlService.ExecuteAsync({query_class_name(ctx)}.DELETE, CommandType.Text, ",
                [(key.column, key.variable)],
                ");",
            )
        )
        lines.extend(["", f'_logger.LogDebug($"{ctx.name} {{{key.variable}}} deleted");'])
        return tuple(lines)

    def _get_body(self, ctx: EntityContext) -> Tuple[str, ...]:
        key: PropertyContext = ctx.key
        lines: List[str] = [
            f'_logger.LogDebug($"{_WHO} is getting {ctx.name} {{{key.variable}}}");',
            "",
        ]
        lines.extend(
            _anonymous_object(
                f"var {ctx.variable} = await _sqlService.QueryFirstOrDefaultAsync<{ctx.name}>("
                f"{query_class_name(ctx)}.GET, CommandType.Text, ",
                [(key.column, key.variable)],
                ");",
            )
        )
        lines.extend(
            [
                "",
                f'_logger.LogDebug($"Got {ctx.name} {{{key.variable}}} - {{{ctx.variable}}}");',
                "",
                f"return {ctx.variable};",
            ]
        )
        return tuple(lines)

    def _list_body(self, ctx: EntityContext) -> Tuple[str, ...]:
        return (
            f'_logger.LogDebug($"{_WHO} is getting all {ctx.name} data");',
            "",
            f"var list = await _sqlService.QueryAsync<{ctx.name}>("
            f"{query_class_name(ctx)}.LIST, CommandType.Text);",
            "",
            f'_logger.LogDebug("Got all {ctx.name}");',
            "",
            "return list.ToList();",
        )

    def _paginate_body(self, ctx: EntityContext) -> Tuple[str, ...]:
        log: str = " - offset: {offset} - limit: {limit}"
        for prop in ctx.properties:
            if prop.is_range:
                log += (
                    f" - {prop.from_name}: {{{prop.from_name}}}"
                    f" - {prop.to_name}: {{{prop.to_name}}}"
                )
            else:
                log += f" - {prop.variable}: {{{prop.variable}}}"

        lines: List[str] = [
            f'_logger.LogDebug($"{_WHO} is paginating {ctx.name}{log}");',
            "",
        ]

        end_of_day: str = (
            f".Value.Date.AddHours({DAY_END.hour})"
            f".AddMinutes({DAY_END.minute}).AddSeconds({DAY_END.second})"
        )
        for prop in ctx.properties:
            if not prop.is_range:
                continue
            for local, source, normalize in (
                (f"parsedFrom{prop.name}", prop.from_name, ".Value.Date"),
                (f"parsedTo{prop.name}", prop.to_name, end_of_day),
            ):
                lines.extend(
                    [
                        f"{prop.filter_type} {local} = null;",
                        "",
                        f"if ({source} != null)",
                        "{",
                        f"{INDENT}{local} = {source}{normalize};",
                        "}",
                        "",
                    ]
                )

        q: str = query_class_name(ctx)
        lines.extend(
            _anonymous_object(
                "var filter = ",
                [("offset", "offset"), ("limit", "limit")] + pagination_filter_bindings(ctx),
                ";",
            )
        )
        lines.extend(
            [
                "",
                f"var paginated = await _sqlService.QueryAsync<{ctx.name}>("
                f"{q}.PAGINATE, CommandType.Text, filter);",
                "",
                f"var total = await _sqlService.ExecuteScalarAsync<int>("
                f"{q}.PAGINATE_COUNT, CommandType.Text, filter);",
                "",
                f"var pagination = new Pagination<{ctx.name}>(paginated, offset, limit, total);",
                "",
                '_logger.LogDebug($"Got pagination, the informed filter has '
                '{pagination.Items.Count()} results in database");',
                "",
                "return pagination;",
            ]
        )
        return tuple(lines)

    def _exists_body(self, ctx: EntityContext, prop: PropertyContext) -> Tuple[str, ...]:
        lines: List[str] = [
            f'_logger.LogDebug($"{_WHO} is searching for a match with {{{prop.variable}}} '
            f'in column {prop.name} on {ctx.name} table");',
            "",
        ]
        lines.extend(
            _anonymous_object(
                f"var exists = await _sqlService.ExecuteScalarAsync<bool>("
                f"{query_class_name(ctx)}.{exists_by_constant_name(prop)}, CommandType.Text, ",
                [(prop.column, prop.variable)],
                ");",
            )
        )
        lines.extend(self._exists_tail())
        return tuple(lines)

    def _exists_different_body(self, ctx: EntityContext, prop: PropertyContext) -> Tuple[str, ...]:
        key: PropertyContext = ctx.key
        lines: List[str] = [
            f'_logger.LogDebug($"{_WHO} is searching for a match with {{{prop.variable}}} '
            f"in column {prop.name} on {ctx.name} table with a different {key.name} "
            f'than {{{key.variable}}}");',
            "",
        ]
        lines.extend(
            _anonymous_object(
                f"var exists = await _sqlService.ExecuteScalarAsync<bool>("
                f"{query_class_name(ctx)}.{exists_by_different_constant_name(prop, key)}, "
                f"CommandType.Text, ",
                [(prop.column, prop.variable), (key.column, key.variable)],
                ");",
            )
        )
        lines.extend(self._exists_tail())
        return tuple(lines)

    @staticmethod
    def _exists_tail() -> List[str]:
        return [
            "",
            '_logger.LogDebug(exists ? "Found a match" : "No match found");',
            "",
            "return exists;",
        ]


# ===========================================================================
# 4. Validators
# ===========================================================================


RuleBuilder = Callable[[EntityContext, PropertyContext, str], Optional[Tuple[str, str]]]


def _required_rule(ctx: EntityContext, prop: PropertyContext, stage: str) -> Optional[Tuple[str, str]]:
    check: str = ".NotNull()" if prop.kind == PrimitiveKind.BOOL else ".NotEmpty()"
    return check, f"{prop.name} is required"


def _unique_rule(ctx: EntityContext, prop: PropertyContext, stage: str) -> Optional[Tuple[str, str]]:
    repository: str = _field_name(to_variable_name(f"{ctx.name}Repository"))
    if stage == "insert":
        check: str = (
            f".MustAsync(async ({prop.variable}, cancellation) => "
            f"!await {repository}.{exists_by_method_name(prop)}({prop.variable}))"
        )
    elif prop.is_key:
        return None
    else:
        key: PropertyContext = ctx.key
        check = (
            f".MustAsync(async ({ctx.variable}, {prop.variable}, cancellation) => "
            f"!await {repository}.{exists_by_different_method_name(prop, key)}"
            f"({prop.variable}, {ctx.variable}.{key.name}))"
        )
    return check, f"{prop.name} already exists"


_RULE_BUILDERS: Dict[ValidationKind, RuleBuilder] = {
    ValidationKind.REQUIRED: _required_rule,
    ValidationKind.UNIQUE: _unique_rule,
    ValidationKind.EMAIL: lambda ctx, prop, stage: (
        ".EmailAddress()",
        f"{prop.name} must be a valid email address",
    ),
    ValidationKind.POSITIVE: lambda ctx, prop, stage: (
        ".GreaterThan(0)",
        f"{prop.name} must be greater than zero",
    ),
    ValidationKind.PAST: lambda ctx, prop, stage: (
        ".LessThan(DateTime.Now)",
        f"{prop.name} must be in the past",
    ),
    ValidationKind.FUTURE: lambda ctx, prop, stage: (
        ".GreaterThan(DateTime.Now)",
        f"{prop.name} must be in the future",
    ),
}


def depends_condition(ctx: EntityContext, validation: Validation, parameter: str = "x") -> Optional[str]:
    """C# guard for a validation's ``Depends`` clause, ``None`` when absent."""
    depends = validation.depends
    if depends is None or not depends.is_complete:
        return None
    target: PropertyContext = ctx.property_named(depends.on)
    state: Optional[WhenState] = target.spec.find_when(depends.when)
    if state is None:
        raise ConfigurationError(
            f'State "{depends.when}" is not defined for primitive "{target.kind.value}"'
        )
    return state.render(f"{parameter}.{target.name}")


class ValidatorTemplate(EntityTemplate):
    """FluentValidation validators: one for inserts, one for updates."""

    name = "validator"

    def artifact_path(self, ctx: EntityContext) -> str:
        return f"Common/Validators/{ctx.name}Validator.cs"

    def build_unit(self, ctx: EntityContext) -> SourceUnit:
        p: str = ctx.project_name
        return SourceUnit(
            namespace=f"{p}.Validators",
            usings=(
                f"{p}.Domain.Entities",
                f"{p}.Repositories",
                "FluentValidation",
                "System",
            ),
            types=(
                self._validator(ctx, "insert", f"{ctx.name}InsertValidator"),
                self._validator(ctx, "update", f"{ctx.name}UpdateValidator"),
            ),
        )

    def rules(self, ctx: EntityContext, stage: str) -> List[List[str]]:
        """One ``RuleFor`` chain per applicable validation, declaration order."""
        chains: List[List[str]] = []
        for prop_ctx, prop in zip(ctx.properties, ctx.entity.properties):
            for validation in prop.validations:
                kind: Optional[ValidationKind] = parse_validation_kind(validation.kind)
                builder: Optional[RuleBuilder] = _RULE_BUILDERS.get(kind) if kind else None
                if builder is None:
                    raise ConfigurationError(f'Validation "{validation.kind}" not implemented')
                rule: Optional[Tuple[str, str]] = builder(ctx, prop_ctx, stage)
                if rule is None:
                    continue
                check, message = rule
                chain: List[str] = [f"RuleFor(x => x.{prop_ctx.name})", f"{INDENT}{check}"]
                condition: Optional[str] = depends_condition(ctx, validation)
                if condition is not None:
                    chain.append(f"{INDENT}.When(x => {condition})")
                chain.append(f"{INDENT}.WithMessage({quote_csharp(message)});")
                chains.append(chain)
        return chains

    def _validator(self, ctx: EntityContext, stage: str, class_name: str) -> TypeDecl:
        fields, params, guards = _injected(
            ((repository_interface_name(ctx), to_variable_name(f"{ctx.name}Repository")),)
        )
        body: List[str] = list(guards)
        for chain in self.rules(ctx, stage):
            body.append("")
            body.extend(chain)
        return TypeDecl(
            kind="class",
            name=class_name,
            bases=(f"AbstractValidator<{ctx.name}>",),
            fields=fields,
            constructor=Constructor(params, tuple(body)),
        )


# ===========================================================================
# 5. Service
# ===========================================================================


def pre_action_lines(ctx: EntityContext, actions: Sequence[PreAction]) -> List[str]:
    """Assignments applied before insert/update, declaration order."""
    return [
        f"{ctx.variable}.{ctx.property_named(action.target).name} = {action.expression};"
        for action in actions
    ]


class ServiceTemplate(EntityTemplate):
    """Service layer: pre-actions, validation, then the repository call."""

    name = "service"

    def artifact_path(self, ctx: EntityContext) -> str:
        return f"Common/Services/{ctx.name}Service.cs"

    def build_unit(self, ctx: EntityContext) -> SourceUnit:
        crud: CrudSignatures = crud_signatures(ctx)
        interface = TypeDecl(
            kind="interface", name=service_interface_name(ctx), signatures=crud.as_tuple()
        )
        repository: str = to_variable_name(f"{ctx.name}Repository")
        fields, params, guards = _injected(
            (
                (f"ILogger<{ctx.name}Service>", "logger"),
                (repository_interface_name(ctx), repository),
                (f"{ctx.name}InsertValidator", "insertValidator"),
                (f"{ctx.name}UpdateValidator", "updateValidator"),
            )
        )
        repo: str = _field_name(repository)
        key: PropertyContext = ctx.key

        def delegate(sig: MethodSignature) -> str:
            return f"{repo}.{sig.name}({', '.join(sig.parameter_names)})"

        insert_body: List[str] = pre_action_lines(ctx, ctx.entity.pre_inserts)
        if insert_body:
            insert_body.append("")
        insert_body.extend(
            [
                f"await _insertValidator.ValidateAndThrowAsync({ctx.variable});",
                "",
                f"var {key.variable} = await {delegate(crud.insert)};",
                "",
                f'_logger.LogInformation($"{ctx.name} {{{key.variable}}} created");',
                "",
                f"return {key.variable};",
            ]
        )

        update_body: List[str] = [f"{ctx.variable}.{key.name} = {key.variable};"]
        update_body.extend(pre_action_lines(ctx, ctx.entity.pre_updates))
        update_body.extend(
            [
                "",
                f"await _updateValidator.ValidateAndThrowAsync({ctx.variable});",
                "",
                f"await {delegate(crud.update)};",
                "",
                f'_logger.LogInformation($"{ctx.name} {{{key.variable}}} updated");',
            ]
        )

        delete_body: List[str] = [
            f"if (!await {repo}.{exists_by_method_name(key)}({key.variable}))",
            "{",
            f'{INDENT}throw new KeyNotFoundException($"{ctx.name} {{{key.variable}}} not found");',
            "}",
            "",
            f"await {delegate(crud.delete)};",
            "",
            f'_logger.LogInformation($"{ctx.name} {{{key.variable}}} deleted");',
        ]

        implementation = TypeDecl(
            kind="class",
            name=f"{ctx.name}Service",
            bases=(interface.name,),
            fields=fields,
            constructor=Constructor(params, tuple(guards)),
            methods=(
                Method(crud.insert, tuple(insert_body)),
                Method(crud.update, tuple(update_body)),
                Method(crud.delete, tuple(delete_body)),
                Method(crud.get, (f"return await {delegate(crud.get)};",)),
                Method(crud.list, (f"return await {delegate(crud.list)};",)),
                Method(crud.paginate, (f"return await {delegate(crud.paginate)};",)),
            ),
        )

        p: str = ctx.project_name
        return SourceUnit(
            namespace=f"{p}.Services",
            usings=(
                f"{p}.Domain.Entities",
                f"{p}.Domain.Models.Responses",
                f"{p}.Repositories",
                f"{p}.Validators",
                "FluentValidation",
                "Microsoft.Extensions.Logging",
                "System",
                "System.Collections.Generic",
                "System.Threading.Tasks",
            ),
            types=(interface, implementation),
        )


# ===========================================================================
# 6. Controller
# ===========================================================================


class ControllerTemplate(EntityTemplate):
    """ASP.NET Core controller delegating every route to the service."""

    name = "controller"

    def artifact_path(self, ctx: EntityContext) -> str:
        return f"Api/Controllers/{ctx.name}Controller.cs"

    def build_unit(self, ctx: EntityContext) -> SourceUnit:
        service_var: str = to_variable_name(f"{ctx.name}Service")
        fields, params, guards = _injected(((service_interface_name(ctx), service_var),))
        service: str = _field_name(service_var)
        crud: CrudSignatures = crud_signatures(ctx)
        key = Parameter(ctx.key.type_name, ctx.key.variable)
        body = Parameter(ctx.name, ctx.variable, "FromBody")
        route: str = f'"{{{ctx.key.variable.lstrip("@")}}}"'
        result: str = "Task<IActionResult>"

        def call(sig: MethodSignature) -> str:
            return f"await {service}.{sig.name}({', '.join(sig.parameter_names)})"

        methods: Tuple[Method, ...] = (
            Method(
                MethodSignature("InsertAsync", result, (body,)),
                (f"var {ctx.key.variable} = {call(crud.insert)};", "", f"return Ok({ctx.key.variable});"),
                attributes=("HttpPost",),
            ),
            Method(
                MethodSignature("UpdateAsync", result, (key, body)),
                (f"{call(crud.update)};", "", "return NoContent();"),
                attributes=(f"HttpPut({route})",),
            ),
            Method(
                MethodSignature("DeleteAsync", result, (key,)),
                (f"{call(crud.delete)};", "", "return NoContent();"),
                attributes=(f"HttpDelete({route})",),
            ),
            Method(
                MethodSignature("GetAsync", result, (key,)),
                (
                    f"var {ctx.variable} = {call(crud.get)};",
                    "",
                    f"if ({ctx.variable} == null)",
                    "{",
                    f"{INDENT}return NotFound();",
                    "}",
                    "",
                    f"return Ok({ctx.variable});",
                ),
                attributes=(f"HttpGet({route})",),
            ),
            Method(
                MethodSignature("ListAsync", result),
                (f"return Ok({call(crud.list)});",),
                attributes=("HttpGet",),
            ),
            Method(
                MethodSignature("PaginateAsync", result, pagination_parameters(ctx, "FromQuery")),
                (f"return Ok({call(crud.paginate)});",),
                attributes=('HttpGet("paginate")',),
            ),
        )

        decl = TypeDecl(
            kind="class",
            name=f"{ctx.name}Controller",
            bases=("ControllerBase",),
            attributes=("ApiController", 'Route("api/[controller]")'),
            fields=fields,
            constructor=Constructor(params, tuple(guards)),
            methods=methods,
        )

        p: str = ctx.project_name
        return SourceUnit(
            namespace=f"{p}.Controllers",
            usings=(
                f"{p}.Domain.Entities",
                f"{p}.Services",
                "Microsoft.AspNetCore.Mvc",
                "System",
                "System.Threading.Tasks",
            ),
            types=(decl,),
        )


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

TEMPLATE_CLASSES: Dict[str, Type[EntityTemplate]] = {
    ClassTemplate.name: ClassTemplate,
    QueryTemplate.name: QueryTemplate,
    RepositoryTemplate.name: RepositoryTemplate,
    ValidatorTemplate.name: ValidatorTemplate,
    ServiceTemplate.name: ServiceTemplate,
    ControllerTemplate.name: ControllerTemplate,
}


class TemplateGenerator:
    """
    Runs every enabled synthesizer over every entity.

    Artifacts are ordered by synthesizer (in ``config.synthesizers`` order),
    then by entity declaration order.
    """

    def __init__(self, config: Optional[GenerationConfig] = None) -> None:
        self._config: GenerationConfig = config or GenerationConfig()
        renderer = CSharpRenderer(self._config.indent_size)
        self._templates: List[EntityTemplate] = [
            TEMPLATE_CLASSES[name](renderer) for name in self._config.synthesizers
        ]
        logger.debug(
            "TemplateGenerator initialised with: %s.",
            ", ".join(t.name for t in self._templates),
        )

    @property
    def templates(self) -> List[EntityTemplate]:
        return list(self._templates)

    def generate_all(self, project: Project) -> List[Artifact]:
        """
        Generate every artifact for *project*.

        Raises:
            ConfigurationError: on the first unsupported construct; no
                partial result is returned.
        """
        resolve_dialect(project.dialect)
        artifacts: List[Artifact] = []
        for template in self._templates:
            artifacts.extend(template.generate(project))

        logger.info(
            "Full generation complete: %d artifacts, ~%d lines.",
            len(artifacts),
            sum(a.line_count for a in artifacts),
        )
        return artifacts


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DAY_START",
    "DAY_END",
    "PropertyContext",
    "EntityContext",
    "build_entity_context",
    "repository_interface_name",
    "service_interface_name",
    "query_class_name",
    "exists_by_method_name",
    "exists_by_different_method_name",
    "exists_by_constant_name",
    "exists_by_different_constant_name",
    "pagination_parameters",
    "pagination_filter_bindings",
    "normalize_range",
    "CrudSignatures",
    "crud_signatures",
    "exists_signatures",
    "exists_different_signatures",
    "EntityTemplate",
    "ClassTemplate",
    "SqlDialect",
    "sql_dialect",
    "QueryTemplate",
    "BoundParameter",
    "InsertPlan",
    "insert_plan",
    "update_assignments",
    "RepositoryTemplate",
    "depends_condition",
    "ValidatorTemplate",
    "pre_action_lines",
    "ServiceTemplate",
    "ControllerTemplate",
    "TEMPLATE_CLASSES",
    "TemplateGenerator",
]

logger.debug("genco.templates loaded.")
