from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Protocol, Union

from routescribe.domain.errors import ConfigurationError


class MappingKind(str, Enum):
    """Recognized route mapping decorators. Declaration order is the default priority."""

    REQUEST = "RequestMapping"
    GET = "GetMapping"
    POST = "PostMapping"
    PUT = "PutMapping"
    DELETE = "DeleteMapping"
    PATCH = "PatchMapping"

    @property
    def implied_methods(self) -> tuple[str, ...]:
        return _IMPLIED_METHODS[self]

    @property
    def snake_name(self) -> str:
        # GetMapping -> get_mapping
        return self.value[: -len("Mapping")].lower() + "_mapping"


_IMPLIED_METHODS: dict[MappingKind, tuple[str, ...]] = {
    MappingKind.REQUEST: (),
    MappingKind.GET: ("GET",),
    MappingKind.POST: ("POST",),
    MappingKind.PUT: ("PUT",),
    MappingKind.DELETE: ("DELETE",),
    MappingKind.PATCH: ("PATCH",),
}

DEFAULT_KIND_ORDER: tuple[MappingKind, ...] = tuple(MappingKind)

MAPPING_FIELDS = ("path", "value", "method", "consumes", "produces")


@dataclass(frozen=True)
class MappingAnnotation:
    """
    One mapping decorator instance with its known fields.

    List fields default to empty tuples. `consumes`/`produces` stay None when
    the keyword was not written at all, so an explicit empty list can be told
    apart from absence.
    """

    kind: MappingKind
    path: tuple[str, ...] = ()
    value: tuple[str, ...] = ()
    method: tuple[str, ...] = ()
    consumes: Optional[tuple[str, ...]] = None
    produces: Optional[tuple[str, ...]] = None
    line: int = 0

    def get(self, field_name: str) -> Optional[tuple[str, ...]]:
        if field_name not in MAPPING_FIELDS:
            raise ConfigurationError(f"{self.kind.value} has no field {field_name!r}")
        return getattr(self, field_name)


class MarkerKind(str, Enum):
    QUERY = "RequestParam"
    BODY = "RequestBody"


@dataclass(frozen=True)
class ParamMarker:
    kind: MarkerKind
    name: str = ""
    value: str = ""
    default_value: Optional[str] = None  # None = no default


@dataclass(frozen=True)
class TypeRef:
    """
    A declared type as written in source.

    `text` is the annotation source (`int`, `list[str]`, `UserDto`);
    `candidate` is the fully-qualified name the text would denote if it named
    a class, computed from the module's imports.
    """

    text: str
    candidate: Optional[str] = None


@dataclass(frozen=True)
class ParameterDecl:
    name: str
    annotation: Optional[TypeRef] = None
    markers: tuple[ParamMarker, ...] = ()

    def marker(self, kind: MarkerKind) -> Optional[ParamMarker]:
        for m in self.markers:
            if m.kind == kind:
                return m
        return None


@dataclass(frozen=True)
class FieldDecl:
    name: str
    annotation: TypeRef


class ScopeKind(str, Enum):
    MODULE = "module"
    CLASS = "class"
    FUNCTION = "function"


@dataclass(frozen=True)
class Scope:
    qualname: str                  # module-qualified, e.g. app.api.UserController.list
    name: str
    kind: ScopeKind
    module: str
    file_path: str = ""
    line: int = 0
    enclosing: Optional[str] = None  # qualname of the enclosing scope
    annotations: tuple[MappingAnnotation, ...] = ()
    deprecated: bool = False

    # functions
    parameters: tuple[ParameterDecl, ...] = ()
    returns: Optional[TypeRef] = None

    # classes
    fields: tuple[FieldDecl, ...] = ()
    bases: tuple[TypeRef, ...] = ()

    @property
    def location(self) -> str:
        return f"{self.file_path}:{self.line}" if self.file_path else ""


class SourceModelProvider(Protocol):
    """Read-only view over annotated source declarations."""

    def list_annotated_members(self, kinds: Iterable[MappingKind]) -> list[Scope]: ...

    def get_enclosing_scope(self, scope: Scope) -> Optional[Scope]: ...

    def annotation_kinds(self, scope: Scope) -> tuple[MappingKind, ...]: ...

    def get_annotation_field(self, scope: Scope, kind: MappingKind, field_name: str) -> Any: ...

    def is_deprecated(self, scope: Scope) -> bool: ...

    def get_parameters(self, member: Scope) -> tuple[ParameterDecl, ...]: ...

    def get_declared_type(self, target: Union[Scope, ParameterDecl, FieldDecl]) -> Optional[TypeRef]: ...

    def resolve_type(self, ref: Optional[TypeRef]) -> Optional[str]: ...

    def display_type(self, ref: Optional[TypeRef]) -> Optional[str]: ...

    def get_fields(self, type_fqn: str) -> tuple[FieldDecl, ...]: ...

    def get_superclass(self, type_fqn: str) -> Optional[str]: ...
