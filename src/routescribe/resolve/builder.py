from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Optional, Union

from routescribe.domain.errors import MalformedRouteError
from routescribe.domain.models import Param, Route, RouteGroup
from routescribe.resolve.annotations import AnnotationResolver
from routescribe.resolve.dto import DtoReflector
from routescribe.source.model import MappingKind, MarkerKind, ParameterDecl, Scope

logger = logging.getLogger(__name__)

# innermost first: the member's own mapping, then each annotated enclosing scope
ScopeChain = list[tuple[MappingKind, Scope]]


class Strategy(str, Enum):
    PATH = "path"
    METHODS = "method"
    CONSUMES = "consumes"
    PRODUCES = "produces"


def join_path(parent: str, child: str) -> str:
    """Join two path segments with exactly one `/` between them."""
    if not parent.endswith("/"):
        parent += "/"
    return parent + child.lstrip("/")


class RouteModelBuilder:
    """
    Turns annotated members into fully-resolved `Route`s.

    Path, methods and media types are inherited from enclosing scopes that
    carry a recognized mapping, walking outward until the first scope without
    one. Deprecation only looks one level up.
    """

    def __init__(self, resolver: AnnotationResolver, reflector: Optional[DtoReflector] = None) -> None:
        self.resolver = resolver
        self.provider = resolver.provider
        self.reflector = reflector or DtoReflector(self.provider)

    # ----------------------------
    # Scope walking
    # ----------------------------

    def scope_chain(self, kind: MappingKind, member: Scope) -> ScopeChain:
        chain: ScopeChain = [(kind, member)]
        seen = {member.qualname}
        cursor = member
        while True:
            found = self.resolver.find_enclosing_annotation(cursor)
            if found is None:
                break
            _, enclosing = found
            if enclosing.qualname in seen:
                break
            seen.add(enclosing.qualname)
            chain.append(found)
            cursor = enclosing
        return chain

    def resolve(self, strategy: Strategy, chain: ScopeChain) -> Union[str, tuple[str, ...], None]:
        if strategy is Strategy.PATH:
            path = self._own_path(*chain[0])
            for kind, scope in chain[1:]:
                path = join_path(self._own_path(kind, scope), path)
            return path

        if strategy is Strategy.METHODS:
            for kind, scope in chain:
                methods = self.resolver.read_field(kind, scope, ("method",))
                if methods:
                    return tuple(methods)
            return ()

        declared_empty = False
        for kind, scope in chain:
            media = self.resolver.read_field(kind, scope, (strategy.value,))
            if media:
                return tuple(media)
            if self.resolver.declares_field(kind, scope, strategy.value):
                declared_empty = True
        return () if declared_empty else None

    def _own_path(self, kind: MappingKind, scope: Scope) -> str:
        paths = self.resolver.read_field(kind, scope, ("path", "value"))
        if not paths:
            return ""
        if len(paths) > 1:
            logger.debug(
                "%s declares %d paths on %s; only %r is used",
                scope.qualname, len(paths), kind.value, paths[0],
            )
        return paths[0]

    # ----------------------------
    # Per-member resolution
    # ----------------------------

    def resolve_path(self, kind: MappingKind, member: Scope) -> str:
        return self.resolve(Strategy.PATH, self.scope_chain(kind, member))

    def resolve_methods(self, kind: MappingKind, member: Scope) -> tuple[str, ...]:
        return self.resolve(Strategy.METHODS, self.scope_chain(kind, member))

    def resolve_media_list(self, kind: MappingKind, member: Scope, field_name: str) -> Optional[tuple[str, ...]]:
        return self.resolve(Strategy(field_name), self.scope_chain(kind, member))

    def resolve_deprecated(self, member: Scope) -> bool:
        if self.provider.is_deprecated(member):
            return True
        enclosing = self.provider.get_enclosing_scope(member)
        return enclosing is not None and self.provider.is_deprecated(enclosing)

    def extract_query_params(self, member: Scope) -> tuple[Param, ...]:
        out = []
        for p in self.provider.get_parameters(member):
            marker = p.marker(MarkerKind.QUERY)
            if marker is None:
                continue
            out.append(
                Param(
                    name=marker.name or marker.value or p.name,
                    default_value=marker.default_value,
                    type_fqn=self.provider.display_type(self.provider.get_declared_type(p)),
                )
            )
        return tuple(out)

    def body_parameter(self, member: Scope) -> Optional[ParameterDecl]:
        marked = [p for p in self.provider.get_parameters(member) if p.marker(MarkerKind.BODY)]
        if not marked:
            return None
        if len(marked) > 1:
            names = ", ".join(p.name for p in marked)
            raise MalformedRouteError(
                member.qualname, f"{len(marked)} parameters marked as request body ({names})", member.location
            )
        body = marked[0]
        if self.provider.get_declared_type(body) is None:
            raise MalformedRouteError(
                member.qualname, f"request body parameter {body.name!r} has no declared type", member.location
            )
        return body

    def declaring_type(self, member: Scope) -> str:
        enclosing = self.provider.get_enclosing_scope(member)
        return enclosing.qualname if enclosing is not None else member.module

    # ----------------------------
    # Build
    # ----------------------------

    def build_route(self, kind: MappingKind, member: Scope) -> Route:
        chain = self.scope_chain(kind, member)
        body = self.body_parameter(member)
        if body is None and self.resolver.read_field(kind, member, ("consumes",)):
            logger.warning(
                "%s (%s) declares consumes but no parameter is marked as request body",
                member.qualname,
                member.location,
            )
        return Route(
            path=self.resolve(Strategy.PATH, chain),
            methods=self.resolve(Strategy.METHODS, chain),
            consumes=self.resolve(Strategy.CONSUMES, chain),
            produces=self.resolve(Strategy.PRODUCES, chain),
            deprecated=self.resolve_deprecated(member),
            return_type=self.reflector.describe(self.provider.get_declared_type(member)),
            body_type=self.reflector.describe(self.provider.get_declared_type(body)) if body else None,
            query_params=self.extract_query_params(member),
            handler=member.qualname,
            file_path=member.file_path,
            line=member.line,
        )

    def build(self, members: Optional[Iterable[Scope]] = None) -> RouteGroup:
        """
        One route per recognized mapping on each member, grouped by declaring
        type in first-seen order. Every call returns a fresh group.
        """
        if members is None:
            members = self.provider.list_annotated_members(self.resolver.kinds)

        group = RouteGroup()
        for member in members:
            for kind in self.resolver.recognized_on(member):
                group.add(self.declaring_type(member), self.build_route(kind, member))
        return group
