from __future__ import annotations

from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict


class Param(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    default_value: Optional[str] = None
    type_fqn: Optional[str] = None


class DTO(BaseModel):
    """Flattened field list of a request or response body type."""

    model_config = ConfigDict(frozen=True)

    type_fqn: str
    fields: tuple[Param, ...] = ()


class Route(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    methods: tuple[str, ...] = ()          # empty = any method
    consumes: Optional[tuple[str, ...]] = None  # None = unspecified
    produces: Optional[tuple[str, ...]] = None
    deprecated: bool = False
    return_type: Optional[DTO] = None
    body_type: Optional[DTO] = None
    query_params: tuple[Param, ...] = ()

    handler: str = ""
    file_path: str = ""
    line: int = 0


class RouteGroup:
    """
    Routes keyed by declaring type, in first-seen order.

    Both the type keys and the routes under each key keep insertion order,
    so rendering the same group twice is byte-identical.
    """

    def __init__(self) -> None:
        self._routes: dict[str, list[Route]] = {}

    def add(self, declaring_type: str, route: Route) -> None:
        self._routes.setdefault(declaring_type, []).append(route)

    def types(self) -> list[str]:
        return list(self._routes)

    def routes_for(self, declaring_type: str) -> list[Route]:
        return list(self._routes.get(declaring_type, ()))

    def items(self) -> Iterator[tuple[str, list[Route]]]:
        for declaring_type, routes in self._routes.items():
            yield declaring_type, list(routes)

    def all_routes(self) -> list[Route]:
        return [r for routes in self._routes.values() for r in routes]

    @property
    def route_count(self) -> int:
        return sum(len(routes) for routes in self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._routes))

    def __contains__(self, declaring_type: object) -> bool:
        return declaring_type in self._routes
