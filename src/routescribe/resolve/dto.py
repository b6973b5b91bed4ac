from __future__ import annotations

from typing import Optional

from routescribe.domain.models import DTO, Param
from routescribe.source.model import SourceModelProvider, TypeRef


class DtoReflector:
    def __init__(self, provider: SourceModelProvider) -> None:
        self.provider = provider

    def describe(self, ref: Optional[TypeRef]) -> Optional[DTO]:
        """
        Flatten a class into its field list.

        Own fields come first in declaration order, then each ancestor's own
        fields walking up the superclass chain. Shadowed fields are not
        de-duplicated. Returns None when `ref` does not name a class known to
        the source model (builtins, None, generics, unresolved names).
        """
        type_fqn = self.provider.resolve_type(ref)
        if type_fqn is None:
            return None

        fields: list[Param] = []
        visited: set[str] = set()
        current: Optional[str] = type_fqn
        while current is not None and current not in visited:
            visited.add(current)
            # TODO: honour Field(exclude=True) once the source model records field defaults
            for f in self.provider.get_fields(current):
                fields.append(Param(name=f.name, type_fqn=self.provider.display_type(f.annotation)))
            current = self.provider.get_superclass(current)

        return DTO(type_fqn=type_fqn, fields=tuple(fields))
