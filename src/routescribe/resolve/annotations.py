from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence

from routescribe.domain.errors import ConfigurationError
from routescribe.source.model import DEFAULT_KIND_ORDER, MappingKind, Scope, SourceModelProvider

logger = logging.getLogger(__name__)


class AnnotationResolver:
    """
    Answers "which recognized mapping applies at this scope" questions.

    `kinds` is an ordered sequence: when a scope carries several recognized
    kinds, the first one in this order wins.
    """

    def __init__(
        self,
        provider: SourceModelProvider,
        kinds: Sequence[MappingKind] = DEFAULT_KIND_ORDER,
    ) -> None:
        if not kinds:
            raise ConfigurationError("At least one mapping kind must be recognized")
        self.provider = provider
        self.kinds: tuple[MappingKind, ...] = tuple(dict.fromkeys(kinds))
        self.warnings: list[str] = []
        self._warned: set[str] = set()

    def recognized_on(self, scope: Scope) -> list[MappingKind]:
        present = set(self.provider.annotation_kinds(scope))
        return [k for k in self.kinds if k in present]

    def find_own_annotation(self, scope: Scope) -> Optional[MappingKind]:
        found = self.recognized_on(scope)
        return found[0] if found else None

    def find_enclosing_annotation(self, scope: Scope) -> Optional[tuple[MappingKind, Scope]]:
        enclosing = self.provider.get_enclosing_scope(scope)
        if enclosing is None:
            return None

        found = self.recognized_on(enclosing)
        if not found:
            return None

        if len(found) > 1:
            self._warn_ambiguous(enclosing, found)
        return found[0], enclosing

    def read_field(self, kind: MappingKind, scope: Scope, field_names: Iterable[str]) -> Any:
        """
        Return the first non-empty value among `field_names` on the scope's
        `kind` annotation, or None.
        """
        if kind not in self.kinds:
            raise ConfigurationError(f"{kind!r} is not a recognized mapping kind")

        for field_name in field_names:
            value = self.provider.get_annotation_field(scope, kind, field_name)
            if value:
                return value
        return None

    def declares_field(self, kind: MappingKind, scope: Scope, field_name: str) -> bool:
        """True when the field was written explicitly, even if empty."""
        if kind not in self.kinds:
            raise ConfigurationError(f"{kind!r} is not a recognized mapping kind")
        return self.provider.get_annotation_field(scope, kind, field_name) is not None

    def _warn_ambiguous(self, scope: Scope, found: list[MappingKind]) -> None:
        if scope.qualname in self._warned:
            return
        self._warned.add(scope.qualname)
        names = ", ".join(k.value for k in found)
        message = (
            f"Found multiple mapping annotations ({names}) on {scope.qualname}"
            f"{' at ' + scope.location if scope.location else ''}; only {found[0].value} will be considered"
        )
        self.warnings.append(message)
        logger.warning(message)
