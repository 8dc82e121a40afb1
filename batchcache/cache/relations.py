"""
Relation Catalog: which fields of an entity type hold ids of other entities.

Built once from the ``relation_params`` passed to ``EntityCache.init`` and
read-only afterwards. Each entry is either a bare entity type (no relations)
or an ``(entity_type, {field_name: related_type})`` pair. Only one hop is
described; a related type's own relations are looked up under its own entry.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Tuple

from batchcache.core.exceptions import RelationConfigError

RelationSpec = Mapping[str, type]


class RelationCatalog:
    def __init__(self, relation_params: Iterable[Any] = ()) -> None:
        catalog: dict = {}

        for param in relation_params:
            if isinstance(param, type):
                entity_type, spec = param, {}
            elif isinstance(param, tuple) and len(param) == 2:
                entity_type, spec = param
            else:
                raise RelationConfigError(
                    "Relation params must be an entity type or an "
                    f"(entity_type, {{field: related_type}}) pair, got {param!r}"
                )

            if not isinstance(entity_type, type):
                raise RelationConfigError(
                    f"Entity type must be a class, got {entity_type!r}"
                )
            if entity_type in catalog:
                raise RelationConfigError(
                    "Entity type registered more than once", entity_type
                )
            if not isinstance(spec, Mapping):
                raise RelationConfigError(
                    f"Relation spec must be a mapping, got {type(spec).__name__}",
                    entity_type,
                )
            for field_name, related_type in spec.items():
                if not isinstance(field_name, str) or not isinstance(related_type, type):
                    raise RelationConfigError(
                        f"Relation {field_name!r} must map a field name to an entity type",
                        entity_type,
                    )

            catalog[entity_type] = MappingProxyType(dict(spec))

        self._catalog: Mapping[type, RelationSpec] = MappingProxyType(catalog)

    def relations_for(self, entity_type: type) -> RelationSpec:
        """Relation spec for ``entity_type``; empty when none is registered."""
        return self._catalog.get(entity_type, MappingProxyType({}))

    def fields_for(self, entity_type: type) -> Tuple[str, ...]:
        return tuple(self.relations_for(entity_type))

    def has_relations(self, entity_type: type) -> bool:
        return bool(self._catalog.get(entity_type))

    def entity_types(self) -> Tuple[type, ...]:
        return tuple(self._catalog)

    def __iter__(self) -> Iterator[Tuple[type, RelationSpec]]:
        return iter(self._catalog.items())

    def __len__(self) -> int:
        return len(self._catalog)
