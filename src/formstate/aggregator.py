"""
Form Data Aggregator: memoized flat snapshot of every field value.

FlatFormData shape:

    {
        "personalInfo": {"firstName": "John", "lastName": "Doe"},
        "address": {"street": "123 Main St", "city": "Anytown"},
    }

Every section appears at the top level under its object_name, whatever
its depth in the section tree. Nesting is the builder's job.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from formstate.errors import InvariantViolation
from formstate.index import ConfigIndex
from formstate.store import FieldValueStore

logger = logging.getLogger(__name__)

FlatFormData = Dict[str, Dict[str, Any]]


class FormDataAggregator:
    """
    Derived view over a FieldValueStore.

    get_snapshot() is cached against the store generation: between writes
    it returns the same object in O(1). Callers must treat the snapshot as
    read-only: downstream caches (visibility) key on its identity, and
    editing it in place corrupts them. FormEngine.get_snapshot() hands out
    copies.
    """

    def __init__(self, store: FieldValueStore, index: ConfigIndex):
        self._store = store
        self._index = index
        self._cached: Optional[FlatFormData] = None
        self.version: int = -1
        self.recompute_count = 0

    def rebind(self, index: ConfigIndex) -> None:
        self._index = index
        self._cached = None
        self.version = -1

    def get_snapshot(self) -> FlatFormData:
        """Assemble (or return the cached) flat snapshot."""
        generation = self._store.generation
        if self._cached is not None and self.version == generation:
            return self._cached

        snapshot: FlatFormData = {}
        for section_id in self._index.order:
            section = self._index.sections[section_id]
            snapshot[section.object_name] = {
                f.name: self._store.read(section_id, f.name) for f in section.fields
            }

        self._cached = snapshot
        self.version = generation
        self.recompute_count += 1
        logger.debug("Recomputed flat snapshot at generation %d", generation)
        return snapshot

    def set_snapshot(self, data: FlatFormData, strict: bool = True) -> int:
        """
        Hydrate the store from a flat snapshot (e.g. a saved draft).

        Only for bulk initialization; per-keystroke updates go straight to
        the store. Each value is an ordinary store write, so subscribers of
        changed keys are notified.

        Args:
            data: FlatFormData keyed by section object_name
            strict: If True, unknown sections/fields raise InvariantViolation
                    before anything is written. If False they are skipped.

        Returns:
            Number of values that changed
        """
        writes = []
        for object_name, values in data.items():
            section = self._index.by_object_name.get(object_name)
            for field_name, value in (values or {}).items():
                if section is None or (section.id, field_name) not in self._index:
                    if strict:
                        raise InvariantViolation(
                            section.id if section else object_name, field_name,
                            reason="in snapshot is not present in the loaded form config",
                        )
                    logger.warning("Skipping unknown snapshot entry %s.%s", object_name, field_name)
                    continue
                writes.append((section.id, field_name, value))

        changed = sum(1 for key in writes if self._store.write(*key))
        logger.debug("Hydrated %d value(s), %d changed", len(writes), changed)
        return changed
