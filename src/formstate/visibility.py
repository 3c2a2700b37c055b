"""
Visibility Evaluator.

Decides which sections are active for a given flat snapshot.

Rules:
    - Conditions are evaluated in topological order of the dependency
      graph, so every section a condition reads from is resolved first.
    - A section without a condition is visible iff its parent is.
    - A section whose condition is false is hidden, and so is its whole
      subtree, whatever the children's own conditions say.
    - A condition reading a field of a hidden section sees that field's
      null default, not the stale value still held by the store.

Parents are resolved on demand. When a condition reads a section whose
own resolution is still in progress (it reads into the subtree of a
section that depends on the reader), the value is read as entered. The
final result is still filtered so that no child of a hidden parent is
visible.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Set

from formstate.expressions import FieldReference
from formstate.graph import DependencyGraph, build_dependency_graph
from formstate.index import ConfigIndex, FieldKey
from formstate.interpreter import evaluate, truthy
from formstate.model import Section, null_default

logger = logging.getLogger(__name__)


class VisibilityEvaluator:
    """
    Evaluates section conditions against flat snapshots.

    The dependency graph and evaluation order are computed once, at
    construction. Construction fails with ConfigurationError (including
    CyclicDependencyError) if the conditions are not well formed.
    """

    def __init__(self, index: ConfigIndex):
        self._index = index
        self.graph: DependencyGraph = build_dependency_graph(index)
        self.order: List[str] = self.graph.topological_order()
        self._resolved: Dict[str, Dict[FieldReference, FieldKey]] = {}
        for section_id in self.order:
            section = index.sections[section_id]
            if section.condition is not None:
                self._resolved[section_id] = {}

        self._last_snapshot: Optional[Dict[str, Dict[str, Any]]] = None
        self._last_result: List[Section] = []
        self.evaluation_count = 0

    def _key_for(self, section_id: str, ref: FieldReference) -> FieldKey:
        cache = self._resolved[section_id]
        key = cache.get(ref)
        if key is None:
            key = self._index.resolve(ref, context=f"condition of section {section_id!r}")
            cache[ref] = key
        return key

    def visible_ids(self, snapshot: Dict[str, Dict[str, Any]]) -> Set[str]:
        """Ids of the visible sections, uncached."""
        outcome: Dict[str, bool] = {}
        pending: Set[str] = set()

        def resolve(section_id: str) -> bool:
            if section_id in outcome:
                return outcome[section_id]
            if section_id in pending:
                return True
            pending.add(section_id)

            section = self._index.sections[section_id]
            parent = self._index.parent_of[section_id]
            if parent is not None and not resolve(parent):
                result = False
            elif section.condition is None:
                result = True
            else:
                lookup = self._lookup(section_id, snapshot, resolve)
                result = truthy(evaluate(section.condition, lookup))
                if not result:
                    logger.debug("Section %s hidden by its condition", section_id)

            pending.discard(section_id)
            outcome[section_id] = result
            return result

        for section_id in self.order:
            resolve(section_id)

        visible: Set[str] = set()
        for section_id in self._index.order:
            parent = self._index.parent_of[section_id]
            if outcome[section_id] and (parent is None or parent in visible):
                visible.add(section_id)
        return visible

    def _lookup(self, owner: str, snapshot: Dict[str, Dict[str, Any]],
                resolve: Callable[[str], bool]) -> Callable[[FieldReference], Any]:
        def lookup(ref: FieldReference) -> Any:
            target_id, field_name = self._key_for(owner, ref)
            field_type = self._index.fields[(target_id, field_name)].field_type
            if not resolve(target_id):
                return null_default(field_type)
            target = self._index.sections[target_id]
            values = snapshot.get(target.object_name, {})
            if field_name in values:
                return values[field_name]
            return null_default(field_type)

        return lookup

    def compute_visible_sections(self, snapshot: Dict[str, Dict[str, Any]]) -> List[Section]:
        """
        Visible sections, in config (depth-first) order.

        Memoized on the snapshot's identity: the aggregator hands out the
        same object until the store changes.
        """
        if snapshot is self._last_snapshot:
            return list(self._last_result)

        visible = self.visible_ids(snapshot)
        self._last_result = [self._index.sections[s] for s in self._index.order if s in visible]
        self._last_snapshot = snapshot
        self.evaluation_count += 1
        return list(self._last_result)
