"""
Field Value Store: one reactive cell per (section_id, field_name).

The store is a map from a composite key to a small cell holding the value
and that key's subscribers. There is no whole-form mutable object: a write
touches exactly one cell and notifies exactly that cell's subscribers.

A monotonic `generation` counter is bumped on every effective write.
Derived views (aggregator, visibility, builder) cache against it instead
of subscribing to every key.

Thread safety: none. The engine runs on a single cooperative event loop.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Tuple

from formstate.errors import InvariantViolation
from formstate.index import ConfigIndex
from formstate.model import null_default

logger = logging.getLogger(__name__)

FieldKey = Tuple[str, str]


@dataclass(frozen=True)
class FieldChange:
    """Event delivered to subscribers after a write has completed."""
    section_id: str
    field_name: str
    old_value: Any
    new_value: Any


Subscriber = Callable[[FieldChange], None]


@dataclass
class FieldCell:
    """Value holder for one key plus its subscribers."""
    value: Any = None
    subscribers: List[Subscriber] = field(default_factory=list)


class FieldValueStore:
    """
    Keyed container of field values with per-key subscriptions.

    Only keys declared by the loaded config are addressable; anything else
    raises InvariantViolation.
    """

    def __init__(self, index: ConfigIndex):
        self._index = index
        self._cells: Dict[FieldKey, FieldCell] = {}
        self.generation = 0

    def _cell(self, section_id: str, field_name: str) -> FieldCell:
        key = (section_id, field_name)
        cell = self._cells.get(key)
        if cell is None:
            if key not in self._index:
                raise InvariantViolation(section_id, field_name)
            cell = FieldCell(value=null_default(self._index.fields[key].field_type))
            self._cells[key] = cell
        return cell

    def read(self, section_id: str, field_name: str) -> Any:
        """Current value, or the field type's null default if never written."""
        value = self._cell(section_id, field_name).value
        # Containers are copied so callers cannot mutate a cell behind the generation counter
        if isinstance(value, (list, dict)):
            return copy.deepcopy(value)
        return value

    def write(self, section_id: str, field_name: str, value: Any) -> bool:
        """
        Replace the value of exactly one key.

        The value and generation are updated before any subscriber runs,
        so subscribers (and anything they read) see the new state.

        Returns:
            True if the value changed, False for a no-op write
        """
        cell = self._cell(section_id, field_name)
        old_value = cell.value
        if _same_value(old_value, value):
            return False

        cell.value = copy.deepcopy(value)
        self.generation += 1
        logger.debug("write %s.%s (generation %d)", section_id, field_name, self.generation)

        if cell.subscribers:
            event = FieldChange(section_id, field_name, old_value, cell.value)
            for callback in list(cell.subscribers):
                callback(event)
        return True

    def subscribe(self, section_id: str, field_name: str, callback: Subscriber) -> Callable[[], None]:
        """
        Subscribe to changes of one key.

        Returns:
            A callable that removes the subscription
        """
        cell = self._cell(section_id, field_name)
        cell.subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in cell.subscribers:
                cell.subscribers.remove(callback)

        return unsubscribe

    def subscriber_count(self, section_id: str, field_name: str) -> int:
        cell = self._cells.get((section_id, field_name))
        return len(cell.subscribers) if cell else 0

    def rebind(self, index: ConfigIndex) -> List[FieldKey]:
        """
        Switch to a new config, keeping cells whose keys survive.

        Cells for removed keys are dropped with their subscribers.

        Returns:
            The dropped keys
        """
        dropped = [key for key in self._cells if key not in index]
        for key in dropped:
            del self._cells[key]
        self._index = index
        self.generation += 1
        if dropped:
            logger.info("Dropped %d field value(s) no longer in the config", len(dropped))
        return dropped

    def keys(self) -> Iterable[FieldKey]:
        return list(self._cells)


def _same_value(old: Any, new: Any) -> bool:
    # True == 1 in Python; a checkbox flipping to 1 is still a change of type
    return type(old) is type(new) and old == new
