"""
FormEngine: the public surface consumed by renderers and the submission
pipeline.

    UI -> FieldValueStore -> FormDataAggregator -> {VisibilityEvaluator,
                                                    ValidationEngine,
                                                    builder.build}

The store is the single source of truth. Everything else is a pure
function of the current snapshot plus the static config, recomputed
lazily on the next read after a write.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

from formstate.aggregator import FlatFormData, FormDataAggregator
from formstate.analyzer import check_config
from formstate.builder import BuildResult, build
from formstate.model import FormConfig, Section
from formstate.serialization import config_from_dict, load_config_file
from formstate.store import FieldValueStore, Subscriber
from formstate.validation import ValidationReport
from formstate.visibility import VisibilityEvaluator

logger = logging.getLogger(__name__)


class FormEngine:
    """
    Form state engine for one loaded FormConfig.

    Construction validates the config and raises ConfigurationError
    (CyclicDependencyError for cycles) if it is malformed; no field can be
    read or written until a config loads.
    """

    def __init__(self, config: FormConfig):
        self.config = config
        self._index, self._visibility, self._validator = check_config(config)
        self._store = FieldValueStore(self._index)
        self._aggregator = FormDataAggregator(self._store, self._index)

        logger.info("Loaded form %r: %d section(s), %d field(s)",
                    config.name, len(self._index.sections), len(self._index.fields))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormEngine":
        return cls(config_from_dict(data))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FormEngine":
        return cls(load_config_file(path))

    def reload(self, config: FormConfig) -> None:
        """
        Switch to an edited config.

        Values of fields that still exist are kept; values and subscribers
        of removed fields are dropped. If the new config is invalid the
        engine keeps the old one.
        """
        index, visibility, validator = check_config(config)
        self.config = config
        self._index, self._visibility, self._validator = index, visibility, validator
        self._store.rebind(index)
        self._aggregator.rebind(index)
        logger.info("Reloaded form %r", config.name)

    @property
    def generation(self) -> int:
        """Store generation; bumps on every effective write."""
        return self._store.generation

    @property
    def aggregator(self) -> FormDataAggregator:
        return self._aggregator

    @property
    def visibility(self) -> VisibilityEvaluator:
        return self._visibility

    # =========================================================================
    # RENDERER-FACING
    # =========================================================================

    def read_field(self, section_id: str, field_name: str) -> Any:
        return self._store.read(section_id, field_name)

    def write_field(self, section_id: str, field_name: str, value: Any) -> bool:
        return self._store.write(section_id, field_name, value)

    def subscribe_field(self, section_id: str, field_name: str,
                        callback: Subscriber) -> Callable[[], None]:
        return self._store.subscribe(section_id, field_name, callback)

    def get_snapshot(self) -> FlatFormData:
        """
        Copy of the current flat snapshot.

        The cached snapshot keys the visibility memo by identity, so callers
        get their own copy and may modify it freely.
        """
        return copy.deepcopy(self._aggregator.get_snapshot())

    def get_visible_sections(self) -> List[Section]:
        return self._visibility.compute_visible_sections(self._aggregator.get_snapshot())

    def is_visible(self, section_id: str) -> bool:
        self._index.section(section_id)
        return any(s.id == section_id for s in self.get_visible_sections())

    def get_validation(self) -> ValidationReport:
        snapshot = self._aggregator.get_snapshot()
        return self._validator.validate(snapshot, self.get_visible_sections())

    # =========================================================================
    # SUBMISSION-FACING
    # =========================================================================

    def build_output_with_warnings(self) -> BuildResult:
        snapshot = self._aggregator.get_snapshot()
        return build(self.config.sections, snapshot, self.get_visible_sections())

    def build_output(self) -> Dict[str, Any]:
        """Nested output document for submission. Collisions are logged, see build_output_with_warnings()."""
        return self.build_output_with_warnings().output

    # =========================================================================
    # HYDRATION
    # =========================================================================

    def load_snapshot(self, data: FlatFormData, strict: bool = True) -> int:
        """Restore a saved flat form state (e.g. a draft) before first render."""
        return self._aggregator.set_snapshot(data, strict=strict)
