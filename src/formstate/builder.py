"""
Structured Data Builder: flat snapshot -> nested output document.

The section tree is walked depth-first:
    - a non-integral section opens a new object under its object_name
      inside the object currently being built
    - an integral section opens nothing; its fields (and its children)
      land in the object currently being built

Example:
    personalInfo (integral=False): firstName, lastName
        address (integral=True): street, city

    -> {"personalInfo": {"firstName": ..., "lastName": ...,
                         "street": ..., "city": ...}}

Hidden sections are skipped with their whole subtree. Their values stay in
the store, so showing the section again restores them.

Collision policy: when a key is written twice into the same object the
later-declared section wins, and a MergeCollisionWarning is recorded.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Set, Tuple, Union

from formstate.errors import MergeCollisionWarning
from formstate.model import Section

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Nested output plus non-fatal collision warnings."""
    output: Dict[str, Any] = field(default_factory=dict)
    warnings: List[MergeCollisionWarning] = field(default_factory=list)


class _Target:
    """An output object under construction, with the origin of every key."""

    def __init__(self, path: Tuple[str, ...]):
        self.path = path
        self.data: Dict[str, Any] = {}
        self.origin: Dict[str, str] = {}

    def put(self, key: str, value: Any, section_id: str, warnings: List[MergeCollisionWarning]) -> None:
        if key in self.data:
            warning = MergeCollisionWarning(
                key=key,
                section_id=section_id,
                previous_section_id=self.origin[key],
                path=self.path,
            )
            warnings.append(warning)
            logger.warning(warning.message)
        self.data[key] = value
        self.origin[key] = section_id


def build(sections: Iterable[Section],
          flat_data: Dict[str, Dict[str, Any]],
          visible_sections: Iterable[Union[Section, str]]) -> BuildResult:
    """
    Transform flat data into the structured output.

    Pure: inputs are not modified and the output shares no mutable values
    with flat_data.

    Args:
        sections: Top-level sections, in declaration order
        flat_data: FlatFormData keyed by object_name
        visible_sections: Visible Section objects or section ids

    Returns:
        BuildResult with the nested output and collision warnings
    """
    visible_ids: Set[str] = {s.id if isinstance(s, Section) else s for s in visible_sections}
    result = BuildResult()
    root = _Target(path=())

    for section in sections:
        _place(section, root, flat_data, visible_ids, result.warnings)

    result.output = root.data
    return result


def _place(section: Section, target: _Target, flat_data: Dict[str, Dict[str, Any]],
           visible_ids: Set[str], warnings: List[MergeCollisionWarning]) -> None:
    if section.id not in visible_ids:
        return

    if section.integral:
        container = target
    else:
        container = _Target(path=target.path + (section.object_name,))
        target.put(section.object_name, container.data, section.id, warnings)

    values = flat_data.get(section.object_name, {})
    for form_field in section.fields:
        if form_field.name in values:
            container.put(form_field.name, copy.deepcopy(values[form_field.name]), section.id, warnings)

    for child in section.subsections:
        _place(child, container, flat_data, visible_ids, warnings)
