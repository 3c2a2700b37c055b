"""
Core Form Model Objects

Defines the static configuration of a form:
    - FormConfig (root container)
    - Section (a group of fields, possibly nested)
    - FormField (a single input)
    - ValidationRule (a check attached to a field)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about rendering
        - Hold no field values (values live in the FieldValueStore)
        - Are treated as immutable once an engine has loaded them
        - Are fully serializable (see formstate.serialization)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .expressions import Expression


# Rule kinds understood by the validation engine
RULE_KINDS = ("required", "pattern", "range", "length", "cross_field")

# Field types whose "unset" value is not None
_NULL_DEFAULTS: Dict[str, Any] = {
    "checkbox": False,
    "switch": False,
}
_LIST_TYPES = ("multiselect", "checkboxes")


def null_default(field_type: str) -> Any:
    """
    Return the type-appropriate value of an unset field.

    List-valued types get a fresh list on every call so callers never
    share a mutable default.
    """
    if field_type in _LIST_TYPES:
        return []
    return _NULL_DEFAULTS.get(field_type)


@dataclass
class ValidationRule:
    """
    A single validation check on a field.

    Properties:
        kind:
            One of RULE_KINDS
        pattern:
            Regular expression the whole value must match ("pattern")
        min / max:
            Numeric bounds ("range") or length bounds ("length")
        field:
            Reference to another field, "section.field" or "field"
            ("cross_field")
        operator:
            Comparison against the referenced field ("cross_field"),
            one of == != < <= > >=
        message:
            Optional custom error message

    Examples:
        ValidationRule(kind="required")
        ValidationRule(kind="pattern", pattern=r"\\d{5}")
        ValidationRule(kind="range", min=18, max=120)
        ValidationRule(kind="cross_field", field="account.password")
    """

    kind: str
    pattern: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    field: Optional[str] = None
    operator: str = "=="
    message: Optional[str] = None


@dataclass
class FormField:
    """
    A single input inside a section.

    Properties:
        id: Designer-assigned identifier
        name: Key of the value in flat and structured data.
              Unique within its section.
        field_type: Type tag ("text", "number", "date", "checkbox", ...)
        label: Human-readable label (informational)
        rules: Validation rules, checked in declaration order
    """

    id: str
    name: str
    field_type: str = "text"
    label: Optional[str] = None
    rules: List[ValidationRule] = field(default_factory=list)

    @property
    def is_required(self) -> bool:
        return any(rule.kind == "required" for rule in self.rules)


@dataclass
class Section:
    """
    A group of fields, optionally nested and conditionally visible.

    Properties:
        id:
            Unique across the whole config
        object_name:
            Key for this section's data in flat and structured output
        title:
            Human-readable title
        integral:
            If True, the section's fields are merged into the parent
            object of the structured output instead of being nested
            under object_name
        fields:
            Ordered field definitions
        subsections:
            Ordered child sections
        condition:
            Visibility Expression. None means "always visible
            (when the parent is visible)".

    INVARIANTS (checked by formstate.analyzer.check_config):
        - condition never references this section or a descendant
        - the "visibility depends on" graph is acyclic
    """

    id: str
    object_name: str
    title: str = ""
    integral: bool = False
    fields: List[FormField] = field(default_factory=list)
    subsections: List["Section"] = field(default_factory=list)
    condition: Optional[Expression] = None

    def get_field(self, name: str) -> Optional[FormField]:
        for form_field in self.fields:
            if form_field.name == name:
                return form_field
        return None


@dataclass
class FormConfig:
    """
    Root container for a form definition.

    Produced by the designer, consumed unchanged by the engine. The engine
    reloads when the designer edits the config.

    Properties:
        sections: Ordered top-level sections
        renderer: Rendering target tag ("mui", "html", ...).
                  Informational only for the engine.
        name: Optional form name
        metadata: Arbitrary key-value pairs (use sparingly)
    """

    sections: List[Section] = field(default_factory=list)
    renderer: str = "html"
    name: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)

    def iter_sections(self) -> Iterator[Section]:
        """Yield every section, depth-first, in declaration order."""
        for section in self.sections:
            yield from _walk(section)

    def iter_with_parents(self) -> Iterator[Tuple[Section, Optional[Section]]]:
        """Yield (section, parent) pairs, depth-first. Top-level parents are None."""
        stack: List[Tuple[Section, Optional[Section]]] = [(s, None) for s in reversed(self.sections)]
        while stack:
            section, parent = stack.pop()
            yield section, parent
            for child in reversed(section.subsections):
                stack.append((child, section))

    def get_section(self, section_id: str) -> Optional[Section]:
        """
        Retrieve a section by id, at any depth.

        Returns:
            Section object or None if not found
        """
        for section in self.iter_sections():
            if section.id == section_id:
                return section
        return None

    def field_keys(self) -> List[Tuple[str, str]]:
        """All (section_id, field_name) keys declared by the config."""
        return [(s.id, f.name) for s in self.iter_sections() for f in s.fields]


def _walk(section: Section) -> Iterator[Section]:
    yield section
    for child in section.subsections:
        yield from _walk(child)
