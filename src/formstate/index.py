"""
Lookup tables over a FormConfig.

Built once per config load; every other component resolves section ids,
object names and field references through a ConfigIndex instead of
walking the section tree again.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

from formstate.errors import ConfigurationError
from formstate.expressions import FieldReference
from formstate.model import FormConfig, FormField, Section

FieldKey = Tuple[str, str]


class ConfigIndex:
    """
    Resolved view of a FormConfig.

    Raises ConfigurationError on construction if section ids or object
    names are duplicated, or a section declares the same field name twice.
    """

    def __init__(self, config: FormConfig):
        self.config = config
        self.sections: Dict[str, Section] = {}
        self.parent_of: Dict[str, Optional[str]] = {}
        self.by_object_name: Dict[str, Section] = {}
        self.fields: Dict[FieldKey, FormField] = {}
        self.order: List[str] = []
        self._sections_by_field_name: Dict[str, List[str]] = defaultdict(list)

        for section, parent in config.iter_with_parents():
            if section.id in self.sections:
                raise ConfigurationError(f"Duplicate section id: {section.id!r}")
            if section.object_name in self.by_object_name:
                other = self.by_object_name[section.object_name]
                raise ConfigurationError(
                    f"Sections {other.id!r} and {section.id!r} share object name {section.object_name!r}"
                )
            self.sections[section.id] = section
            self.parent_of[section.id] = parent.id if parent else None
            self.by_object_name[section.object_name] = section
            self.order.append(section.id)

            for form_field in section.fields:
                key = (section.id, form_field.name)
                if key in self.fields:
                    raise ConfigurationError(
                        f"Duplicate field name {form_field.name!r} in section {section.id!r}"
                    )
                self.fields[key] = form_field
                self._sections_by_field_name[form_field.name].append(section.id)

    def __contains__(self, key: FieldKey) -> bool:
        return key in self.fields

    def section(self, section_id: str) -> Section:
        try:
            return self.sections[section_id]
        except KeyError:
            raise ConfigurationError(f"Unknown section: {section_id!r}") from None

    def lookup_section(self, name: str) -> Optional[Section]:
        """Find a section by id first, then by object name."""
        return self.sections.get(name) or self.by_object_name.get(name)

    def ancestors(self, section_id: str) -> List[str]:
        """Ancestor ids, nearest first."""
        result = []
        parent = self.parent_of.get(section_id)
        while parent is not None:
            result.append(parent)
            parent = self.parent_of.get(parent)
        return result

    def descendants(self, section_id: str) -> Set[str]:
        result: Set[str] = set()
        stack = list(self.section(section_id).subsections)
        while stack:
            child = stack.pop()
            result.add(child.id)
            stack.extend(child.subsections)
        return result

    def resolve(self, ref: FieldReference, context: str = "") -> FieldKey:
        """
        Resolve a FieldReference to a (section_id, field_name) key.

        Args:
            ref: Reference to resolve
            context: Description of where the reference appears, for messages

        Raises:
            ConfigurationError: dangling or ambiguous reference
        """
        where = f" in {context}" if context else ""

        if ref.section is not None:
            section = self.lookup_section(ref.section)
            if section is None:
                raise ConfigurationError(f"Reference {ref.dotted!r}{where}: unknown section {ref.section!r}")
            if (section.id, ref.field) not in self.fields:
                raise ConfigurationError(
                    f"Reference {ref.dotted!r}{where}: section {section.id!r} has no field {ref.field!r}"
                )
            return section.id, ref.field

        owners = self._sections_by_field_name.get(ref.field, [])
        if not owners:
            raise ConfigurationError(f"Reference {ref.field!r}{where}: no section declares this field")
        if len(owners) > 1:
            raise ConfigurationError(
                f"Reference {ref.field!r}{where} is ambiguous between sections {owners}; "
                f"qualify it as 'section.{ref.field}'"
            )
        return owners[0], ref.field

    def resolve_dotted(self, dotted: str, default_section: Optional[str] = None, context: str = "") -> FieldKey:
        """
        Resolve "section.field" or "field" text.

        A bare name is looked up in default_section first, then across the
        whole config.
        """
        if "." in dotted:
            section, field_name = dotted.split(".", 1)
            return self.resolve(FieldReference(field_name, section=section), context)
        if default_section is not None and (default_section, dotted) in self.fields:
            return default_section, dotted
        return self.resolve(FieldReference(dotted), context)
