"""
Validation Engine: field, section and form level checks.

Field level rules (see formstate.model.ValidationRule):
    required     value must be present
    pattern      whole string must match a regular expression
    range        numeric value within [min, max]
    length       len(value) within [min, max] (strings and lists)
    cross_field  compare with another field's value (==, !=, <, <=, >, >=)

Visibility:
    - required and cross_field only apply to fields of visible sections
    - pattern, range and length run everywhere; their errors are reported
      but only count towards validity for visible sections

Validity:
    - a section is valid iff its own fields are valid and every visible
      subsection is valid
    - the form is valid iff every visible top-level section is valid

User-input problems are returned as FieldError data. Only a malformed
config raises (ConfigurationError, at construction).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Set, Union

from formstate.errors import ConfigurationError, FieldError
from formstate.index import ConfigIndex, FieldKey
from formstate.interpreter import COMPARISON_SYMBOLS, compare
from formstate.model import RULE_KINDS, FormField, Section, ValidationRule, null_default

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """
    Result of a validation pass.

    Properties:
        errors: (section_id, field_name) -> list of FieldError, only for
                fields with at least one error
        section_validity: section_id -> bool, for visible sections
        valid: Overall form validity
    """

    errors: Dict[FieldKey, List[FieldError]] = field(default_factory=dict)
    section_validity: Dict[str, bool] = field(default_factory=dict)
    valid: bool = True

    def errors_for(self, section_id: str, field_name: str) -> List[FieldError]:
        return self.errors.get((section_id, field_name), [])

    def error_kinds(self, section_id: str, field_name: str) -> List[str]:
        return [e.kind for e in self.errors_for(section_id, field_name)]


@dataclass
class _CompiledRule:
    rule: ValidationRule
    regex: Optional[Pattern] = None
    other: Optional[FieldKey] = None


def is_missing(value: Any, field_type: str = "text") -> bool:
    """True if a value counts as "not filled in"."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict, tuple, set)):
        return len(value) == 0
    if field_type in ("checkbox", "switch"):
        return value is False
    return False


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


class ValidationEngine:
    """
    Validates flat snapshots against the rules of a config.

    Rules are compiled once; a bad rule raises ConfigurationError here,
    not during validation.
    """

    def __init__(self, index: ConfigIndex):
        self._index = index
        self._rules: Dict[FieldKey, List[_CompiledRule]] = {}
        for (section_id, field_name), form_field in index.fields.items():
            self._rules[(section_id, field_name)] = [
                self._compile(section_id, form_field, rule) for rule in form_field.rules
            ]

    def _compile(self, section_id: str, form_field: FormField, rule: ValidationRule) -> _CompiledRule:
        where = f"field {section_id}.{form_field.name}"
        if rule.kind not in RULE_KINDS:
            raise ConfigurationError(f"Unknown rule kind {rule.kind!r} on {where}")

        compiled = _CompiledRule(rule=rule)
        if rule.kind == "pattern":
            if not rule.pattern:
                raise ConfigurationError(f"Pattern rule on {where} has no pattern")
            try:
                compiled.regex = re.compile(rule.pattern)
            except re.error as e:
                raise ConfigurationError(f"Invalid pattern {rule.pattern!r} on {where}: {e}")
        elif rule.kind in ("range", "length"):
            if rule.min is None and rule.max is None:
                raise ConfigurationError(f"{rule.kind.capitalize()} rule on {where} needs min or max")
            for bound in (rule.min, rule.max):
                if bound is not None and (isinstance(bound, bool) or not isinstance(bound, (int, float))):
                    raise ConfigurationError(
                        f"{rule.kind.capitalize()} rule on {where} has a non-numeric bound {bound!r}"
                    )
            if rule.min is not None and rule.max is not None and rule.min > rule.max:
                raise ConfigurationError(f"{rule.kind.capitalize()} rule on {where} has min > max")
        elif rule.kind == "cross_field":
            if not rule.field:
                raise ConfigurationError(f"Cross-field rule on {where} has no field reference")
            if rule.operator not in COMPARISON_SYMBOLS:
                raise ConfigurationError(f"Unknown operator {rule.operator!r} in cross-field rule on {where}")
            compiled.other = self._index.resolve_dotted(rule.field, default_section=section_id,
                                                        context=f"cross-field rule on {where}")
            if compiled.other == (section_id, form_field.name):
                raise ConfigurationError(f"Cross-field rule on {where} references the field itself")
        return compiled

    # =========================================================================
    # FIELD LEVEL
    # =========================================================================

    def validate_field(self, section_id: str, field_name: str,
                       snapshot: Dict[str, Dict[str, Any]], visible: bool = True) -> List[FieldError]:
        """Apply one field's rules; returns the failures in rule order."""
        form_field = self._index.fields[(section_id, field_name)]
        value = self._value(snapshot, (section_id, field_name))
        errors: List[FieldError] = []

        for compiled in self._rules[(section_id, field_name)]:
            rule = compiled.rule
            if rule.kind in ("required", "cross_field") and not visible:
                continue
            check = _CHECKS[rule.kind]
            message = check(self, compiled, form_field, value, snapshot)
            if message is not None:
                errors.append(FieldError(kind=rule.kind, message=rule.message or message))
        return errors

    def _value(self, snapshot: Dict[str, Dict[str, Any]], key: FieldKey) -> Any:
        section_id, field_name = key
        section = self._index.sections[section_id]
        values = snapshot.get(section.object_name, {})
        if field_name in values:
            return values[field_name]
        return null_default(self._index.fields[key].field_type)

    def _check_required(self, compiled, form_field, value, snapshot) -> Optional[str]:
        if is_missing(value, form_field.field_type):
            return f"{_label(form_field)} is required"
        return None

    def _check_pattern(self, compiled, form_field, value, snapshot) -> Optional[str]:
        if is_missing(value, form_field.field_type):
            return None
        if not compiled.regex.fullmatch(str(value)):
            return f"{_label(form_field)} has an invalid format"
        return None

    def _check_range(self, compiled, form_field, value, snapshot) -> Optional[str]:
        if is_missing(value, form_field.field_type):
            return None
        rule = compiled.rule
        number = _as_number(value)
        if number is None:
            return f"{_label(form_field)} must be a number"
        if rule.min is not None and number < rule.min:
            return f"{_label(form_field)} must be at least {rule.min:g}"
        if rule.max is not None and number > rule.max:
            return f"{_label(form_field)} must be at most {rule.max:g}"
        return None

    def _check_length(self, compiled, form_field, value, snapshot) -> Optional[str]:
        if is_missing(value, form_field.field_type):
            return None
        rule = compiled.rule
        try:
            size = len(value)
        except TypeError:
            size = len(str(value))
        if rule.min is not None and size < rule.min:
            return f"{_label(form_field)} must have at least {rule.min:g} characters or items"
        if rule.max is not None and size > rule.max:
            return f"{_label(form_field)} must have at most {rule.max:g} characters or items"
        return None

    def _check_cross_field(self, compiled, form_field, value, snapshot) -> Optional[str]:
        rule = compiled.rule
        other_value = self._value(snapshot, compiled.other)
        if not compare(COMPARISON_SYMBOLS[rule.operator], value, other_value):
            other_label = _label(self._index.fields[compiled.other])
            if rule.operator == "==":
                return f"{_label(form_field)} must match {other_label}"
            return f"{_label(form_field)} must be {rule.operator} {other_label}"
        return None

    # =========================================================================
    # SECTION / FORM LEVEL
    # =========================================================================

    def validate(self, snapshot: Dict[str, Dict[str, Any]],
                 visible_sections: Iterable[Union[Section, str]]) -> ValidationReport:
        """
        Validate every field and roll the results up to sections and form.

        Args:
            snapshot: FlatFormData
            visible_sections: Visible Section objects or ids

        Returns:
            ValidationReport
        """
        visible_ids: Set[str] = {s.id if isinstance(s, Section) else s for s in visible_sections}
        report = ValidationReport()

        for section_id in self._index.order:
            section = self._index.sections[section_id]
            visible = section_id in visible_ids
            for form_field in section.fields:
                errors = self.validate_field(section_id, form_field.name, snapshot, visible=visible)
                if errors:
                    report.errors[(section_id, form_field.name)] = errors

        for section in self._index.config.sections:
            if section.id in visible_ids:
                self._section_valid(section, visible_ids, report)

        report.valid = all(
            report.section_validity[s.id] for s in self._index.config.sections if s.id in visible_ids
        )
        logger.debug("Validation: %d field(s) with errors, valid=%s", len(report.errors), report.valid)
        return report

    def _section_valid(self, section: Section, visible_ids: Set[str], report: ValidationReport) -> bool:
        own_valid = all((section.id, f.name) not in report.errors for f in section.fields)
        # Evaluate every visible child so section_validity is complete
        children_valid = [
            self._section_valid(child, visible_ids, report)
            for child in section.subsections if child.id in visible_ids
        ]
        valid = own_valid and all(children_valid)
        report.section_validity[section.id] = valid
        return valid


def _label(form_field: FormField) -> str:
    return form_field.label or form_field.name


_CHECKS: Dict[str, Callable[..., Optional[str]]] = {
    "required": ValidationEngine._check_required,
    "pattern": ValidationEngine._check_pattern,
    "range": ValidationEngine._check_range,
    "length": ValidationEngine._check_length,
    "cross_field": ValidationEngine._check_cross_field,
}
