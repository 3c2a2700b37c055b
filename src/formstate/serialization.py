"""
Serialization helpers for form configs and flat snapshots.

Config documents use the designer's camelCase keys (objectName, type, ...)
and round-trip losslessly through JSON and YAML via an intermediate dict.
Conditions may be given either as text, parsed with
formstate.conditions.parse_condition, or as an expression dict.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from formstate.conditions import parse_condition
from formstate.errors import ConfigurationError
from formstate.expressions import (
    Expression,
    BinaryExpression,
    FieldReference,
    Literal,
    UnaryExpression,
    BinaryOperator,
    UnaryOperator,
)
from formstate.model import FormConfig, FormField, Section, ValidationRule


def expr_to_dict(expr: Expression | None) -> Any:
    if expr is None:
        return None
    if isinstance(expr, BinaryExpression):
        return {
            "type": "binary",
            "operator": expr.operator.value,
            "left": expr_to_dict(expr.left),
            "right": expr_to_dict(expr.right),
        }
    if isinstance(expr, FieldReference):
        return {"type": "field", "section": expr.section, "field": expr.field}
    if isinstance(expr, Literal):
        return {"type": "lit", "value": expr.value}
    if isinstance(expr, UnaryExpression):
        return {
            "type": "unary",
            "operator": expr.operator.value,
            "operand": expr_to_dict(expr.operand),
        }
    raise TypeError(f"Unsupported Expression type: {type(expr)}")


def expr_from_dict(d: Any) -> Expression | None:
    if d is None:
        return None
    if isinstance(d, str):
        return parse_condition(d)
    t = d.get("type")
    try:
        if t == "binary":
            return BinaryExpression(
                operator=BinaryOperator(d["operator"]),
                left=expr_from_dict(d["left"]),
                right=expr_from_dict(d["right"]),
            )
        if t == "field":
            return FieldReference(d["field"], section=d.get("section"))
        if t == "lit":
            return Literal(d["value"])
        if t == "unary":
            return UnaryExpression(
                operator=UnaryOperator(d["operator"]),
                operand=expr_from_dict(d["operand"]),
            )
    except (KeyError, ValueError) as e:
        raise ConfigurationError(f"Malformed expression {d!r}: {e}")
    raise ConfigurationError(f"Unsupported expression dict type: {t}")


def rule_to_dict(r: ValidationRule) -> Dict[str, Any]:
    d: Dict[str, Any] = {"kind": r.kind}
    for key in ("pattern", "min", "max", "field", "message"):
        value = getattr(r, key)
        if value is not None:
            d[key] = value
    if r.kind == "cross_field":
        d["operator"] = r.operator
    return d


def rule_from_dict(d: Dict[str, Any]) -> ValidationRule:
    return ValidationRule(
        kind=d["kind"],
        pattern=d.get("pattern"),
        min=d.get("min"),
        max=d.get("max"),
        field=d.get("field"),
        operator=d.get("operator", "=="),
        message=d.get("message"),
    )


def field_to_dict(f: FormField) -> Dict[str, Any]:
    return {
        "id": f.id,
        "name": f.name,
        "type": f.field_type,
        "label": f.label,
        "rules": [rule_to_dict(r) for r in f.rules],
    }


def field_from_dict(d: Dict[str, Any]) -> FormField:
    rules = [rule_from_dict(r) for r in d.get("rules", [])]
    # Designer shorthand: "required": true
    if d.get("required") and not any(r.kind == "required" for r in rules):
        rules.insert(0, ValidationRule(kind="required"))
    return FormField(
        id=d.get("id", d["name"]),
        name=d["name"],
        field_type=d.get("type", "text"),
        label=d.get("label"),
        rules=rules,
    )


def section_to_dict(s: Section) -> Dict[str, Any]:
    return {
        "id": s.id,
        "objectName": s.object_name,
        "title": s.title,
        "integral": s.integral,
        "fields": [field_to_dict(f) for f in s.fields],
        "subsections": [section_to_dict(c) for c in s.subsections],
        "condition": expr_to_dict(s.condition),
    }


def section_from_dict(d: Dict[str, Any]) -> Section:
    return Section(
        id=d["id"],
        object_name=d.get("objectName", d.get("object_name", d["id"])),
        title=d.get("title", ""),
        integral=bool(d.get("integral", False)),
        fields=[field_from_dict(f) for f in d.get("fields", [])],
        subsections=[section_from_dict(c) for c in d.get("subsections", [])],
        condition=expr_from_dict(d.get("condition")),
    )


def config_to_dict(c: FormConfig) -> Dict[str, Any]:
    return {
        "name": c.name,
        "renderer": c.renderer,
        "sections": [section_to_dict(s) for s in c.sections],
        "metadata": c.metadata,
    }


def config_from_dict(d: Dict[str, Any]) -> FormConfig:
    """
    Build a FormConfig from a config document.

    Raises:
        ConfigurationError: if a required key is missing or a condition
            cannot be parsed
    """
    if not isinstance(d, dict):
        raise ConfigurationError(f"Form config must be a mapping, got {type(d).__name__}")
    try:
        return FormConfig(
            sections=[section_from_dict(s) for s in d.get("sections", [])],
            renderer=d.get("renderer", "html"),
            name=d.get("name", ""),
            metadata=d.get("metadata") or {},
        )
    except KeyError as e:
        raise ConfigurationError(f"Form config is missing required key {e}") from e


def config_to_json(c: FormConfig) -> str:
    return json.dumps(config_to_dict(c), sort_keys=True)


def config_from_json(s: str) -> FormConfig:
    return config_from_dict(json.loads(s))


def config_to_yaml(c: FormConfig) -> str:
    return yaml.safe_dump(config_to_dict(c), sort_keys=False)


def config_from_yaml(s: str) -> FormConfig:
    return config_from_dict(yaml.safe_load(s))


def load_config_file(path: Union[str, Path]) -> FormConfig:
    """
    Load a FormConfig from a .json, .yaml or .yml file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the suffix is unknown or the document is malformed
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix == ".json":
        return config_from_json(text)
    if suffix in (".yaml", ".yml"):
        return config_from_yaml(text)
    raise ConfigurationError(f"Unsupported config file type: {path.name}")


def snapshot_to_json(snapshot: Dict[str, Dict[str, Any]]) -> str:
    """Serialize flat form data (e.g. a draft) to JSON."""
    return json.dumps(snapshot, sort_keys=True)


def snapshot_from_json(s: str) -> Dict[str, Dict[str, Any]]:
    data = json.loads(s)
    if not isinstance(data, dict) or not all(isinstance(v, dict) for v in data.values()):
        raise ValueError("Snapshot JSON must map section object names to field mappings")
    return data
