"""
Form State Engine Package

Presentation-agnostic core of a dynamic-form designer:
    - FieldValueStore: one reactive cell per (section_id, field_name)
    - FormDataAggregator: memoized flat, section-keyed snapshot
    - VisibilityEvaluator: section conditions in dependency order
    - builder.build: flat snapshot -> nested output (integral rule)
    - ValidationEngine: field, section and form level checks

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Widgets or rendering adapters
    - Persistence or network submission

Renderers and submission pipelines consume FormEngine unchanged.
"""

from formstate.engine import FormEngine
from formstate.errors import (
    ConfigurationError,
    CyclicDependencyError,
    FieldError,
    FormEngineError,
    InvariantViolation,
    MergeCollisionWarning,
)
from formstate.model import FormConfig, FormField, Section, ValidationRule

__version__ = "0.1.0"

__all__ = [
    "FormEngine",
    "FormConfig",
    "Section",
    "FormField",
    "ValidationRule",
    "FormEngineError",
    "ConfigurationError",
    "CyclicDependencyError",
    "InvariantViolation",
    "FieldError",
    "MergeCollisionWarning",
]
