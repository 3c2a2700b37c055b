"""
Config Analyzer: load-time checks and a read-only report for a FormConfig.

    - check_config() enforces the fatal invariants and raises
      ConfigurationError (duplicate ids / object names / field names,
      dangling or self references, cycles, malformed rules)
    - analyze_config() runs the same checks and returns a ConfigReport
      with inventory, complexity and advisory warnings

Potential integral-merge collisions are only warned about here; the
builder resolves them at build time (later-declared section wins).
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from formstate.graph import DependencyGraph
from formstate.index import ConfigIndex
from formstate.interpreter import analyze_expression
from formstate.model import FormConfig, Section
from formstate.validation import ValidationEngine
from formstate.visibility import VisibilityEvaluator


@dataclass
class ConfigReport:
    """Analysis report for a form config."""

    form_name: str
    total_sections: int = 0
    total_fields: int = 0
    integral_sections: int = 0
    conditional_sections: int = 0
    max_depth: int = 0

    # Visibility graph
    evaluation_order: List[str] = field(default_factory=list)
    dependencies: Dict[str, List[str]] = field(default_factory=dict)

    # Expression complexity
    max_condition_depth: int = 0
    total_condition_nodes: int = 0

    # Validation coverage
    fields_with_rules: int = 0
    required_fields: int = 0

    # Static collisions: (output path, key) -> section ids writing it
    potential_collisions: Dict[Tuple[Tuple[str, ...], str], List[str]] = field(default_factory=dict)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def check_config(config: FormConfig) -> Tuple[ConfigIndex, VisibilityEvaluator, ValidationEngine]:
    """
    Enforce every fatal config invariant.

    Returns:
        The index, visibility evaluator and validation engine built while
        checking, ready for use by an engine

    Raises:
        ConfigurationError: (or CyclicDependencyError) on the first problem
    """
    index = ConfigIndex(config)
    evaluator = VisibilityEvaluator(index)
    validator = ValidationEngine(index)
    return index, evaluator, validator


def analyze_config(config: FormConfig) -> ConfigReport:
    """
    Perform a full analysis of a FormConfig.

    Raises ConfigurationError for fatal problems (same as check_config);
    everything else ends up in the report.
    """
    index, evaluator, _ = check_config(config)
    report = ConfigReport(form_name=config.name)

    # =========================================================================
    # 1. INVENTORY
    # =========================================================================

    report.total_sections = len(index.sections)
    report.total_fields = len(index.fields)
    for section in index.sections.values():
        if section.integral:
            report.integral_sections += 1
        if section.condition is not None:
            report.conditional_sections += 1
    for section_id in index.order:
        report.max_depth = max(report.max_depth, len(index.ancestors(section_id)) + 1)

    # =========================================================================
    # 2. VISIBILITY GRAPH
    # =========================================================================

    graph: DependencyGraph = evaluator.graph
    report.evaluation_order = list(evaluator.order)
    report.dependencies = {
        node: sorted(deps) for node, deps in graph.edges.items() if deps
    }

    for section in index.sections.values():
        if section.condition is not None:
            metrics = analyze_expression(section.condition)
            report.max_condition_depth = max(report.max_condition_depth, metrics.depth)
            report.total_condition_nodes += metrics.node_count

    # =========================================================================
    # 3. VALIDATION COVERAGE
    # =========================================================================

    for form_field in index.fields.values():
        if form_field.rules:
            report.fields_with_rules += 1
        if form_field.is_required:
            report.required_fields += 1

    # =========================================================================
    # 4. STATIC MERGE COLLISIONS
    # =========================================================================

    writers: Dict[Tuple[Tuple[str, ...], str], List[str]] = defaultdict(list)
    for section in config.sections:
        _collect_writers(section, (), writers)
    report.potential_collisions = {k: v for k, v in writers.items() if len(v) > 1}

    # =========================================================================
    # 5. WARNING FLAGS
    # =========================================================================

    for (path, key), section_ids in sorted(report.potential_collisions.items()):
        where = ".".join(path) if path else "<root>"
        report.add_warning(
            f"Key {key!r} in {where} is written by sections {', '.join(section_ids)}; "
            f"the last one wins when they are visible together"
        )

    for section in index.sections.values():
        if not section.fields and not section.subsections:
            report.add_warning(f"Section {section.id!r} has no fields")

    if report.max_condition_depth > 5:
        report.add_warning(f"High condition complexity: max depth {report.max_condition_depth}")

    return report


def _collect_writers(section: Section, path: Tuple[str, ...],
                     writers: Dict[Tuple[Tuple[str, ...], str], List[str]]) -> None:
    """Record which section writes each key of each output object."""
    if section.integral:
        inner = path
    else:
        writers[(path, section.object_name)].append(section.id)
        inner = path + (section.object_name,)

    for form_field in section.fields:
        writers[(inner, form_field.name)].append(section.id)
    for child in section.subsections:
        _collect_writers(child, inner, writers)
