"""
Graphviz DOT diagram generator for form configs.

Draws the section tree and the visibility dependencies, for designers
debugging why a section does (not) show up.

Supports two modes:
    - SIMPLE: Sections, nesting and dependency edges
    - DETAILED: Adds fields, integral flags and condition labels
"""

from enum import Enum
from typing import List

from formstate.conditions import format_condition
from formstate.graph import build_dependency_graph
from formstate.index import ConfigIndex
from formstate.model import FormConfig, Section


class DotMode(Enum):
    """Visualization modes for DOT output."""
    SIMPLE = "simple"      # Sections and edges
    DETAILED = "detailed"  # Include fields and conditions


def _escape_dot_string(s: str) -> str:
    """Escape special characters for DOT labels."""
    if not s:
        return '""'
    s = s.replace('\\', '\\\\')
    s = s.replace('"', '\\"')
    s = s.replace('\n', '\\n')
    return f'"{s}"'


def _escape_dot_id(identifier: str) -> str:
    """Quote an identifier for DOT unless it is a plain identifier."""
    if identifier and not identifier[0].isdigit() and identifier.replace('_', '').isalnum():
        return identifier
    return _escape_dot_string(identifier)


def _section_label(section: Section, mode: DotMode) -> str:
    label = section.title or section.id
    if mode == DotMode.DETAILED:
        info = [f"key: {section.object_name}{' (integral)' if section.integral else ''}"]
        if section.fields:
            info.append("fields: " + ", ".join(f.name for f in section.fields))
        if section.condition is not None:
            condition = format_condition(section.condition)
            if len(condition) > 40:
                condition = condition[:37] + "..."
            info.append(f"if: {condition}")
        label = label + "\n" + "\n".join(info)
    return label


def generate_dot(config: FormConfig, mode: DotMode = DotMode.SIMPLE) -> str:
    """
    Generate Graphviz DOT for a form config.

    Solid edges: parent -> subsection.
    Dashed edges: section -> section whose data its condition reads.

    Raises:
        ConfigurationError: if references in the config do not resolve
    """
    index = ConfigIndex(config)
    graph = build_dependency_graph(index)
    lines: List[str] = []

    lines.append("digraph form {")
    lines.append("  rankdir=TB;")
    lines.append("  node [shape=box, style=filled, fillcolor=lightblue];")

    # =========================================================================
    # NODES
    # =========================================================================

    for section_id in index.order:
        section = index.sections[section_id]
        attrs = [f"label={_escape_dot_string(_section_label(section, mode))}"]
        if section.condition is not None:
            attrs.append("fillcolor=lightyellow")
        if section.integral:
            attrs.append("style=\"filled,rounded\"")
        lines.append(f"  {_escape_dot_id(section_id)} [{', '.join(attrs)}];")

    # =========================================================================
    # EDGES
    # =========================================================================

    for section_id in index.order:
        parent = index.parent_of[section_id]
        if parent is not None:
            lines.append(f"  {_escape_dot_id(parent)} -> {_escape_dot_id(section_id)};")

    for section_id in index.order:
        for dependency in sorted(graph.edges[section_id]):
            lines.append(
                f"  {_escape_dot_id(section_id)} -> {_escape_dot_id(dependency)} "
                f"[style=dashed, color=gray40];"
            )

    lines.append("}")
    return "\n".join(lines)


def save_dot_file(config: FormConfig, filename: str, mode: DotMode = DotMode.SIMPLE) -> None:
    """Generate DOT and save to file."""
    dot = generate_dot(config, mode=mode)
    with open(filename, 'w') as f:
        f.write(dot)


__all__ = ["DotMode", "generate_dot", "save_dot_file"]
