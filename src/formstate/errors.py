"""
Error taxonomy for the form state engine.

Two families:
    - Fatal problems are raised as exceptions:
        ConfigurationError (load time) and InvariantViolation (runtime).
    - Recoverable problems are returned as data, never raised:
        FieldError (validation) and MergeCollisionWarning (output build).

UI layers can render the recoverable ones straight from the reports
without wrapping every read in try/except.
"""

from dataclasses import dataclass
from typing import List, Tuple


class FormEngineError(Exception):
    """Base class for every exception raised by the engine."""
    pass


class ConfigurationError(FormEngineError):
    """Raised when a FormConfig is malformed. The engine refuses to load it."""
    pass


class ConditionParseError(ConfigurationError):
    """Raised when a textual visibility condition cannot be parsed."""
    pass


class CyclicDependencyError(ConfigurationError):
    """
    Raised when the visibility dependency graph contains a cycle.

    Properties:
        cycle: Section ids along the cycle, first id repeated at the end
               Example: ["a", "b", "a"]
    """

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(
            f"Cyclic visibility dependency between sections: {' -> '.join(self.cycle)}"
        )


class InvariantViolation(FormEngineError):
    """Raised when a caller addresses a (section_id, field_name) absent from the config."""

    def __init__(self, section_id: str, field_name: str, reason: str = "not present in the loaded form config"):
        self.section_id = section_id
        self.field_name = field_name
        super().__init__(f"Field ({section_id!r}, {field_name!r}) {reason}")


@dataclass(frozen=True)
class FieldError:
    """
    A single validation failure for one field.

    Properties:
        kind: Rule kind that failed ("required", "pattern", "range", ...)
        message: Human-readable message for the renderer
    """

    kind: str
    message: str


@dataclass(frozen=True)
class MergeCollisionWarning:
    """
    Advisory record: a key was written twice into the same output object.

    The later-declared value is kept.

    Properties:
        key: Colliding key in the output object
        section_id: Section whose value won
        previous_section_id: Section whose value was replaced
        path: Object names leading to the output object ("()" is the root)
    """

    key: str
    section_id: str
    previous_section_id: str
    path: Tuple[str, ...] = ()

    @property
    def message(self) -> str:
        where = ".".join(self.path) if self.path else "<root>"
        return (
            f"Key {self.key!r} in {where} from section {self.previous_section_id!r} "
            f"was overwritten by section {self.section_id!r}"
        )
