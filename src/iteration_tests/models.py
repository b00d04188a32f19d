"""Data structures for iteration reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class AssertionResult:
    """Outcome of one assertion evaluated within one iteration.

    Attributes:
        request: Name of the request the assertion ran against.
        assertion: Assertion descriptor, as named in the test script.
        result: 1 when the assertion passed, 0 otherwise.
    """

    request: str
    assertion: str
    result: int

    @property
    def passed(self) -> bool:
        return self.result == 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result,
            "request": self.request,
            "assertion": self.assertion,
        }


@dataclass
class Iteration:
    id: str
    assertions: list[AssertionResult] = field(default_factory=list)


@dataclass
class StructuredReport:
    collection: str
    iterations: list[Iteration] = field(default_factory=list)
