from __future__ import annotations

from iteration_tests.models import AssertionResult


class AssertionAccumulator:
    """Buffers assertion outcomes of the running iteration."""

    def __init__(self) -> None:
        self._results: list[AssertionResult] = []

    def reset(self) -> None:
        self._results.clear()

    def add(self, request: str, assertion: str, failed: bool) -> AssertionResult:
        result = AssertionResult(
            request=request, assertion=assertion, result=0 if failed else 1
        )
        self._results.append(result)
        return result

    def results(self) -> list[AssertionResult]:
        """Return a copy of the buffered results, in evaluation order."""
        return list(self._results)

    def __len__(self) -> int:
        return len(self._results)
