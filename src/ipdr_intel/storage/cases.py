"""Case store boundary.

Case workflow lives outside the core; the aggregator only needs the
number of active cases for the dashboard.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class CaseStore(Protocol):
    def count_active_cases(self) -> int:
        ...


class StaticCaseStore:
    """CaseStore returning a fixed figure supplied by the case system."""

    def __init__(self, active_cases: int = 0):
        if active_cases < 0:
            raise ValueError("active_cases must be non-negative")
        self.active_cases = active_cases

    def count_active_cases(self) -> int:
        return self.active_cases
