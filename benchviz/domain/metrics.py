"""Closed set of benchmark metric names.

Each metric name is bound to one numeric field of a raw benchmark record.
Validity is a pure membership test.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional


class MetricName(str, Enum):
    """Standard benchmark metric names."""

    NS_PER_OP = "nsPerOp"
    ALLOCS_PER_OP = "allocsPerOp"
    BYTES_PER_OP = "bytesPerOp"
    MB_PER_S = "MBytesPerS"

    def __str__(self) -> str:
        return self.value

    @property
    def field(self) -> str:
        """Name of the raw record attribute carrying this metric."""
        return _FIELDS[self]

    @classmethod
    def is_valid(cls, value: object) -> bool:
        """Report whether ``value`` is one of the known metric names."""
        if isinstance(value, MetricName):
            return True
        return isinstance(value, str) and value in _VALUES

    @classmethod
    def parse(cls, value: object) -> Optional["MetricName"]:
        """Return the member for ``value``, or None when it is not valid."""
        if isinstance(value, MetricName):
            return value
        if not cls.is_valid(value):
            return None
        return cls(value)


_FIELDS = {
    MetricName.NS_PER_OP: "ns_per_op",
    MetricName.ALLOCS_PER_OP: "allocs_per_op",
    MetricName.BYTES_PER_OP: "bytes_per_op",
    MetricName.MB_PER_S: "mb_per_s",
}

_VALUES = frozenset(m.value for m in MetricName)


def all_metric_names() -> List[MetricName]:
    """Return all known metric names in their canonical order."""
    return list(MetricName)
