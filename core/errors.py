from __future__ import annotations
from typing import Optional


class CollectorError(Exception):
    """Base class for failures of a single metric source."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class SourceUnavailable(CollectorError):
    """The file or command backing a source could not be read or run."""


class CommandTimeout(SourceUnavailable):
    """An external command did not finish within its time limit."""


class MalformedRecord(CollectorError):
    """
    A record could not be turned into metrics.

    Attributes:
        field: Name of the field that failed (e.g. 'rxPackets', 'RtoMin')
        record: Interface name or statistics category the field belongs to
    """

    def __init__(self, message: str, field: Optional[str] = None,
                 record: Optional[str] = None, source: Optional[str] = None) -> None:
        super().__init__(message, source)
        self.field = field
        self.record = record


class ScanError(CollectorError):
    """Reading a stream failed part way through."""


class MetricCollisionError(Exception):
    """Two sources emitted the same metric key within one snapshot."""

    def __init__(self, key: str, first: str, second: str) -> None:
        super().__init__(f"metric {key!r} emitted by both {first} and {second}")
        self.key = key
        self.first = first
        self.second = second
