from __future__ import annotations
import logging
import os
from typing import Dict, Iterable, List, Tuple

from core.errors import MalformedRecord, ScanError, SourceUnavailable

logger = logging.getLogger(__name__)

SOURCE = "net/dev"

# /proc/net/dev carries 16 columns after the colon: 8 receive, then 8 transmit
#   rx: bytes packets errs drop fifo frame compressed multicast
#   tx: bytes packets errs drop fifo colls carrier compressed
EXPECTED_COLUMNS = 16

COLUMNS: Tuple[Tuple[str, int], ...] = (
    ("rxPackets", 1),
    ("rxErrors", 2),
    ("rxDropped", 3),
    ("rxOverruns", 4),
    ("txPackets", 9),
    ("txErrors", 10),
    ("txDropped", 11),
    ("txOverruns", 12),
)

EXCLUDED_INTERFACES = frozenset({"lo"})


def parse_proc_dev(metrics: Dict[str, float], stream: Iterable[str],
                   source: str = SOURCE) -> None:
    """
    Parse interface counter lines into `interface.<name>.<field>` metrics.

    Lines without a colon, with fewer than EXPECTED_COLUMNS columns, or for
    an excluded interface are skipped. A line whose counter is not numeric
    contributes nothing and raises MalformedRecord; interfaces parsed before
    it stay in `metrics`.

    Args:
        metrics: Mapping the parsed values are written into
        stream: Iterable of text lines (an open file works)
        source: Name used in error messages

    Raises:
        MalformedRecord: a selected column could not be parsed as a number
        ScanError: the stream failed while being read
    """
    try:
        for line in stream:
            kv = line.split(":", 1)
            if len(kv) != 2:
                continue
            fields = kv[1].split()
            if len(fields) < EXPECTED_COLUMNS:
                continue
            name = kv[0].strip()
            if name in EXCLUDED_INTERFACES:
                continue
            if len(fields) > EXPECTED_COLUMNS:
                logger.debug("%s: %s has %d columns, expected %d",
                             source, name, len(fields), EXPECTED_COLUMNS)
            metrics.update(_interface_metrics(name, fields, source))
    except OSError as e:
        raise ScanError(f"scan error for {source}: {e}", source) from e


def _interface_metrics(name: str, fields: List[str], source: str) -> Dict[str, float]:
    """
    Pick the COLUMNS counters out of one interface line.

    Args:
        name: Interface name
        fields: Whitespace-split columns after the colon
        source: Name used in error messages

    Returns:
        The eight `interface.<name>.<field>` metrics of the line

    Raises:
        MalformedRecord: a selected column is not a number
    """
    out: Dict[str, float] = {}
    for metric, index in COLUMNS:
        try:
            out[f"interface.{name}.{metric}"] = float(fields[index])
        except ValueError:
            raise MalformedRecord(f"failed to parse {metric} of {name}",
                                  field=metric, record=name, source=source) from None
    return out


class ProcNetDev:
    """
    Per-interface packet, error, drop and overrun counters from /proc/net/dev.

    The loopback interface is left out.
    """

    name = "proc_net_dev"

    def __init__(self, procfs_path: str = "/proc") -> None:
        self.path = os.path.join(procfs_path, SOURCE)

    def read(self, metrics: Dict[str, float]) -> None:
        try:
            f = open(self.path, "r", encoding="utf-8", errors="replace")
        except OSError as e:
            raise SourceUnavailable(f"cannot open {self.path}: {e}", self.path) from e
        with f:
            parse_proc_dev(metrics, f, self.path)
