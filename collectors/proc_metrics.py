from __future__ import annotations
import os
from typing import Dict, List, Union

from core.errors import MalformedRecord, SourceUnavailable

SOURCE_NETSTAT = "net/netstat"
SOURCE_SNMP = "net/snmp"


def parse_proc_metrics(data: Union[bytes, str], source: str = "") -> Dict[str, float]:
    """
    Parse header/value line pairs into flat `<Category><Field>` metrics.

    Every block is two lines sharing a category token:

        Tcp: RtoAlgorithm RtoMin
        Tcp: 1 200

    gives {"TcpRtoAlgorithm": 1.0, "TcpRtoMin": 200.0}. Blank lines are
    dropped before pairing, so blank-separated blocks parse the same as
    tightly packed ones.

    Any failure aborts the whole input: nothing is returned for blocks
    parsed before the bad one.

    Raises:
        MalformedRecord: missing value line, value count different from the
            header field count, category mismatch,
            or a value that is not a number
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    lines: List[str] = [l for l in data.splitlines() if l.strip()]

    out: Dict[str, float] = {}
    for i in range(0, len(lines), 2):
        headers = lines[i].split()
        prefix = headers[0].rstrip(":")
        if i + 1 >= len(lines):
            raise MalformedRecord(f"{source}: {prefix} header has no value line",
                                  record=prefix, source=source)
        values = lines[i + 1].split()
        if values[0].rstrip(":") != prefix:
            raise MalformedRecord(
                f"{source}: value line {values[0]!r} does not match header {prefix!r}",
                record=prefix, source=source)
        if len(values) != len(headers):
            raise MalformedRecord(
                f"{source}: {prefix} has {len(headers) - 1} fields but {len(values) - 1} values",
                record=prefix, source=source)

        for name, raw in zip(headers[1:], values[1:]):
            try:
                out[prefix + name] = float(raw)
            except ValueError:
                raise MalformedRecord(f"{source}: failed to parse {prefix}{name} value {raw!r}",
                                      field=name, record=prefix, source=source) from None
    return out


class ProcStatBlocks:
    """Reads one header/value statistics file fully and parses it."""

    name = "proc_stat_blocks"
    relpath = ""

    def __init__(self, procfs_path: str = "/proc") -> None:
        self.path = os.path.join(procfs_path, self.relpath)

    def read(self, metrics: Dict[str, float]) -> None:
        try:
            with open(self.path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise SourceUnavailable(f"cannot read {self.path}: {e}", self.path) from e
        metrics.update(parse_proc_metrics(data, self.path))


class ProcNetstat(ProcStatBlocks):
    """Extended IP and TCP counters (IpExt*, TcpExt*) from /proc/net/netstat."""

    name = "proc_net_netstat"
    relpath = SOURCE_NETSTAT


class ProcNetSnmp(ProcStatBlocks):
    """SNMP MIB counters (Ip*, Icmp*, IcmpMsg*, Tcp*, Udp*, UdpLite*) from /proc/net/snmp."""

    name = "proc_net_snmp"
    relpath = SOURCE_SNMP
