from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from core.aggregator import MetricAggregator
from collectors.proc_dev import ProcNetDev
from collectors.proc_metrics import ProcNetSnmp, ProcNetstat
from collectors.ss_states import SS_COMMAND, SsConnectionStates

DEFAULT_PREFIX = "network"

CONNECTION_STATES = (
    ("ESTAB", "Established"),
    ("SYN-SENT", "Syn Sent"),
    ("SYN-RECV", "Syn Received"),
    ("FIN-WAIT-1", "Fin Wait 1"),
    ("FIN-WAIT-2", "Fin Wait 2"),
    ("TIME-WAIT", "Time Wait"),
    ("UNCONN", "Close"),
    ("CLOSE-WAIT", "Close Wait"),
    ("LAST-ACK", "Last Ack"),
    ("LISTEN", "Listen"),
    ("CLOSING", "Closing"),
    ("UNKNOWN", "Unknown"),
)


def title_case(text: str) -> str:
    """
    Upper-case the first letter of every word, leaving the rest untouched.

    Words are runs of letters, digits and underscores, so 'tcp_stats'
    becomes 'Tcp_stats' and 'edge-net' becomes 'Edge-Net'.

    Args:
        text: Metric key prefix

    Returns:
        Label form of the prefix
    """
    return re.sub(r"(?<!\w)\w", lambda m: m.group(0).upper(), text)


def _metric(name: str, label: Optional[str] = None, diff: bool = True,
            stacked: bool = False) -> Dict[str, Any]:
    return {"name": name, "label": label or name, "diff": diff, "stacked": stacked}


class NetworkPlugin:
    """
    Network subsystem metrics for a polling host.

    The host owns scheduling, delta computation for the counters flagged
    with diff=True, and state persistence in `tempfile`; this class only
    produces snapshots and describes how to graph them.
    """

    def __init__(self, prefix: str = "", tempfile: Optional[str] = None,
                 procfs_path: str = "/proc",
                 ss_command: Sequence[str] = SS_COMMAND,
                 ss_timeout: Optional[float] = 10.0,
                 logger: Optional[logging.Logger] = None) -> None:
        self.prefix = prefix
        self.tempfile = tempfile
        self.aggregator = MetricAggregator(
            [
                ProcNetDev(procfs_path),
                ProcNetstat(procfs_path),
                ProcNetSnmp(procfs_path),
                SsConnectionStates(ss_command, ss_timeout),
            ],
            logger=logger,
        )

    def metric_key_prefix(self) -> str:
        """Return the metric key prefix, falling back to DEFAULT_PREFIX when unset."""
        if not self.prefix:
            self.prefix = DEFAULT_PREFIX
        return self.prefix

    def graph_definition(self) -> Dict[str, Dict[str, Any]]:
        """
        Describe how the host should graph the metrics.

        Returns:
            Mapping of graph name to its label, unit and metric list; metrics
            with diff=True are cumulative counters the host turns into rates.
        """
        label = title_case(self.metric_key_prefix())
        interface: List[Dict[str, Any]] = [
            _metric(name) for name in (
                "rxPackets", "rxErrors", "rxDropped", "rxOverruns",
                "txPackets", "txErrors", "txDropped", "txOverruns",
            )
        ]
        return {
            "interface.#": {
                "label": f"{label} Interface",
                "unit": "integer",
                "metrics": interface,
            },
            "ip.statistic": {
                "label": f"{label} IP Statistics",
                "unit": "integer",
                "metrics": [_metric("IpExtInCsumErrors", "InCsumErrors")],
            },
            "tcp.backlog": {
                "label": f"{label} TCP Backlog",
                "unit": "integer",
                "metrics": [_metric("TcpExtTCPBacklogDrop", "Drop")],
            },
            "tcp.conn.state": {
                "label": f"{label} Tcp Connection States",
                "unit": "integer",
                "metrics": [_metric(state, text, diff=False, stacked=True)
                            for state, text in CONNECTION_STATES],
            },
            "tcp.statistic": {
                "label": f"{label} Tcp Statistics",
                "unit": "integer",
                "metrics": [
                    _metric("TcpEstabResets", "Received Reset"),
                    _metric("TcpOutRsts", "Sent Reset"),
                    _metric("TcpRetransSegs", "Retrans Segs"),
                ],
            },
            "tcp.syncookie": {
                "label": f"{label} Tcp Syncookies",
                "unit": "integer",
                "metrics": [_metric("TcpExtSyncookiesFailed", "Failed")],
            },
        }

    def fetch_metrics(self) -> Dict[str, float]:
        """
        Collect one snapshot from every source.

        Returns:
            Mapping of metric name to value; sources that failed are missing.
        """
        return self.aggregator.collect()
