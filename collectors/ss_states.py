from __future__ import annotations
import logging
import subprocess
import threading
from collections import Counter
from typing import Dict, Iterable, Optional, Sequence

from core.errors import CommandTimeout, ScanError, SourceUnavailable

logger = logging.getLogger(__name__)

SS_COMMAND = ("ss", "-nat")
HEADER_TOKEN = "State"


def parse_connection_states(lines: Iterable[str]) -> Counter:
    """
    Count socket listing lines by their first column (the TCP state).

    The header line (first column 'State') and blank lines are skipped.

    Args:
        lines: Iterable of `ss` output lines (a pipe works)

    Returns:
        Counter mapping state label to the number of connections in it
    """
    tally: Counter = Counter()
    for line in lines:
        record = line.split()
        if not record:
            logger.debug("skipping empty connection line")
            continue
        if record[0] == HEADER_TOKEN:
            continue
        tally[record[0]] += 1
    return tally


class SsConnectionStates:
    """
    TCP connection counts per state, from the streamed output of `ss -nat`.

    The command is killed when it runs longer than `timeout` seconds.
    """

    name = "ss_connection_states"

    def __init__(self, command: Sequence[str] = SS_COMMAND,
                 timeout: Optional[float] = 10.0) -> None:
        self.command = list(command)
        self.timeout = timeout

    def read(self, metrics: Dict[str, float]) -> None:
        source = " ".join(self.command)
        try:
            proc = subprocess.Popen(self.command, stdout=subprocess.PIPE,
                                    stderr=subprocess.DEVNULL,
                                    encoding="utf-8", errors="replace")
        except OSError as e:
            raise SourceUnavailable(f"cannot run {source}: {e}", source) from e

        timed_out = threading.Event()

        def kill() -> None:
            if proc.poll() is not None:
                return
            timed_out.set()
            proc.kill()

        timer = None
        if self.timeout is not None:
            timer = threading.Timer(self.timeout, kill)
            timer.daemon = True
            timer.start()
        try:
            try:
                tally = parse_connection_states(proc.stdout)
            except OSError as e:
                raise ScanError(f"scan error for {source}: {e}", source) from e
        finally:
            if timer is not None:
                timer.cancel()
            # drain stdout and reap the child on every path
            proc.communicate()

        if timed_out.is_set() and proc.returncode != 0:
            raise CommandTimeout(f"{source} timed out after {self.timeout}s", source)
        if proc.returncode != 0:
            raise SourceUnavailable(
                f"{source} exited with status {proc.returncode}", source)

        for state, count in tally.items():
            metrics[state] = float(count)
