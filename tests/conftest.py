import os
import shutil
import sys

import pytest

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")


def data_path(name):
    return os.path.join(DATA_DIR, name)


@pytest.fixture
def procfs(tmp_path):
    """A fake procfs root holding the captured net/dev, net/netstat and net/snmp files."""
    net = tmp_path / "net"
    net.mkdir()
    for name in ("dev", "netstat", "snmp"):
        shutil.copy(data_path("net_" + name), net / name)
    return tmp_path


@pytest.fixture
def ss_command():
    """A command that prints the captured `ss -nat` listing."""
    return [sys.executable, "-c",
            "import sys; sys.stdout.write(open(sys.argv[1]).read())",
            data_path("ss_nat")]
