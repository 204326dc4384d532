import pytest

from collectors.proc_metrics import ProcNetSnmp, ProcNetstat, parse_proc_metrics
from core.errors import MalformedRecord, SourceUnavailable


def test_parse_tcp_block():
    assert parse_proc_metrics(b"Tcp: RtoAlgorithm RtoMin\nTcp: 1 200") == {
        "TcpRtoAlgorithm": 1.0,
        "TcpRtoMin": 200.0,
    }


def test_metric_count_matches_header_fields():
    header = "TcpExt: SyncookiesSent SyncookiesRecv SyncookiesFailed TCPBacklogDrop"
    values = "TcpExt: 0 4 7 11"
    metrics = parse_proc_metrics(f"{header}\n{values}\n")
    assert len(metrics) == len(header.split()) - 1
    for name, value in zip(header.split()[1:], values.split()[1:]):
        assert metrics["TcpExt" + name] == float(value)


def test_blank_lines_do_not_shift_blocks():
    packed = "Udp: InDatagrams NoPorts\nUdp: 418 2\nIcmpMsg: InType3\nIcmpMsg: 2\n"
    spaced = "\nUdp: InDatagrams NoPorts\nUdp: 418 2\n\n\nIcmpMsg: InType3\nIcmpMsg: 2\n\n"
    assert parse_proc_metrics(spaced) == parse_proc_metrics(packed)
    assert parse_proc_metrics(spaced)["IcmpMsgInType3"] == 2.0


def test_negative_values():
    assert parse_proc_metrics("Tcp: MaxConn\nTcp: -1\n") == {"TcpMaxConn": -1.0}


def test_bad_value_aborts_whole_input():
    text = "Udp: InDatagrams\nUdp: 418\nTcp: RtoMin RtoMax\nTcp: 200 lots\n"
    with pytest.raises(MalformedRecord) as exc:
        parse_proc_metrics(text)
    assert exc.value.field == "RtoMax"
    assert exc.value.record == "Tcp"


@pytest.mark.parametrize("text", [
    "Tcp: RtoMin RtoMax\n",                  # no value line
    "Tcp: RtoMin RtoMax\nTcp: 200\n",        # short value line
    "Tcp: RtoMin\nTcp: 200 999\n",          # long value line
    "Tcp: RtoMin\nUdp: 200\n",               # category mismatch
])
def test_malformed_blocks(text):
    with pytest.raises(MalformedRecord):
        parse_proc_metrics(text)


def test_snmp_file(procfs):
    metrics = {}
    ProcNetSnmp(str(procfs)).read(metrics)
    assert metrics["IpForwarding"] == 2.0
    assert metrics["IcmpInMsgs"] == 2.0
    assert metrics["IcmpMsgInType3"] == 2.0
    assert metrics["TcpRtoAlgorithm"] == 1.0
    assert metrics["TcpRetransSegs"] == 1.0
    assert metrics["UdpInDatagrams"] == 418.0
    assert metrics["UdpLiteInDatagrams"] == 0.0


def test_netstat_file(procfs):
    metrics = {}
    ProcNetstat(str(procfs)).read(metrics)
    assert metrics["TcpExtSyncookiesFailed"] == 5.0
    assert metrics["TcpExtTCPBacklogDrop"] == 11.0
    assert metrics["IpExtInNoRoutes"] == 3.0
    assert metrics["IpExtInCsumErrors"] == 4.0


def test_failed_file_writes_nothing(procfs):
    (procfs / "net" / "snmp").write_text("Ip: Forwarding\nIp: 2\nUdp: InErrors\nUdp: ?\n")
    metrics = {}
    with pytest.raises(MalformedRecord):
        ProcNetSnmp(str(procfs)).read(metrics)
    assert metrics == {}


def test_missing_file(tmp_path):
    with pytest.raises(SourceUnavailable):
        ProcNetstat(str(tmp_path)).read({})


def test_parse_is_idempotent(procfs):
    data = (procfs / "net" / "snmp").read_bytes()
    assert parse_proc_metrics(data) == parse_proc_metrics(data)


def test_undecodable_bytes_are_replaced():
    metrics = parse_proc_metrics(b"Tcp: Rto\xffMin\nTcp: 200\n")
    assert metrics == {"TcpRto�Min": 200.0}
