import socket
import threading

import pytest

from omronfins.constants import CMD_MEMORY_READ, ICF_REQUEST, SIDMode
from omronfins.errors import ConnectionClosedError, FinsError, FinsTimeoutError
from omronfins.models import FinsClientConfig, FinsUDPFrame
from omronfins.udp_client import FinsUDPClient
from omronfins.udp_frame import build_udp_frame, parse_udp_frame


def reply_for(frame, status=0, payload=b""):
    return build_udp_frame(
        FinsUDPFrame(
            icf=0xC0,
            rsv=0,
            gct=2,
            dna=0,
            da1=frame.sa1,
            da2=0,
            sna=0,
            sa1=frame.da1,
            sa2=0,
            sid=frame.sid,
            command=frame.command,
            data=status.to_bytes(2, "big") + payload,
        )
    )


class FakePLC:
    def __init__(self, handler):
        self.handler = handler
        self.requests = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(0.05)
        self.port = self.sock.getsockname()[1]
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self):
        while not self._stop.is_set():
            try:
                data, peer = self.sock.recvfrom(2048)
            except socket.timeout:
                continue
            except OSError:
                return
            frame = parse_udp_frame(data)
            self.requests.append(frame)
            reply = self.handler(frame)
            if reply is not None:
                self.sock.sendto(reply, peer)

    def stop(self):
        self._stop.set()
        self._thread.join(1)
        self.sock.close()


@pytest.fixture
def plc_factory():
    servers = []

    def make(handler):
        server = FakePLC(handler)
        servers.append(server)
        return server

    yield make
    for server in servers:
        server.stop()


def make_config(port, **kwargs):
    return FinsClientConfig(ip="127.0.0.1", port=port, timeout=kwargs.pop("timeout", 2.0), **kwargs)


def test_send_request_returns_response(plc_factory):
    plc = plc_factory(lambda f: reply_for(f, payload=b"\x12\x34"))
    with FinsUDPClient(make_config(plc.port)) as client:
        client.connect()
        response = client.send_request(CMD_MEMORY_READ, b"\x82\x00\x64\x00\x00\x01")
        assert response.is_success()
        assert response.data == b"\x12\x34"
        stats = client.stats()
        assert stats.total_requests == 1
        assert stats.success_count == 1
        assert stats.error_count == 0
        assert stats.last_response_at is not None


def test_request_frame_carries_nodes_and_command(plc_factory):
    plc = plc_factory(lambda f: reply_for(f))
    config = make_config(plc.port, local_node=0x01, server_node=0x64)
    with FinsUDPClient(config) as client:
        client.connect()
        client.send_request(CMD_MEMORY_READ, b"\x82\x00\x00\x00\x00\x01")
    frame = plc.requests[0]
    assert frame.icf == ICF_REQUEST
    assert frame.gct == 0x02
    assert frame.sa1 == 0x01
    assert frame.da1 == 0x64
    assert frame.command == CMD_MEMORY_READ
    assert frame.data == b"\x82\x00\x00\x00\x00\x01"


def test_error_end_code_counts_as_error(plc_factory):
    plc = plc_factory(lambda f: reply_for(f, status=0x0101))
    with FinsUDPClient(make_config(plc.port)) as client:
        client.connect()
        response = client.send_request(CMD_MEMORY_READ, b"")
        assert response.status_code == 0x0101
        assert not response.is_success()
        assert client.stats().error_count == 1
        assert client.stats().success_count == 0


def test_increment_sid_wraps_to_start(plc_factory):
    plc = plc_factory(lambda f: reply_for(f))
    config = make_config(plc.port, sid_mode=SIDMode.INCREMENT, start_sid=0, max_sid=2)
    with FinsUDPClient(config) as client:
        client.connect()
        sids = [client.send_request(CMD_MEMORY_READ, b"").sid for _ in range(3)]
    assert sids == [1, 2, 0]
    assert [f.sid for f in plc.requests] == sids


def test_fixed_sid_is_reused(plc_factory):
    plc = plc_factory(lambda f: reply_for(f))
    config = make_config(plc.port, sid_mode=SIDMode.FIXED, fixed_sid=7)
    with FinsUDPClient(config) as client:
        client.connect()
        for _ in range(2):
            client.send_request(CMD_MEMORY_READ, b"")
    assert [f.sid for f in plc.requests] == [7, 7]


def test_timeout_when_no_reply(plc_factory):
    plc = plc_factory(lambda f: None)
    with FinsUDPClient(make_config(plc.port, timeout=0.2)) as client:
        client.connect()
        with pytest.raises(FinsTimeoutError):
            client.send_request(CMD_MEMORY_READ, b"")
        stats = client.stats()
        assert stats.timeout_count == 1
        assert stats.total_requests == 1


def test_send_before_connect_raises_closed(plc_factory):
    plc = plc_factory(lambda f: reply_for(f))
    client = FinsUDPClient(make_config(plc.port))
    with pytest.raises(ConnectionClosedError):
        client.send_request(CMD_MEMORY_READ, b"")


def test_connect_twice_raises(plc_factory):
    plc = plc_factory(lambda f: reply_for(f))
    with FinsUDPClient(make_config(plc.port)) as client:
        client.connect()
        with pytest.raises(FinsError):
            client.connect()


def test_close_and_reconnect(plc_factory):
    plc = plc_factory(lambda f: reply_for(f, payload=b"\x00\x05"))
    client = FinsUDPClient(make_config(plc.port))
    client.connect()
    assert client.is_connected()
    client.close()
    client.close()
    assert not client.is_connected()
    with pytest.raises(ConnectionClosedError):
        client.send_request(CMD_MEMORY_READ, b"")
    client.connect()
    try:
        assert client.is_connected()
        assert client.send_request(CMD_MEMORY_READ, b"").data == b"\x00\x05"
    finally:
        client.close()


def test_none_config_rejected():
    with pytest.raises(ValueError):
        FinsUDPClient(None)