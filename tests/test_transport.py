import asyncio
import json

import pytest

from transport import ConnectionHub


class FakeWebSocket:
    """Records sent frames; optionally fails or waits on a gate before sending."""

    def __init__(self, fail=False, gate=None):
        self.sent = []
        self.fail = fail
        self.gate = gate

    async def send_text(self, text):
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))


async def settle(condition):
    for _ in range(100):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


class TestConnectionHub:

    @pytest.mark.asyncio
    async def test_delivers_in_order_per_recipient(self):
        hub = ConnectionHub()
        ws = FakeWebSocket()
        hub.attach("c1", ws)

        for n in range(5):
            hub.deliver("c1", "ice-candidate", {"candidate": n, "from": "c2"})

        await settle(lambda: len(ws.sent) == 5)
        assert [frame["data"]["candidate"] for frame in ws.sent] == [0, 1, 2, 3, 4]
        assert ws.sent[0] == {"event": "ice-candidate", "data": {"candidate": 0, "from": "c2"}}
        await hub.detach("c1")

    @pytest.mark.asyncio
    async def test_deliver_to_unknown_connection_is_dropped(self):
        hub = ConnectionHub()
        hub.deliver("ghost", "offer", {"offer": "sdp"})
        assert not hub.is_attached("ghost")

    @pytest.mark.asyncio
    async def test_failed_send_stops_only_that_writer(self):
        hub = ConnectionHub()
        broken = FakeWebSocket(fail=True)
        healthy = FakeWebSocket()
        hub.attach("broken", broken)
        hub.attach("healthy", healthy)

        hub.deliver("broken", "user-connected", "c3")
        hub.deliver("healthy", "user-connected", "c3")

        await settle(lambda: not hub.is_attached("broken") and len(healthy.sent) == 1)

        hub.deliver("broken", "user-disconnected", "c3")
        hub.deliver("healthy", "user-disconnected", "c3")
        await settle(lambda: len(healthy.sent) == 2)

        assert broken.sent == []
        assert hub.is_attached("healthy")
        assert [frame["event"] for frame in healthy.sent] == ["user-connected", "user-disconnected"]

        await hub.detach("broken")
        await hub.detach("healthy")

    @pytest.mark.asyncio
    async def test_detach_cancels_writer_and_drops_later_deliveries(self):
        hub = ConnectionHub()
        ws = FakeWebSocket()
        hub.attach("c1", ws)
        writer = hub._writers["c1"]

        await hub.detach("c1")

        assert writer.cancelled()
        assert not hub.is_attached("c1")
        hub.deliver("c1", "offer", {"offer": "sdp"})
        await asyncio.sleep(0)
        assert ws.sent == []

    @pytest.mark.asyncio
    async def test_detach_unknown_connection_is_noop(self):
        hub = ConnectionHub()
        await hub.detach("ghost")

    @pytest.mark.asyncio
    async def test_full_outbox_drops_new_messages(self):
        hub = ConnectionHub(max_outbox=2)
        gate = asyncio.Event()
        ws = FakeWebSocket(gate=gate)
        hub.attach("c1", ws)

        # no yield between deliveries, so the writer has not taken anything yet
        for n in range(5):
            hub.deliver("c1", "ice-candidate", {"candidate": n})

        gate.set()
        await settle(lambda: len(ws.sent) == 2)
        await asyncio.sleep(0)
        assert [frame["data"]["candidate"] for frame in ws.sent] == [0, 1]
        await hub.detach("c1")
