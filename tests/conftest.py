import pytest

from battle_relay.store.room_registry import RoomRegistry
from battle_relay.transport.connection import Session, send_all
from battle_relay.transport.dispatcher import dispatch_message


class FakeConn:
    def __init__(self, name="conn"):
        self.name = name
        self.is_open = True
        self.sent = []

    async def send_json(self, event):
        self.sent.append(event)

    async def close(self, code=1000):
        self.is_open = False

    def types(self):
        return [e["type"] for e in self.sent]

    def last(self, type_):
        for e in reversed(self.sent):
            if e["type"] == type_:
                return e
        return None

    def __repr__(self):
        return f"FakeConn({self.name})"


class FakeApp:
    def __init__(self, registry):
        self.state = type("State", (), {"registry": registry})()


class Client:
    """A fake socket plus its session, driven through the real dispatcher."""

    def __init__(self, app, name):
        self.app = app
        self.conn = FakeConn(name)
        self.session = Session(conn=self.conn)

    async def send(self, msg):
        to_sender, to_peers = await dispatch_message(app=self.app, session=self.session, raw=msg)
        for e in to_sender:
            await self.conn.send_json(e)
        for event, targets in to_peers:
            await send_all(targets, event)
        return to_sender

    @property
    def received(self):
        return self.conn.sent


@pytest.fixture()
def registry():
    return RoomRegistry(grace_sec=120)


@pytest.fixture()
def app(registry):
    return FakeApp(registry)


@pytest.fixture()
def make_client(app):
    def _make(name="client"):
        return Client(app, name)

    return _make


@pytest.fixture()
def make_conn():
    return FakeConn
