"""
Two peer phase machines played against one in-process relay.
After every exchange settles, the two turn flags must be complementary.
"""
import pytest

from battle_relay.peer.fleet import SHIPS, TOTAL_SHIP_CELLS
from battle_relay.peer.session import PeerSession


class Table:
    def __init__(self, make_client):
        self.make_client = make_client
        self.peers = {}
        self.clients = {}
        self.outbox = {}
        self.seen = {}

    def seat(self, name, address):
        self.outbox[name] = []
        self.peers[name] = PeerSession(self.outbox[name].append)
        self.clients[name] = self.make_client(name)
        self.seen[name] = 0
        self.peers[name].connect_identity(address)
        return self.peers[name]

    async def pump(self):
        progressed = True
        while progressed:
            progressed = False
            for name, box in self.outbox.items():
                while box:
                    await self.clients[name].send(box.pop(0))
                    progressed = True
            for name, client in self.clients.items():
                fresh = client.received[self.seen[name]:]
                self.seen[name] = len(client.received)
                for msg in fresh:
                    self.peers[name].handle(msg)
                    progressed = True


def _turns_are_complementary(a, b):
    return {a.phase, b.phase} == {"your_turn", "opponent_turn"}


@pytest.mark.asyncio
async def test_full_game_keeps_turns_complementary(make_client, registry):
    table = Table(make_client)
    alice = table.seat("alice", "GALICE")
    bob = table.seat("bob", "GBOB")

    alice.create_room()
    await table.pump()
    assert alice.player_index == 0

    bob.join_room(alice.room_code)
    await table.pump()
    assert alice.phase == bob.phase == "placing"
    assert bob.player_index == 1

    # alice: ships in rows 0-4, bob: ships down columns 0-4
    for i, ship in enumerate(SHIPS):
        alice.place_ship(ship.id, 0, i, horizontal=True)
        bob.place_ship(ship.id, i, 0, horizontal=False)

    alice.commit_fleet()
    await table.pump()
    assert alice.phase == "waiting_commits"
    assert bob.opponent_committed is True

    bob.commit_fleet()
    await table.pump()
    assert alice.phase == "your_turn"
    assert bob.phase == "opponent_turn"

    bob_cells = [(i, y) for i, ship in enumerate(SHIPS) for y in range(ship.size)]
    alice_misses = [(x, y) for y in range(6, 10) for x in range(10)]

    turns = 0
    while alice.phase != "game_over":
        assert _turns_are_complementary(alice, bob)
        if alice.phase == "your_turn":
            alice.fire(*bob_cells.pop(0))
        else:
            bob.fire(*alice_misses.pop(0))
        await table.pump()
        turns += 1

    assert turns == 2 * TOTAL_SHIP_CELLS - 1
    assert alice.is_winner is True
    assert bob.phase == "game_over"
    assert bob.is_winner is False
    assert alice.hits_scored == bob.hits_taken == TOTAL_SHIP_CELLS
    assert bob.hits_scored == 0
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_mid_battle_disconnect_ends_both_views(app, make_client, registry):
    from battle_relay.domain.lifecycle.handlers import handle_disconnect
    from battle_relay.transport.connection import send_all

    table = Table(make_client)
    alice = table.seat("alice", "GALICE")
    bob = table.seat("bob", "GBOB")
    alice.create_room()
    await table.pump()
    bob.join_room(alice.room_code)
    await table.pump()
    for i, ship in enumerate(SHIPS):
        alice.place_ship(ship.id, 0, i, horizontal=True)
        bob.place_ship(ship.id, i, 0, horizontal=False)
    alice.commit_fleet()
    bob.commit_fleet()
    await table.pump()

    _, to_peers = await handle_disconnect(app=app, session=table.clients["bob"].session)
    for d in to_peers:
        await send_all(d.targets, d.event.model_dump())
    await table.pump()

    assert alice.phase == "game_over"
    assert alice.is_winner is True
