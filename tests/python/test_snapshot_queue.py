import asyncio
import json
import sys

from flora.app import server
from flora.app.server import MAX_QUEUED_SNAPSHOTS, SimulationController
from flora.sim.core.config import AgentConfig, AgentGroupConfig, AttractorConfig, SimulationConfig


class _RecordingSocket:
    def __init__(self):
        self.sent = []

    async def send_text(self, payload: str) -> None:
        self.sent.append(json.loads(payload))


def _config() -> SimulationConfig:
    return SimulationConfig(
        agents=[AgentGroupConfig(count=3, agent=AgentConfig(follow_mouse=True))],
        attractors=[AttractorConfig(location=(400.0, 300.0))],
    )


def _queued_ticks(controller: SimulationController) -> list[int]:
    return [item.tick for item in controller._snapshot_queue]


def test_snapshot_queue_ack_cleanup() -> None:
    controller = SimulationController(_config())
    client = _RecordingSocket()

    async def exercise() -> None:
        await controller.connect(client)
        controller.tick = 1
        await controller._broadcast_snapshot()
        controller.tick = 2
        await controller._broadcast_snapshot()
        assert _queued_ticks(controller) == [1, 2]
        await controller.acknowledge(client, 1)
        assert _queued_ticks(controller) == [2]

    asyncio.run(exercise())


def test_queue_keeps_only_latest_snapshot_without_clients() -> None:
    controller = SimulationController(_config())

    async def exercise() -> None:
        for _ in range(500):
            await controller.advance()

    asyncio.run(exercise())
    assert _queued_ticks(controller) == [500]


def test_ack_from_one_client_keeps_snapshots_another_still_needs() -> None:
    controller = SimulationController(_config())
    fast = _RecordingSocket()
    slow = _RecordingSocket()

    async def exercise() -> None:
        await controller.connect(fast)
        await controller.connect(slow)
        await controller.advance()
        await controller.advance()
        await controller.acknowledge(fast, 2)
        assert _queued_ticks(controller) == [1, 2]
        await controller.acknowledge(slow, 1)
        assert _queued_ticks(controller) == [2]
        controller.disconnect(slow)
        await controller.acknowledge(fast, 2)
        assert _queued_ticks(controller) == []

    asyncio.run(exercise())


def test_queue_is_bounded_for_clients_that_never_ack() -> None:
    controller = SimulationController(_config())
    client = _RecordingSocket()

    async def exercise() -> None:
        await controller.connect(client)
        for _ in range(MAX_QUEUED_SNAPSHOTS + 10):
            await controller.advance()

    asyncio.run(exercise())
    ticks = _queued_ticks(controller)
    assert len(ticks) == MAX_QUEUED_SNAPSHOTS
    assert ticks[-1] == MAX_QUEUED_SNAPSHOTS + 10


def test_ack_from_unknown_client_is_ignored() -> None:
    controller = SimulationController(_config())
    client = _RecordingSocket()

    async def exercise() -> None:
        await controller.connect(client)
        await controller.advance()
        await controller.acknowledge(_RecordingSocket(), 5)

    asyncio.run(exercise())
    assert _queued_ticks(controller) == [1]


def test_clients_receive_only_unsent_snapshots() -> None:
    controller = SimulationController(_config(), broadcast_interval=1)
    client = _RecordingSocket()

    async def exercise() -> None:
        await controller.connect(client)
        await controller.advance()
        await controller.advance()

    asyncio.run(exercise())
    assert [message["tick"] for message in client.sent] == [1, 2]
    payload = client.sent[-1]["payload"]
    assert payload["metrics"]["population"] == 3
    assert len(payload["agents"]) == 3
    assert payload["sources"]["attractors"][0]["class_name"] == "attractor"
    assert payload["world"]["width"] == 800.0


def test_reset_and_controls() -> None:
    controller = SimulationController(_config())

    async def exercise() -> None:
        await controller.set_mouse(10.0, 20.0)
        await controller.advance()
        await controller.reset()

    asyncio.run(exercise())
    assert controller.tick == 0
    assert len(controller.simulation.agents) == 3
    assert _queued_ticks(controller) == [0]
    assert controller.set_speed(50.0) == 5.0
    assert controller.set_speed(0.0) == 0.1
    assert controller.set_speed(2.0) == 2.0


def test_mouse_moves_simulation_target() -> None:
    controller = SimulationController(_config())
    asyncio.run(controller.set_mouse(12.0, 34.0))
    assert controller.simulation.mouse.location.x == 12.0
    assert controller.simulation.mouse.location.y == 34.0


def test_main_runs_app_under_uvicorn(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(server.uvicorn, "run", lambda app, **options: calls.append((app, options)))
    monkeypatch.setattr(sys, "argv", ["flora-server", "--port", "9001", "--log-level", "warning"])
    server.main()
    assert calls == [(server.app, {"host": "127.0.0.1", "port": 9001, "log_level": "warning"})]
