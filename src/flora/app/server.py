from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Set

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import SimulationConfig
from ..sim.core.simulation import Simulation

log = logging.getLogger(__name__)

SPEED_RANGE = (0.1, 5.0)
# upper bound for clients that stop acknowledging
MAX_QUEUED_SNAPSHOTS = 240


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.simulation = Simulation(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._client_acked: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=MAX_QUEUED_SNAPSHOTS)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.simulation.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
            self._client_acked[client] = -1
        log.info("simulation reset")
        await self._broadcast_snapshot()

    def set_speed(self, multiplier: float) -> float:
        low, high = SPEED_RANGE
        self.speed_multiplier = max(low, min(high, multiplier))
        return self.speed_multiplier

    async def set_mouse(self, x: float, y: float) -> None:
        async with self._lock:
            self.simulation.set_mouse(x, y)

    async def advance(self) -> None:
        async with self._lock:
            self.simulation.step(self.tick)
            self.tick += 1
        if self.tick % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            await self.advance()

    async def connect(self, client: WebSocket) -> None:
        self.clients.add(client)
        self._client_last_sent[client] = -1
        self._client_acked[client] = -1
        await self._send_pending_snapshots(client)

    def disconnect(self, client: WebSocket) -> None:
        self.clients.discard(client)
        self._client_last_sent.pop(client, None)
        self._client_acked.pop(client, None)

    async def acknowledge(self, client: WebSocket, tick: int) -> None:
        if client not in self._client_acked:
            return
        self._client_acked[client] = max(self._client_acked[client], tick)
        async with self._queue_lock:
            self._trim_queue()

    def _trim_queue(self) -> None:
        # caller holds _queue_lock
        if not self.clients:
            while len(self._snapshot_queue) > 1:
                self._snapshot_queue.popleft()
            return
        floor = min(self._client_acked.get(client, -1) for client in self.clients)
        while self._snapshot_queue and self._snapshot_queue[0].tick <= floor:
            self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.simulation.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
                "sources": asdict(snapshot.sources),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
            self._trim_queue()
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            log.debug("dropping disconnected client")
            self.disconnect(client)


def _load_config() -> SimulationConfig:
    scenario = os.environ.get("FLORA_SCENARIO")
    if not scenario:
        return SimulationConfig()
    log.info("loading scenario %s", scenario)
    return SimulationConfig.from_yaml(Path(scenario))


def _number(payload: object, key: str) -> float | None:
    if not isinstance(payload, dict):
        return None
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=400)


app = FastAPI(title="Flora Simulation")
controller = SimulationController(_load_config())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.simulation.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(controller.simulation.agents),
            "speed": controller.speed_multiplier,
            "metrics": asdict(snapshot.metrics),
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    multiplier = _number(payload, "multiplier")
    if multiplier is None:
        return _bad_request("multiplier must be a number")
    return JSONResponse({"multiplier": controller.set_speed(multiplier)})


@app.post("/api/mouse")
async def move_mouse(payload: dict) -> JSONResponse:
    x = _number(payload, "x")
    y = _number(payload, "y")
    if x is None or y is None:
        return _bad_request("x and y must be numbers")
    await controller.set_mouse(x, y)
    return JSONResponse({"x": x, "y": y})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    await controller.connect(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                log.debug("ignoring malformed client message")
                continue
            if not isinstance(payload, dict):
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(websocket, tick)
            elif payload.get("type") == "mouse":
                x = _number(payload, "x")
                y = _number(payload, "y")
                if x is not None and y is not None:
                    await controller.set_mouse(x, y)
    except WebSocketDisconnect:
        controller.disconnect(websocket)


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the flora simulation over HTTP and websockets")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


__all__ = ["app", "controller", "main"]


if __name__ == "__main__":
    main()
