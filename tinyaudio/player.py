# tinyaudio
# Copyright (C) 2024-2026 Markus Kirsten
# SPDX-License-Identifier: GPL-3.0-or-later
#
# Attribution required — see LICENSE, Section 7(b).

"""
tinyaudio player — the streaming loop and program entry point.

One asyncio task does everything: each iteration drains pending bus
requests, leaves if the player is quitting, and otherwise either naps
(not playing) or moves one packet from the pipeline to the sound card.

    tinyaudio play https://example.com/radio.mp3   # first run becomes the player
    tinyaudio pause                                # later runs forward and exit
"""

import asyncio
import logging
import signal
import sys
from collections import deque

from .coordinator import InstanceCoordinator, Role, parse_command
from .dispatcher import Dispatcher
from .lib.audio_output import AudioSink
from .lib.config import cfg
from .lib.messages import BusError, Request, Variant
from .lib.pipeline import CHANNELS, SAMPLE_RATE, DecodeBackend, EndOfStream, StreamReadError
from .lib.watchdog import notify_status, notify_stopping, watchdog_loop
from .mpris import IFACE_PLAYER, IFACE_ROOT, OBJ_PATH
from .playback import FAULT_THRESHOLD, PlaybackState, PlaybackStatus
from .properties import PropertyRegistry

log = logging.getLogger("tinyaudio")

IDLE_INTERVAL = 0.1


class PlayerService:
    """The owning player: state, dispatcher and streaming loop."""

    def __init__(self, bus, backend, sink, *, identity="tinyaudio",
                 desktop_entry="tinyaudio", idle_interval=IDLE_INTERVAL,
                 fault_threshold=FAULT_THRESHOLD):
        self.bus = bus
        self.sink = sink
        self.idle_interval = idle_interval
        self.state = PlaybackState(backend, fault_threshold)
        self.registry = PropertyRegistry(self.state, backend, identity, desktop_entry)
        self.dispatcher = Dispatcher(self.state, self.registry)
        self.steps = 0
        self._pending: deque[Request] = deque()

    # ── Requests ──

    def submit(self, request: Request):
        """Queue a request that did not arrive over the bus."""
        self._pending.append(request)

    def request_quit(self):
        log.info("Signal received, quitting")
        self.submit(Request(OBJ_PATH, IFACE_ROOT, "Quit"))

    def drain(self):
        """Handle every request waiting locally or on the bus, in order."""
        while self._pending:
            self.handle(self._pending.popleft())
        for request in self.bus.pump():
            self.handle(request)

    def handle(self, request: Request):
        reply, changed = self.dispatcher.dispatch(request)
        self.bus.send_reply(request, reply)
        self._publish(changed)

    def _publish(self, changed: dict[str, Variant]):
        if not changed:
            return
        self.bus.emit_properties_changed(OBJ_PATH, IFACE_PLAYER, changed)
        if "PlaybackStatus" in changed:
            notify_status(changed["PlaybackStatus"].value)

    # ── Streaming ──

    def step(self):
        """Move one packet from the pipeline to the sink."""
        state = self.state
        pipeline = state.pipeline
        before = self.dispatcher.snapshot()
        self.steps += 1
        try:
            packet = pipeline.read()
        except EndOfStream:
            state.end_of_stream()
        except StreamReadError as e:
            state.stream_fault(e)
        else:
            state.stream_ok()
            for pcm in pipeline.decode(packet):
                self.sink.write(pcm)
        self._publish(self.dispatcher.changes_since(before))

    async def loop(self):
        while True:
            self.drain()
            if self.state.quitting:
                break
            if self.state.status is not PlaybackStatus.PLAYING:
                await asyncio.sleep(self.idle_interval)
                continue
            self.step()
            await asyncio.sleep(0)

    async def run(self) -> int:
        loop = asyncio.get_running_loop()
        self.bus.listen()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.request_quit)
        watchdog = asyncio.create_task(watchdog_loop())
        log.info("Player ready")
        try:
            await self.loop()
        finally:
            notify_stopping()
            watchdog.cancel()
            try:
                await watchdog
            except asyncio.CancelledError:
                pass
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            self.state.close()
            self.sink.close()
            log.info("Player stopped")
        return 0


# ── Entry point ──

def main(argv=None) -> int:
    command = parse_command(argv, prog="tinyaudio")

    level = str(cfg("log", "level", default="INFO")).upper()
    logging.basicConfig(
        level=logging.getLevelNamesMapping().get(level, logging.INFO),
        format='[%(levelname)s] %(message)s',
    )

    from .lib.bus import SessionBus

    bus = None
    try:
        bus = SessionBus()
        coordinator = InstanceCoordinator(bus)
        if coordinator.elect() is Role.CLIENT:
            coordinator.forward(command)
            return 0

        backend = DecodeBackend(
            sample_rate=cfg("audio", "sample_rate", default=SAMPLE_RATE),
            channels=cfg("audio", "channels", default=CHANNELS),
        )
        sink = AudioSink(
            sample_rate=backend.sample_rate,
            channels=backend.channels,
            device=cfg("audio", "device"),
        )
        try:
            sink.open()
        except OSError as e:
            log.error("%s", e)
            return 1

        service = PlayerService(
            bus, backend, sink,
            identity=cfg("player", "identity", default="tinyaudio"),
            desktop_entry=cfg("player", "desktop_entry", default="tinyaudio"),
            idle_interval=cfg("player", "idle_interval", default=IDLE_INTERVAL),
            fault_threshold=cfg("player", "fault_threshold", default=FAULT_THRESHOLD),
        )
        service.submit(command.request())
        return asyncio.run(service.run())
    except BusError as e:
        log.error("%s", e)
        return 1
    finally:
        if bus is not None:
            bus.close()


if __name__ == "__main__":
    sys.exit(main())
