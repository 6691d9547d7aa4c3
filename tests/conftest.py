"""Shared fixtures: in-memory bus, decode backend and audio sink."""

from collections import deque

import pytest

from tinyaudio.dispatcher import Dispatcher
from tinyaudio.lib.pipeline import EndOfStream, MediaOpenError
from tinyaudio.player import PlayerService
from tinyaudio.playback import PlaybackState
from tinyaudio.properties import PropertyRegistry

PACKET = object()


class FakeBus:
    """Session bus stand-in.  Instances sharing *names* see each other's claims."""

    def __init__(self, names=None):
        self.names = names if names is not None else {}
        self.incoming: deque[list] = deque()
        self.replies = []
        self.signals = []
        self.calls = []
        self.listening = False
        self.closed = False

    def name_has_owner(self, name):
        return name in self.names

    def request_name(self, name):
        if name in self.names:
            return False
        self.names[name] = self
        return True

    def call(self, name, path, interface, member, signature="", args=()):
        self.calls.append((name, path, interface, member, signature, tuple(args)))
        return []

    def listen(self):
        self.listening = True

    def pump(self):
        return self.incoming.popleft() if self.incoming else []

    def send_reply(self, request, reply):
        self.replies.append((request, reply))

    def emit_properties_changed(self, path, interface, changed):
        self.signals.append((path, interface, changed))

    def close(self):
        self.closed = True


class FakePipeline:
    """Scripted pipeline.  ``script`` items are returned by read(), or raised
    if they are exceptions; once it runs out, reads return packets forever
    (``endless``) or raise EndOfStream."""

    def __init__(self, uri, script=(), endless=True, container_tags=(), stream_tags=()):
        self.uri = uri
        self.script = deque(script)
        self.endless = endless
        self.container_tags = list(container_tags)
        self.stream_tags = list(stream_tags)
        self.position = 0
        self.paused = False
        self.closed = False
        self.reads = 0

    def read(self):
        self.reads += 1
        if self.script:
            item = self.script.popleft()
            if isinstance(item, Exception):
                raise item
            return item
        if self.endless:
            return PACKET
        raise EndOfStream(self.uri)

    def decode(self, packet):
        self.position += 23_220
        return [b"\x00\x00" * 4]

    def tags(self):
        return list(self.container_tags), list(self.stream_tags)

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def close(self):
        self.closed = True


class FakeBackend:
    """Hands out FakePipelines; URIs in ``broken`` fail to open."""

    def __init__(self):
        self.broken = set()
        self.options = {}
        self.pipelines = []

    def open(self, uri):
        if uri in self.broken:
            raise MediaOpenError(f"Failed to open {uri}: No such file or directory")
        pipeline = FakePipeline(uri, **self.options.get(uri, {}))
        self.pipelines.append(pipeline)
        return pipeline

    def supported_schemes(self):
        return ["file", "http", "https"]

    def supported_mime_types(self):
        return ["audio/flac", "audio/mpeg"]


class FakeSink:
    def __init__(self):
        self.chunks = []
        self.closed = False

    def write(self, data):
        self.chunks.append(data)

    def close(self):
        self.closed = True


@pytest.fixture
def bus() -> FakeBus:
    """Return an unconnected fake bus."""
    return FakeBus()


@pytest.fixture
def backend() -> FakeBackend:
    """Return a fake decode backend."""
    return FakeBackend()


@pytest.fixture
def sink() -> FakeSink:
    """Return a fake audio sink."""
    return FakeSink()


@pytest.fixture
def state(backend: FakeBackend) -> PlaybackState:
    """Return a stopped player state with the default fault threshold."""
    return PlaybackState(backend)


@pytest.fixture
def registry(state: PlaybackState, backend: FakeBackend) -> PropertyRegistry:
    """Return the property registry bound to ``state``."""
    return PropertyRegistry(state, backend, identity="Test Player", desktop_entry="test")


@pytest.fixture
def dispatcher(state: PlaybackState, registry: PropertyRegistry) -> Dispatcher:
    """Return a dispatcher over ``state`` and ``registry``."""
    return Dispatcher(state, registry)


@pytest.fixture
def service(bus: FakeBus, backend: FakeBackend, sink: FakeSink) -> PlayerService:
    """Return a player service that never naps."""
    return PlayerService(bus, backend, sink, idle_interval=0)
