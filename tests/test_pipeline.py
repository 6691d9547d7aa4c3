"""Tests for the PyAV decode pipeline."""

import struct
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

from tinyaudio.lib.pipeline import (
    DecodeBackend, EndOfStream, MediaOpenError, Pipeline, StreamReadError,
)


class FakeContainer:
    """Container whose demux generators replay scripted items."""

    def __init__(self, *runs):
        self.runs = list(runs)
        # Filled once at open, like PyAV's Container.metadata
        self.metadata = {"title": "First"}
        self.closed = False

    def demux(self, stream):
        items = self.runs.pop(0) if self.runs else []
        for item in items:
            if isinstance(item, Exception):
                raise item
            yield item

    def close(self):
        self.closed = True


class FakeResampler:
    def resample(self, frame):
        return [SimpleNamespace(to_ndarray=lambda: np.zeros((1, 4), dtype=np.int16))]


def make_pipeline(*runs) -> tuple[Pipeline, FakeContainer]:
    container = FakeContainer(*runs)
    stream = SimpleNamespace(index=0, metadata={"artist": "Band"})
    return Pipeline("http://radio", container, stream, FakeResampler()), container


def packet(index: int = 0, *times: float) -> SimpleNamespace:
    frames = [SimpleNamespace(time=t) for t in times]
    return SimpleNamespace(stream_index=index, decode=lambda: frames)


def test_read_until_end_of_stream() -> None:
    """Test packets are returned in order and exhaustion is EndOfStream."""
    first, second = packet(), packet()
    pipeline, _ = make_pipeline([first, second])
    assert pipeline.read() is first
    assert pipeline.read() is second
    with pytest.raises(EndOfStream):
        pipeline.read()


def test_read_error_is_transient() -> None:
    """Test a failed read is reported and the next read continues."""
    good = packet()
    pipeline, _ = make_pipeline([OSError("connection reset")], [good])
    with pytest.raises(StreamReadError, match="connection reset"):
        pipeline.read()
    assert pipeline.read() is good


def test_decode_resamples_and_tracks_position() -> None:
    """Test frames become int16 PCM bytes and position follows the last frame."""
    pipeline, _ = make_pipeline()
    chunks = pipeline.decode(packet(0, 1.5, 2.25))
    assert chunks == [bytes(8), bytes(8)]
    assert pipeline.position == 2_250_000
    pipeline.decode(packet(0, 1.0))
    assert pipeline.position == 2_250_000


def test_decode_skips_other_streams() -> None:
    """Test packets from other tracks are ignored."""
    pipeline, _ = make_pipeline()
    assert pipeline.decode(packet(3, 1.0)) == []
    assert pipeline.position == 0


def test_tags_are_those_read_at_open() -> None:
    """Test tags come from the container and the selected stream."""
    pipeline, _ = make_pipeline([packet()])
    pipeline.read()
    assert pipeline.tags() == ([("title", "First")], [("artist", "Band")])


def test_pause_and_resume_keep_the_cursor() -> None:
    """Test suspending leaves the read cursor where it was."""
    first, second = packet(), packet()
    pipeline, _ = make_pipeline([first, second])
    assert pipeline.read() is first
    pipeline.pause()
    pipeline.resume()
    assert pipeline.read() is second
    assert not hasattr(pipeline, "paused")


def test_close_closes_container() -> None:
    pipeline, container = make_pipeline()
    pipeline.close()
    assert container.closed


def test_open_missing_file_fails(tmp_path: Path) -> None:
    """Test a nonexistent source is a media-open error."""
    with pytest.raises(MediaOpenError):
        DecodeBackend().open(str(tmp_path / "missing.mp3"))


def test_backend_capabilities() -> None:
    """Test schemes are fixed and MIME types are audio types derived from demuxers."""
    backend = DecodeBackend()
    assert "file" in backend.supported_schemes()
    assert "https" in backend.supported_schemes()
    types = backend.supported_mime_types()
    assert types == sorted(types)
    assert all(t.startswith("audio/") for t in types)
    assert "audio/mpeg" in types


def write_wav(path: Path, title: str, frames: int = 8192) -> Path:
    """Write a silent 44.1 kHz stereo WAV carrying a LIST/INFO title."""
    name = title.encode() + b"\0"
    if len(name) % 2:
        name += b"\0"
    info = b"INFO" + b"INAM" + struct.pack("<I", len(name)) + name
    fmt = struct.pack("<HHIIHH", 1, 2, 44100, 44100 * 4, 4, 16)
    pcm = bytes(frames * 4)
    body = (b"WAVE"
            + b"fmt " + struct.pack("<I", len(fmt)) + fmt
            + b"LIST" + struct.pack("<I", len(info)) + info
            + b"data" + struct.pack("<I", len(pcm)) + pcm)
    path.write_bytes(b"RIFF" + struct.pack("<I", len(body)) + body)
    return path


def test_real_file_plays_to_the_end(tmp_path: Path) -> None:
    """Test a real container decodes to PCM, advances position and then ends."""
    path = write_wav(tmp_path / "tone.wav", "Tone")
    pipeline = DecodeBackend().open(str(path))
    try:
        pcm = 0
        reads = 0
        with pytest.raises(EndOfStream):
            while True:
                packet_ = pipeline.read()
                reads += 1
                pcm += sum(len(chunk) for chunk in pipeline.decode(packet_))
        assert reads > 1
        assert pcm > 0
        assert pipeline.position > 0
    finally:
        pipeline.close()


def test_real_file_tags_are_fixed_at_open(tmp_path: Path) -> None:
    """Test the container tags read at open are what the pipeline reports throughout."""
    path = write_wav(tmp_path / "tone.wav", "Tone")
    pipeline = DecodeBackend().open(str(path))
    try:
        container_tags, _ = pipeline.tags()
        assert ("title", "Tone") in container_tags
        while True:
            try:
                pipeline.read()
            except EndOfStream:
                break
            assert pipeline.tags()[0] == container_tags
    finally:
        pipeline.close()
