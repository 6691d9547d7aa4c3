"""Tests for command parsing and single-instance election."""

import pytest

from tinyaudio.coordinator import Command, InstanceCoordinator, Role, parse_command
from tinyaudio.lib.messages import BusError, Request
from tinyaudio.mpris import BUS_NAME, IFACE_PLAYER, IFACE_ROOT, OBJ_PATH

from tests.conftest import FakeBus


class StaleBus(FakeBus):
    """Answers its first ownership query from before anyone claimed the name."""

    def __init__(self, names):
        super().__init__(names)
        self.queries = 0

    def name_has_owner(self, name):
        self.queries += 1
        if self.queries == 1:
            return False
        return super().name_has_owner(name)


class RefusingBus(FakeBus):
    def request_name(self, name):
        return False


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (["play", "file:///a.flac"], Command(IFACE_PLAYER, "OpenUri", "file:///a.flac")),
        (["play"], Command(IFACE_PLAYER, "Play")),
        (["pause"], Command(IFACE_PLAYER, "Pause")),
        (["toggle"], Command(IFACE_PLAYER, "PlayPause")),
        (["stop"], Command(IFACE_PLAYER, "Stop")),
        (["quit"], Command(IFACE_ROOT, "Quit")),
    ],
)
def test_parse_command(argv: list[str], expected: Command) -> None:
    """Test every CLI form maps to its bus method."""
    assert parse_command(argv) == expected


@pytest.mark.parametrize("argv", [[], ["rewind"], ["pause", "extra"], ["play", "a", "b"]])
def test_bad_usage_exits_zero(argv: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    """Test a malformed invocation prints usage and exits successfully."""
    with pytest.raises(SystemExit) as exc:
        parse_command(argv, prog="tinyaudio")
    assert exc.value.code == 0
    assert "usage: tinyaudio" in capsys.readouterr().out


def test_command_request_shape() -> None:
    """Test a command carries its URI as the only argument."""
    command = parse_command(["play", "http://radio"])
    assert command.signature == "s"
    assert command.args == ("http://radio",)
    assert command.request() == Request(OBJ_PATH, IFACE_PLAYER, "OpenUri", ("http://radio",))
    assert parse_command(["stop"]).signature == ""
    assert parse_command(["stop"]).args == ()


def test_first_instance_owns() -> None:
    """Test an unowned name is claimed."""
    bus = FakeBus()
    assert InstanceCoordinator(bus).elect() is Role.OWNER
    assert bus.names[BUS_NAME] is bus


def test_later_instance_forwards() -> None:
    """Test a second instance becomes a client and sends one call."""
    names = {}
    InstanceCoordinator(FakeBus(names)).elect()
    bus = FakeBus(names)
    coordinator = InstanceCoordinator(bus)
    assert coordinator.elect() is Role.CLIENT
    coordinator.forward(Command(IFACE_PLAYER, "OpenUri", "file:///b.ogg"))
    assert bus.calls == [
        (BUS_NAME, OBJ_PATH, IFACE_PLAYER, "OpenUri", "s", ("file:///b.ogg",)),
    ]


@pytest.mark.parametrize("racers", [2, 5, 20])
def test_exactly_one_owner_under_race(racers: int) -> None:
    """Test concurrent starters that all saw a free name elect one owner."""
    names = {}
    roles = [InstanceCoordinator(StaleBus(names)).elect() for _ in range(racers)]
    assert roles.count(Role.OWNER) == 1
    assert roles.count(Role.CLIENT) == racers - 1


def test_refused_claim_without_owner_is_fatal() -> None:
    """Test a claim refused while nobody owns the name raises."""
    with pytest.raises(BusError):
        InstanceCoordinator(RefusingBus()).elect()
