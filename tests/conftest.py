import sys
from pathlib import Path

# Ensure package import for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from Bayes_Editor.config import Settings
from Bayes_Editor.engine.stream.protocol import encode_command
from Bayes_Editor.graph.model import Network

FAKE_ENGINE = Path(__file__).resolve().parent / "fake_engine.py"


class RecordingSender:
    """Collects encoded commands instead of writing them to a process."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    def send(self, name, args=()):
        text = encode_command(name, args)
        self.sent.append(text)
        return text


@pytest.fixture
def fake_engine_settings() -> Settings:
    """Settings launching ``tests/fake_engine.py`` with this interpreter."""

    return Settings(engine_path=sys.executable, engine_args=["-u", str(FAKE_ENGINE)])


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def rain_network() -> Network:
    """Two binary nodes with ``Rain -> Wet`` and filled tables."""

    net = Network(name="Sprinkler")
    rain = net.add_node("Rain", values=["yes", "no"])
    wet = net.add_node("Wet", values=["yes", "no"])
    net.add_edge(rain, wet)
    rain.set_table([0.2, 0.8])
    wet.set_table([0.9, 0.1, 0.1, 0.9])
    return net
