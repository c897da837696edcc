import random

import pytest

from visualizer.backends import EchoBackend
from visualizer.config import Config
from visualizer.errors import BackendError
from visualizer.main import create_app

from .helpers import FakeProvider, make_payload


@pytest.fixture
def payload():
    return make_payload()


@pytest.fixture
def config():
    return Config(backend="echo", echo_delay=0, echo_seed=7)


@pytest.fixture
def echo_app(config):
    return create_app(config, backend=EchoBackend(delay=0, rng=random.Random(7)))


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def failing_provider():
    return FakeProvider(name="gemini", error=BackendError("quota exceeded", status=429))
