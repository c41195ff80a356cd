from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import pytest

from tests.fakes import EchoEngine


@pytest.fixture()
def echo_engine() -> EchoEngine:
    return EchoEngine()
