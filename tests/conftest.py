import pytest

from device_agent.agent.settings import AgentSettings
from tests.fakes import FakeDevice


@pytest.fixture
def fake_device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def fast_settings() -> AgentSettings:
    # No real sleeping between turns in unit tests
    return AgentSettings(
        failure_backoff_seconds=0.0,
        inter_turn_delay_seconds=0.0,
        focus_settle_seconds=0.0,
    )
