import pytest

from wan_sim.config import ReportConfig
from wan_sim.scenario import build_simulator, redundant_wan_scenario


@pytest.fixture
def wan():
    """Three-site WAN with all routes configured but no failures or traffic."""
    scenario = redundant_wan_scenario()
    scenario.failures = []
    scenario.traffic = []
    scenario.reports = ReportConfig()
    return build_simulator(scenario)
