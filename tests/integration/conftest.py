# tests/integration/conftest.py
import pytest
from edgelab.core.scenario_manager import ScenarioConfigManager


@pytest.fixture
def isolated_scenario_manager(tmp_path):
    """Provide a scenario manager that writes to tmp_path, not user's home."""
    config_file = tmp_path / "scenarios.json"
    return ScenarioConfigManager(config_file)
