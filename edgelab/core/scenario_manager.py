# edgelab/core/scenario_manager.py
"""Persistence for named simulation scenarios."""
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from edgelab.core.models import ChallengeConfig, EdgeConfig, FeeConfig

logger = logging.getLogger(__name__)


@dataclass
class Scenarios:
    """Named configurations saved by the user."""
    edges: dict[str, EdgeConfig] = field(default_factory=dict)
    challenges: dict[str, ChallengeConfig] = field(default_factory=dict)
    fees: dict[str, FeeConfig] = field(default_factory=dict)


class ScenarioConfigManager:
    """Manages saving and loading scenarios."""

    def __init__(self, config_path: Optional[Path] = None):
        if config_path is None:
            config_path = Path.home() / ".edgelab" / "scenarios.json"
        self._config_path = Path(config_path)

    @property
    def config_path(self) -> Path:
        return self._config_path

    def save(self, scenarios: Scenarios):
        """Save scenarios to JSON file."""
        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "edges": {name: cfg.to_dict() for name, cfg in scenarios.edges.items()},
            "challenges": {name: cfg.to_dict() for name, cfg in scenarios.challenges.items()},
            "fees": {name: cfg.to_dict() for name, cfg in scenarios.fees.items()},
        }

        with open(self._config_path, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Saved scenarios to {self._config_path}")

    def load(self) -> Scenarios:
        """Load scenarios from JSON file. Missing or unreadable files load as empty."""
        if not self._config_path.exists():
            return Scenarios()

        try:
            with open(self._config_path) as f:
                data = json.load(f)

            scenarios = Scenarios(
                edges={n: EdgeConfig.from_dict(d) for n, d in data.get("edges", {}).items()},
                challenges={
                    n: ChallengeConfig.from_dict(d) for n, d in data.get("challenges", {}).items()
                },
                fees={n: FeeConfig.from_dict(d) for n, d in data.get("fees", {}).items()},
            )

            logger.info(
                f"Loaded {len(scenarios.edges)} edges, {len(scenarios.challenges)} challenges "
                f"and {len(scenarios.fees)} fee profiles from {self._config_path}"
            )
            return scenarios

        except Exception as e:
            logger.error(f"Failed to load scenarios: {e}")
            return Scenarios()

    def save_edge(self, name: str, edge: EdgeConfig):
        """Add or replace one edge scenario, keeping the others."""
        scenarios = self.load()
        scenarios.edges[name] = edge
        self.save(scenarios)

    def save_challenge(self, name: str, challenge: ChallengeConfig):
        """Add or replace one challenge scenario, keeping the others."""
        scenarios = self.load()
        scenarios.challenges[name] = challenge
        self.save(scenarios)

    def save_fee(self, name: str, fee: FeeConfig):
        """Add or replace one fee profile, keeping the others."""
        scenarios = self.load()
        scenarios.fees[name] = fee
        self.save(scenarios)

