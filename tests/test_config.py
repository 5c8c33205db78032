"""Tests for configuration and seeded randomness."""

import pytest

from quorumsim.config import SimulationConfig, check_probability, derive_rng
from quorumsim.errors import ConfigurationError


class TestSimulationConfig:
    def test_defaults_are_valid(self):
        config = SimulationConfig()
        assert config.node_count == 3
        assert config.client_drop_probability == config.drop_probability

    def test_explicit_client_drop_probability(self):
        config = SimulationConfig(drop_probability=0.3, client_drop_probability=0.0)
        assert config.client_drop_probability == 0.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"node_count": 0},
            {"min_latency": -1.0},
            {"min_latency": 0.5, "max_latency": 0.1},
            {"drop_probability": 1.1},
            {"client_drop_probability": -0.5},
            {"crash_probability": 2.0},
            {"max_retries": 0},
            {"requests": -1},
            {"think_time": -0.1},
        ],
    )
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            SimulationConfig(**kwargs)

    def test_configuration_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            check_probability("p", 1.5)


class TestDeriveRng:
    def test_same_seed_and_name_repeat(self):
        a = derive_rng(42, "link-node-0-node-1")
        b = derive_rng(42, "link-node-0-node-1")
        assert [a.random() for _ in range(5)] == [b.random() for _ in range(5)]

    def test_names_are_independent(self):
        a = derive_rng(42, "link-node-0-node-1")
        b = derive_rng(42, "link-node-1-node-0")
        assert [a.random() for _ in range(5)] != [b.random() for _ in range(5)]

    def test_seeds_are_independent(self):
        a = derive_rng(1, "client-1")
        b = derive_rng(2, "client-1")
        assert a.random() != b.random()
