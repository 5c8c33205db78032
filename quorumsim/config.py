"""Configuration settings for quorum simulation runs."""

from dataclasses import dataclass
from typing import Optional
import hashlib
import random
from quorumsim.errors import ConfigurationError

# Cluster shape
NODE_COUNT = 3

# Link behaviour (simulated seconds)
MIN_LATENCY = 0.005
MAX_LATENCY = 0.040
DROP_PROBABILITY = 0.2

# Node behaviour
CRASH_PROBABILITY = 0.0

# Client behaviour
MAX_RETRIES = 3
THINK_TIME = 0.5
REQUESTS = 5

# Reproducibility
SEED = 42


def check_probability(name: str, value: float) -> float:
    """Reject probabilities outside [0, 1]."""
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must be between 0 and 1, got {value}")
    return value


def derive_rng(seed: int, name: str) -> random.Random:
    """Random source for one component, stable for a given seed and name."""
    digest = hashlib.sha256(f"{seed}:{name}".encode("utf-8")).digest()
    return random.Random(int.from_bytes(digest[:8], "big"))


@dataclass
class SimulationConfig:
    """Construction-time options for a simulation run."""

    node_count: int = NODE_COUNT
    min_latency: float = MIN_LATENCY
    max_latency: float = MAX_LATENCY
    drop_probability: float = DROP_PROBABILITY
    client_drop_probability: Optional[float] = None  # defaults to drop_probability
    crash_probability: float = CRASH_PROBABILITY
    max_retries: int = MAX_RETRIES
    seed: int = SEED
    requests: int = REQUESTS
    think_time: float = THINK_TIME
    wal_dir: Optional[str] = None

    def __post_init__(self):
        if self.node_count < 1:
            raise ConfigurationError(f"node_count must be >= 1, got {self.node_count}")
        if self.min_latency < 0:
            raise ConfigurationError("latency must be non-negative")
        if self.max_latency < self.min_latency:
            raise ConfigurationError("max_latency must be >= min_latency")
        check_probability("drop_probability", self.drop_probability)
        if self.client_drop_probability is None:
            self.client_drop_probability = self.drop_probability
        check_probability("client_drop_probability", self.client_drop_probability)
        check_probability("crash_probability", self.crash_probability)
        if self.max_retries < 1:
            raise ConfigurationError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.requests < 0:
            raise ConfigurationError(f"requests must be >= 0, got {self.requests}")
        if self.think_time < 0:
            raise ConfigurationError("think_time must be non-negative")
