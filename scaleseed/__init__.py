"""
scaleseed - deterministic scale seeding for the project-management schema.

This package provides tools for:
- Seeding a reproducible tenant at any scale, adapting to the live schema
- Benchmarking seed runs with query-plan proof and a scale ladder
- Removing a seeded tenant and proving zero residue
"""

__version__ = "0.1.0"

from scaleseed.config import ScaleSeedConfig, Settings
from scaleseed.ids import stable_id
from scaleseed.orchestrator import SeedOrchestrator, run_seed
from scaleseed.rng import seeded_rng

__all__ = [
    "ScaleSeedConfig",
    "SeedOrchestrator",
    "Settings",
    "__version__",
    "run_seed",
    "seeded_rng",
    "stable_id",
]
