"""
adiff package entrypoint.

Function-level comparison of two versions of a C source file. The modules
under `adiff` split the work into lexical analysis, function extraction
across conditional-compilation branches, and the diff engine.
"""

from .config import DiffConfig, RuntimeConfig
from .errors import AdiffError
from .orchestration.main import AdiffOrchestrator

__all__ = [
    "AdiffError",
    "AdiffOrchestrator",
    "DiffConfig",
    "RuntimeConfig",
]
