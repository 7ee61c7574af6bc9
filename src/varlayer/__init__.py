"""
varlayer - Variable layer height engine for FFF slicing.

Derives layer height limits and raft geometry from the printer and object
configuration, builds and edits layer height profiles, turns them into layers
and renders a diagnostic texture of the result.
"""

__version__ = "0.1.0"
__author__ = "varlayer Contributors"

from varlayer.core.config import ConfigManager, SlicingJobConfig, load_job_config
from varlayer.slicing.parameters import SlicingParameters

__all__ = [
    "__version__",
    "ConfigManager",
    "SlicingJobConfig",
    "SlicingParameters",
    "load_job_config",
]
