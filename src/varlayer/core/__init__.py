"""
Core module - Exceptions, logging and configuration shared by the engine.
"""

from varlayer.core.config import (
    ConfigManager,
    FloatOrPercent,
    LayerHeightRangeConfig,
    PrinterConfig,
    PrintObjectConfig,
    SlicingJobConfig,
    load_job_config,
)
from varlayer.core.geometry import MeshLoader, mesh_height, place_on_bed
from varlayer.core.exceptions import (
    VarLayerError,
    ConfigurationError,
    GeometryError,
    ProfileError,
    TextureError,
)

__all__ = [
    # Config
    "ConfigManager",
    "FloatOrPercent",
    "LayerHeightRangeConfig",
    "PrinterConfig",
    "PrintObjectConfig",
    "SlicingJobConfig",
    "load_job_config",
    # Geometry
    "MeshLoader",
    "mesh_height",
    "place_on_bed",
    # Exceptions
    "VarLayerError",
    "ConfigurationError",
    "GeometryError",
    "ProfileError",
    "TextureError",
]
