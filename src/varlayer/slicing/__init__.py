"""
Slicing module - Variable layer height computation.

- SlicingParameters: layer height bounds and raft geometry from the configuration
- layer_height_profile_from_ranges: profile from user layer height ranges
- layer_height_profile_adaptive: profile from the mesh surface (cusp height)
- adjust_layer_height_profile: interactive band limited edits of a profile
- generate_object_layers: layer boundaries from a profile
- generate_layer_height_texture: diagnostic texture of the layer heights
"""

from varlayer.slicing.parameters import (
    EPSILON,
    MIN_LAYER_HEIGHT,
    MIN_LAYER_HEIGHT_DEFAULT,
    SlicingParameters,
    equal_layering,
)
from varlayer.slicing.profile import (
    LayerHeightProfile,
    LayerHeightRange,
    ProfileSample,
    ProfileValidation,
    validate,
)
from varlayer.slicing.ranges import layer_height_profile_from_ranges
from varlayer.slicing.adaptive import (
    DEFAULT_CUSP_VALUE,
    CuspHeightOracle,
    FacetCursor,
    MeshCuspOracle,
    ModelVolume,
    layer_height_profile_adaptive,
)
from varlayer.slicing.editor import LayerHeightEditAction, adjust_layer_height_profile
from varlayer.slicing.layers import LayerBoundary, generate_object_layers
from varlayer.slicing.texture import TextureBuffer, generate_layer_height_texture

__all__ = [
    # Parameters
    "EPSILON",
    "MIN_LAYER_HEIGHT",
    "MIN_LAYER_HEIGHT_DEFAULT",
    "SlicingParameters",
    "equal_layering",
    # Profile
    "LayerHeightProfile",
    "LayerHeightRange",
    "ProfileSample",
    "ProfileValidation",
    "validate",
    # Builders
    "layer_height_profile_from_ranges",
    "DEFAULT_CUSP_VALUE",
    "CuspHeightOracle",
    "FacetCursor",
    "MeshCuspOracle",
    "ModelVolume",
    "layer_height_profile_adaptive",
    # Editor
    "LayerHeightEditAction",
    "adjust_layer_height_profile",
    # Layers and texture
    "LayerBoundary",
    "generate_object_layers",
    "TextureBuffer",
    "generate_layer_height_texture",
]
