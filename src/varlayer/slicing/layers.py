"""
Discretization of a layer height profile into object layers.
"""

from typing import List, NamedTuple

from varlayer.core.exceptions import ProfileError
from varlayer.core.logging import get_logger
from varlayer.slicing.parameters import SlicingParameters
from varlayer.slicing.profile import LayerHeightProfile, lerp

logger = get_logger(__name__)


class LayerBoundary(NamedTuple):
    """Bottom and top Z of one object layer (mm)."""

    low: float
    high: float

    @property
    def height(self) -> float:
        return self.high - self.low

    @property
    def mid(self) -> float:
        return 0.5 * (self.low + self.high)


def generate_object_layers(
    params: SlicingParameters, profile: LayerHeightProfile
) -> List[LayerBoundary]:
    """
    Produce the object layers for a layer height profile.

    The height of each layer is sampled from the profile half a layer above its
    bottom. The top of the last layer may not match the object top exactly.

    Args:
        params: Slicing parameters of the object
        profile: Finalized layer height profile

    Returns:
        Contiguous layer boundaries starting at Z=0
    """
    if len(profile) == 0:
        raise ProfileError("Cannot generate layers from an empty layer height profile")

    samples = profile.samples
    object_height = params.object_print_z_height()
    min_height = params.min_layer_height
    layers: List[LayerBoundary] = []

    print_z = 0.0
    if params.first_object_layer_height_fixed():
        print_z = params.first_object_layer_height
        layers.append(LayerBoundary(0.0, print_z))

    idx = 0
    slice_z = print_z + 0.5 * min_height
    while slice_z < object_height:
        # The profile is only walked forwards.
        next_idx = idx + 1
        while next_idx < len(samples) and slice_z >= samples[next_idx].z:
            idx = next_idx
            next_idx += 1
        z1, h1 = samples[idx]
        height = h1
        if next_idx < len(samples):
            z2, h2 = samples[next_idx]
            height = lerp(h1, h2, (slice_z - z1) / (z2 - z1))
        height = max(height, min_height)

        slice_z = print_z + 0.5 * height
        if slice_z >= object_height:
            break
        layers.append(LayerBoundary(print_z, print_z + height))
        print_z += height
        slice_z = print_z + 0.5 * min_height

    logger.debug(
        "object_layers_generated",
        layers=len(layers),
        object_height=object_height,
        top_z=print_z,
    )
    return layers
