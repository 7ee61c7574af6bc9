"""
Layer height profile from user layer height ranges.

Ranges are referenced to the object bottom, the raft is not accounted for.
"""

from typing import Iterable, List

from varlayer.core.logging import get_logger
from varlayer.slicing.parameters import EPSILON, SlicingParameters
from varlayer.slicing.profile import LayerHeightProfile, LayerHeightRange, ProfileSample

logger = get_logger(__name__)


def _non_overlapping(
    params: SlicingParameters, ranges: Iterable[LayerHeightRange]
) -> List[LayerHeightRange]:
    """Trim each range by its predecessor and drop the ones left too narrow."""
    object_height = params.object_print_z_height()
    trimmed: List[LayerHeightRange] = []
    if params.first_object_layer_height_fixed():
        first = params.first_object_layer_height
        trimmed.append(LayerHeightRange(0.0, first, first))

    for z_low, z_high, height in sorted(LayerHeightRange(*r) for r in ranges):
        hi = min(z_high, object_height)
        lo = max(z_low, trimmed[-1].z_high) if trimmed else z_low
        if lo + EPSILON < hi:
            trimmed.append(LayerHeightRange(lo, hi, height))
        else:
            logger.debug("layer_height_range_dropped", z_low=z_low, z_high=z_high)
    return trimmed


def _append_segment(
    samples: List[ProfileSample], lo: float, hi: float, height: float
) -> None:
    """Append a flat segment, extending the previous one if it continues it."""
    if (
        len(samples) >= 2
        and samples[-1].height == height
        and samples[-2].height == height
        and abs(samples[-1].z - lo) < EPSILON
    ):
        samples[-1] = ProfileSample(hi, height)
        return
    samples.append(ProfileSample(lo, height))
    samples.append(ProfileSample(hi, height))


def layer_height_profile_from_ranges(
    params: SlicingParameters, ranges: Iterable[LayerHeightRange]
) -> LayerHeightProfile:
    """
    Convert layer height ranges to a layer height profile.

    Overlapping ranges are resolved in favour of the one starting lower.
    Intervals not covered by any range are printed at the nominal layer height.

    Args:
        params: Slicing parameters of the object
        ranges: User ranges, in any order, possibly overlapping

    Returns:
        A new profile spanning ``[0, object_print_z_height]``
    """
    object_height = params.object_print_z_height()
    samples: List[ProfileSample] = []
    for lo, hi, height in _non_overlapping(params, ranges):
        last_z = samples[-1].z if samples else 0.0
        if lo > last_z + EPSILON:
            _append_segment(samples, last_z, lo, params.layer_height)
        _append_segment(samples, lo, hi, height)

    last_z = samples[-1].z if samples else 0.0
    if last_z < object_height:
        _append_segment(samples, last_z, object_height, params.layer_height)

    return LayerHeightProfile(samples)
