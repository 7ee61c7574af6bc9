"""
Interactive editing of a layer height profile.

An edit changes the profile inside a band around the edited Z with a cosine
falloff, so the change fades out smoothly towards the band edges. The profile
is resampled at a fixed step inside the band before it is modified.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from varlayer.core.logging import get_logger
from varlayer.slicing.parameters import EPSILON, SlicingParameters
from varlayer.slicing.profile import LayerHeightProfile, ProfileSample

logger = get_logger(__name__)

# Resampling step inside the edited band (mm).
RESAMPLE_STEP = 0.1
# Number of smoothing passes of a SMOOTH edit.
SMOOTH_ROUNDS = 6


class LayerHeightEditAction(Enum):
    """Edit requested by the user."""

    INCREASE = "increase"
    DECREASE = "decrease"
    REDUCE = "reduce"  # towards the nominal layer height
    SMOOTH = "smooth"


def _clamped_add(height: float, delta: float, params: SlicingParameters) -> float:
    return min(max(height + delta, params.min_layer_height), params.max_layer_height)


@dataclass(frozen=True)
class IncreaseEdit:
    delta: float

    def apply(self, height: float, weight: float, params: SlicingParameters) -> float:
        return _clamped_add(height, weight * self.delta, params)


@dataclass(frozen=True)
class DecreaseEdit:
    delta: float

    def apply(self, height: float, weight: float, params: SlicingParameters) -> float:
        return _clamped_add(height, -weight * self.delta, params)


@dataclass(frozen=True)
class ReduceEdit:
    delta: float

    def apply(self, height: float, weight: float, params: SlicingParameters) -> float:
        offset = height - params.layer_height
        step = weight * self.delta
        if abs(offset) > step:
            height += -step if offset > 0 else step
        else:
            height = params.layer_height
        return _clamped_add(height, 0.0, params)


@dataclass(frozen=True)
class SmoothEdit:
    delta: float

    def apply(self, height: float, weight: float, params: SlicingParameters) -> float:
        # Heights are smoothed after resampling.
        return _clamped_add(height, 0.0, params)


ProfileEdit = Union[IncreaseEdit, DecreaseEdit, ReduceEdit, SmoothEdit]


def resolve_edit(
    action: LayerHeightEditAction,
    current_height: float,
    thickness_delta: float,
    params: SlicingParameters,
) -> Optional[ProfileEdit]:
    """
    Turn a requested action into an edit with a delta that can be applied.

    Returns None if the edit would have no effect at *current_height*.
    """
    if action in (LayerHeightEditAction.INCREASE, LayerHeightEditAction.DECREASE):
        signed = thickness_delta if action is LayerHeightEditAction.INCREASE else -thickness_delta
        if signed > 0:
            if current_height >= params.max_layer_height - EPSILON:
                return None
            signed = min(signed, params.max_layer_height - current_height)
        else:
            if current_height <= params.min_layer_height + EPSILON:
                return None
            signed = max(signed, params.min_layer_height - current_height)
        return IncreaseEdit(signed) if signed >= 0 else DecreaseEdit(-signed)

    delta = min(abs(thickness_delta), abs(params.layer_height - current_height))
    if delta < EPSILON:
        return None
    if action is LayerHeightEditAction.REDUCE:
        return ReduceEdit(delta)
    return SmoothEdit(delta)


def _current_height(profile: LayerHeightProfile, z: float, default: float) -> float:
    """Height at *z*, searching the profile segments from the bottom."""
    samples = profile.samples
    for i, (z1, h1) in enumerate(samples):
        if i + 1 == len(samples):
            return h1
        z2, h2 = samples[i + 1]
        if z2 > z:
            return h1 + (h2 - h1) * (z - z1) / (z2 - z1)
    return default


def _resample(
    profile: LayerHeightProfile,
    params: SlicingParameters,
    edit: ProfileEdit,
    z: float,
    band_width: float,
    z_span: Tuple[float, float],
) -> Tuple[List[ProfileSample], int, int]:
    """
    Densify the profile inside the band and apply *edit* there.

    Returns the new samples and the index range of the resampled window.
    """
    old = profile.samples
    lo = max(z_span[0], z - 0.5 * band_width)
    # The upper side is not limited, so that the top of the profile can be edited.
    hi = z + 0.5 * band_width

    new: List[ProfileSample] = [s for s in old if s.z < lo]
    window_start = len(new)
    reached_top = False
    zz = lo
    while zz < hi:
        weight = 0.0
        if abs(zz - z) < 0.5 * band_width:
            weight = 0.5 + 0.5 * math.cos(2.0 * math.pi * (zz - z) / band_width)
        height = edit.apply(profile.interpolate(zz, left=True), weight, params)
        if zz == z_span[1]:
            # Last point of the profile.
            if new and new[-1].z + EPSILON > zz:
                new.pop()
            new.append(ProfileSample(zz, height))
            reached_top = True
            break
        # Skip samples too close to the previous one.
        if not new or new[-1].z + EPSILON < zz:
            new.append(ProfileSample(zz, height))
        zz = min(zz + RESAMPLE_STEP, z_span[1])
    window_end = len(new)

    if not reached_top:
        new.extend(s for s in old if s.z >= zz)
    if new[-1].z + 0.5 * EPSILON < z_span[1]:
        new.append(old[-1])
    return new, window_start, window_end


def _smooth(
    samples: List[ProfileSample],
    start: int,
    end: int,
    z: float,
    band_width: float,
    params: SlicingParameters,
) -> None:
    """
    Average each resampled height with its neighbours, weighted by distance from *z*.

    Results are clamped after every pass: a neighbour may be a bridged first
    layer thicker than the maximum layer height.
    """
    for _ in range(SMOOTH_ROUNDS):
        previous = [s.height for s in samples]
        for i in range(start, end):
            zz = samples[i].z
            t = 0.0
            if abs(zz - z) < 0.5 * band_width:
                t = 0.25 + 0.25 * math.cos(2.0 * math.pi * (zz - z) / band_width)
            if i == 0:
                height = (1.0 - t) * previous[i] + t * previous[i + 1]
            elif i + 1 == len(samples):
                height = (1.0 - t) * previous[i] + t * previous[i - 1]
            else:
                height = (1.0 - t) * previous[i] + 0.5 * t * (previous[i - 1] + previous[i + 1])
            samples[i] = ProfileSample(zz, _clamped_add(height, 0.0, params))


def adjust_layer_height_profile(
    params: SlicingParameters,
    profile: LayerHeightProfile,
    z: float,
    thickness_delta: float,
    band_width: float,
    action: LayerHeightEditAction,
) -> None:
    """
    Modify *profile* in place around *z*.

    Edits outside the editable Z span (above the fixed first layer, up to the
    object top) and edits with no effect leave the profile untouched.

    Args:
        params: Slicing parameters of the object
        profile: Profile to modify, starting at 0 and ending at the object top
        z: Edited height (mm)
        thickness_delta: Requested change of the layer height at *z* (mm)
        band_width: Width of the band affected by the edit (mm)
        action: Kind of edit
    """
    z_span = (
        params.first_object_layer_height if params.first_object_layer_height_fixed() else 0.0,
        params.object_print_z_height(),
    )
    if z < z_span[0] or z > z_span[1] or band_width <= 0 or len(profile) < 2:
        return

    current_height = _current_height(profile, z, params.layer_height)
    edit = resolve_edit(action, current_height, thickness_delta, params)
    if edit is None:
        logger.debug(
            "layer_height_edit_rejected",
            action=action.value,
            z=z,
            current_height=current_height,
        )
        return

    samples, start, end = _resample(profile, params, edit, z, band_width, z_span)
    if isinstance(edit, SmoothEdit) and end > start:
        _smooth(samples, start, end, z, band_width, params)
    profile.samples = samples

    logger.debug(
        "layer_height_edited",
        action=action.value,
        z=z,
        delta=edit.delta,
        band_width=band_width,
        samples=len(samples),
    )
