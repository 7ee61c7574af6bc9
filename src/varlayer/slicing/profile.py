"""
Layer height profile data structures.

A layer height profile is a piecewise-linear function from the Z height of
the object (0 at its bottom, raft not included) to the target layer thickness,
stored as ordered ``(z, height)`` samples. Two samples with the same Z encode
a step of the function.
"""

from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, NamedTuple, Sequence

from varlayer.core.exceptions import ProfileError
from varlayer.slicing.parameters import EPSILON, SlicingParameters


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


class ProfileSample(NamedTuple):
    """One vertex of the layer height profile."""

    z: float
    height: float


class LayerHeightRange(NamedTuple):
    """User override of the layer height between two Z values."""

    z_low: float
    z_high: float
    height: float


class LayerHeightProfile:
    """
    Ordered, mutable sequence of profile samples.

    Builders return a fresh profile, the editor modifies one in place.
    """

    def __init__(self, samples: Iterable[Sequence[float]] = ()) -> None:
        self.samples: List[ProfileSample] = [ProfileSample(float(z), float(h)) for z, h in samples]

    @classmethod
    def from_flat(cls, values: Sequence[float]) -> "LayerHeightProfile":
        """Build from the interleaved ``[z0, h0, z1, h1, ...]`` form."""
        if len(values) % 2:
            raise ProfileError(
                "Flat layer height profile must have an even number of values",
                details={"length": len(values)},
            )
        return cls(zip(values[0::2], values[1::2]))

    def to_flat(self) -> List[float]:
        """Interleaved ``[z0, h0, z1, h1, ...]`` form."""
        return [v for sample in self.samples for v in sample]

    def copy(self) -> "LayerHeightProfile":
        return LayerHeightProfile(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[ProfileSample]:
        return iter(self.samples)

    def __getitem__(self, index: int) -> ProfileSample:
        return self.samples[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LayerHeightProfile):
            return NotImplemented
        return self.samples == other.samples

    def __repr__(self) -> str:
        return f"LayerHeightProfile({self.samples!r})"

    @property
    def z_values(self) -> List[float]:
        return [s.z for s in self.samples]

    @property
    def heights(self) -> List[float]:
        return [s.height for s in self.samples]

    def interpolate(self, z: float, left: bool = False) -> float:
        """
        Layer height at *z*.

        At a step (two samples sharing a Z) the value right of the step is
        returned, or the value left of it when *left* is set. Beyond the last
        sample the last height is returned.
        """
        if not self.samples:
            raise ProfileError("Cannot interpolate an empty layer height profile")
        zs = self.z_values
        if left:
            idx = bisect_left(zs, z) - 1
        else:
            idx = bisect_right(zs, z) - 1
        idx = max(idx, 0)
        if idx + 1 >= len(self.samples):
            return self.samples[-1].height
        z1, h1 = self.samples[idx]
        z2, h2 = self.samples[idx + 1]
        if z2 - z1 <= 0:
            return h2
        return lerp(h1, h2, (z - z1) / (z2 - z1))


@dataclass
class ProfileValidation:
    """Outcome of :func:`validate`."""

    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_errors(self) -> None:
        """Raise ProfileError if any invariant is violated."""
        if self.errors:
            raise ProfileError(
                f"Invalid layer height profile: {self.errors[0]}", errors=self.errors
            )


def validate(profile: LayerHeightProfile, params: SlicingParameters) -> ProfileValidation:
    """
    Check a layer height profile against its invariants.

    The profile must start at Z=0, end at the object height, have
    non-decreasing Z and heights within the layer height bounds. Samples
    inside a fixed first layer may carry the first layer height instead.
    """
    result = ProfileValidation()
    samples = profile.samples
    if len(samples) < 2:
        result.errors.append(f"profile has {len(samples)} samples, at least 2 required")
        return result

    if samples[0].z != 0.0:
        result.errors.append(f"profile starts at z={samples[0].z}, expected 0")
    object_height = params.object_print_z_height()
    if abs(samples[-1].z - object_height) >= EPSILON:
        result.errors.append(
            f"profile ends at z={samples[-1].z}, expected {object_height}"
        )

    for prev, cur in zip(samples, samples[1:]):
        if cur.z < prev.z:
            result.errors.append(f"z decreases from {prev.z} to {cur.z}")

    first_fixed = params.first_object_layer_height_fixed()
    for sample in samples:
        if first_fixed and sample.z <= params.first_object_layer_height + EPSILON:
            if abs(sample.height - params.first_object_layer_height) < EPSILON:
                continue
        if not (
            params.min_layer_height - EPSILON
            < sample.height
            < params.max_layer_height + EPSILON
        ):
            result.errors.append(
                f"height {sample.height} at z={sample.z} outside "
                f"[{params.min_layer_height}, {params.max_layer_height}]"
            )
    return result
