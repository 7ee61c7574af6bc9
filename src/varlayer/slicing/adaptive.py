"""
Adaptive layer height profile driven by the object surface geometry.

Layer heights are chosen so that the cusp height, the distance between the
corner of a layer's rectangular extrusion profile and the sloped surface of
the mesh, stays below a target value. Steep walls allow thick layers, gently
sloped surfaces and horizontal features force thin ones.

The cusp height query walks the mesh facets sorted by Z. It is sequential:
each query starts from the facet reached by the previous one, which is kept
in an explicit :class:`FacetCursor`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol

import numpy as np
import trimesh

from varlayer.core.exceptions import GeometryError, ProfileError
from varlayer.core.logging import get_logger
from varlayer.slicing.parameters import EPSILON, SlicingParameters
from varlayer.slicing.profile import LayerHeightProfile, LayerHeightRange, ProfileSample

logger = get_logger(__name__)

# Maximum distance from the corner of an extrusion to the chordal line (mm).
DEFAULT_CUSP_VALUE = 0.2

# Cusp height reported for vertical facets.
_VERTICAL_FACET_CUSP = 9999.0
# Facets whose normal Z exceeds this are treated as horizontal.
_HORIZONTAL_NORMAL_Z = 0.999


@dataclass
class ModelVolume:
    """A mesh of the object. Modifier volumes do not contribute geometry."""

    mesh: trimesh.Trimesh
    modifier: bool = False
    name: str = ""


@dataclass
class FacetCursor:
    """
    Position of a sequential cusp height walk.

    Attributes:
        facet: Index of the first facet crossing the previous query height
        z: Height of the previous query, queries must not go below it
    """

    facet: int = 0
    z: float = field(default=-np.inf)

    def advance_to(self, z: float) -> None:
        if z < self.z:
            raise ProfileError(
                "Cusp height queries must be issued in increasing Z order",
                details={"previous_z": self.z, "z": z},
            )
        self.z = z


class CuspHeightOracle(Protocol):
    """Geometry service answering maximum layer height queries."""

    def set_slicing_parameters(self, params: SlicingParameters) -> None: ...

    def add_mesh(self, mesh: trimesh.Trimesh) -> None: ...

    def prepare(self) -> None: ...

    def cusp_height(self, z: float, cusp_value: float, cursor: FacetCursor) -> float: ...


class MeshCuspOracle:
    """
    Cusp height oracle over the facets of one or more trimesh meshes.

    Meshes are expected in object coordinates with the object bottom at Z=0.
    """

    def __init__(self) -> None:
        self._params: Optional[SlicingParameters] = None
        self._meshes: List[trimesh.Trimesh] = []
        self._z_min = np.empty(0)
        self._z_max = np.empty(0)
        self._normal_z = np.empty(0)

    def set_slicing_parameters(self, params: SlicingParameters) -> None:
        self._params = params

    def add_mesh(self, mesh: trimesh.Trimesh) -> None:
        if len(mesh.faces) == 0:
            raise GeometryError("Cannot add a mesh without faces to the cusp oracle")
        self._meshes.append(mesh)

    def prepare(self) -> None:
        """Collect the facet Z spans and normals of all meshes, sorted by Z span."""
        if not self._meshes:
            self._z_min = self._z_max = self._normal_z = np.empty(0)
            return
        z_min, z_max, normal_z = [], [], []
        for mesh in self._meshes:
            face_z = mesh.vertices[mesh.faces][:, :, 2]
            z_min.append(face_z.min(axis=1))
            z_max.append(face_z.max(axis=1))
            normal_z.append(mesh.face_normals[:, 2])
        z_min = np.concatenate(z_min)
        z_max = np.concatenate(z_max)
        order = np.lexsort((z_max, z_min))
        self._z_min = z_min[order]
        self._z_max = z_max[order]
        self._normal_z = np.concatenate(normal_z)[order]
        logger.debug("cusp_oracle_prepared", facets=len(order), meshes=len(self._meshes))

    @property
    def facet_count(self) -> int:
        return len(self._z_min)

    def _facet_cusp(self, cusp_value: float, normal_z: np.ndarray) -> np.ndarray:
        with np.errstate(divide="ignore"):
            cusps = np.abs(cusp_value / normal_z)
        return np.where(normal_z == 0.0, _VERTICAL_FACET_CUSP, cusps)

    def cusp_height(self, z: float, cusp_value: float, cursor: FacetCursor) -> float:
        """
        Maximum layer height starting at *z* keeping the cusp below *cusp_value*.

        Args:
            z: Bottom of the layer to print (mm)
            cusp_value: Allowed cusp height (mm)
            cursor: Walk position, updated in place

        Returns:
            Layer height within the printer limits
        """
        if self._params is None:
            raise ProfileError("Cusp oracle used before slicing parameters were set")
        cursor.advance_to(z)
        min_height = self._params.min_layer_height
        height = self._params.max_layer_height

        # Facets crossing z, starting at the first facet crossing the previous z.
        end = int(np.searchsorted(self._z_min, z, side="left"))
        start = min(cursor.facet, end)
        crossing = self._z_max[start:end] > z
        if crossing.any():
            cursor.facet = start + int(np.argmax(crossing))
            # Facets merely touching z would produce tiny cusp values.
            active = self._z_max[start:end] > z + EPSILON
            if active.any():
                cusps = self._facet_cusp(cusp_value, self._normal_z[start:end][active])
                height = min(height, float(cusps.min()))

        height = max(height, min_height)
        if height <= min_height:
            return height

        # Sloped or horizontal facets starting inside the candidate layer.
        for idx in range(end, len(self._z_min)):
            facet_z_min = self._z_min[idx]
            if facet_z_min >= z + height:
                break
            if self._z_max[idx] <= z + EPSILON:
                continue
            normal_z = self._normal_z[idx]
            cusp = _VERTICAL_FACET_CUSP if normal_z == 0.0 else abs(cusp_value / normal_z)
            z_diff = facet_z_min - z
            if normal_z > _HORIZONTAL_NORMAL_Z:
                height = z_diff
            elif cusp > z_diff:
                height = min(height, cusp)
            else:
                height = z_diff
        return max(float(height), min_height)


def layer_height_profile_adaptive(
    params: SlicingParameters,
    ranges: Iterable[LayerHeightRange],
    volumes: Iterable[ModelVolume],
    oracle: Optional[CuspHeightOracle] = None,
    cusp_value: float = DEFAULT_CUSP_VALUE,
) -> LayerHeightProfile:
    """
    Build a layer height profile keeping the cusp height below *cusp_value*.

    Args:
        params: Slicing parameters of the object
        ranges: User layer height ranges, reserved and currently ignored
        volumes: Volumes of the object, modifiers are skipped
        oracle: Cusp height service, a :class:`MeshCuspOracle` by default
        cusp_value: Allowed cusp height (mm)

    Returns:
        A new profile spanning ``[0, object_print_z_height]``
    """
    if oracle is None:
        oracle = MeshCuspOracle()
    oracle.set_slicing_parameters(params)
    for volume in volumes:
        if not volume.modifier:
            oracle.add_mesh(volume.mesh)
    oracle.prepare()

    object_height = params.object_print_z_height()
    first = params.first_object_layer_height
    samples: List[ProfileSample] = [ProfileSample(0.0, first)]
    if params.first_object_layer_height_fixed():
        samples.append(ProfileSample(first, first))

    cursor = FacetCursor()
    slice_z = first
    while slice_z < object_height:
        height = oracle.cusp_height(slice_z, cusp_value, cursor)
        height = min(max(height, params.min_layer_height), params.max_layer_height)
        top = min(slice_z + height, object_height)
        samples.append(ProfileSample(slice_z, height))
        samples.append(ProfileSample(top, height))
        slice_z += height

    # Close the profile exactly at the object top.
    samples = [s for s in samples if s.z <= object_height]
    last_height = min(max(first, params.min_layer_height), params.max_layer_height)
    samples.append(ProfileSample(object_height, last_height))

    logger.info(
        "adaptive_profile_generated",
        samples=len(samples),
        object_height=object_height,
        cusp_value=cusp_value,
    )
    return LayerHeightProfile(samples)
