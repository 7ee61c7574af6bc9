"""
Tests for the adaptive (cusp height driven) layer height profile.
"""

import pytest
import trimesh

from varlayer.core.exceptions import GeometryError, ProfileError
from varlayer.core.geometry import mesh_height, place_on_bed
from varlayer.slicing.adaptive import (
    FacetCursor,
    MeshCuspOracle,
    ModelVolume,
    layer_height_profile_adaptive,
)
from varlayer.slicing.layers import generate_object_layers
from varlayer.slicing.parameters import SlicingParameters
from varlayer.slicing.profile import validate


class FixedHeightOracle:
    """Oracle answering every query with the same height."""

    def __init__(self, height):
        self.height = height
        self.params = None
        self.meshes = []
        self.queries = []
        self.prepared = False

    def set_slicing_parameters(self, params):
        self.params = params

    def add_mesh(self, mesh):
        self.meshes.append(mesh)

    def prepare(self):
        self.prepared = True

    def cusp_height(self, z, cusp_value, cursor):
        cursor.advance_to(z)
        self.queries.append(z)
        return self.height


def _params_for(mesh, printer, print_config):
    return SlicingParameters.create_from_config(
        printer, print_config, mesh_height(mesh), [1]
    )


@pytest.fixture
def box():
    return place_on_bed(trimesh.creation.box(extents=[10, 10, 10]))


@pytest.fixture
def sphere():
    return place_on_bed(trimesh.creation.icosphere(subdivisions=3, radius=5.0))


@pytest.mark.unit
class TestFacetCursor:
    """Tests for FacetCursor."""

    def test_advances(self):
        cursor = FacetCursor()
        cursor.advance_to(1.0)
        cursor.advance_to(1.0)
        cursor.advance_to(2.0)
        assert cursor.z == 2.0

    def test_rejects_decreasing_z(self):
        cursor = FacetCursor()
        cursor.advance_to(1.0)
        with pytest.raises(ProfileError):
            cursor.advance_to(0.5)


@pytest.mark.unit
@pytest.mark.slicing
class TestAdaptiveWithOracle:
    """Profile construction driven by a stub oracle."""

    def test_constant_height(self, params):
        oracle = FixedHeightOracle(0.25)
        profile = layer_height_profile_adaptive(params, [], [], oracle=oracle)
        assert oracle.prepared
        assert oracle.params is params
        assert profile.samples[0] == (0.0, 0.2)
        assert profile.samples[1] == (0.2, 0.2)
        assert profile.interpolate(10.0) == pytest.approx(0.25)
        assert profile.samples[-1].z == 20.0
        assert validate(profile, params).ok

    def test_queries_increase(self, params):
        oracle = FixedHeightOracle(0.25)
        layer_height_profile_adaptive(params, [], [], oracle=oracle)
        assert oracle.queries[0] == pytest.approx(params.first_object_layer_height)
        assert oracle.queries == sorted(oracle.queries)
        assert oracle.queries[-1] < 20.0

    @pytest.mark.parametrize("reported,expected", [(5.0, 0.3), (0.001, 0.07)])
    def test_heights_clamped(self, params, reported, expected):
        profile = layer_height_profile_adaptive(
            params, [], [], oracle=FixedHeightOracle(reported)
        )
        assert profile.interpolate(10.0) == pytest.approx(expected)
        assert validate(profile, params).ok

    def test_profile_ends_at_object_top(self, params):
        profile = layer_height_profile_adaptive(
            params, [], [], oracle=FixedHeightOracle(0.3)
        )
        zs = profile.z_values
        assert max(zs) == 20.0
        assert all(b >= a for a, b in zip(zs, zs[1:]))

    def test_modifier_volumes_skipped(self, params, box):
        oracle = FixedHeightOracle(0.2)
        volumes = [ModelVolume(box, name="part"), ModelVolume(box, modifier=True)]
        layer_height_profile_adaptive(params, [], volumes, oracle=oracle)
        assert len(oracle.meshes) == 1

    def test_unfixed_first_layer(self, soluble_raft_params):
        profile = layer_height_profile_adaptive(
            soluble_raft_params, [], [], oracle=FixedHeightOracle(0.25)
        )
        assert profile.samples[0] == (0.0, 0.2)
        assert profile.samples[1] == (0.2, 0.25)


@pytest.mark.unit
@pytest.mark.slicing
class TestMeshCuspOracle:
    """Tests for MeshCuspOracle."""

    def test_requires_parameters(self, box):
        oracle = MeshCuspOracle()
        oracle.add_mesh(box)
        oracle.prepare()
        with pytest.raises(ProfileError):
            oracle.cusp_height(1.0, 0.2, FacetCursor())

    def test_rejects_empty_mesh(self):
        with pytest.raises(GeometryError):
            MeshCuspOracle().add_mesh(trimesh.Trimesh())

    def test_prepare_collects_all_facets(self, sphere, params):
        oracle = MeshCuspOracle()
        oracle.set_slicing_parameters(params)
        oracle.add_mesh(sphere)
        oracle.prepare()
        assert oracle.facet_count == len(sphere.faces)

    def test_vertical_walls_allow_max_height(self, box, printer, print_config):
        params = _params_for(box, printer, print_config)
        oracle = MeshCuspOracle()
        oracle.set_slicing_parameters(params)
        oracle.add_mesh(box)
        oracle.prepare()
        cursor = FacetCursor()
        assert oracle.cusp_height(2.0, 0.2, cursor) == pytest.approx(params.max_layer_height)

    def test_horizontal_top_limits_height(self, box, printer, print_config):
        params = _params_for(box, printer, print_config)
        oracle = MeshCuspOracle()
        oracle.set_slicing_parameters(params)
        oracle.add_mesh(box)
        oracle.prepare()
        assert oracle.cusp_height(9.85, 0.2, FacetCursor()) == pytest.approx(0.15)

    def test_no_geometry(self, params):
        oracle = MeshCuspOracle()
        oracle.set_slicing_parameters(params)
        oracle.prepare()
        assert oracle.cusp_height(1.0, 0.2, FacetCursor()) == params.max_layer_height


@pytest.mark.unit
@pytest.mark.slicing
class TestAdaptiveWithMesh:
    """Profiles computed from real meshes."""

    def test_box(self, box, printer, print_config):
        params = _params_for(box, printer, print_config)
        profile = layer_height_profile_adaptive(params, [], [ModelVolume(box)])
        assert profile.interpolate(5.0) == pytest.approx(params.max_layer_height)
        assert validate(profile, params).ok

    def test_sphere_thin_near_pole(self, sphere, printer, print_config):
        params = _params_for(sphere, printer, print_config)
        profile = layer_height_profile_adaptive(
            params, [], [ModelVolume(sphere)], cusp_value=0.05
        )
        height = params.object_print_z_height()
        assert profile.interpolate(0.5 * height) > 2 * profile.interpolate(0.95 * height)
        assert profile.interpolate(0.95 * height) < 0.12
        assert validate(profile, params).ok

    def test_smaller_cusp_gives_more_layers(self, sphere, printer, print_config):
        params = _params_for(sphere, printer, print_config)
        coarse = layer_height_profile_adaptive(
            params, [], [ModelVolume(sphere)], cusp_value=0.2
        )
        fine = layer_height_profile_adaptive(
            params, [], [ModelVolume(sphere)], cusp_value=0.05
        )
        coarse_layers = generate_object_layers(params, coarse)
        fine_layers = generate_object_layers(params, fine)
        assert len(fine_layers) > len(coarse_layers)
