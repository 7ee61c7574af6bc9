"""
Tests for layer generation from a layer height profile.
"""

import pytest

from varlayer.core.exceptions import ProfileError
from varlayer.slicing.layers import LayerBoundary, generate_object_layers
from varlayer.slicing.profile import LayerHeightProfile, LayerHeightRange
from varlayer.slicing.ranges import layer_height_profile_from_ranges


def _assert_contiguous(layers):
    assert layers[0].low == 0.0
    for prev, cur in zip(layers, layers[1:]):
        assert cur.low == pytest.approx(prev.high)
        assert cur.height > 0


@pytest.mark.unit
@pytest.mark.slicing
class TestLayerBoundary:
    """Tests for LayerBoundary."""

    def test_height_and_mid(self):
        layer = LayerBoundary(1.0, 1.5)
        assert layer.height == pytest.approx(0.5)
        assert layer.mid == pytest.approx(1.25)


@pytest.mark.unit
@pytest.mark.slicing
class TestGenerateObjectLayers:
    """Tests for generate_object_layers."""

    def test_flat_profile(self, params, flat_profile):
        layers = generate_object_layers(params, flat_profile)
        assert len(layers) == 100
        assert layers[0] == LayerBoundary(0.0, 0.2)
        for layer in layers:
            assert layer.height == pytest.approx(0.2)
        assert layers[-1].high == pytest.approx(20.0)
        _assert_contiguous(layers)

    def test_ranges_profile(self, params):
        profile = layer_height_profile_from_ranges(
            params, [LayerHeightRange(5.0, 10.0, 0.1), LayerHeightRange(8.0, 12.0, 0.25)]
        )
        layers = generate_object_layers(params, profile)
        _assert_contiguous(layers)
        by_mid = {round(layer.mid, 3): layer.height for layer in layers}
        thin = [h for mid, h in by_mid.items() if 5.5 < mid < 9.5]
        thick = [h for mid, h in by_mid.items() if 10.5 < mid < 11.5]
        assert thin and all(h == pytest.approx(0.1) for h in thin)
        assert thick and all(h == pytest.approx(0.25) for h in thick)
        assert abs(layers[-1].high - 20.0) <= params.max_layer_height

    def test_fixed_first_layer_over_raft(self, raft_params):
        profile = layer_height_profile_from_ranges(raft_params, [])
        layers = generate_object_layers(raft_params, profile)
        assert layers[0].low == 0.0
        assert layers[0].height == pytest.approx(0.4)
        assert layers[1].height == pytest.approx(0.2)
        _assert_contiguous(layers)

    def test_first_layer_from_profile(self, soluble_raft_params):
        profile = LayerHeightProfile([(0.0, 0.1), (20.0, 0.1)])
        layers = generate_object_layers(soluble_raft_params, profile)
        assert layers[0].low == 0.0
        assert layers[0].height == pytest.approx(0.1)
        assert len(layers) == pytest.approx(200, abs=1)

    def test_heights_floored_at_min(self, soluble_raft_params):
        profile = LayerHeightProfile([(0.0, 0.01), (20.0, 0.01)])
        layers = generate_object_layers(soluble_raft_params, profile)
        for layer in layers:
            assert layer.height >= soluble_raft_params.min_layer_height - 1e-9

    def test_last_layer_below_object_top(self, params, flat_profile):
        layers = generate_object_layers(params, flat_profile)
        # Half of the last layer lies below the object top.
        assert layers[-1].mid < params.object_print_z_height()

    def test_empty_profile(self, params):
        with pytest.raises(ProfileError):
            generate_object_layers(params, LayerHeightProfile())
