"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import pytest

from varlayer.core.config import PrinterConfig, PrintObjectConfig
from varlayer.slicing.parameters import SlicingParameters
from varlayer.slicing.ranges import layer_height_profile_from_ranges


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def printer():
    """Single 0.4 mm nozzle printer with default layer height limits."""
    return PrinterConfig(name="test_printer", nozzle_diameter=[0.4])


@pytest.fixture
def print_config():
    """0.2 mm layers, 0.2 mm first layer, no raft, no support."""
    return PrintObjectConfig(name="test_print", layer_height=0.2, first_layer_height=0.2)


@pytest.fixture
def params(printer, print_config):
    """Slicing parameters of a 20 mm tall object: layers 0.07 - 0.3 mm."""
    return SlicingParameters.create_from_config(printer, print_config, 20.0, [1])


@pytest.fixture
def raft_params(printer):
    """Three raft layers, first object layer bridged at 0.4 mm."""
    print_config = PrintObjectConfig(layer_height=0.2, first_layer_height=0.2, raft_layers=3)
    return SlicingParameters.create_from_config(printer, print_config, 20.0, [1])


@pytest.fixture
def soluble_raft_params(printer):
    """Raft with a soluble interface, the first object layer is not fixed."""
    print_config = PrintObjectConfig(
        layer_height=0.2,
        first_layer_height=0.2,
        raft_layers=2,
        support_material_contact_distance=0.0,
    )
    return SlicingParameters.create_from_config(printer, print_config, 20.0, [1])


@pytest.fixture
def flat_profile(params):
    """Nominal 0.2 mm profile over the whole object."""
    return layer_height_profile_from_ranges(params, [])


@pytest.fixture
def sample_config_dir(temp_dir):
    """Create a sample preset directory structure."""
    config_dir = temp_dir / "presets"
    (config_dir / "printers").mkdir(parents=True)
    (config_dir / "prints").mkdir(parents=True)

    printer_config = """
printer:
  nozzle_diameter: [0.4, 0.6]
  min_layer_height: [0.07, 0.1]
  max_layer_height: [0.0, 0.0]
"""
    (config_dir / "printers" / "dual.yaml").write_text(printer_config)

    print_config = """
print:
  layer_height: 0.2
  first_layer_height: "100%"
  raft_layers: 0
  support_material_contact_distance: 0.2
"""
    (config_dir / "prints" / "quality.yaml").write_text(print_config)

    return config_dir


@pytest.fixture
def job_file(temp_dir):
    """Self-contained slicing job with inline presets and two ranges."""
    job = """
printer:
  nozzle_diameter: [0.4]
print:
  layer_height: 0.2
  first_layer_height: 0.2
object_height: 20.0
extruders: [1]
ranges:
  - {z_low: 5.0, z_high: 10.0, height: 0.1}
  - {z_low: 8.0, z_high: 12.0, height: 0.25}
"""
    path = temp_dir / "job.yaml"
    path.write_text(job)
    return path
