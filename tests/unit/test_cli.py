"""
Tests for the command-line interface.
"""

import numpy as np
import pytest
import trimesh
from click.testing import CliRunner

from varlayer import __version__
from varlayer.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.unit
class TestMainGroup:
    """Tests for the top-level command group."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_groups(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "config" in result.output
        assert "layers" in result.output


@pytest.mark.unit
class TestConfigCommands:
    """Tests for preset inspection commands."""

    def test_list_printers(self, runner, sample_config_dir):
        result = runner.invoke(
            main, ["--config-dir", str(sample_config_dir), "config", "list-printers"]
        )
        assert result.exit_code == 0
        assert "dual" in result.output

    def test_list_prints(self, runner, sample_config_dir):
        result = runner.invoke(
            main, ["--config-dir", str(sample_config_dir), "config", "list-prints"]
        )
        assert result.exit_code == 0
        assert "quality" in result.output

    def test_list_without_config_dir(self, runner):
        result = runner.invoke(main, ["config", "list-printers"])
        assert result.exit_code == 2

    def test_empty_config_dir(self, runner, temp_dir):
        result = runner.invoke(main, ["--config-dir", str(temp_dir), "config", "list-prints"])
        assert result.exit_code == 0
        assert "No print presets found" in result.output


@pytest.mark.unit
@pytest.mark.slicing
class TestLayerCommands:
    """Tests for layer computation commands."""

    def test_params(self, runner, job_file):
        result = runner.invoke(main, ["layers", "params", str(job_file)])
        assert result.exit_code == 0
        assert "max_layer_height" in result.output
        assert "0.3000" in result.output

    def test_params_with_presets(self, runner, temp_dir, sample_config_dir):
        job = temp_dir / "preset_job.yaml"
        job.write_text("printer: dual\nprint: quality\nobject_height: 10\nextruders: [1, 2]\n")
        result = runner.invoke(
            main, ["--config-dir", str(sample_config_dir), "layers", "params", str(job)]
        )
        assert result.exit_code == 0
        assert "min_layer_height" in result.output

    def test_generate(self, runner, job_file):
        result = runner.invoke(main, ["layers", "generate", str(job_file), "--show", "3"])
        assert result.exit_code == 0
        assert "Profile samples" in result.output
        assert "First 3 layers" in result.output

    def test_generate_invalid_job(self, runner, temp_dir):
        job = temp_dir / "broken.yaml"
        job.write_text("printer: {nozzle_diameter: [0.4]}\n")
        result = runner.invoke(main, ["layers", "generate", str(job)])
        assert result.exit_code == 1
        assert "Failed to generate layers" in result.output

    def test_adaptive(self, runner, job_file, temp_dir):
        mesh_path = temp_dir / "box.stl"
        trimesh.creation.box(extents=[10, 10, 10]).export(str(mesh_path))
        result = runner.invoke(
            main, ["layers", "adaptive", str(job_file), str(mesh_path), "--cusp", "0.1"]
        )
        assert result.exit_code == 0
        assert "10.0000" in result.output

    def test_adaptive_unsupported_mesh(self, runner, job_file, temp_dir):
        mesh_path = temp_dir / "part.step"
        mesh_path.write_text("ISO-10303-21;")
        result = runner.invoke(main, ["layers", "adaptive", str(job_file), str(mesh_path)])
        assert result.exit_code == 1

    def test_texture(self, runner, job_file, temp_dir):
        output = temp_dir / "texture.npy"
        result = runner.invoke(
            main,
            ["layers", "texture", str(job_file), str(output), "--rows", "8", "--cols", "32"],
        )
        assert result.exit_code == 0
        texture = np.load(output)
        assert texture.shape == (8, 32, 4)
        assert texture[..., 3].any()

    def test_texture_too_small(self, runner, job_file, temp_dir):
        result = runner.invoke(
            main,
            ["layers", "texture", str(job_file), str(temp_dir / "t.npy"), "--rows", "1"],
        )
        assert result.exit_code == 1
