"""
Mesh loading for the adaptive layer height builder.

Meshes are handled as trimesh objects and placed so that the object bottom
sits at Z=0, the reference of every layer height profile.
"""

from pathlib import Path
from typing import Any

import numpy as np
import trimesh

from varlayer.core.exceptions import GeometryError


class MeshLoader:
    """
    Loads triangle meshes from files.

    Supports STL, OBJ, PLY, OFF and 3MF through trimesh. Scenes are merged
    into a single mesh.
    """

    SUPPORTED_FORMATS = {".stl", ".obj", ".ply", ".off", ".3mf"}

    @classmethod
    def load(cls, file_path: str | Path, **kwargs: Any) -> trimesh.Trimesh:
        """
        Load a mesh from file.

        Args:
            file_path: Path to the mesh file
            **kwargs: Additional arguments passed to trimesh.load

        Returns:
            Trimesh mesh

        Raises:
            GeometryError: If the format is unsupported or loading fails
        """
        path = Path(file_path)

        if not path.exists():
            raise GeometryError(f"File not found: {path}")

        if path.suffix.lower() not in cls.SUPPORTED_FORMATS:
            raise GeometryError(
                f"Unsupported format: {path.suffix}. "
                f"Supported formats: {sorted(cls.SUPPORTED_FORMATS)}"
            )

        try:
            loaded = trimesh.load(str(path), **kwargs)
        except Exception as e:
            raise GeometryError(f"Failed to load geometry from {path}: {e}") from e

        if isinstance(loaded, trimesh.Scene):
            meshes = [g for g in loaded.geometry.values() if isinstance(g, trimesh.Trimesh)]
            if not meshes:
                raise GeometryError(f"No triangle mesh found in {path}")
            loaded = trimesh.util.concatenate(meshes)
        elif not isinstance(loaded, trimesh.Trimesh):
            raise GeometryError(f"Unexpected geometry type: {type(loaded)}")

        if len(loaded.faces) == 0:
            raise GeometryError(f"Mesh has no faces: {path}")
        return loaded


def place_on_bed(mesh: trimesh.Trimesh) -> trimesh.Trimesh:
    """Return a copy of *mesh* translated so that its lowest point is at Z=0."""
    placed = mesh.copy()
    placed.apply_translation([0.0, 0.0, -float(mesh.bounds[0][2])])
    return placed


def mesh_height(mesh: trimesh.Trimesh) -> float:
    """Extent of the mesh along Z."""
    return float(np.ptp(mesh.vertices[:, 2]))
