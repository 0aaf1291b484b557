"""
Vox Mesher
==========

Converts MagicaVoxel (.vox) models into textured Wavefront (.obj) meshes.

The pipeline is deterministic: a padded dense volume is built from the sparse
voxels, visible faces are greedily merged into maximal quads per material,
and the quads are assembled into a deduplicated triangle mesh whose texture
coordinates address a small palette texture.

Key Features:
- High-performance Greedy Meshing with Numba JIT compilation
- Deduplicated positions, normals and texture coordinates
- Palette lookup textures (albedo, metalness, roughness, emission)
- Scene graph support: groups become directories, animations frame files

Example Usage:
    from vox_mesher import VoxConverter

    converter = VoxConverter()
    converter.load("model.vox")
    converter.convert("model.obj")
    converter.export_palette("textures/")
"""

__version__ = "1.0.0"
__author__ = "Vox Mesher Team"

from .converter import VoxConverter
from .volume import VoxelVolume
from .greedy_mesh import FaceDirection, GreedyMesher, NaiveMesher, Quad
from .exporters import AtlasLayout, ObjMesh, OBJExporter, Palette, PaletteBuilder
from .scene import SceneGraphWalker
from .vox_reader import VoxFile, VoxModel, Material, read_vox, parse_vox
from .errors import (
    VoxMesherError,
    EmptyModelError,
    TooManyModelsError,
    InvalidSceneGraphError,
    DecodeError,
    InvalidVoxelError,
    EncodeError,
)

__all__ = [
    "VoxConverter",
    "VoxelVolume",
    "FaceDirection",
    "GreedyMesher",
    "NaiveMesher",
    "Quad",
    "AtlasLayout",
    "ObjMesh",
    "OBJExporter",
    "Palette",
    "PaletteBuilder",
    "SceneGraphWalker",
    "VoxFile",
    "VoxModel",
    "Material",
    "read_vox",
    "parse_vox",
    "VoxMesherError",
    "EmptyModelError",
    "TooManyModelsError",
    "InvalidSceneGraphError",
    "DecodeError",
    "InvalidVoxelError",
    "EncodeError",
]
