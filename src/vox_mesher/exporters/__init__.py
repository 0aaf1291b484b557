"""
Export modules for mesh and texture output.

Supported outputs:
- Wavefront (.obj) - Deduplicated triangle mesh with palette texcoords
- PNG palette - albedo plus optional metalness/roughness/emission lookups
"""

from .obj_exporter import InternTable, ObjMesh, OBJExporter
from .palette_exporter import AtlasLayout, Palette, PaletteBuilder

__all__ = [
    "InternTable",
    "ObjMesh",
    "OBJExporter",
    "AtlasLayout",
    "Palette",
    "PaletteBuilder",
]
