"""
Wavefront OBJ Format Exporter

OBJ is a universal text-based format supported by virtually all 3D software.
Voxel colors are not stored per vertex: every face carries a texture
coordinate pointing at its palette texel, so the mesh is rendered with the
palette images from palette_exporter.

Output grammar (sections in this order, indices 1-based):
    v x y z                  positions, minus the XY centering offset
    vt u v                   one per material used
    vn x y z                 one per face direction used, integers
    f p/t/n p/t/n p/t/n      one per triangle

Positions, texture coordinates and normals are interned: a value that was
already seen reuses its first index.
"""

from pathlib import Path
from typing import Callable, Dict, Generic, Hashable, Iterable, List, Tuple, TypeVar, Union
import logging

from ..greedy_mesh import GreedyMesher, Quad
from ..volume import VoxelVolume
from .palette_exporter import AtlasLayout


logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

FaceVertex = Tuple[int, int, int]  # (position, texcoord, normal)
Face = Tuple[FaceVertex, FaceVertex, FaceVertex]

# Fixed diagonal split of a quad's corners into two triangles
QUAD_TRIANGLES = ((0, 1, 2), (1, 3, 2))

# Corners sit on half-unit offsets, fewer digits would merge distinct positions
MIN_PRECISION = 1


def _check_precision(precision: int) -> int:
    if precision < MIN_PRECISION:
        raise ValueError(f"precision must be at least {MIN_PRECISION}, got {precision}")
    return precision


class InternTable(Generic[K, V]):
    """
    Insertion-ordered value table with 1-based indices.

    Each distinct key is stored once; later lookups return the index it
    was first assigned.
    """

    def __init__(self, make_value: Callable[[K], V]):
        self._make_value = make_value
        self._index: Dict[K, int] = {}
        self.values: List[V] = []

    def intern(self, key: K) -> int:
        index = self._index.get(key)
        if index is None:
            self.values.append(self._make_value(key))
            index = len(self.values)
            self._index[key] = index
        return index

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(self.values)


class ObjMesh:
    """
    Deduplicated triangle mesh assembled from quads.

    One instance per emitted file; nothing is shared between meshes.
    """

    def __init__(
        self,
        offset: Tuple[float, float, float] = (0.0, 0.0, 0.0),
        layout: AtlasLayout = AtlasLayout.STRIP,
        precision: int = 1
    ):
        """
        Initialize an empty mesh.

        Args:
            offset: Subtracted from every position (model centering)
            layout: Palette atlas layout used for texture coordinates
            precision: Decimal digits written for positions, at least 1
        """
        self.offset = offset
        self.layout = layout
        self.precision = _check_precision(precision)

        self.positions: InternTable = InternTable(self._position)
        self.texcoords: InternTable = InternTable(layout.texcoord)
        self.normals: InternTable = InternTable(tuple)
        self.faces: List[Face] = []

    def _position(self, corner: Tuple[int, int, int]) -> Tuple[float, float, float]:
        return tuple(float(c) - o for c, o in zip(corner, self.offset))

    def push_quad(self, quad: Quad):
        """Append a quad as two triangles, interning its shared data."""
        v = [self.positions.intern(tuple(corner)) for corner in quad.corners]
        vt = self.texcoords.intern(quad.material_index)
        vn = self.normals.intern(tuple(quad.normal))

        for a, b, c in QUAD_TRIANGLES:
            self.faces.append(((v[a], vt, vn), (v[b], vt, vn), (v[c], vt, vn)))

    def extend(self, quads: Iterable[Quad]) -> "ObjMesh":
        for quad in quads:
            self.push_quad(quad)
        return self

    @property
    def triangle_count(self) -> int:
        return len(self.faces)

    def serialize(self) -> str:
        """Render the mesh as OBJ text."""
        p = self.precision
        lines = []

        for x, y, z in self.positions:
            lines.append(f"v {x:.{p}f} {y:.{p}f} {z:.{p}f}")

        for u, v in self.texcoords:
            lines.append(f"vt {u:.6f} {v:.6f}")

        for x, y, z in self.normals:
            lines.append(f"vn {x} {y} {z}")

        for face in self.faces:
            lines.append("f " + " ".join(f"{v}/{t}/{n}" for v, t, n in face))

        return "\n".join(lines) + "\n" if lines else ""

    def write(self, output_path: Union[str, Path]):
        """Write the OBJ text to a file."""
        output_path = Path(output_path)
        output_path.write_text(self.serialize(), encoding="utf-8")


class OBJExporter:
    """
    Export decoded .vox models to Wavefront OBJ.

    Runs the full pipeline per model: padded volume, greedy quads,
    deduplicated mesh, text.
    """

    def __init__(
        self,
        center: bool = True,
        precision: int = 1,
        layout: AtlasLayout = AtlasLayout.STRIP
    ):
        """
        Initialize the exporter.

        Args:
            center: Subtract the model's XY centering offset from positions
            precision: Decimal digits written for positions, at least 1
            layout: Palette atlas layout used for texture coordinates
        """
        self.center = center
        self.precision = _check_precision(precision)
        self.layout = layout
        self.mesher = GreedyMesher()

    def build_mesh(self, volume: VoxelVolume) -> ObjMesh:
        """Extract quads from a volume and assemble them into a mesh."""
        offset = volume.center_offset if self.center else (0.0, 0.0, 0.0)
        mesh = ObjMesh(offset=offset, layout=self.layout, precision=self.precision)
        return mesh.extend(self.mesher.extract(volume))

    def mesh_model(self, model) -> ObjMesh:
        """
        Build the mesh of one decoded model.

        Args:
            model: VoxModel (size and sparse voxels)

        Returns:
            The assembled ObjMesh
        """
        return self.build_mesh(VoxelVolume.from_model(model))

    def export(self, model, output_path: Union[str, Path]) -> ObjMesh:
        """
        Export one model to an OBJ file.

        Args:
            model: VoxModel (size and sparse voxels)
            output_path: Output file path (.obj)

        Returns:
            The mesh that was written
        """
        output_path = Path(output_path)
        mesh = self.mesh_model(model)
        mesh.write(output_path)
        logger.info(
            "Wrote %s (%d vertices, %d triangles)",
            output_path, len(mesh.positions), mesh.triangle_count
        )
        return mesh
