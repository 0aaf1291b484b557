"""
Greedy Surface Extraction with Numba JIT Compilation

This module extracts the visible boundary of a padded VoxelVolume as a list
of maximal axis-aligned quads. Adjacent visible faces with the same material
in the same slice are merged into larger rectangles.

Performance: Numba JIT provides ~100x speedup over pure Python.
Reduction: Typically 80-95% face reduction for solid objects.

Algorithm Overview:
1. Face Culling: A face is visible where an occupied cell touches an empty one
2. Greedy Sweep: For each 2D slice, grow rectangles width-first, then height
3. Emit Quads: Convert rectangles back to corner positions in model space

Every visible unit face is covered by exactly one emitted quad, so the summed
quad area per direction equals the number of visible unit faces.
"""

from typing import List, Tuple, NamedTuple, Optional
from enum import IntEnum
import numpy as np
from numba import njit

from .volume import VoxelVolume


class FaceDirection(IntEnum):
    """Face normal directions in Y-up volume space."""
    WEST = 0    # -X
    EAST = 1    # +X
    BOTTOM = 2  # -Y
    TOP = 3     # +Y
    SOUTH = 4   # -Z
    NORTH = 5   # +Z

    @property
    def axis(self) -> int:
        return int(self) // 2

    @property
    def positive(self) -> bool:
        return int(self) % 2 == 1

    @property
    def normal(self) -> Tuple[int, int, int]:
        n = [0, 0, 0]
        n[self.axis] = 1 if self.positive else -1
        return tuple(n)


Vec3 = Tuple[int, int, int]


class Quad(NamedTuple):
    """
    A merged rectangular face.

    Corners are in model space (padding removed) and ordered so that the
    triangles (0, 1, 2) and (1, 3, 2) wind counter-clockwise seen from the
    side the normal points to.
    """
    corners: Tuple[Vec3, Vec3, Vec3, Vec3]
    normal: Vec3
    material_index: int
    direction: FaceDirection

    @property
    def area(self) -> int:
        c0, c1, c2, _ = self.corners
        first = sum(abs(p - q) for p, q in zip(c1, c0))
        second = sum(abs(p - q) for p, q in zip(c2, c0))
        return first * second


@njit(cache=True)
def _cell(grid: np.ndarray, axis: int, s: int, a: int, b: int) -> int:
    """Read a cell addressed as (slice, u, v) for the given slice axis."""
    if axis == 0:
        return grid[s, a, b]
    elif axis == 1:
        return grid[b, s, a]
    return grid[a, b, s]


@njit(cache=True)
def _face_material(grid: np.ndarray, direction: int, s: int, a: int, b: int) -> int:
    """
    Encoded material of the face at (s, a, b), or 0 if the face is hidden.

    A face is visible if its cell is occupied and the neighbor one step
    in the face direction is empty. The padding border guarantees that
    neighbor exists.
    """
    axis = direction // 2
    material = int(_cell(grid, axis, s, a, b))
    if material == 0:
        return 0

    if direction % 2 == 1:
        neighbor = int(_cell(grid, axis, s + 1, a, b))
    else:
        neighbor = int(_cell(grid, axis, s - 1, a, b))

    if neighbor != 0:
        return 0
    return material


@njit(cache=True)
def _count_direction(grid: np.ndarray, direction: int) -> int:
    """Count visible unit faces for one direction."""
    axis = direction // 2
    n = grid.shape[axis]
    du = grid.shape[(axis + 1) % 3]
    dv = grid.shape[(axis + 2) % 3]

    count = 0
    for s in range(1, n - 1):
        for a in range(1, du - 1):
            for b in range(1, dv - 1):
                if _face_material(grid, direction, s, a, b) != 0:
                    count += 1
    return count


@njit(cache=True)
def _greedy_mesh_direction(
    grid: np.ndarray,
    direction: int,
    max_quads: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Greedy merge all slices for a single direction.

    Args:
        grid: Padded (X, Y, Z) uint16 material grid, 0 = empty
        direction: Face direction (0-5)
        max_quads: Upper bound on emitted quads (the visible face count)

    Returns:
        Tuple of (rects, materials): rects rows are
        [slice, a, b, height, width] with a along the first in-slice axis
        and b along the second; materials are the encoded cell values
    """
    axis = direction // 2
    n = grid.shape[axis]
    du = grid.shape[(axis + 1) % 3]
    dv = grid.shape[(axis + 2) % 3]

    rects = np.zeros((max_quads, 5), dtype=np.int32)
    materials = np.zeros(max_quads, dtype=np.int32)
    count = 0

    faces = np.zeros((du, dv), dtype=np.int32)
    visited = np.zeros((du, dv), dtype=np.uint8)

    for s in range(1, n - 1):
        # Build the visibility mask for this slice
        faces[:, :] = 0
        visited[:, :] = 0
        for a in range(1, du - 1):
            for b in range(1, dv - 1):
                faces[a, b] = _face_material(grid, direction, s, a, b)

        for a in range(1, du - 1):
            b = 1
            while b < dv - 1:
                material = faces[a, b]
                if material == 0 or visited[a, b] != 0:
                    b += 1
                    continue

                # Expand width (along b)
                width = 1
                while (b + width < dv - 1 and
                       faces[a, b + width] == material and
                       visited[a, b + width] == 0):
                    width += 1

                # Expand height (along a), one full row at a time
                height = 1
                done = False
                while a + height < du - 1 and not done:
                    for w in range(width):
                        if (faces[a + height, b + w] != material or
                                visited[a + height, b + w] != 0):
                            done = True
                            break
                    if not done:
                        height += 1

                # Mark the region as processed
                for h in range(height):
                    for w in range(width):
                        visited[a + h, b + w] = 1

                rects[count, 0] = s
                rects[count, 1] = a
                rects[count, 2] = b
                rects[count, 3] = height
                rects[count, 4] = width
                materials[count] = material
                count += 1

                b += width

    return rects[:count], materials[:count]


def _quad_corners(
    direction: FaceDirection,
    s: int, a: int, b: int,
    height: int, width: int
) -> Tuple[Vec3, Vec3, Vec3, Vec3]:
    """
    Convert a slice rectangle to four model-space corners.

    The in-slice axes (u, v) follow the slice axis cyclically, so
    u x v points along +axis. For negative faces the edge order is swapped
    to keep the winding outward.
    """
    axis = direction.axis
    u_axis = (axis + 1) % 3
    v_axis = (axis + 2) % 3

    origin = [0, 0, 0]
    origin[axis] = s + 1 if direction.positive else s
    origin[u_axis] = a
    origin[v_axis] = b
    # Remove the padding offset
    origin = [c - 1 for c in origin]

    u_edge = [0, 0, 0]
    u_edge[u_axis] = height
    v_edge = [0, 0, 0]
    v_edge[v_axis] = width

    if direction.positive:
        first, second = u_edge, v_edge
    else:
        first, second = v_edge, u_edge

    c0 = tuple(origin)
    c1 = tuple(o + f for o, f in zip(origin, first))
    c2 = tuple(o + t for o, t in zip(origin, second))
    c3 = tuple(o + f + t for o, f, t in zip(origin, first, second))
    return (c0, c1, c2, c3)


def count_visible_faces(
    volume: VoxelVolume,
    direction: Optional[FaceDirection] = None
) -> int:
    """
    Count visible unit faces, for one direction or all six.

    Args:
        volume: The padded voxel volume
        direction: Restrict the count to one face direction

    Returns:
        Number of unit faces that separate an occupied cell from an empty one
    """
    grid = volume.grid
    directions = list(FaceDirection) if direction is None else [direction]
    return sum(_count_direction(grid, int(d)) for d in directions)


class GreedyMesher:
    """
    Greedy surface extraction for padded voxel volumes.

    This class wraps the Numba-accelerated merge kernels and converts
    their rectangles into Quad records.
    """

    def extract(self, volume: VoxelVolume) -> List[Quad]:
        """
        Extract merged quads for all six face directions.

        Args:
            volume: The padded voxel volume

        Returns:
            Quads ordered by direction, then slice, then raster position
        """
        quads = []
        for direction in FaceDirection:
            quads.extend(self.extract_direction(volume, direction))
        return quads

    def extract_direction(
        self,
        volume: VoxelVolume,
        direction: FaceDirection
    ) -> List[Quad]:
        """Extract merged quads for a single face direction."""
        grid = volume.grid
        max_quads = _count_direction(grid, int(direction))
        if max_quads == 0:
            return []

        rects, materials = _greedy_mesh_direction(grid, int(direction), max_quads)

        normal = direction.normal
        quads = []
        for rect, material in zip(rects, materials):
            s, a, b, height, width = (int(v) for v in rect)
            quads.append(Quad(
                corners=_quad_corners(direction, s, a, b, height, width),
                normal=normal,
                material_index=int(material) - 1,
                direction=direction,
            ))
        return quads


class NaiveMesher:
    """
    Naive extraction for comparison/debugging.

    Emits one unit quad per visible voxel face, without merging.
    Use this only for small volumes or debugging.
    """

    def extract(self, volume: VoxelVolume) -> List[Quad]:
        """Generate one quad per visible unit face."""
        grid = volume.grid
        occupied = grid != 0
        quads = []

        for direction in FaceDirection:
            axis = direction.axis
            step = 1 if direction.positive else -1
            # The padding border keeps the wrapped-around plane empty
            neighbor = np.roll(occupied, -step, axis=axis)
            visible = occupied & ~neighbor

            u_axis = (axis + 1) % 3
            v_axis = (axis + 2) % 3
            for cell in np.argwhere(visible):
                cell = tuple(int(c) for c in cell)
                quads.append(Quad(
                    corners=_quad_corners(
                        direction, cell[axis], cell[u_axis], cell[v_axis], 1, 1
                    ),
                    normal=direction.normal,
                    material_index=int(grid[cell]) - 1,
                    direction=direction,
                ))

        return quads


def compare_mesh_stats(greedy_quads: List[Quad], naive_quads: List[Quad]) -> dict:
    """
    Compare statistics between greedy and naive extraction.

    Args:
        greedy_quads: Quads from GreedyMesher
        naive_quads: Quads from NaiveMesher (one per visible unit face)

    Returns:
        Dictionary with comparison statistics
    """
    greedy_count = len(greedy_quads)
    naive_count = len(naive_quads)

    reduction = (1 - greedy_count / naive_count) * 100 if naive_count > 0 else 0

    return {
        "greedy_quads": greedy_count,
        "naive_quads": naive_count,
        "greedy_triangles": greedy_count * 2,
        "naive_triangles": naive_count * 2,
        "quad_reduction_percent": reduction,
    }
