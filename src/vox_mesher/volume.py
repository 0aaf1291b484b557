"""
Padded Dense Voxel Volume

This module provides VoxelVolume, the dense occupancy + material grid that
the greedy mesher scans. It is built from the sparse (x, y, z, color_index)
list of a decoded .vox model.

Layout:
- One flat uint16 arena with a computed linear index (x-major, z-minor)
- One empty cell of padding on every side, so every real voxel has a
  defined neighbor and the visibility test needs no bounds check
- Cell value 0 is empty, value c + 1 is palette slot c

Axis convention: .vox models are Z-up, the output mesh is Y-up. The remap
(x, y, z) -> (x, z, y) happens here and only here.

Memory consideration: a 256 x 256 x 256 model with padding is
258^3 x 2 bytes ~= 34 MB.
"""

from dataclasses import dataclass, field
from typing import Tuple, Sequence, Union
import numpy as np

from .errors import InvalidVoxelError


EMPTY = 0
MAX_COLOR_INDEX = 255


def source_to_volume(x: int, y: int, z: int) -> Tuple[int, int, int]:
    """Map a Z-up .vox coordinate (or size) to the Y-up volume axes."""
    return x, z, y


def volume_to_source(x: int, y: int, z: int) -> Tuple[int, int, int]:
    """Inverse of source_to_volume (the swap is its own inverse)."""
    return x, z, y


@dataclass
class VoxelVolume:
    """
    Dense padded voxel volume in Y-up volume space.

    size_x, size_y, size_z are the real (unpadded) dimensions. All
    coordinates accepted by the accessors are padded coordinates, i.e.
    real voxel (0, 0, 0) lives at (1, 1, 1).
    """

    size_x: int
    size_y: int
    size_z: int
    _cells: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        if min(self.size_x, self.size_y, self.size_z) < 0:
            raise ValueError(f"Negative volume size: {self.shape}")
        px, py, pz = self.padded_shape
        self._cells = np.zeros(px * py * pz, dtype=np.uint16)

    @classmethod
    def build(
        cls,
        size: Tuple[int, int, int],
        voxels: Union[np.ndarray, Sequence[Tuple[int, int, int, int]]]
    ) -> "VoxelVolume":
        """
        Build a padded volume from a sparse voxel list.

        Args:
            size: Model bounding box (x, y, z) in .vox (Z-up) axes
            voxels: (N, 4) array-like of (x, y, z, color_index), Z-up axes,
                color_index being the 0-based palette slot

        Returns:
            The populated VoxelVolume

        Raises:
            InvalidVoxelError: a voxel lies outside the box, has a color
                index outside 0..255, or shares a cell with another voxel
        """
        sx, sy, sz = (int(s) for s in size)
        volume = cls(*source_to_volume(sx, sy, sz))

        data = np.asarray(voxels, dtype=np.int64).reshape(-1, 4)
        if len(data) == 0:
            return volume

        coords = data[:, :3]
        colors = data[:, 3]

        outside = np.any((coords < 0) | (coords >= np.array([sx, sy, sz])), axis=1)
        if np.any(outside):
            x, y, z = coords[np.argmax(outside)]
            raise InvalidVoxelError(
                f"voxel ({x}, {y}, {z}) lies outside model size ({sx}, {sy}, {sz})"
            )

        bad_color = (colors < 0) | (colors > MAX_COLOR_INDEX)
        if np.any(bad_color):
            i = int(np.argmax(bad_color))
            raise InvalidVoxelError(
                f"voxel {tuple(int(c) for c in coords[i])} has color index "
                f"{int(colors[i])} outside 0..{MAX_COLOR_INDEX}"
            )

        # Z-up -> Y-up, then shift past the padding border
        vx = coords[:, 0] + 1
        vy = coords[:, 2] + 1
        vz = coords[:, 1] + 1
        linear = volume._linearize_array(vx, vy, vz)

        unique, counts = np.unique(linear, return_counts=True)
        if np.any(counts > 1):
            dup = int(unique[np.argmax(counts > 1)])
            px, py, pz = np.unravel_index(dup, volume.padded_shape)
            x, y, z = volume_to_source(int(px) - 1, int(py) - 1, int(pz) - 1)
            raise InvalidVoxelError(f"duplicate voxel at ({x}, {y}, {z})")

        volume._cells[linear] = (colors + 1).astype(np.uint16)
        return volume

    @classmethod
    def from_model(cls, model) -> "VoxelVolume":
        """Build from a decoded VoxModel."""
        return cls.build(model.size, model.voxels)

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Real (unpadded) dimensions in volume axes."""
        return (self.size_x, self.size_y, self.size_z)

    @property
    def padded_shape(self) -> Tuple[int, int, int]:
        """Dimensions including the one-cell border on every side."""
        return (self.size_x + 2, self.size_y + 2, self.size_z + 2)

    @property
    def cells(self) -> np.ndarray:
        """The flat cell arena."""
        return self._cells

    @property
    def grid(self) -> np.ndarray:
        """A 3D (x, y, z) view over the arena, no copy."""
        return self._cells.reshape(self.padded_shape)

    @property
    def center_offset(self) -> Tuple[float, float, float]:
        """XY centering offset of the source model, in volume axes."""
        return (self.size_x / 2.0, 0.0, self.size_z / 2.0)

    def linearize(self, x: int, y: int, z: int) -> int:
        """Linear arena index of padded coordinate (x, y, z)."""
        _, py, pz = self.padded_shape
        return (x * py + y) * pz + z

    def _linearize_array(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
        _, py, pz = self.padded_shape
        return (x * py + y) * pz + z

    def _in_bounds(self, x: int, y: int, z: int) -> bool:
        px, py, pz = self.padded_shape
        return 0 <= x < px and 0 <= y < py and 0 <= z < pz

    def is_occupied(self, x: int, y: int, z: int) -> bool:
        """Check if the padded cell holds a voxel. Out of range is empty."""
        if not self._in_bounds(x, y, z):
            return False
        return bool(self._cells[self.linearize(x, y, z)] != EMPTY)

    def material_at(self, x: int, y: int, z: int) -> int:
        """Encoded material of a padded cell: 0 empty, else palette slot + 1."""
        if not self._in_bounds(x, y, z):
            return EMPTY
        return int(self._cells[self.linearize(x, y, z)])

    def count_voxels(self) -> int:
        """Count the number of occupied cells."""
        return int(np.count_nonzero(self._cells))
