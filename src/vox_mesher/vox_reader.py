"""
MagicaVoxel .vox Format Reader

The .vox format is a RIFF-style chunk-based binary format used by MagicaVoxel.
It stores voxels as sparse data with a 256-color palette, optional material
properties and an optional scene graph.

File Structure:
- Header: "VOX " (4 bytes) + version (4 bytes, int32)
- MAIN chunk (container)
  - PACK chunk: model count (optional, legacy)
  - SIZE chunk: dimensions (x, y, z), Z-up
  - XYZI chunk: voxel data (x, y, z, color_index per voxel)
  - RGBA chunk: 256-color palette
  - MATL chunk: per-color material properties
  - nTRN / nGRP / nSHP chunks: scene graph nodes

Every chunk is: id (4 bytes), content size (int32), children size (int32),
content, children. Strings are (int32 length, bytes); dicts are
(int32 count, count x (key string, value string)).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import logging
import struct
import numpy as np

from .errors import DecodeError
from .scene import GroupNode, SceneNode, ShapeModel, ShapeNode, TransformNode


logger = logging.getLogger(__name__)


# VOX format constants
VOX_MAGIC = b'VOX '
CHUNK_HEADER_SIZE = 12
PALETTE_SIZE = 256
MAX_MODEL_SIZE = 256


@dataclass
class VoxModel:
    """One SIZE/XYZI pair."""
    size: Tuple[int, int, int]
    voxels: np.ndarray  # (N, 4) int: x, y, z, palette slot (0-based)

    @property
    def voxel_count(self) -> int:
        return len(self.voxels)


@dataclass
class Material:
    """
    Optional material properties of one palette slot.

    index is the 0-based palette slot (MATL id - 1).
    """
    index: int
    metallic: Optional[float] = None
    roughness: Optional[float] = None
    emission: Optional[float] = None
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass
class VoxFile:
    """Everything decoded from a .vox file."""
    version: int
    models: List[VoxModel]
    palette: np.ndarray  # (256, 4) uint8 RGBA, slot order
    materials: List[Material]
    nodes: Dict[int, SceneNode]

    @property
    def has_scene_graph(self) -> bool:
        return len(self.nodes) > 0


def default_palette() -> np.ndarray:
    """
    The MagicaVoxel default palette in slot order (slot i = color index i + 1).

    Slots 0-214 walk a 6x6x6 color cube (blue fastest, black excluded),
    slots 215-254 are red, green, blue and gray ramps, slot 255 is empty.
    """
    levels = [0xff, 0xcc, 0x99, 0x66, 0x33, 0x00]
    ramp = [0xee, 0xdd, 0xbb, 0xaa, 0x88, 0x77, 0x55, 0x44, 0x22, 0x11]

    colors = []
    for r in levels:
        for g in levels:
            for b in levels:
                colors.append((r, g, b, 0xff))
    colors.pop()  # black

    for channel in range(3):
        for level in ramp:
            rgb = [0, 0, 0]
            rgb[channel] = level
            colors.append((rgb[0], rgb[1], rgb[2], 0xff))
    for level in ramp:
        colors.append((level, level, level, 0xff))

    colors.append((0, 0, 0, 0))
    return np.array(colors, dtype=np.uint8)


class _ChunkReader:
    """Cursor over one chunk's content with bounds-checked reads."""

    def __init__(self, chunk_id: bytes, content: bytes):
        self.chunk_id = chunk_id
        self.content = content
        self.offset = 0

    def _unpack(self, fmt: str):
        size = struct.calcsize(fmt)
        if self.offset + size > len(self.content):
            raise DecodeError(
                f"truncated {self.chunk_id.decode('ascii', 'replace')} chunk "
                f"at byte {self.offset}"
            )
        values = struct.unpack_from(fmt, self.content, self.offset)
        self.offset += size
        return values

    def i32(self) -> int:
        return self._unpack('<i')[0]

    def u32(self) -> int:
        return self._unpack('<I')[0]

    def raw(self, size: int) -> bytes:
        if size < 0 or self.offset + size > len(self.content):
            raise DecodeError(
                f"truncated {self.chunk_id.decode('ascii', 'replace')} chunk "
                f"at byte {self.offset}"
            )
        data = self.content[self.offset:self.offset + size]
        self.offset += size
        return data

    def string(self) -> str:
        return self.raw(self.i32()).decode('utf-8', errors='replace')

    def dict(self) -> Dict[str, str]:
        count = self.i32()
        result = {}
        for _ in range(count):
            key = self.string()
            result[key] = self.string()
        return result


def _parse_float(attributes: Dict[str, str], key: str) -> Optional[float]:
    value = attributes.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        raise DecodeError(f"material property {key}={value!r} is not a number")


def _parse_frame_index(attributes: Dict[str, str]) -> Optional[int]:
    value = attributes.get('_f')
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _read_xyzi(chunk: _ChunkReader) -> np.ndarray:
    num_voxels = chunk.u32()
    raw = chunk.raw(num_voxels * 4)
    voxels = np.frombuffer(raw, dtype=np.uint8).reshape(num_voxels, 4).astype(np.int32)
    # Color indices are 1-based in the file, palette slots are 0-based
    voxels[:, 3] = np.maximum(voxels[:, 3] - 1, 0)
    return voxels


def _read_material(chunk: _ChunkReader) -> Optional[Material]:
    material_id = chunk.i32()
    attributes = chunk.dict()
    if material_id < 1 or material_id >= PALETTE_SIZE:
        logger.debug("Skipping material with id %d", material_id)
        return None
    return Material(
        index=material_id - 1,
        metallic=_parse_float(attributes, '_metal'),
        roughness=_parse_float(attributes, '_rough'),
        emission=_parse_float(attributes, '_emit'),
        attributes=attributes,
    )


def _read_transform(chunk: _ChunkReader) -> TransformNode:
    node_id = chunk.i32()
    attributes = chunk.dict()
    child_id = chunk.i32()
    chunk.i32()  # reserved, always -1
    layer_id = chunk.i32()
    num_frames = chunk.i32()
    frames = [chunk.dict() for _ in range(max(num_frames, 0))]
    return TransformNode(
        node_id=node_id,
        attributes=attributes,
        child_id=child_id,
        layer_id=layer_id,
        frames=frames,
    )


def _read_group(chunk: _ChunkReader) -> GroupNode:
    node_id = chunk.i32()
    attributes = chunk.dict()
    num_children = chunk.i32()
    children = [chunk.i32() for _ in range(max(num_children, 0))]
    return GroupNode(node_id=node_id, attributes=attributes, child_ids=children)


def _read_shape(chunk: _ChunkReader) -> ShapeNode:
    node_id = chunk.i32()
    attributes = chunk.dict()
    num_models = chunk.i32()
    models = []
    for _ in range(max(num_models, 0)):
        model_id = chunk.i32()
        model_attributes = chunk.dict()
        models.append(ShapeModel(
            model_id=model_id,
            frame_index=_parse_frame_index(model_attributes),
            attributes=model_attributes,
        ))
    return ShapeNode(node_id=node_id, attributes=attributes, models=models)


def parse_vox(data: bytes) -> VoxFile:
    """
    Decode the bytes of a .vox file.

    Args:
        data: Complete file contents

    Returns:
        VoxFile with models, palette, materials and scene graph nodes

    Raises:
        DecodeError: bad magic, truncated chunks or inconsistent content
    """
    if len(data) < 8 or data[:4] != VOX_MAGIC:
        raise DecodeError(f"Invalid VOX file: bad magic {data[:4]!r}")

    version = struct.unpack_from('<i', data, 4)[0]

    def read_chunk(offset: int):
        if offset + CHUNK_HEADER_SIZE > len(data):
            raise DecodeError(f"truncated chunk header at byte {offset}")
        chunk_id = data[offset:offset + 4]
        content_size, children_size = struct.unpack_from('<ii', data, offset + 4)
        if content_size < 0 or children_size < 0:
            raise DecodeError(f"negative chunk size in {chunk_id!r} at byte {offset}")
        start = offset + CHUNK_HEADER_SIZE
        if start + content_size + children_size > len(data):
            raise DecodeError(f"chunk {chunk_id!r} at byte {offset} overruns the file")
        content = data[start:start + content_size]
        return chunk_id, content, start + content_size, children_size

    # Read MAIN chunk
    main_id, _, children_start, main_children_size = read_chunk(8)
    if main_id != b'MAIN':
        raise DecodeError("Expected MAIN chunk")

    models: List[VoxModel] = []
    materials: List[Material] = []
    nodes: Dict[int, SceneNode] = {}
    palette = default_palette()
    pending_size: Optional[Tuple[int, int, int]] = None

    offset = children_start
    end = children_start + main_children_size
    while offset < end:
        chunk_id, content, content_end, children_size = read_chunk(offset)
        offset = content_end + children_size
        chunk = _ChunkReader(chunk_id, content)

        if chunk_id == b'SIZE':
            pending_size = (chunk.u32(), chunk.u32(), chunk.u32())
            if max(pending_size) > MAX_MODEL_SIZE:
                raise DecodeError(
                    f"model size {pending_size} exceeds {MAX_MODEL_SIZE} on some axis"
                )

        elif chunk_id == b'XYZI':
            if pending_size is None:
                raise DecodeError("XYZI chunk without preceding SIZE chunk")
            models.append(VoxModel(size=pending_size, voxels=_read_xyzi(chunk)))
            pending_size = None

        elif chunk_id == b'RGBA':
            raw = chunk.raw(PALETTE_SIZE * 4)
            palette = np.frombuffer(raw, dtype=np.uint8).reshape(PALETTE_SIZE, 4).copy()

        elif chunk_id == b'MATL':
            material = _read_material(chunk)
            if material is not None:
                materials.append(material)

        elif chunk_id in (b'nTRN', b'nGRP', b'nSHP'):
            if chunk_id == b'nTRN':
                node = _read_transform(chunk)
            elif chunk_id == b'nGRP':
                node = _read_group(chunk)
            else:
                node = _read_shape(chunk)
            if node.node_id in nodes:
                raise DecodeError(f"duplicate scene node id {node.node_id}")
            nodes[node.node_id] = node

        else:
            logger.debug("Skipping chunk %r", chunk_id)

    logger.debug(
        "Decoded version %d: %d models, %d materials, %d scene nodes",
        version, len(models), len(materials), len(nodes)
    )
    return VoxFile(
        version=version,
        models=models,
        palette=palette,
        materials=materials,
        nodes=nodes,
    )


def read_vox(file_path: Union[str, Path]) -> VoxFile:
    """
    Load a .vox file.

    Args:
        file_path: Path to .vox file

    Returns:
        The decoded VoxFile
    """
    file_path = Path(file_path)

    with open(file_path, 'rb') as f:
        data = f.read()

    try:
        return parse_vox(data)
    except DecodeError as e:
        raise DecodeError(f"{file_path}: {e}") from e
