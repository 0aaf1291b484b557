"""
Helpers that assemble .vox files in memory for the tests.
"""

import struct
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


def chunk(chunk_id: bytes, content: bytes = b"", children: bytes = b"") -> bytes:
    return chunk_id + struct.pack("<ii", len(content), len(children)) + content + children


def string(value: str) -> bytes:
    data = value.encode("utf-8")
    return struct.pack("<i", len(data)) + data


def attributes(values: Optional[Dict[str, str]] = None) -> bytes:
    values = values or {}
    out = struct.pack("<i", len(values))
    for key, value in values.items():
        out += string(key) + string(value)
    return out


def size_chunk(x: int, y: int, z: int) -> bytes:
    return chunk(b"SIZE", struct.pack("<III", x, y, z))


def xyzi_chunk(voxels: Iterable[Tuple[int, int, int, int]]) -> bytes:
    """Voxels carry file color indices (1-based)."""
    voxels = list(voxels)
    content = struct.pack("<I", len(voxels))
    for x, y, z, c in voxels:
        content += struct.pack("<BBBB", x, y, z, c)
    return chunk(b"XYZI", content)


def model_chunks(size: Tuple[int, int, int], voxels) -> bytes:
    return size_chunk(*size) + xyzi_chunk(voxels)


def rgba_chunk(colors: Sequence[Tuple[int, int, int, int]]) -> bytes:
    content = b"".join(struct.pack("<BBBB", *c) for c in colors)
    return chunk(b"RGBA", content)


def matl_chunk(material_id: int, values: Dict[str, str]) -> bytes:
    return chunk(b"MATL", struct.pack("<i", material_id) + attributes(values))


def trn_chunk(node_id: int, child_id: int, name: Optional[str] = None) -> bytes:
    attrs = {"_name": name} if name else {}
    content = (
        struct.pack("<i", node_id) + attributes(attrs)
        + struct.pack("<iiii", child_id, -1, 0, 1)
        + attributes({"_t": "0 0 0"})
    )
    return chunk(b"nTRN", content)


def grp_chunk(node_id: int, children: List[int]) -> bytes:
    content = struct.pack("<i", node_id) + attributes() + struct.pack("<i", len(children))
    content += b"".join(struct.pack("<i", c) for c in children)
    return chunk(b"nGRP", content)


def shp_chunk(node_id: int, models: List[Tuple[int, Optional[int]]]) -> bytes:
    content = struct.pack("<i", node_id) + attributes() + struct.pack("<i", len(models))
    for model_id, frame in models:
        attrs = {"_f": str(frame)} if frame is not None else {}
        content += struct.pack("<i", model_id) + attributes(attrs)
    return chunk(b"nSHP", content)


def build_vox(*chunks: bytes, version: int = 150) -> bytes:
    return b"VOX " + struct.pack("<i", version) + chunk(b"MAIN", b"", b"".join(chunks))
