"""
Exception hierarchy for the .vox to .obj pipeline.

Every error is fatal to the current run. Filesystem failures are not wrapped:
they surface as the built-in OSError family with the failing path attached.
"""

from typing import Optional


class VoxMesherError(Exception):
    """Base class for all conversion errors."""


class EmptyModelError(VoxMesherError):
    """The input file contains no models."""

    def __init__(self, message: str = "no models found in .vox file"):
        super().__init__(message)


class TooManyModelsError(VoxMesherError):
    """Single-model mode was requested but the file holds several models."""

    def __init__(self, count: int):
        super().__init__(
            f"found {count} models; single-model mode needs exactly one"
        )
        self.count = count


class InvalidSceneGraphError(VoxMesherError):
    """The Transform/Group/Shape tree is structurally broken."""

    def __init__(self, message: str, node_id: Optional[int] = None):
        if node_id is not None:
            message = f"invalid scene graph at node {node_id}: {message}"
        else:
            message = f"invalid scene graph: {message}"
        super().__init__(message)
        self.node_id = node_id


class DecodeError(VoxMesherError, ValueError):
    """The .vox bytes could not be decoded."""


class InvalidVoxelError(DecodeError):
    """A voxel lies outside its model box or shares a cell with another."""


class EncodeError(VoxMesherError):
    """A palette image could not be encoded."""
