"""
Scene Graph Walker

MagicaVoxel files can arrange their models in a tree of nodes:

- TransformNode: names and places exactly one child (Group or Shape)
- GroupNode: an ordered list of child Transforms
- ShapeNode: one model, or several models tagged with animation frames

The walker starts at the root Transform (node 0) and mirrors the tree on
disk. Every Group becomes a directory; a single-model Shape becomes one
mesh file; an animated Shape becomes a directory of frame_<index> files.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union
import logging
import re

from .errors import InvalidSceneGraphError, InvalidVoxelError
from .exporters.obj_exporter import OBJExporter


logger = logging.getLogger(__name__)

ROOT_NODE_ID = 0


@dataclass
class TransformNode:
    node_id: int
    attributes: Dict[str, str] = field(default_factory=dict)
    child_id: int = -1
    layer_id: int = -1
    frames: List[Dict[str, str]] = field(default_factory=list)

    @property
    def name(self) -> Optional[str]:
        return self.attributes.get("_name")


@dataclass
class GroupNode:
    node_id: int
    attributes: Dict[str, str] = field(default_factory=dict)
    child_ids: List[int] = field(default_factory=list)

    @property
    def name(self) -> Optional[str]:
        return self.attributes.get("_name")


@dataclass
class ShapeModel:
    """One model reference inside a Shape; frame_index comes from _f."""
    model_id: int
    frame_index: Optional[int] = None
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass
class ShapeNode:
    node_id: int
    attributes: Dict[str, str] = field(default_factory=dict)
    models: List[ShapeModel] = field(default_factory=list)

    @property
    def name(self) -> Optional[str]:
        return self.attributes.get("_name")


SceneNode = Union[TransformNode, GroupNode, ShapeNode]


def sanitize_name(name: Optional[str]) -> str:
    """Make a node name safe to use as a file or directory name."""
    if not name:
        return ""
    n = re.sub(r"[^\w\s\.-]", "_", name).strip()
    n = re.sub(r"\s+", "_", n)
    # Never produce "." or ".."
    return n.strip(".")


class SceneGraphWalker:
    """
    Walks a scene graph and writes one mesh per shape or animation frame.

    Usage:
        walker = SceneGraphWalker(vox.nodes, vox.models)
        written = walker.walk("out/")
    """

    def __init__(
        self,
        nodes: Dict[int, SceneNode],
        models: Sequence,
        exporter: Optional[OBJExporter] = None,
        extension: str = ".obj"
    ):
        """
        Initialize the walker.

        Args:
            nodes: Scene nodes by node id
            models: Decoded models, indexed by model id
            exporter: Mesh exporter (default: OBJExporter())
            extension: Suffix of the written mesh files
        """
        self.nodes = nodes
        self.models = models
        self.exporter = exporter or OBJExporter()
        self.extension = extension

        self._visited: Set[int] = set()
        self._claimed: Set[Path] = set()
        self._written: List[Path] = []

    def walk(self, output_dir: Union[str, Path]) -> List[Path]:
        """
        Traverse from the root transform and write every mesh.

        Args:
            output_dir: Directory that receives the root's output

        Returns:
            Paths of the written mesh files, in traversal order

        Raises:
            InvalidSceneGraphError: the tree violates Transform -> Group|Shape,
                reaches a node twice, or references a missing node or model
            InvalidVoxelError: a model has invalid voxels; the message names
                the shape node and model id
        """
        self._visited = set()
        self._claimed = set()
        self._written = []

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        # (parent group, transform id, directory) still to visit
        pending: List[Tuple[Optional[GroupNode], int, Path]] = [
            (None, ROOT_NODE_ID, output_dir)
        ]
        while pending:
            group, node_id, directory = pending.pop()
            transform = self._enter(node_id, group.node_id if group else None)

            if not isinstance(transform, TransformNode):
                if group is None:
                    raise InvalidSceneGraphError(
                        f"root must be a transform, found {type(transform).__name__}",
                        ROOT_NODE_ID
                    )
                raise InvalidSceneGraphError(
                    f"group child {node_id} must be a transform, "
                    f"found {type(transform).__name__}",
                    group.node_id
                )

            child = self._enter(transform.child_id, transform.node_id)
            name = transform.name or child.name

            if isinstance(child, GroupNode):
                group_dir = self._open_group(child, name, directory)
                for child_id in reversed(child.child_ids):
                    pending.append((child, child_id, group_dir))
            elif isinstance(child, ShapeNode):
                self._visit_shape(child, name, directory)
            else:
                raise InvalidSceneGraphError(
                    f"transform child {transform.child_id} must be a group or shape, "
                    f"found {type(child).__name__}",
                    transform.node_id
                )

        return list(self._written)

    def _enter(self, node_id: int, parent_id: Optional[int]) -> SceneNode:
        """Resolve a node id, rejecting dangling references and revisits."""
        node = self.nodes.get(node_id)
        if node is None:
            if parent_id is None:
                raise InvalidSceneGraphError(f"root node {node_id} is missing")
            raise InvalidSceneGraphError(f"references missing node {node_id}", parent_id)
        if node_id in self._visited:
            raise InvalidSceneGraphError(
                f"node {node_id} is reached more than once (cycle or shared subtree)",
                parent_id
            )
        self._visited.add(node_id)
        return node

    def _open_group(self, group: GroupNode, name: Optional[str], directory: Path) -> Path:
        group_dir = self._claim(directory, name, f"group_{group.node_id}", "", group.node_id)
        group_dir.mkdir(exist_ok=True)
        logger.debug("Group %d -> %s", group.node_id, group_dir)
        return group_dir

    def _visit_shape(self, shape: ShapeNode, name: Optional[str], directory: Path):
        if not shape.models:
            raise InvalidSceneGraphError("shape has no models", shape.node_id)

        fallback = f"model_{shape.node_id}"

        if len(shape.models) == 1:
            path = self._claim(directory, name, fallback, self.extension, shape.node_id)
            self._export(shape, shape.models[0], path)
            return

        frame_dir = self._claim(directory, name, fallback, "", shape.node_id)
        frame_dir.mkdir(exist_ok=True)

        frames = set()
        for shape_model in shape.models:
            frame = shape_model.frame_index
            if frame is None:
                raise InvalidSceneGraphError(
                    f"model {shape_model.model_id} has no frame index", shape.node_id
                )
            if frame in frames:
                raise InvalidSceneGraphError(f"frame {frame} appears twice", shape.node_id)
            frames.add(frame)
            self._export(shape, shape_model, frame_dir / f"frame_{frame}{self.extension}")

    def _export(self, shape: ShapeNode, shape_model: ShapeModel, path: Path):
        model_id = shape_model.model_id
        if not 0 <= model_id < len(self.models):
            raise InvalidSceneGraphError(
                f"references missing model {model_id} ({len(self.models)} models)",
                shape.node_id
            )
        try:
            self.exporter.export(self.models[model_id], path)
        except InvalidVoxelError as e:
            raise InvalidVoxelError(f"shape node {shape.node_id}, model {model_id}: {e}") from e
        self._written.append(path)

    def _claim(
        self,
        directory: Path,
        name: Optional[str],
        fallback: str,
        suffix: str,
        node_id: int
    ) -> Path:
        """Pick an output path for a node, never handing out the same one twice."""
        stem = sanitize_name(name) or fallback
        path = directory / f"{stem}{suffix}"

        if path in self._claimed:
            renamed = directory / f"{stem}_{node_id}{suffix}"
            if renamed in self._claimed:
                raise InvalidSceneGraphError(f"output path {path} is claimed twice", node_id)
            logger.warning("Name collision at %s, writing node %d to %s", path, node_id, renamed)
            path = renamed

        self._claimed.add(path)
        return path
