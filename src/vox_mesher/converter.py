"""
Main VoxConverter Class

This is the primary interface for the .vox to .obj pipeline.
It orchestrates:
1. Decoding the .vox file
2. Choosing single-model or scene-graph mode
3. Meshing (padded volume, greedy quads, deduplicated mesh)
4. Writing meshes and palette textures

Example Usage:
    converter = VoxConverter()
    converter.load("model.vox")
    converter.convert("out/")
    converter.export_palette("out/textures")
"""

from pathlib import Path
from typing import List, Optional, Union
import logging

from .errors import EmptyModelError, TooManyModelsError
from .exporters import AtlasLayout, OBJExporter, Palette, PaletteBuilder
from .greedy_mesh import GreedyMesher, NaiveMesher, compare_mesh_stats
from .scene import SceneGraphWalker
from .volume import VoxelVolume
from .vox_reader import VoxFile, read_vox


logger = logging.getLogger(__name__)

OBJ_SUFFIX = ".obj"


class VoxConverter:
    """
    High-level interface for converting MagicaVoxel files to OBJ.

    Attributes:
        vox: The decoded file
        exporter: The OBJ exporter used for every mesh
    """

    def __init__(
        self,
        center: bool = True,
        precision: int = 1,
        layout: Union[str, AtlasLayout] = AtlasLayout.STRIP,
        single: bool = False
    ):
        """
        Initialize the VoxConverter.

        Args:
            center: Subtract each model's XY centering offset
            precision: Decimal digits written for positions
            layout: Palette atlas layout ("strip" 256x1 or "grid" 16x16)
            single: Ignore the scene graph and require exactly one model
        """
        if isinstance(layout, str):
            layout = AtlasLayout(layout)

        self.layout = layout
        self.single = single
        self.exporter = OBJExporter(center=center, precision=precision, layout=layout)
        self._vox: Optional[VoxFile] = None

    def load(self, input_path: Union[str, Path]) -> "VoxConverter":
        """
        Load and decode a .vox file.

        Args:
            input_path: Path to the .vox file

        Returns:
            self for method chaining
        """
        input_path = Path(input_path)
        self._vox = read_vox(input_path)
        logger.info(
            "Loaded %s: %d models, %d scene nodes",
            input_path, len(self._vox.models), len(self._vox.nodes)
        )
        return self

    def load_file(self, vox: VoxFile) -> "VoxConverter":
        """Use an already decoded file."""
        self._vox = vox
        return self

    @property
    def vox(self) -> Optional[VoxFile]:
        """Get the decoded file."""
        return self._vox

    def _require_vox(self) -> VoxFile:
        if self._vox is None:
            raise RuntimeError("No .vox file loaded. Call load() first.")
        return self._vox

    @property
    def uses_scene_graph(self) -> bool:
        """True if convert() will walk the scene graph."""
        return not self.single and self._require_vox().has_scene_graph

    def default_output(self, input_path: Union[str, Path]) -> Path:
        """Output path used when none is given: <input>.obj or <input>/."""
        input_path = Path(input_path)
        if self.uses_scene_graph:
            return input_path.with_suffix("")
        return input_path.with_suffix(OBJ_SUFFIX)

    def convert(self, output: Union[str, Path]) -> List[Path]:
        """
        Convert the loaded file.

        Walks the scene graph into directory `output` when there is one,
        otherwise writes the single model to file `output`.

        Returns:
            Paths of the written mesh files
        """
        if self.uses_scene_graph:
            return self.convert_scene(output)
        return [self.convert_single(output)]

    def convert_single(self, output_path: Union[str, Path]) -> Path:
        """
        Convert a file holding exactly one model.

        Raises:
            EmptyModelError: the file holds no models
            TooManyModelsError: the file holds more than one model
        """
        vox = self._require_vox()
        if not vox.models:
            raise EmptyModelError()
        if len(vox.models) > 1:
            raise TooManyModelsError(len(vox.models))

        output_path = Path(output_path)
        if output_path.parent != Path("."):
            output_path.parent.mkdir(parents=True, exist_ok=True)
        self.exporter.export(vox.models[0], output_path)
        return output_path

    def convert_scene(self, output_dir: Union[str, Path]) -> List[Path]:
        """
        Convert every shape reachable from the scene graph root.

        Raises:
            EmptyModelError: the file holds no models
            InvalidSceneGraphError: the scene graph is malformed
        """
        vox = self._require_vox()
        if not vox.models:
            raise EmptyModelError()

        walker = SceneGraphWalker(
            vox.nodes, vox.models, self.exporter, extension=OBJ_SUFFIX
        )
        written = walker.walk(output_dir)
        logger.info("Wrote %d meshes under %s", len(written), output_dir)
        return written

    def build_palette(self) -> Palette:
        """Build the palette images from the loaded color and material tables."""
        vox = self._require_vox()
        return PaletteBuilder(self.layout).build(vox.palette, vox.materials)

    def export_palette(self, output_dir: Union[str, Path]) -> List[Path]:
        """
        Write albedo.png and any material property images.

        Args:
            output_dir: Target directory, created if missing

        Returns:
            Paths of the written images
        """
        return self.build_palette().write(output_dir)

    def get_mesh_stats(self) -> List[dict]:
        """
        Get per-model statistics including greedy merging effectiveness.

        Returns:
            One dictionary per model with voxel, face, quad and vertex counts
        """
        vox = self._require_vox()
        greedy = GreedyMesher()
        naive = NaiveMesher()

        stats = []
        for model_id, model in enumerate(vox.models):
            volume = VoxelVolume.from_model(model)
            greedy_quads = greedy.extract(volume)

            entry = compare_mesh_stats(greedy_quads, naive.extract(volume))
            mesh = self.exporter.build_mesh(volume)
            entry["model_id"] = model_id
            entry["size"] = tuple(model.size)
            entry["voxel_count"] = volume.count_voxels()
            entry["vertices"] = len(mesh.positions)
            entry["texcoords"] = len(mesh.texcoords)
            entry["normals"] = len(mesh.normals)
            stats.append(entry)

        return stats
