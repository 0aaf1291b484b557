"""
Integration tests for VoxConverter and the command-line interface.
"""

import sys
import tempfile
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vox_mesher import VoxConverter
from vox_mesher.cli import create_parser, main
from vox_mesher.errors import EmptyModelError, TooManyModelsError, InvalidSceneGraphError
from vox_mesher.scene import GroupNode
from vox_mesher.vox_reader import VoxFile, VoxModel, default_palette

from vox_builder import (
    build_vox,
    grp_chunk,
    matl_chunk,
    model_chunks,
    shp_chunk,
    trn_chunk,
)


def vox_file(models, nodes=None) -> VoxFile:
    return VoxFile(
        version=150,
        models=models,
        palette=default_palette(),
        materials=[],
        nodes=nodes or {},
    )


def bar_model() -> VoxModel:
    return VoxModel(size=(3, 1, 1), voxels=np.array([[x, 0, 0, 2] for x in range(3)]))


def animated_scene() -> bytes:
    return build_vox(
        model_chunks((1, 1, 1), [(0, 0, 0, 1)]),
        model_chunks((2, 1, 1), [(0, 0, 0, 1), (1, 0, 0, 1)]),
        model_chunks((3, 1, 1), [(0, 0, 0, 1), (1, 0, 0, 1), (2, 0, 0, 1)]),
        trn_chunk(0, 1),
        grp_chunk(1, [2]),
        trn_chunk(2, 3, name="grow"),
        shp_chunk(3, [(0, 0), (1, 1), (2, 2)]),
        matl_chunk(1, {"_rough": "0.5"}),
    )


class TestVoxConverter(unittest.TestCase):
    """Tests for VoxConverter."""

    def test_empty_model(self):
        """Test a file without models raises EmptyModelError."""
        converter = VoxConverter().load_file(vox_file([]))
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(EmptyModelError):
                converter.convert(Path(tmp) / "out.obj")

    def test_too_many_models(self):
        """Test several models without a scene graph raise TooManyModelsError."""
        converter = VoxConverter().load_file(vox_file([bar_model(), bar_model()]))
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(TooManyModelsError) as ctx:
                converter.convert(Path(tmp) / "out.obj")
        assert ctx.exception.count == 2

    def test_single_model(self):
        """Test a single model is written to one file."""
        converter = VoxConverter().load_file(vox_file([bar_model()]))
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "nested" / "bar.obj"
            written = converter.convert(out)

            assert written == [out]
            lines = out.read_text(encoding="utf-8").splitlines()
            assert sum(1 for line in lines if line.startswith("f ")) == 12
            assert sum(1 for line in lines if line.startswith("v ")) == 8

    def test_single_mode_ignores_scene(self):
        """Test --single style conversion with a scene graph present."""
        vox_bytes = animated_scene()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scene.vox"
            path.write_bytes(vox_bytes)
            converter = VoxConverter(single=True).load(path)

            assert not converter.uses_scene_graph
            assert converter.default_output(path) == Path(tmp) / "scene.obj"
            with self.assertRaises(TooManyModelsError) as ctx:
                converter.convert(Path(tmp) / "scene.obj")
            assert str(ctx.exception) == "found 3 models; single-model mode needs exactly one"

    def test_scene_conversion(self):
        """Test a scene graph with three frames yields three frame files."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scene.vox"
            path.write_bytes(animated_scene())
            converter = VoxConverter().load(path)

            assert converter.uses_scene_graph
            out = converter.default_output(path)
            assert out == Path(tmp) / "scene"

            converter.convert(out)
            frames = sorted(p.name for p in (out / "group_1" / "grow").iterdir())
            assert frames == ["frame_0.obj", "frame_1.obj", "frame_2.obj"]

    def test_invalid_scene_aborts(self):
        """Test a broken scene graph surfaces InvalidSceneGraphError."""
        nodes = {0: GroupNode(node_id=0, child_ids=[])}
        converter = VoxConverter().load_file(vox_file([bar_model()], nodes))
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(InvalidSceneGraphError):
                converter.convert(tmp)

    def test_palette_export(self):
        """Test palette export writes albedo plus defined properties."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scene.vox"
            path.write_bytes(animated_scene())
            written = VoxConverter().load(path).export_palette(Path(tmp) / "tex")
            assert sorted(p.name for p in written) == ["albedo.png", "roughness.png"]

    def test_mesh_stats(self):
        """Test statistics report the merge reduction."""
        stats = VoxConverter().load_file(vox_file([bar_model()])).get_mesh_stats()

        assert len(stats) == 1
        assert stats[0]["voxel_count"] == 3
        assert stats[0]["naive_quads"] == 14
        assert stats[0]["greedy_quads"] == 6
        assert stats[0]["vertices"] == 8
        assert stats[0]["normals"] == 6
        assert stats[0]["texcoords"] == 1

    def test_requires_load(self):
        """Test conversion before loading fails."""
        with self.assertRaises(RuntimeError):
            VoxConverter().convert("out.obj")


class TestCLI(unittest.TestCase):
    """Tests for the vox2obj command."""

    def test_parser_defaults(self):
        """Test the default options."""
        args = create_parser().parse_args(["model.vox"])
        assert args.output is None
        assert args.palette is None
        assert args.layout == "strip"
        assert args.precision == 1
        assert not args.single

    def test_precision_below_one_rejected(self):
        """Test --precision 0 is refused before any file is read."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cube.vox"
            path.write_bytes(build_vox(model_chunks((1, 1, 1), [(0, 0, 0, 1)])))

            with self.assertRaises(SystemExit) as ctx:
                main([str(path), "--precision", "0"])
            assert ctx.exception.code == 2
            assert not (Path(tmp) / "cube.obj").exists()

    def test_scene_run(self):
        """Test a full run with palette output."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scene.vox"
            path.write_bytes(animated_scene())
            out = Path(tmp) / "out"
            tex = Path(tmp) / "tex"

            assert main([str(path), "-o", str(out), "-p", str(tex)]) == 0
            assert (out / "group_1" / "grow" / "frame_2.obj").is_file()
            assert (tex / "albedo.png").is_file()
            assert (tex / "roughness.png").is_file()
            assert not (tex / "metalness.png").exists()

    def test_single_model_run(self):
        """Test a single-model file with default output path and stats."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cube.vox"
            path.write_bytes(build_vox(model_chunks((1, 1, 1), [(0, 0, 0, 1)])))

            assert main([str(path), "--stats", "--layout", "grid"]) == 0
            text = (Path(tmp) / "cube.obj").read_text(encoding="utf-8")
            assert "vt 0.031250 0.968750" in text.splitlines()

    def test_errors_exit_nonzero(self):
        """Test failures are reported with exit status 1."""
        with tempfile.TemporaryDirectory() as tmp:
            missing = Path(tmp) / "missing.vox"
            assert main([str(missing)]) == 1

            empty = Path(tmp) / "empty.vox"
            empty.write_bytes(build_vox())
            assert main([str(empty), "-o", str(Path(tmp) / "empty.obj")]) == 1

            broken = Path(tmp) / "broken.vox"
            broken.write_bytes(b"not a vox file")
            assert main([str(broken)]) == 1


if __name__ == "__main__":
    unittest.main(verbosity=2)
