"""
Unit tests for palette texture generation.
"""

import sys
import tempfile
from pathlib import Path
import numpy as np
import unittest
from PIL import Image

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vox_mesher.exporters import AtlasLayout, PaletteBuilder
from vox_mesher.vox_reader import Material


def distinct_colors() -> np.ndarray:
    return np.array(
        [[i, 255 - i, (i * 7) % 256, 255] for i in range(256)], dtype=np.uint8
    )


class TestPaletteBuilder(unittest.TestCase):
    """Tests for PaletteBuilder."""

    def test_albedo_matches_color_table(self):
        """Test albedo texel i equals color table entry i."""
        colors = distinct_colors()
        palette = PaletteBuilder().build(colors, [])

        assert palette.albedo.shape == (1, 256, 4)
        assert np.array_equal(palette.albedo[0], colors)
        assert palette.metallic is None
        assert palette.roughness is None
        assert palette.emission is None

    def test_rgb_colors_get_opaque_alpha(self):
        """Test a 3-channel color table is written fully opaque."""
        colors = distinct_colors()[:, :3]
        palette = PaletteBuilder().build(colors, [])
        assert np.all(palette.albedo[0, :, 3] == 255)

    def test_only_defined_properties(self):
        """Test roughness on slots 3 and 9 yields only a roughness image."""
        materials = [
            Material(index=3, roughness=0.5),
            Material(index=9, roughness=1.0),
        ]
        palette = PaletteBuilder().build(distinct_colors(), materials)

        assert palette.metallic is None
        assert palette.emission is None
        assert palette.roughness.shape == (1, 256)
        assert palette.roughness[0, 3] == 127
        assert palette.roughness[0, 9] == 255
        assert np.count_nonzero(palette.roughness) == 2

    def test_scalar_clamping(self):
        """Test property values outside 0..1 are clamped."""
        materials = [Material(index=0, metallic=2.0), Material(index=1, metallic=-1.0)]
        palette = PaletteBuilder().build(distinct_colors(), materials)
        assert palette.metallic[0, 0] == 255
        assert palette.metallic[0, 1] == 0

    def test_grid_layout(self):
        """Test the 16x16 layout places slot i at row i // 16, column i % 16."""
        colors = distinct_colors()
        palette = PaletteBuilder(AtlasLayout.GRID).build(
            colors, [Material(index=35, emission=1.0)]
        )

        assert palette.albedo.shape == (16, 16, 4)
        assert np.array_equal(palette.albedo[2, 3], colors[35])
        assert palette.emission[2, 3] == 255

    def test_too_many_colors(self):
        """Test a color table above 256 entries is rejected."""
        with self.assertRaises(ValueError):
            PaletteBuilder().build(np.zeros((300, 4), dtype=np.uint8), [])


class TestPaletteWrite(unittest.TestCase):
    """Tests for writing palette PNG files."""

    def test_written_files(self):
        """Test only albedo and the defined property images are written."""
        materials = [Material(index=3, roughness=0.2), Material(index=9, roughness=0.4)]
        palette = PaletteBuilder().build(distinct_colors(), materials)

        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "textures"
            written = palette.write(out)

            names = sorted(p.name for p in written)
            assert names == ["albedo.png", "roughness.png"]
            assert sorted(p.name for p in out.iterdir()) == names

    def test_png_round_trip(self):
        """Test the albedo PNG decodes back to the color table."""
        colors = distinct_colors()
        palette = PaletteBuilder().build(colors, [Material(index=5, metallic=1.0)])

        with tempfile.TemporaryDirectory() as tmp:
            palette.write(tmp)

            with Image.open(Path(tmp) / "albedo.png") as img:
                assert img.size == (256, 1)
                assert img.mode == "RGBA"
                assert np.array_equal(np.array(img)[0], colors)

            with Image.open(Path(tmp) / "metalness.png") as img:
                assert img.mode == "L"
                assert np.array(img)[0, 5] == 255


if __name__ == "__main__":
    unittest.main(verbosity=2)
