"""
Palette Texture Exporter

Converts the 256-entry color table of a .vox file, plus its optional
per-slot material properties, into small lookup images:

- albedo.png     RGBA, always written
- metalness.png  grayscale, only if some material defines _metal
- roughness.png  grayscale, only if some material defines _rough
- emission.png   grayscale, only if some material defines _emit

Texel i holds palette slot i, with no filtering or merging. The mesh
texture coordinates address the same texel (see AtlasLayout.texcoord).
"""

from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union
import logging
import numpy as np
from PIL import Image

from ..errors import EncodeError


logger = logging.getLogger(__name__)

PALETTE_SIZE = 256

# Palette attribute -> output file name
PROPERTY_FILES = {
    "metallic": "metalness.png",
    "roughness": "roughness.png",
    "emission": "emission.png",
}


class AtlasLayout(Enum):
    """How the 256 palette slots are laid out in the lookup images."""
    STRIP = "strip"  # 256 x 1
    GRID = "grid"    # 16 x 16, row-major

    @property
    def image_size(self) -> Tuple[int, int]:
        """(width, height) in texels."""
        if self is AtlasLayout.STRIP:
            return (PALETTE_SIZE, 1)
        return (16, 16)

    def texel(self, index: int) -> Tuple[int, int]:
        """(column, row) of palette slot index."""
        width, _ = self.image_size
        return (index % width, index // width)

    def texcoord(self, index: int) -> Tuple[float, float]:
        """
        Texture coordinate at the center of a slot's texel.

        Sampling at the center keeps bilinear filtering from bleeding into
        the neighboring slot. v runs bottom-up as in OBJ.
        """
        width, height = self.image_size
        column, row = self.texel(index)
        return ((column + 0.5) / width, 1.0 - (row + 0.5) / height)


@dataclass
class Palette:
    """Lookup images built from a color table and material table."""
    albedo: np.ndarray                     # (H, W, 4) uint8
    metallic: Optional[np.ndarray] = None  # (H, W) uint8
    roughness: Optional[np.ndarray] = None
    emission: Optional[np.ndarray] = None
    layout: AtlasLayout = AtlasLayout.STRIP

    def images(self) -> Dict[str, np.ndarray]:
        """File name -> pixel array, for every image that is present."""
        images = {"albedo.png": self.albedo}
        for attr, filename in PROPERTY_FILES.items():
            data = getattr(self, attr)
            if data is not None:
                images[filename] = data
        return images

    def write(self, output_dir: Union[str, Path]) -> List[Path]:
        """
        Write the palette images as PNG files.

        Args:
            output_dir: Target directory, created if missing

        Returns:
            Paths of the written files

        Raises:
            EncodeError: PNG encoding failed
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for filename, data in self.images().items():
            path = output_dir / filename
            path.write_bytes(_encode_png(data, filename))
            written.append(path)
            logger.debug("Wrote %s", path)

        logger.info("Wrote %d palette images to %s", len(written), output_dir)
        return written


def _encode_png(data: np.ndarray, name: str) -> bytes:
    buffer = BytesIO()
    try:
        Image.fromarray(data).save(buffer, format="PNG")
    except (OSError, ValueError, TypeError) as e:
        raise EncodeError(f"failed to encode {name}: {e}") from e
    return buffer.getvalue()


def _encode_scalar(value: float) -> int:
    """Map a 0..1 property to a 0..255 gray level (truncating)."""
    return int(min(max(value, 0.0), 1.0) * 255.0)


class PaletteBuilder:
    """
    Builds Palette images from decoded .vox tables.

    Usage:
        palette = PaletteBuilder().build(vox.palette, vox.materials)
        palette.write("textures/")
    """

    def __init__(self, layout: AtlasLayout = AtlasLayout.STRIP):
        """
        Initialize the builder.

        Args:
            layout: Texel layout, must match the mesh exporter's layout
        """
        self.layout = layout

    def build(self, colors: np.ndarray, materials: Sequence = ()) -> Palette:
        """
        Build the palette images.

        Args:
            colors: Color table of shape (N, 3) or (N, 4), N <= 256, slot order
            materials: Objects with index and optional metallic, roughness,
                emission attributes (see vox_reader.Material)

        Returns:
            Palette with albedo always set and property images only where
            at least one material defines that property
        """
        colors = np.asarray(colors, dtype=np.uint8)
        if colors.ndim != 2 or colors.shape[1] not in (3, 4):
            raise ValueError("Colors must have shape (N, 3) or (N, 4)")
        if len(colors) > PALETTE_SIZE:
            raise ValueError(f"Color table has {len(colors)} entries, max is {PALETTE_SIZE}")

        width, height = self.layout.image_size

        albedo = np.zeros((height, width, 4), dtype=np.uint8)
        slots = np.arange(len(colors))
        rows, columns = slots // width, slots % width
        albedo[rows, columns, :colors.shape[1]] = colors
        if colors.shape[1] == 3:
            albedo[rows, columns, 3] = 255

        properties: Dict[str, Optional[np.ndarray]] = {attr: None for attr in PROPERTY_FILES}
        for material in materials:
            if not 0 <= material.index < PALETTE_SIZE:
                raise ValueError(f"Material index {material.index} outside 0..255")
            column, row = self.layout.texel(material.index)

            for attr in PROPERTY_FILES:
                value = getattr(material, attr)
                if value is None:
                    continue
                if properties[attr] is None:
                    properties[attr] = np.zeros((height, width), dtype=np.uint8)
                properties[attr][row, column] = _encode_scalar(value)

        return Palette(albedo=albedo, layout=self.layout, **properties)
