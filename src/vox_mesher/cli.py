"""
Command-Line Interface for Vox Mesher

Usage:
    vox2obj model.vox -o model.obj
    vox2obj scene.vox -o scene/ -p scene/textures
    vox2obj model.vox --layout grid --stats

"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional
import time

from . import __version__
from .converter import VoxConverter
from .exporters import AtlasLayout


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="vox2obj",
        description="Vox Mesher - Convert MagicaVoxel models to textured OBJ meshes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vox2obj model.vox -o model.obj
      Convert a single-model file

  vox2obj scene.vox -o scene -p scene/textures
      Walk the scene graph into scene/, write palette textures

  vox2obj scene.vox --single -o merged.obj
      Ignore the scene graph (the file must hold exactly one model)

Output layout with a scene graph:
  <group name>/            one directory per group
  <shape name>.obj         one file per single-model shape
  <shape name>/frame_N.obj one file per animation frame
        """
    )

    # Input
    parser.add_argument(
        "input",
        help="Input .vox file"
    )

    # Output
    parser.add_argument(
        "-o", "--output",
        help="Output .obj file, or directory when the file has a scene graph "
             "(default: input name)"
    )

    parser.add_argument(
        "-p", "--palette",
        help="Directory for albedo/metalness/roughness/emission PNG textures"
    )

    # Output settings
    parser.add_argument(
        "--layout",
        choices=[layout.value for layout in AtlasLayout],
        default=AtlasLayout.STRIP.value,
        help="Palette texture layout: 256x1 strip or 16x16 grid (default: strip)"
    )

    parser.add_argument(
        "--precision",
        type=int,
        default=1,
        help="Decimal digits for vertex positions, at least 1 (default: 1)"
    )

    parser.add_argument(
        "--no-center",
        action="store_true",
        help="Don't center each model on the XZ origin"
    )

    parser.add_argument(
        "--single",
        action="store_true",
        help="Ignore the scene graph; the file must hold exactly one model"
    )

    # Misc
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print mesh statistics"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def print_stats(converter: VoxConverter):
    """Print per-model greedy meshing statistics."""
    print("\nMesh Statistics:")
    for stats in converter.get_mesh_stats():
        print(f"  Model {stats['model_id']} {stats['size']}:")
        print(f"    Voxels: {stats['voxel_count']}")
        print(f"    Visible faces: {stats['naive_quads']}")
        print(f"    Merged quads: {stats['greedy_quads']}")
        print(f"    Triangles: {stats['greedy_triangles']}")
        print(f"    Vertices: {stats['vertices']}")
        print(f"    Quad reduction: {stats['quad_reduction_percent']:.1f}%")


def run(args) -> int:
    """Convert one file."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    start_time = time.time()

    try:
        converter = VoxConverter(
            center=not args.no_center,
            precision=args.precision,
            layout=args.layout,
            single=args.single
        )
        converter.load(input_path)

        output = Path(args.output) if args.output else converter.default_output(input_path)
        written = converter.convert(output)

        if args.palette:
            written.extend(converter.export_palette(args.palette))

        if args.stats or args.verbose:
            print_stats(converter)

        if args.verbose:
            for path in written:
                print(f"Exported: {path}")
            elapsed = time.time() - start_time
            print(f"\nCompleted in {elapsed:.2f}s")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    if args.precision < 1:
        parser.error("--precision must be at least 1")

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    return run(args)


if __name__ == "__main__":
    sys.exit(main())
