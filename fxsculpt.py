#!/usr/bin/env python3
"""
fxsculpt command line: generate a token's scene and export it as STL.

Requires: numpy, numpy-stl, noise, trimesh, pyfqmr
Install: pip install -e .
"""

import argparse
import json
import logging
import sys

from config import get_config
from fxhash import generate_hash, validate_hash
from scene import SCENE_KINDS, compose_scene
from stl_export import check_export_feasibility, mesh_report, save_stl, simplify_mesh


def build_parser():
    defaults = get_config()
    parser = argparse.ArgumentParser(
        prog='fxsculpt',
        description='Generate a seeded 3D scene from an fxhash and export it as STL',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Scene kinds:
  box       - single 50mm cube (the original demo)
  terrain   - fbm heightfield with boxes or towers standing on it
  surface   - parametric surface (klein, mobius, torus, sphere, noise sphere)

Examples:
  %(prog)s                                   # new random hash, <hash>.stl
  %(prog)s --hash ooXXXX... --ascii
  %(prog)s --hash ooXXXX... --kind terrain --terrain-segments 200
  %(prog)s --hash ooXXXX... --features       # print features only
"""
    )
    parser.add_argument(
        '--hash',
        dest='fxhash',
        help='fxhash driving the generation (omit to generate a new one)'
    )
    parser.add_argument(
        '--kind',
        choices=SCENE_KINDS,
        default=defaults.DEFAULT_SCENE_KIND,
        help='Force a scene kind instead of letting the hash decide'
    )
    parser.add_argument(
        '-o', '--output',
        help='Output STL file (default: <fxhash>.stl)'
    )
    parser.add_argument(
        '--ascii',
        action='store_true',
        help='Save output as ASCII STL instead of binary'
    )
    parser.add_argument(
        '--terrain-segments',
        type=int,
        default=defaults.TERRAIN_SEGMENTS,
        help=f'Terrain grid cells per side (default: {defaults.TERRAIN_SEGMENTS})'
    )
    parser.add_argument(
        '--surface-segments',
        type=int,
        default=defaults.SURFACE_SEGMENTS,
        help=f'Parametric surface slices and stacks (default: {defaults.SURFACE_SEGMENTS})'
    )
    parser.add_argument(
        '--simplify',
        type=float,
        default=1.0,
        help='Keep this fraction of triangles using quadric simplification (default: 1.0)'
    )
    parser.add_argument(
        '--features',
        action='store_true',
        help='Print the token features as JSON and exit'
    )
    parser.add_argument(
        '--estimate',
        action='store_true',
        help='Print export size estimate and feasibility, do not write a file'
    )
    parser.add_argument(
        '--report',
        action='store_true',
        help='Print a mesh report (watertightness, volume, bounds) after export'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Show generation log messages'
    )
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    fxhash = args.fxhash or generate_hash()
    try:
        validate_hash(fxhash)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if not 0 < args.simplify <= 1:
        print("Error: --simplify must be in (0, 1]")
        return 1

    try:
        scene = compose_scene(
            fxhash,
            kind=args.kind,
            terrain_segments=args.terrain_segments,
            surface_segments=args.surface_segments
        )
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if args.features:
        print(json.dumps({'fxhash': fxhash, 'features': scene.features}, indent=2))
        return 0

    triangles = int(scene.triangle_count * args.simplify)
    limits = get_config()
    feasibility = check_export_feasibility(
        triangles,
        max_triangles=limits.MAX_OUTPUT_TRIANGLES,
        max_file_size_mb=limits.MAX_OUTPUT_FILE_SIZE_MB,
        ascii=args.ascii
    )

    if args.estimate:
        print(json.dumps({'fxhash': fxhash, 'filename': scene.filename, **feasibility}, indent=2))
        return 0 if feasibility['feasible'] else 1

    print(f"fxhash: {fxhash}")
    print(f"Scene: {scene.kind} ({', '.join(f'{k}={v}' for k, v in scene.features.items())})")
    print(f"Mesh: {scene.triangle_count} triangles in {len(scene.objects)} objects")

    if not feasibility['feasible']:
        print(f"Error: {feasibility['reason']}")
        for suggestion in feasibility['suggestions']:
            print(f"  - {suggestion}")
        return 1

    output_mesh = scene.mesh()
    if args.simplify < 1:
        print(f"Simplifying to {args.simplify:.0%} of triangles...")
        output_mesh = simplify_mesh(output_mesh, target_ratio=args.simplify)

    output = args.output or scene.filename
    print(f"Saving to {output}...")
    size = save_stl(output_mesh, output, ascii=args.ascii)
    print(f"Wrote {len(output_mesh.vectors)} triangles ({size / 1024:.1f} KB)")

    if args.report:
        print(json.dumps(mesh_report(output_mesh), indent=2))

    print("Done!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
