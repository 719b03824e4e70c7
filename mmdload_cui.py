import argparse
import logging
import sys
from typing import List, Optional

import pypmx
import pyvmd
from mmdstream import MMDError

VERSION = "1.0.0"  # Version of the MMD Loader

LOADERS = {
    "pmx": pypmx.load,
    "vmd": pyvmd.load,
}


def describe_model(model: pypmx.Model) -> List[str]:
    lines = [
        f"PMX {model.version:.1f} model '{model.name}'",
        f"  vertices:  {len(model.vertices)}",
        f"  faces:     {len(model.faces) // 3}",
        f"  textures:  {len(model.textures)}",
        f"  materials: {len(model.materials)}",
        f"  bones:     {len(model.bones)}",
        f"  morphs:    {len(model.morphs)}",
    ]
    for mat, faces in model.material_faces():
        lines.append(f"    material '{mat.name}': {len(faces) // 3} faces, texture {model.texture_path(mat.texture_index)}")
    return lines


def describe_motion(motion: pyvmd.Motion) -> List[str]:
    return [
        f"VMD v{motion.version} motion for '{motion.model_name.rstrip(chr(0))}'",
        f"  bone keyframes:   {len(motion.bone_keyframes)}",
        f"  morph keyframes:  {len(motion.morph_keyframes)}",
        f"  camera keyframes: {len(motion.camera_keyframes)}",
        f"  light keyframes:  {len(motion.light_keyframes)}",
    ]


def main(argv: Optional[List[str]] = None) -> int:
    # Usage: python mmdload_cui.py <file> [--type auto|pmx|vmd] [--verbose]

    parser = argparse.ArgumentParser(description="Load a PMX model or VMD motion and print a summary.")
    parser.add_argument("path", type=str,
                        help="PMX or VMD file to load.")
    parser.add_argument("--type", "-t", type=str, choices=("auto",) + tuple(LOADERS), default="auto",
                        help="File type (Default: 'auto', tries every loader in turn).")
    parser.add_argument("--verbose", "-v", action='store_true',
                        help="Print debug messages while loading.")
    parser.add_argument("--version", action='version', version=f'MMD Loader {VERSION}',)

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s - %(filename)s : %(levelname)s - %(message)s')

    kinds = tuple(LOADERS) if args.type == "auto" else (args.type,)
    for kind in kinds:
        try:
            result = LOADERS[kind](args.path)
        except (OSError, MMDError) as e:
            logging.error(f"Failed to load {args.path} as {kind.upper()}: {e}")
            return 1
        if result is None:
            continue

        lines = describe_model(result) if kind == "pmx" else describe_motion(result)
        print("\n".join(lines))
        return 0

    logging.error(f"Unrecognized file: {args.path}")
    return 1


if __name__ == "__main__":
    sys.exit(main())

# End of mmdload_cui.py
