#!/usr/bin/env python3
"""Render one of the demo scenes with the Whitted ray tracer.

Usage:
    python -m examples.render_scene [options]

Options:
    --scene NAME        Demo scene (default: room)
    --preset NAME       Settings preset: default, preview, quick_preview
    --width WIDTH       Override image width in pixels
    --height HEIGHT     Override image height in pixels
    --depth DEPTH       Override the reflection depth bound
    --threads N         CPU threads for Taichi (default: all cores)
    --no-bvh            Intersect triangles by brute force
    --output PATH       Output image path (.png, .jpg or .bmp)
    --seed SEED         Seed for scenes with random placement
    --obj PATH          Add an OBJ mesh to the scene
    --obj-position X Y Z, --obj-scale S, --obj-rotation RX RY RZ
                        Placement of the OBJ mesh
    --gamma GAMMA       Gamma applied when saving (default: 1.0)
    --show              Open a Matplotlib preview after rendering
    --quiet             Suppress progress output
    --verbose           Enable debug logging

Example:
    python -m examples.render_scene --scene soap_bubbles --preset preview --seed 7
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import taichi as ti

SCENE_CHOICES = ("end_to_end", "room", "soap_bubbles", "sculpture", "mirror_cavity", "sphere_cavity")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a demo scene with the Whitted ray tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--scene", choices=SCENE_CHOICES, default="room", help="Demo scene (default: room)")
    parser.add_argument(
        "--preset",
        choices=("default", "preview", "quick_preview"),
        default="preview",
        help="Settings preset (default: preview)",
    )
    parser.add_argument("--width", type=int, help="Override image width in pixels")
    parser.add_argument("--height", type=int, help="Override image height in pixels")
    parser.add_argument("--depth", type=int, help="Override the reflection depth bound")
    parser.add_argument("--threads", type=int, help="CPU threads for Taichi (default: all cores)")
    parser.add_argument("--no-bvh", action="store_true", help="Intersect triangles by brute force")
    parser.add_argument("--output", type=str, help="Output image path (default: <scene>.png)")
    parser.add_argument("--seed", type=int, help="Seed for scenes with random placement")
    parser.add_argument("--obj", type=str, help="Add an OBJ mesh to the scene")
    parser.add_argument(
        "--obj-position",
        type=float,
        nargs=3,
        default=(0.0, 0.0, 0.0),
        metavar=("X", "Y", "Z"),
        help="Translation of the OBJ mesh",
    )
    parser.add_argument("--obj-scale", type=float, default=1.0, help="Uniform scale of the OBJ mesh")
    parser.add_argument(
        "--obj-rotation",
        type=float,
        nargs=3,
        default=(0.0, 0.0, 0.0),
        metavar=("RX", "RY", "RZ"),
        help="Rotation of the OBJ mesh in degrees (X, then Y, then Z)",
    )
    parser.add_argument("--gamma", type=float, default=1.0, help="Gamma applied when saving (default: 1.0)")
    parser.add_argument("--show", action="store_true", help="Open a Matplotlib preview after rendering")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace):
    """RenderSettings from the preset plus command-line overrides."""
    from src.whitted.core.settings import RenderSettings

    settings = RenderSettings.from_name(args.preset)
    overrides = {
        "width": args.width,
        "height": args.height,
        "max_reflection_depth": args.depth,
        "num_threads": args.threads,
        "gamma": args.gamma,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if args.no_bvh:
        overrides["use_acceleration"] = False
    if args.output:
        path = Path(args.output)
        overrides["output_filename"] = str(path.with_suffix(""))
        overrides["output_format"] = path.suffix.lstrip(".") or "png"
    else:
        overrides["output_filename"] = args.scene
    return settings.replace(**overrides)


def render_scene(args: argparse.Namespace, settings) -> Path:
    """Build the scene, render it and save the image.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports so Taichi is initialized first
    from src.whitted.core.renderer import Renderer, format_duration
    from src.whitted.loader.obj import import_obj
    from src.whitted.scene.presets import build_scene

    quiet = args.quiet
    if not quiet:
        print(f"Creating '{args.scene}' scene ({settings.width}x{settings.height})...")

    scene, camera = build_scene(args.scene, seed=args.seed)

    if args.obj:
        triangles = import_obj(
            args.obj,
            position=tuple(args.obj_position),
            scale=args.obj_scale,
            rotation_deg=tuple(args.obj_rotation),
        )
        scene.add_objects(triangles)
        if not quiet:
            print(f"Added {len(triangles)} triangles from {args.obj}")

    renderer = Renderer(scene, camera, settings)

    def progress_callback(done: int, total: int) -> None:
        if not quiet:
            print(f"\r  Progress: {done}/{total} rows ({100.0 * done / total:.1f}%)", end="", flush=True)

    stats = renderer.render(callback=progress_callback)
    if not quiet:
        print()
        if stats.bvh_seconds > 0.0:
            print(f"BVH build: {format_duration(stats.bvh_seconds)}")
        print(f"Render time: {format_duration(stats.elapsed_seconds)} ({stats.ms_per_row:.2f} ms per row)")
        print(f"Rays shaded: {stats.shaded_rays}, deepest level: {stats.deepest_level}")

    output_file = Path(renderer.save())
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")

    if args.show:
        from src.whitted.preview.display import show_image

        show_image(renderer.get_image_numpy(), title=f"{args.scene} ({settings.width}x{settings.height})")

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = build_settings(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    ti.init(arch=ti.cpu, cpu_max_num_threads=settings.num_threads)

    try:
        render_scene(args, settings)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
