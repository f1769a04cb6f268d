"""
Command line entry point: python -m mandelzoom [options]

Opens the interactive viewer, or with --output renders a single frame
to an image file without opening a window.
"""

import argparse
import logging
import sys

from .backends import list_backend_names
from .colormaps import COLORING_MODES, list_palette_names
from .config import RenderConfig
from .errors import MandelzoomError


def build_parser():
    parser = argparse.ArgumentParser(
        prog="mandelzoom",
        description="Interactive Mandelbrot set explorer.",
    )
    parser.add_argument("--width", type=int, help=f"window width (default {RenderConfig.DEFAULT_WIDTH})")
    parser.add_argument("--height", type=int, help=f"window height (default {RenderConfig.DEFAULT_HEIGHT})")
    parser.add_argument("-i", "--iter-limit", type=int,
                        help=f"maximum iterations (default {RenderConfig.DEFAULT_ITER_LIMIT})")
    parser.add_argument("--zoom-factor", type=float,
                        help=f"span scale per wheel step (default {RenderConfig.DEFAULT_ZOOM_FACTOR})")
    parser.add_argument("--mode", choices=COLORING_MODES, help="coloring mode (default gradient)")
    parser.add_argument("--palette", choices=list_palette_names(), help="palette (default Classic)")
    parser.add_argument("--contrast", type=float,
                        help=f"gradient contrast constant (default {RenderConfig.DEFAULT_CONTRAST})")
    parser.add_argument("--backend", choices=list_backend_names(), help="compute backend (default auto)")
    parser.add_argument("--supersample", type=int, choices=(1, 2), help="anti-aliasing factor")
    parser.add_argument("-o", "--output", help="render one frame to this file and exit")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="log backend selection (-v) and timings (-vv)")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("mandelzoom")

    try:
        config = RenderConfig.from_args(args)
        # pygame is only needed once we present or save something
        from .app import run, save_frame
        if args.output:
            from .renderer import MandelbrotRenderer
            with MandelbrotRenderer.from_config(config) as renderer:
                save_frame(renderer.render(), args.output)
        else:
            run(config)
    except (MandelzoomError, ValueError) as exc:
        log.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
