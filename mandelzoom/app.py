"""
Pygame presentation layer for the Mandelbrot renderer.

Contains the MandelbrotApp class which handles:
- Window setup and main loop
- Translating user input (wheel zoom, drag pan, keyboard) into renderer calls
- Displaying frames and saving them as PNG

All fractal logic lives in the renderer; this module only moves pixels
and events around.
"""

import logging
import os
from datetime import datetime

import numpy as np
import pygame

from .config import RenderConfig
from .renderer import MandelbrotRenderer

logger = logging.getLogger(__name__)

CAPTION = "Mandelbrot Set - Scroll to zoom, drag to pan, R to reset, S to save"


def wheel_scale(wheel_y, zoom_factor):
    """Scale factor for a wheel event: scroll up zooms in, scroll down zooms out."""
    return zoom_factor if wheel_y > 0 else 1.0 / zoom_factor


def screen_to_grid(mx, my, height):
    """
    Convert a window position to grid coordinates.

    The window shows row 0 (im_min) at the bottom, so the y axis is flipped:
    screen row 0 is grid row height - 1.
    """
    return mx, height - 1 - my


def frame_to_surface(frame):
    """Build a pygame surface from a Frame, imaginary axis pointing up."""
    rgb = np.ascontiguousarray(frame.flipped()[:, :, :3])
    return pygame.surfarray.make_surface(rgb.swapaxes(0, 1))


def save_frame(frame, filename):
    """Write a Frame to an image file (format chosen by pygame from the extension)."""
    pygame.image.save(frame_to_surface(frame), filename)
    logger.info("Image saved to %s", filename)
    return filename


class MandelbrotApp:
    """
    Main application class for the Mandelbrot visualizer.

    Handles the pygame window and event loop, and forwards zoom and pan
    requests to the renderer as plain function calls.
    """

    RENDER_DELAY_MS = 25  # Delay before starting render after user action

    def __init__(self, config=None):
        """
        Initialize the application.

        Args:
            config: RenderConfig (default: RenderConfig())
        """
        self.config = config or RenderConfig()
        self.width = self.config.width
        self.height = self.config.height

        # Pygame state (initialized in run())
        self.screen = None
        self.clock = None

        self.renderer = None
        self.frame = None
        self.surface = None

        # Input state
        self.dragging = False
        self.drag_last = None

        # Render timing
        self.last_action_time = 0
        self.pending_render = False

        self.running = False

    def run(self):
        """Run the application main loop."""
        self._init_pygame()
        self.renderer = MandelbrotRenderer.from_config(self.config, warmup=True)
        logger.info("Rendering with %s", self.renderer.describe())
        self._render()

        self.running = True
        try:
            while self.running:
                current_time = pygame.time.get_ticks()
                self._handle_events(current_time)
                self._maybe_render(current_time)
                self._draw()
                self.clock.tick(60)
        finally:
            self.renderer.close()
            pygame.quit()

    def _init_pygame(self):
        """Initialize pygame and create window."""
        pygame.init()
        self.screen = pygame.display.set_mode((self.width, self.height), pygame.DOUBLEBUF)
        pygame.display.set_caption("Compiling (first run only)...")
        self.clock = pygame.time.Clock()

    def _handle_events(self, current_time):
        """Process all pending pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.MOUSEWHEEL:
                self._handle_zoom(event, current_time)
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                self.dragging = True
                self.drag_last = event.pos
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                self.dragging = False
            elif event.type == pygame.MOUSEMOTION and self.dragging:
                self._handle_drag(event, current_time)
            elif event.type == pygame.KEYDOWN:
                self._handle_key(event, current_time)

    def _schedule_render(self, current_time):
        self.last_action_time = current_time
        self.pending_render = True

    def _handle_zoom(self, event, current_time):
        """Handle mouse wheel zoom."""
        mx, my = pygame.mouse.get_pos()
        px, py = screen_to_grid(mx, my, self.height)
        self.renderer.zoom(px, py, wheel_scale(event.y, self.config.zoom_factor))
        self._schedule_render(current_time)

    def _handle_drag(self, event, current_time):
        """Move the view with the mouse: the plane follows the cursor."""
        mx, my = event.pos
        lx, ly = self.drag_last
        self.drag_last = event.pos
        # Screen y grows downward, grid rows grow upward
        self.renderer.pan(lx - mx, my - ly)
        self._schedule_render(current_time)

    def _handle_key(self, event, current_time):
        """Handle keyboard input."""
        if event.key == pygame.K_r:
            self.renderer.reset()
            self._schedule_render(current_time)
        elif event.key == pygame.K_ESCAPE:
            self.running = False
        elif event.key == pygame.K_s:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = os.path.abspath(f"mandelbrot_{timestamp}.png")
            save_frame(self.frame, filename)
            pygame.display.set_caption(f"Saved: {os.path.basename(filename)} - Mandelbrot Set")

    def _maybe_render(self, current_time):
        """Render if an action is pending and the input has settled."""
        if self.pending_render and current_time - self.last_action_time > self.RENDER_DELAY_MS:
            self._render()

    def _render(self):
        pygame.display.set_caption("Computing...")
        self.frame = self.renderer.render()
        self.surface = frame_to_surface(self.frame)
        self.pending_render = False
        pygame.display.set_caption(CAPTION)

    def _draw(self):
        """Draw the current frame."""
        self.screen.fill((0, 0, 0))
        if self.surface is not None:
            self.screen.blit(self.surface, (0, 0))
        pygame.display.flip()


def run(config=None):
    """
    Run the Mandelbrot visualizer.

    Args:
        config: RenderConfig (default: RenderConfig())
    """
    app = MandelbrotApp(config)
    try:
        app.run()
    except KeyboardInterrupt:
        pass
