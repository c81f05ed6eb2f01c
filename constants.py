# constants.py

"""
Application Constants

This module defines static configuration values for the application's framework.
These are not expected to change between simulation runs. Tunable simulation
parameters live in config.json instead.

Data Contract:
- All values are immutable constants.
- Units are specified in comments where applicable.
"""

# Initial window dimensions. The window is resizable at runtime.
WIDTH = 1280  # Pixels
HEIGHT = 720  # Pixels

# Framerate
FPS = 60  # Frames per second

# Colors (RGB)
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)

# Window Title
TITLE = "Particle Web"

# Particle/connection color in HSV, hue comes from the particle.
SATURATION = 0.8
VALUE = 1.0

# Visual Effects
TRAIL_EFFECT_COLOR = (0, 0, 0, 13) # RGBA. Alpha controls trail length (lower = longer).

# Glow layers drawn outside-in: (size multiplier, alpha 0-255).
GLOW_LAYERS = [
    (2.0, 25),
    (1.5, 115),
    (1.0, 204),
]
CORE_SIZE_FACTOR = 0.7

# UI overlay
OVERLAY_RECT = (10, 10, 330, 110) # x, y, width, height
OVERLAY_COLOR = (0, 0, 0, 128)
OVERLAY_FONT_SIZE = 20
OVERLAY_LINE_SPACING = 25

# Frames between FPS readouts on the overlay.
FPS_UPDATE_INTERVAL = 10
