# constants.py
"""
Application-level constants.

These values are the defaults of the tank simulation. Anything here can be
overridden from the `simulation_parameters` section of config.json; the
values below are used when a key is missing.
"""

# --- Collision handling ---
# Extra squared distance added to the contact test so that two molecules
# register a hit slightly before they are geometrically tangent.
COLLISION_SLACK = 5.0
# Number of non-contact steps a pair must wait before it can collide again.
COLLISION_COOLDOWN = 5

# --- Wall motion ---
# Weight of the target in the first-order wall smoothing filter.
WALL_SMOOTHING = 0.1

# --- Default molecule distribution ---
DEFAULT_DX_RANGE = (-3.0, 3.0)
DEFAULT_DY_RANGE = (-3.0, 3.0)
DEFAULT_RADIUS_RANGE = (5.0, 10.0)

# Offsets applied to the radius bounds when a distribution is built from the
# speed / average radius / variance controls. Keeps the range non-empty and
# stops molecules from becoming vanishingly small.
RADIUS_MIN_OFFSET = 4.0
RADIUS_MAX_OFFSET = 5.0

# --- Default tank geometry ---
DEFAULT_WIDTH = 1200.0
DEFAULT_HEIGHT = 700.0
DEFAULT_LEFT_COUNT = 100
DEFAULT_RIGHT_COUNT = 200
