"""
Color palette for Leakscope terminal output.

Centralized rich style definitions used across the project.
"""

from leaks_types import LeakKind

# Green shades
GREEN = "color(158)"
DARK_GREEN = "color(49)"

# Yellow shades
LIGHT_YELLOW = "color(230)"
DARK_YELLOW = "color(228)"

# Pink/Magenta shades
MAGENTA = "color(219)"
DARK_PINK = "color(205)"

# Red
RED = "color(174)"

# Gray shades
GRAY_DARK = "color(236)"  # Used for raw lines
GRAY = "color(240)"       # Used for secondary text

LEAK_KIND_STYLES = {
    LeakKind.ROOT_LEAK: RED,
    LeakKind.ROOT_CYCLE: MAGENTA,
}
