"""Curses color setup for the calendar browser"""

import curses
import os
from typing import Dict, Optional, Tuple

THEME_ENV = 'CALVIEW_THEME'
DEFAULT_THEME = 'dark'

# Pair numbers for the fixed UI roles
PAIR_NUMBERS = {
    'today': 1,
    'selected': 2,
    'header': 3,
    'dim': 4,
    'marker': 5,
    'border': 6,
    'status': 7,
    'popup': 8,
    'error': 9,
    'form_active': 10,
}

# Calendar color pairs are allocated from here on demand
FIRST_CALENDAR_PAIR = 20

# Approximate RGB of the eight basic curses colors
BASIC_COLORS = (
    (curses.COLOR_BLACK, (0, 0, 0)),
    (curses.COLOR_RED, (205, 0, 0)),
    (curses.COLOR_GREEN, (0, 205, 0)),
    (curses.COLOR_YELLOW, (205, 205, 0)),
    (curses.COLOR_BLUE, (0, 0, 238)),
    (curses.COLOR_MAGENTA, (205, 0, 205)),
    (curses.COLOR_CYAN, (0, 205, 205)),
    (curses.COLOR_WHITE, (229, 229, 229)),
)

PRESETS = {
    'dark': {
        'today': (curses.COLOR_BLACK, curses.COLOR_YELLOW),
        'selected': (curses.COLOR_BLACK, curses.COLOR_CYAN),
        'header': (curses.COLOR_WHITE, -1),
        'dim': (curses.COLOR_WHITE, -1),
        'marker': (curses.COLOR_GREEN, -1),
        'border': (curses.COLOR_WHITE, -1),
        'status': (curses.COLOR_WHITE, curses.COLOR_BLUE),
        'popup': (curses.COLOR_BLACK, curses.COLOR_WHITE),
        'error': (curses.COLOR_RED, -1),
        'form_active': (curses.COLOR_CYAN, -1),
    },
    'light': {
        'today': (curses.COLOR_BLACK, curses.COLOR_YELLOW),
        'selected': (curses.COLOR_WHITE, curses.COLOR_BLUE),
        'header': (curses.COLOR_BLACK, -1),
        'dim': (curses.COLOR_BLACK, -1),
        'marker': (curses.COLOR_GREEN, -1),
        'border': (curses.COLOR_BLACK, -1),
        'status': (curses.COLOR_BLACK, curses.COLOR_CYAN),
        'popup': (curses.COLOR_WHITE, curses.COLOR_BLACK),
        'error': (curses.COLOR_RED, -1),
        'form_active': (curses.COLOR_BLUE, -1),
    },
}

# Extra attributes layered on top of the color pair
MODIFIERS = {
    'header': curses.A_BOLD,
    'dim': curses.A_DIM,
    'today': curses.A_BOLD,
    'popup': curses.A_BOLD,
}


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """'#rrggbb' (or 'rrggbb', or '#rgb') to an RGB tuple; white if unparseable"""
    text = (value or '').strip().lstrip('#')
    if len(text) == 3:
        text = ''.join(c * 2 for c in text)
    try:
        return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)
    except ValueError:
        return 255, 255, 255


def nearest_basic_color(value: str) -> int:
    """Closest of the eight basic curses colors to a hex color"""
    r, g, b = parse_hex_color(value)

    def distance(entry):
        _, (cr, cg, cb) = entry
        return (r - cr) ** 2 + (g - cg) ** 2 + (b - cb) ** 2

    return min(BASIC_COLORS, key=distance)[0]


class Theme:
    """Color roles for one preset, built once at startup"""

    def __init__(self, name: str, colors: Dict[str, Tuple[int, int]]):
        self.name = name
        self.colors = colors
        self.has_colors = False
        self._calendar_pairs: Dict[int, int] = {}

    @classmethod
    def load(cls, name: Optional[str] = None) -> 'Theme':
        """Build the named preset, falling back to $CALVIEW_THEME and then dark"""
        name = (name or os.environ.get(THEME_ENV) or DEFAULT_THEME).lower()
        if name not in PRESETS:
            raise ValueError(f"Unknown theme '{name}' (choose from {', '.join(sorted(PRESETS))})")
        return cls(name, dict(PRESETS[name]))

    def init_colors(self):
        """Register color pairs; must run after curses has taken the terminal"""
        if not curses.has_colors():
            return

        curses.start_color()
        try:
            curses.use_default_colors()
            default_bg = -1
        except curses.error:
            # Terminal can't keep its own background, paint black instead
            default_bg = curses.COLOR_BLACK

        for role, (fg, bg) in self.colors.items():
            curses.init_pair(PAIR_NUMBERS[role], fg, default_bg if bg == -1 else bg)

        self.has_colors = True
        self._calendar_pairs.clear()

    def attr(self, role: str) -> int:
        """Curses attribute for a UI role"""
        extra = MODIFIERS.get(role, 0)
        if not self.has_colors:
            # Monochrome fallback
            if role in ('selected', 'today', 'status', 'popup', 'form_active'):
                return curses.A_REVERSE | extra
            return extra
        return curses.color_pair(PAIR_NUMBERS[role]) | extra

    def calendar_attr(self, hex_color: str) -> int:
        """Attribute painting a calendar's color swatch"""
        if not self.has_colors:
            return curses.A_REVERSE

        color = nearest_basic_color(hex_color)
        pair = self._calendar_pairs.get(color)
        if pair is None:
            pair = FIRST_CALENDAR_PAIR + len(self._calendar_pairs)
            curses.init_pair(pair, curses.COLOR_BLACK, color)
            self._calendar_pairs[color] = pair
        return curses.color_pair(pair)
