"""ANSI color codes for terminal output.

All colors use the 256-color palette.

Usage:
    from tether_core.logging.colors import GREEN, RESET

    print(f"{GREEN}Connected{RESET}")
"""

RESET = "\033[0m"

# Status colors
GREEN = "\033[38;5;82m"  # Connected / auth success
RED = "\033[38;5;196m"  # Errors
YELLOW = "\033[38;5;226m"  # Warnings
ORANGE = "\033[38;5;208m"  # OAuth flow prompts

# Informational colors
LIGHT_BLUE = "\033[38;5;153m"  # Context / debug
CYAN = "\033[38;5;51m"  # Info
MAGENTA = "\033[38;5;201m"  # Manager events

__all__ = [
    "RESET",
    "GREEN",
    "RED",
    "YELLOW",
    "ORANGE",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
