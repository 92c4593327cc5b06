"""
Console Sink - writes the raw message to the terminal

No timestamp and no severity tag: console output is for humans. Colors are
applied only when asked for, otherwise the terminal defaults are kept.
"""

from beartype.typing import Optional, TextIO

import click

from logfanout.constants import FAULT_MAPPING
from logfanout.data_classes.configuration import SinkSwitches
from logfanout.diagnostics import get_logger

logger = get_logger("logfanout.sinks.console")

CLICK_COLORS = {
    "black",
    "red",
    "green",
    "yellow",
    "blue",
    "magenta",
    "cyan",
    "white",
    "bright_black",
    "bright_red",
    "bright_green",
    "bright_yellow",
    "bright_blue",
    "bright_magenta",
    "bright_cyan",
    "bright_white",
    "reset",
}

# Console color names as used by Windows terminals
CONSOLE_COLOR_ALIASES = {
    "darkblue": "blue",
    "darkgreen": "green",
    "darkcyan": "cyan",
    "darkred": "red",
    "darkmagenta": "magenta",
    "darkyellow": "yellow",
    "gray": "white",
    "grey": "white",
    "darkgray": "bright_black",
    "darkgrey": "bright_black",
    "blue": "bright_blue",
    "green": "bright_green",
    "cyan": "bright_cyan",
    "red": "bright_red",
    "magenta": "bright_magenta",
    "yellow": "bright_yellow",
    "white": "bright_white",
}


def normalize_color(color: Optional[str]) -> Optional[str]:
    """
    Turn a user supplied color name into a click color, or None if unknown.

    Lower-case names are taken as click colors ("red", "bright_blue"),
    capitalized names as console colors ("Red" -> "bright_red", "DarkRed" -> "red").
    """
    if color is None or not str(color).strip():
        return None
    color = str(color).strip()
    lowered = color.lower().replace("-", "_")
    if color.islower() and lowered in CLICK_COLORS:
        return lowered
    if lowered in CONSOLE_COLOR_ALIASES:
        return CONSOLE_COLOR_ALIASES[lowered]
    if lowered in CLICK_COLORS:
        return lowered
    return None


class ConsoleSink:
    def __init__(self, switches: SinkSwitches, stream: Optional[TextIO] = None):
        self.switches = switches
        self.stream = stream

    @property
    def enabled(self) -> bool:
        return self.switches.console_enabled

    def _resolve(self, color: Optional[str]) -> Optional[str]:
        resolved = normalize_color(color)
        if color and resolved is None:
            logger.warning(FAULT_MAPPING["unknown_color"].format(color=color))
        return resolved

    def write(
        self,
        message: str,
        foreground_color: Optional[str] = None,
        background_color: Optional[str] = None,
        no_newline: bool = False,
    ) -> bool:
        if not self.enabled:
            return False
        try:
            click.secho(
                message,
                file=self.stream,
                nl=not no_newline,
                fg=self._resolve(foreground_color),
                bg=self._resolve(background_color),
            )
            return True
        except (OSError, ValueError, TypeError) as e:
            logger.warning(FAULT_MAPPING["console_write_failed"].format(error=e))
            return False
