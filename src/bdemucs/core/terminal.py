"""
Terminal Utilities for bdemucs

ANSI color codes and colored logging for terminal output.

Usage:
    from bdemucs.core.terminal import fmt_bold, fmt_error, ColoredFormatter

    logger.info(fmt_bold("Saving multitrack output"))
    logger.error(fmt_error("Error: demucs did not complete successfully"))
"""

import logging
import re


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    ITALIC = '\033[3m'

    RED = '\033[31m'
    YELLOW = '\033[33m'
    WHITE = '\033[37m'
    LIGHT_RED = '\033[91m'
    LIGHT_GREEN = '\033[92m'

    BG_RED = '\033[41m'

    # Semantic aliases
    HEADER = LIGHT_GREEN + BOLD
    ERROR = RED
    NOTICE = ITALIC


ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Remove ANSI color codes from text."""
    return ANSI_ESCAPE.sub("", text)


def color(text: str, color_code: str) -> str:
    """Wrap text with color code and reset."""
    return f"{color_code}{text}{Colors.RESET}"


def fmt_bold(text: str) -> str:
    return color(text, Colors.BOLD)


def fmt_italic(text: str) -> str:
    """Format a notice (skips, non-audio files) in italics."""
    return color(text, Colors.NOTICE)


def fmt_header(text: str) -> str:
    return color(text, Colors.HEADER)


def fmt_error(text: str) -> str:
    return color(text, Colors.ERROR)


class ColoredFormatter(logging.Formatter):
    """Formatter that colors messages by log level and content."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DIM,
        logging.INFO: Colors.RESET,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.LIGHT_RED,
        logging.CRITICAL: Colors.BG_RED + Colors.WHITE,
    }

    def format(self, record):
        level_color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        msg = record.getMessage()

        # Messages already carrying escape codes are left as they are
        if '\033[' not in msg:
            if record.levelno >= logging.ERROR:
                msg = f"{Colors.LIGHT_RED}{msg}{Colors.RESET}"
            elif record.levelno >= logging.WARNING:
                msg = f"{Colors.YELLOW}{msg}{Colors.RESET}"
            elif record.levelno <= logging.DEBUG:
                msg = f"{Colors.DIM}{msg}{Colors.RESET}"
            elif '=====' in msg or '-----' in msg:
                msg = f"{Colors.LIGHT_GREEN}{Colors.BOLD}{msg}{Colors.RESET}"
            elif 'already exists' in msg.lower() or 'skip' in msg.lower():
                msg = f"{Colors.ITALIC}{msg}{Colors.RESET}"

        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"

        timestamp = self.formatTime(record, self.datefmt)
        level = record.levelname
        if record.levelno >= logging.WARNING:
            level = f"{level_color}{level}{Colors.RESET}"

        return f"{Colors.DIM}{timestamp}{Colors.RESET} {level}: {msg}"


class PlainFormatter(logging.Formatter):
    """Formatter for log files: the standard format with color codes removed."""

    def format(self, record):
        return strip_ansi(super().format(record))
