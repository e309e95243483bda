"""
fio-xsys Utilities
Console formatting, colors, and the shared message helpers used for logging.

Info and success messages go to stdout and can be silenced with set_quiet().
Warnings and errors always go to stderr. All output is serialized through a
single lock because system analyses run on worker threads.
"""

import sys
import threading

# ANSI color codes
COLORS = {
    "HEADER": "\033[95m",
    "BLUE": "\033[94m",
    "CYAN": "\033[96m",
    "GREEN": "\033[92m",
    "YELLOW": "\033[93m",
    "RED": "\033[91m",
    "BOLD": "\033[1m",
    "UNDERLINE": "\033[4m",
    "ENDC": "\033[0m",
}

_output_lock = threading.Lock()
_quiet = False


def set_quiet(quiet):
    """Suppress info/success/header output (warnings and errors still print)."""
    global _quiet
    _quiet = bool(quiet)


def color_text(text, color_name, stream=None):
    """Apply color to text if the target stream is a terminal"""
    stream = stream or sys.stdout
    if stream.isatty() and color_name in COLORS:
        return f"{COLORS[color_name]}{text}{COLORS['ENDC']}"
    return text


def _emit(lines, stream, always=False):
    if _quiet and not always:
        return
    with _output_lock:
        for line in lines:
            print(line, file=stream)
        stream.flush()


def print_header(title):
    """Print a formatted header with separators"""
    separator = "#" * 60
    _emit([
        "",
        color_text(separator, "BLUE"),
        color_text(f"# {title.center(56)} #", "BOLD"),
        color_text(separator, "BLUE"),
        "",
    ], sys.stdout)


def print_subheader(title):
    """Print a subheader with separators"""
    separator = "-" * 60
    _emit([
        "",
        color_text(separator, "CYAN"),
        color_text(f"| {title.center(56)} |", "BOLD"),
        color_text(separator, "CYAN"),
        "",
    ], sys.stdout)


def print_section(title):
    """Print a section separator"""
    separator = "=" * 60
    _emit([
        "",
        color_text(separator, "GREEN"),
        color_text(f" {title} ", "BOLD"),
        color_text(separator, "GREEN"),
        "",
    ], sys.stdout)


def print_warning(message):
    """Print a warning message"""
    _emit([color_text(f"! WARNING: {message}", "YELLOW", sys.stderr)], sys.stderr, always=True)


def print_error(message):
    """Print an error message"""
    _emit([color_text(f"! ERROR: {message}", "RED", sys.stderr)], sys.stderr, always=True)


def print_info(message):
    """Print an informational message"""
    _emit([color_text(f"* {message}", "CYAN")], sys.stdout)


def print_success(message):
    """Print a success message"""
    _emit([color_text(f"✓ {message}", "GREEN")], sys.stdout)


def print_bullet(message, indent=0):
    """Print a bullet point"""
    _emit([" " * indent + color_text(f"• {message}", "ENDC")], sys.stdout)
