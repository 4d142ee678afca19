"""
Console front end: banner, section boxes, tables, status lines and prompts.

ASCII-only frames so the output survives cp1252 Windows consoles.
"""

import sys
from typing import Sequence, Tuple

from colorama import Fore, Style

STATUS_COLORS = {
    "[+]": Fore.GREEN,
    "[~]": Fore.CYAN,
    "[>]": Fore.MAGENTA,
    "[?]": Fore.YELLOW,
    "[OK]": Fore.GREEN,
    "[WARN]": Fore.YELLOW,
    "[FAIL]": Fore.RED,
    "[ERROR]": Fore.RED,
}


def _safe_print(text: str = ""):
    """Print text, replacing unencodable chars."""
    try:
        print(text)
    except UnicodeEncodeError:
        print(text.encode("ascii", errors="replace").decode("ascii"))


def print_banner(title: str, subtitle: str, width: int = 60):
    _safe_print()
    _safe_print("+" + "-" * width + "+")
    _safe_print("|" + Style.BRIGHT + title.center(width) + Style.RESET_ALL + "|")
    _safe_print("|" + subtitle.center(width) + "|")
    _safe_print("+" + "-" * width + "+")
    _safe_print()


def print_section(title: str):
    _safe_print()
    _safe_print("+" + "-" * (len(title) + 4) + "+")
    _safe_print(f"|  {Fore.CYAN}{title}{Style.RESET_ALL}  |")
    _safe_print("+" + "-" * (len(title) + 4) + "+")


def print_table(rows: Sequence[Tuple[str, str]]):
    """Two-column table, labels left-aligned and values right-aligned."""
    if not rows:
        return
    left_width = max(len(left) for left, _ in rows)
    right_width = max(len(right) for _, right in rows)
    border = "   +" + "-" * (left_width + right_width + 3) + "+"

    _safe_print(border)
    for left, right in rows:
        _safe_print(f"   | {left.ljust(left_width)} {right.rjust(right_width)} |")
    _safe_print(border)
    _safe_print()


def print_status(prefix: str, message: str):
    color = STATUS_COLORS.get(prefix, "")
    _safe_print(f" {color}{prefix}{Style.RESET_ALL} {message}")


def show_welcome_message():
    print_banner("BDPI TESTER", "Batch connectivity benchmark for ciadpi configs")
    _safe_print("Before starting make sure that:")
    _safe_print("   * the settings file holds the settings you want")
    _safe_print("   * the configs file lists one ciadpi configuration per line")
    _safe_print("   * the domains file lists one domain per line")
    _safe_print("   * the ciadpi executable is available")
    _safe_print()


def confirm_start() -> bool:
    """Wait for Enter; False when the user aborts or stdin is closed."""
    print_status("[>]", "Everything is ready to start testing!")
    _safe_print("   Press Enter to begin or Ctrl+C to cancel...")
    try:
        line = sys.stdin.readline()
    except KeyboardInterrupt:
        return False
    return line != ""
