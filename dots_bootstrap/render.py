"""
Run summary rendering.

Rows are aligned on display width (wcwidth) so the status symbols, which are
wide or ambiguous-width in many terminals, do not break the columns.
"""

import os
from typing import Any

from wcwidth import wcswidth


USE_COLOR = os.environ.get("DOTS_BOOTSTRAP_COLOR", "1") == "1"

# ANSI color codes
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
RED = "\033[31m"
BOLD = "\033[1m"
RESET = "\033[0m"

# (symbol, label, RunSummary attribute, color)
SUMMARY_ROWS = (
    ("✓", "Already installed", "already_satisfied", GREEN),
    ("✓", "Installed natively", "native_installed", GREEN),
    ("✗", "Native install failed", "native_failed", YELLOW),
    ("✓", "Installed by fallback", "fallback_succeeded", GREEN),
    ("✗", "Fallback failed", "fallback_failed", RED),
    ("?", "No fallback available", "fallback_no_recipe", RED),
    ("⏭", "Skipped (other platform)", "skipped_platform", BLUE),
    ("?", "No native mapping", "unmapped", YELLOW),
    ("⚠", "Unrecognized catalog lines", "unrecognized", YELLOW),
    ("✓", "Session tools installed", "session_installed", GREEN),
    ("✓", "Session tools present", "session_present", GREEN),
    ("✗", "Session tools failed", "session_failed", RED),
    ("🔗", "Stowed", "stowed", GREEN),
    ("⚠", "Stow directories missing", "stow_missing", YELLOW),
    ("✗", "Stow failed", "stow_failed", RED),
)


def display_width(text: str) -> int:
    """Terminal column width of ``text`` (falls back to len for control characters)."""
    width = wcswidth(text)
    return len(text) if width < 0 else width


def pad_right(text: str, width: int) -> str:
    return text + " " * max(0, width - display_width(text))


def colorize(text: str, color: str, use_color: bool | None = None) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code
        use_color: Override the DOTS_BOOTSTRAP_COLOR setting

    Returns:
        Colored text or plain text if colors disabled
    """
    if use_color is None:
        use_color = USE_COLOR
    if not use_color or not text:
        return text
    return f"{color}{text}{RESET}"


def _row_values(summary: Any, attr: str) -> tuple[int, list[str]]:
    value = getattr(summary, attr)
    if isinstance(value, int):
        return value, []
    return len(value), [str(v) for v in value]


def render_summary(summary: Any, use_color: bool | None = None, show_empty: bool = False) -> str:
    """Render a RunSummary as aligned text.

    Args:
        summary: RunSummary to render
        use_color: Override the DOTS_BOOTSTRAP_COLOR setting
        show_empty: Include rows whose count is zero

    Returns:
        Multi-line summary text
    """
    rows = []
    for symbol, label, attr, color in SUMMARY_ROWS:
        count, names = _row_values(summary, attr)
        if count == 0 and not show_empty:
            continue
        rows.append((f"{symbol} {label}", count, names, color))

    title = "Run summary"
    if getattr(summary, "platform", None) is not None:
        title += f" ({summary.platform})"
    lines = [colorize(title, BOLD, use_color)]

    if not rows:
        lines.append("  Nothing to do")
        return "\n".join(lines)

    label_width = max(display_width(label) for label, _, _, _ in rows)
    count_width = max(len(str(count)) for _, count, _, _ in rows)

    for label, count, names, color in rows:
        line = f"  {colorize(pad_right(label, label_width), color, use_color)}  {count:>{count_width}}"
        if names:
            line += f"  {', '.join(names)}"
        lines.append(line)

    return "\n".join(lines)
