# ABOUTME: Unified diff rendering for pending provider config writes.
# ABOUTME: Shown to the user before every confirmation prompt.
import difflib
import sys

RESET = "\033[0m"
RED = "\033[91m"
GREEN = "\033[92m"
CYAN = "\033[96m"


def render_diff(old_text: str, new_text: str, label: str, color: bool = False) -> str:
    """Render a unified diff between two versions of a file.

    Args:
        old_text: Current file content
        new_text: Content about to be written
        label: File name shown in the diff header
        color: Wrap added/removed lines in ANSI colors

    Returns:
        Diff text, empty when the contents are identical
    """
    lines = difflib.unified_diff(
        old_text.splitlines(keepends=True),
        new_text.splitlines(keepends=True),
        fromfile=f"{label} (current)",
        tofile=f"{label} (proposed)",
    )

    rendered: list[str] = []
    for line in lines:
        if not line.endswith("\n"):
            line += "\n"
        if color:
            if line.startswith("+") and not line.startswith("+++"):
                line = f"{GREEN}{line.rstrip(chr(10))}{RESET}\n"
            elif line.startswith("-") and not line.startswith("---"):
                line = f"{RED}{line.rstrip(chr(10))}{RESET}\n"
            elif line.startswith("@@"):
                line = f"{CYAN}{line.rstrip(chr(10))}{RESET}\n"
        rendered.append(line)

    return "".join(rendered)


def show_diff(old_text: str, new_text: str, label: str) -> None:
    """Print a diff to stdout, colored when attached to a terminal."""
    print(render_diff(old_text, new_text, label, color=sys.stdout.isatty()), end="")
