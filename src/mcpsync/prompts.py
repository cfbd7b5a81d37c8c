# Interactive prompts for mcpsync
import logging
import sys
from typing import Protocol

from mcpsync.models import GLOBAL_CHOICE, ProjectChoice

logger = logging.getLogger(__name__)

# ABOUTME: Terminal codes for interactive UI
CLEAR_SCREEN = "\033[2J\033[H"
BOLD = "\033[1m"
RESET = "\033[0m"
CYAN = "\033[96m"

# ABOUTME: Set by --yes, makes every confirmation answer yes
_assume_yes = False


def set_assume_yes(value: bool) -> None:
    global _assume_yes
    _assume_yes = value


def confirm(message: str) -> bool:
    """Ask a yes/no question, defaulting to no.

    ABOUTME: Returns True without asking when --yes was given
    ABOUTME: Answers no when stdin is not a terminal
    """
    if _assume_yes:
        return True

    if not sys.stdin.isatty():
        logger.warning(f"Cannot ask '{message}' without a terminal, treating as no (use --yes)")
        return False

    try:
        answer = input(f"{message} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def interactive_select(items: list[str], preselected: set[str], title: str) -> list[str]:
    """Terminal-based multi-select without external dependencies.

    ABOUTME: Uses arrow keys, space, and enter for selection
    ABOUTME: Falls back to numbered input where termios is unavailable

    Args:
        items: List of items to select from
        preselected: Set of items that should start selected
        title: Heading shown above the list

    Returns:
        Selected items, in the order they were listed
    """
    if not items:
        return []

    selected: set[str] = set(preselected) & set(items)
    current_idx = 0

    try:
        import termios
        import tty

        def getch() -> str:
            """Get a single character from stdin."""
            fd = sys.stdin.fileno()
            old_settings = termios.tcgetattr(fd)
            try:
                tty.setraw(fd)
                ch = sys.stdin.read(1)
                # Arrow keys arrive as three-byte escape sequences
                if ch == "\x1b":
                    ch += sys.stdin.read(2)
                return ch
            finally:
                termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)

        while True:
            print(CLEAR_SCREEN, end="")
            print(f"{BOLD}{title}{RESET}")
            print()

            for idx, item in enumerate(items):
                prefix = "[x]" if item in selected else "[ ]"
                cursor = f"{CYAN}>>>{RESET} " if idx == current_idx else "    "
                print(f"{cursor}{prefix} {item}")

            print()
            print("Use arrow keys to navigate, space to toggle, enter to confirm.")

            ch = getch()

            if ch == "\x1b[A":
                current_idx = (current_idx - 1) % len(items)
            elif ch == "\x1b[B":
                current_idx = (current_idx + 1) % len(items)
            elif ch == " ":
                current_item = items[current_idx]
                if current_item in selected:
                    selected.remove(current_item)
                else:
                    selected.add(current_item)
            elif ch in ("\r", "\n"):
                break
            elif ch == "\x03":
                print(CLEAR_SCREEN, end="")
                raise KeyboardInterrupt

        print(CLEAR_SCREEN, end="")

    except ImportError:
        print(f"{BOLD}{title}{RESET}")
        print()
        for idx, item in enumerate(items):
            status = " [preselected]" if item in selected else ""
            print(f"  {idx + 1}. {item}{status}")

        print()
        print("Enter comma-separated numbers (e.g., 1,3,5) or press Enter for defaults:")
        user_input = sys.stdin.readline().strip()

        if user_input:
            selected = set()
            try:
                for num_str in user_input.split(","):
                    idx = int(num_str.strip()) - 1
                    if 0 <= idx < len(items):
                        selected.add(items[idx])
            except ValueError:
                print("Invalid input. Using defaults.")
                selected = set(preselected) & set(items)

    return [item for item in items if item in selected]


class Selector(Protocol):
    """Source of the interactive choices a toggle or sync needs."""

    def select_servers(self, names: list[str], message: str) -> list[str]:
        ...

    def select_providers(self, providers: list[str], message: str) -> list[str]:
        ...

    def select_projects(self, provider_name: str, projects: list[str]) -> list[ProjectChoice]:
        ...


class InteractiveSelector:
    """Selector backed by the terminal multi-select."""

    def select_servers(self, names: list[str], message: str) -> list[str]:
        return interactive_select(names, set(), message)

    def select_providers(self, providers: list[str], message: str) -> list[str]:
        return interactive_select(providers, set(providers), message)

    def select_projects(self, provider_name: str, projects: list[str]) -> list[ProjectChoice]:
        """Offer Global plus every known project, Global preselected."""
        choices = [GLOBAL_CHOICE] + [ProjectChoice(path, path) for path in projects]
        labels = [choice.display_name for choice in choices]
        picked = interactive_select(
            labels, {GLOBAL_CHOICE.display_name}, f"Select scopes for {provider_name}:"
        )
        return [choice for choice in choices if choice.display_name in picked]
