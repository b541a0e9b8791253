"""Console output and small helpers shared across zero-init.

Everything the user sees goes through the single ``console`` defined here:
step rules, the closing summary, status lines and the fetch spinner.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.rule import Rule
from rich.table import Table

console = Console()

_UNSAFE_CHARS = re.compile(r"[^a-z0-9_-]+")


# ---------------------------------------------------------------------------
# Names and secrets
# ---------------------------------------------------------------------------

def sanitize_name(name: str) -> str:
    """Turn a module source or stack label into a directory-friendly slug.

    Examples::

        sanitize_name("github.com/commitdev/zero-aws-eks-stack")
            -> "github-com-commitdev-zero-aws-eks-stack"
        sanitize_name("  EKS + Go  ") -> "eks-go"
    """
    slug = _UNSAFE_CHARS.sub("-", name.strip().lower())
    return re.sub(r"-{2,}", "-", slug).strip("-")


def mask_secret(value: str, visible: int = 4) -> str:
    """Hide all but the last *visible* characters of a secret."""
    hidden = len(value) - visible if len(value) > visible else len(value)
    return "*" * hidden + value[hidden:]


# ---------------------------------------------------------------------------
# YAML
# ---------------------------------------------------------------------------

def load_yaml(path: str | Path) -> dict[str, Any]:
    """Read a YAML document whose top level must be a mapping.

    An empty document yields ``{}``.

    Raises:
        FileNotFoundError: If *path* is missing.
        yaml.YAMLError: If the text is not YAML.
        ValueError: If the document is a list or scalar.
    """
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if data is None:
        return {}
    if isinstance(data, dict):
        return data
    raise ValueError(f"Expected a mapping at the top of {path}, got {type(data).__name__}")


def save_yaml(data: dict[str, Any], path: str | Path, mode: int | None = None) -> Path:
    """Dump *data* as block YAML, keeping key order.

    ``mode`` (e.g. ``0o600``) is applied once the file is written.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(
        yaml.safe_dump(data, default_flow_style=False, sort_keys=False), encoding="utf-8"
    )
    if mode is not None:
        target.chmod(mode)
    return target


def format_duration(seconds: float) -> str:
    """``3.7`` -> ``"3.7s"``, ``65.2`` -> ``"1m 5s"``, ``3661`` -> ``"1h 1m 1s"``."""
    if seconds < 60:
        return f"{max(seconds, 0.0):.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


# ---------------------------------------------------------------------------
# Step output
# ---------------------------------------------------------------------------

STEP_NAMES: dict[int, str] = {
    1: "PROJECT",
    2: "STACK",
    3: "MODULES",
    4: "PROJECT PROMPTS",
    5: "CREDENTIALS",
    6: "PARAMETERS",
    7: "WRITE",
}

STEP_COLORS: dict[int, str] = {
    1: "bright_cyan",
    2: "bright_green",
    3: "bright_yellow",
    4: "bright_magenta",
    5: "bright_red",
    6: "bright_blue",
    7: "bright_white",
}


def print_step_header(step: int, name: str) -> None:
    """Print a full-width rule announcing an init step."""
    color = STEP_COLORS.get(step, "white")
    console.print()
    console.print(Rule(f"[bold {color}] Step {step}: {name.upper()} [/bold {color}]", style=color))
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Render *data* as a two-column table."""
    table = Table(title=title, header_style="bold cyan")
    table.add_column("Setting", style="dim", no_wrap=True)
    table.add_column("Value")
    for setting, value in data.items():
        table.add_row(setting, str(value))
    console.print(table)
    console.print()


def _status(style: str, message: str) -> None:
    console.print(f"[{style}]{escape(message)}[/{style}]")


def print_success(message: str) -> None:
    _status("bold green", message)


def print_error(message: str) -> None:
    _status("bold red", message)


def print_warning(message: str) -> None:
    _status("bold yellow", message)


def create_progress() -> Progress:
    """Spinner display used while modules are being fetched."""
    return Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )
