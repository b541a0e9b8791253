"""Project directory creation and boilerplate emission.

Only two files are written: ``zero-project.yml`` (the assembled project
configuration, without secrets) and ``.gitignore``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from zeroinit.errors import DirectoryExistsError, ZeroError
from zeroinit.models import ZeroProjectConfig

from .templates import TemplateRenderer

PROJECT_CONFIG_FILENAME = "zero-project.yml"

_BOILERPLATE: tuple[tuple[str, str], ...] = (
    ("zero-project.yml.j2", PROJECT_CONFIG_FILENAME),
    ("gitignore.j2", ".gitignore"),
)


def create_project_dir(project_name: str, output_dir: str | Path) -> Path:
    """Create ``<output_dir>/<project_name>``; refuse to reuse an existing one.

    Raises:
        DirectoryExistsError: If the directory is already there.
        ZeroError: On an empty name or any other file-system failure.
    """
    if not project_name.strip():
        raise ZeroError("Project name cannot be empty!")

    root = Path(output_dir) / project_name
    try:
        root.mkdir(parents=True, exist_ok=False)
    except FileExistsError:
        raise DirectoryExistsError(str(root)) from None
    except OSError as exc:
        raise ZeroError(f"Error creating root {root}: {exc}") from exc
    return root


class ProjectGenerator:
    """Writes the boilerplate for a ``ZeroProjectConfig``."""

    def __init__(
        self, project: ZeroProjectConfig, renderer: TemplateRenderer | None = None
    ) -> None:
        self.project = project
        self.renderer = renderer or TemplateRenderer()

    def _build_context(self) -> dict[str, Any]:
        return {"project": self.project}

    async def write_boilerplate(self, root: str | Path) -> list[Path]:
        """Render every boilerplate template into *root*.

        Returns:
            The written file paths, project config first.
        """
        context = self._build_context()
        written: list[Path] = []
        for template, filename in _BOILERPLATE:
            path = await self.renderer.render_to_file(template, Path(root) / filename, context)
            written.append(path)
        return written

    async def create(self, output_dir: str | Path) -> Path:
        """Create the project directory and write the boilerplate into it."""
        root = create_project_dir(self.project.name, output_dir)
        await self.write_boilerplate(root)
        return root
