"""Jinja2 rendering of the project boilerplate.

The ``.j2`` files in ``templates/`` next to this module receive the assembled
``ZeroProjectConfig`` as ``project``.  Rendering is strict: a template that
references an attribute the model does not have fails loudly.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATE_ROOT = Path(__file__).parent / "templates"


def yaml_quote(value: Any) -> str:
    """Render *value* as a one-line double-quoted YAML scalar (``None`` -> ``""``).

    Control characters come out as YAML escapes so the document always loads back.
    """
    text = "" if value is None else str(value)
    dumped = yaml.safe_dump(text, default_style='"', width=float("inf"), allow_unicode=True)
    return dumped.split("\n", 1)[0]


class TemplateRenderer:
    """Loads boilerplate templates and renders them to disk."""

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir else TEMPLATE_ROOT
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["yaml_str"] = yaml_quote

    def render(self, name: str, context: dict[str, Any]) -> str:
        return self.env.get_template(name).render(**context)

    async def render_to_file(self, name: str, destination: str | Path, context: dict[str, Any]) -> Path:
        """Render template *name* into *destination*, creating parent directories."""
        text = self.render(name, context)
        path = Path(destination)
        await asyncio.to_thread(_write_text, path, text)
        return path

    def list_templates(self) -> list[str]:
        """Every template the loader can see, sorted."""
        return sorted(self.env.list_templates(extensions=["j2"]))


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
