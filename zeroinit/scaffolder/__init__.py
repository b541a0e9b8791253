"""zero-init scaffolder -- creates the project directory and its boilerplate.

Quick usage::

    from zeroinit.scaffolder import ProjectGenerator
    from zeroinit.models import ZeroProjectConfig

    generator = ProjectGenerator(ZeroProjectConfig(name="my-project"))
    project_path = await generator.create("/tmp/output")
"""

from zeroinit.scaffolder.generator import (
    PROJECT_CONFIG_FILENAME,
    ProjectGenerator,
    create_project_dir,
)
from zeroinit.scaffolder.templates import TemplateRenderer

__all__ = [
    "PROJECT_CONFIG_FILENAME",
    "ProjectGenerator",
    "TemplateRenderer",
    "create_project_dir",
]
