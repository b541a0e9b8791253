"""Shared pytest fixtures for the zero-init test suite.

Provides reusable fixtures for:
- A Config rooted in a temporary directory
- Module source directories with a ``zero-module.yml`` on disk
- A scripted prompter that records every question asked
- Mock subprocess helpers
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from zeroinit.config import Config, FetchConfig
from zeroinit.models import ModuleConfig


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

@pytest.fixture
def zero_config(tmp_path: Path) -> Config:
    """Config whose home, cache and output all live under tmp_path."""
    output = tmp_path / "out"
    output.mkdir()
    return Config(
        output_dir=output,
        zero_home=tmp_path / ".zero",
        verify_identity=False,
        fetch=FetchConfig(max_parallel=2),
    )


# ---------------------------------------------------------------------------
# Module sources on disk
# ---------------------------------------------------------------------------

def _descriptor(
    name: str,
    output_dir: str | None = None,
    credentials: list[str] | None = None,
    parameters: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": name,
        "description": f"{name} module",
        "author": "Commit",
        "requiredCredentials": credentials or [],
        "template": {"strictMode": True, "delimiters": ["<%", "%>"]},
        "parameters": parameters or [],
    }
    if output_dir:
        data["template"]["output"] = output_dir
    return data


@pytest.fixture
def module_source(tmp_path: Path):
    """Factory that writes a module directory and returns its path as a source.

    Usage:
        def test_x(module_source):
            source = module_source("backend", credentials=["github"])
    """
    sources_root = tmp_path / "sources"

    def factory(
        name: str,
        *,
        dirname: str | None = None,
        output_dir: str | None = None,
        credentials: list[str] | None = None,
        parameters: list[dict[str, Any]] | None = None,
        raw: str | None = None,
    ) -> str:
        module_dir = sources_root / (dirname or name)
        module_dir.mkdir(parents=True, exist_ok=True)
        descriptor = module_dir / "zero-module.yml"
        if raw is not None:
            descriptor.write_text(raw, encoding="utf-8")
        else:
            descriptor.write_text(
                yaml.safe_dump(_descriptor(name, output_dir, credentials, parameters)),
                encoding="utf-8",
            )
        (module_dir / "README.md").write_text(f"# {name}\n", encoding="utf-8")
        return str(module_dir)

    return factory


@pytest.fixture
def eks_stack_modules() -> dict[str, ModuleConfig]:
    """Three modules shaped like the default EKS + Go + React stack."""
    infra = ModuleConfig.model_validate(_descriptor(
        "zero-aws-eks-stack",
        output_dir="infrastructure",
        credentials=["aws", "github"],
        parameters=[
            {"field": "region", "label": "Select AWS Region", "options": ["us-east-1", "us-west-2"]},
            {"field": "productionHost", "label": "Production Root Host Name", "default": "example.com"},
        ],
    ))
    backend = ModuleConfig.model_validate(_descriptor(
        "zero-deployable-backend",
        output_dir="backend-service",
        credentials=["github", "circleci"],
        parameters=[
            {"field": "region", "label": "Backend region", "default": "us-east-1"},
            {"field": "productionHost", "label": "Host", "default": ""},
        ],
    ))
    frontend = ModuleConfig.model_validate(_descriptor(
        "zero-deployable-react-frontend",
        output_dir="frontend",
        credentials=["circleci"],
        parameters=[{"field": "productionHost", "label": "Host", "default": ""}],
    ))
    return {m.name: m for m in (infra, backend, frontend)}


# ---------------------------------------------------------------------------
# Scripted prompter
# ---------------------------------------------------------------------------

class ScriptedPrompter:
    """A ``Prompter`` that answers from a script instead of the terminal.

    ``answers`` maps a prompt label to either a single answer or a list of
    answers consumed in order (for re-prompt tests).  Unscripted labels get
    the default.  ``selections`` maps a select label to the option to pick.
    """

    def __init__(
        self,
        answers: dict[str, str | list[str]] | None = None,
        selections: dict[str, str] | None = None,
    ) -> None:
        self.answers = {
            label: list(value) if isinstance(value, list) else [value]
            for label, value in (answers or {}).items()
        }
        self.selections = selections or {}
        self.asked: list[str] = []
        self.secret_labels: list[str] = []
        self.selected: list[str] = []

    def ask(self, label: str, default: str, secret: bool = False) -> str:
        self.asked.append(label)
        if secret:
            self.secret_labels.append(label)
        queue = self.answers.get(label)
        if queue:
            return queue.pop(0) if len(queue) > 1 else queue[0]
        return default

    def select(self, label: str, options: list[str]) -> tuple[int, str]:
        self.selected.append(label)
        choice = self.selections.get(label, options[0])
        return options.index(choice), choice


@pytest.fixture
def scripted_prompter():
    """Factory for ``ScriptedPrompter`` instances."""
    def factory(
        answers: dict[str, str | list[str]] | None = None,
        selections: dict[str, str] | None = None,
    ) -> ScriptedPrompter:
        return ScriptedPrompter(answers, selections)

    return factory


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing git invocations.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
