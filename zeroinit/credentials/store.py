"""Per-project credential persistence.

Credentials live in a single YAML file (``~/.zero/credentials.yml`` by
default) mapping project names to their vendor secrets.  The file is written
with ``0600`` permissions.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from zeroinit.errors import CredentialStoreError
from zeroinit.utils import load_yaml, save_yaml


class AWSResourceConfig(BaseModel):
    access_key_id: str = Field(default="")
    secret_access_key: str = Field(default="")


class GithubResourceConfig(BaseModel):
    access_token: str = Field(default="")


class CircleCiResourceConfig(BaseModel):
    api_key: str = Field(default="")


class ProjectCredential(BaseModel):
    """All vendor secrets stored for one project."""
    project_name: str = Field(default="")
    aws: AWSResourceConfig = Field(default_factory=AWSResourceConfig)
    github: GithubResourceConfig = Field(default_factory=GithubResourceConfig)
    circleci: CircleCiResourceConfig = Field(default_factory=CircleCiResourceConfig)


class CredentialStore:
    """Loads and saves ``ProjectCredential`` entries keyed by project name."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            data = load_yaml(self.path)
        except (yaml.YAMLError, ValueError, OSError) as exc:
            raise CredentialStoreError(f"Cannot read credentials from {self.path}: {exc}") from exc
        return data

    def load(self, project_name: str) -> ProjectCredential:
        """Return the stored credential for *project_name*, or an empty one."""
        entry = self._read_all().get(project_name) or {}
        try:
            credential = ProjectCredential.model_validate(entry)
        except ValidationError as exc:
            raise CredentialStoreError(
                f"Stored credentials for {project_name} are invalid: {exc}"
            ) from exc
        return credential.model_copy(update={"project_name": project_name})

    def save(self, credential: ProjectCredential) -> Path:
        """Write *credential*, replacing any previous entry for its project."""
        if not credential.project_name:
            raise CredentialStoreError("Cannot save credentials without a project name")
        data = self._read_all()
        data[credential.project_name] = credential.model_dump(exclude={"project_name"})
        try:
            return save_yaml(data, self.path, mode=0o600)
        except OSError as exc:
            raise CredentialStoreError(f"Cannot write credentials to {self.path}: {exc}") from exc
