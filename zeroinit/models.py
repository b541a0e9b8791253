"""Pydantic v2 models for module descriptors and the assembled project config.

``ModuleConfig`` mirrors the ``zero-module.yml`` descriptor shipped at the
root of every module.  ``ZeroProjectConfig`` is what the init flow assembles
and writes to ``zero-project.yml``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Module descriptor
# ---------------------------------------------------------------------------

class Parameter(BaseModel):
    """A single value a module asks the user for."""
    field: str = Field(..., min_length=1, description="Key unique within the module")
    label: str = Field(default="", description="Prompt text shown to the user")
    default: str = Field(default="", description="Value used when the user just hits enter")
    options: list[str] = Field(
        default_factory=list, description="If set, the only accepted answers"
    )
    secret: bool = Field(default=False, description="Hide the answer and the default while typing")

    @field_validator("default", mode="before")
    @classmethod
    def _stringify_default(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("options", mode="before")
    @classmethod
    def _stringify_options(cls, value: Any) -> Any:
        # YAML happily turns `- 1` or `- yes` into non-strings.
        if isinstance(value, list):
            return [str(v) for v in value]
        return value

    @model_validator(mode="after")
    def _label_falls_back_to_field(self) -> "Parameter":
        if not self.label:
            self.label = self.field
        return self


class ModuleConfig(BaseModel):
    """Parsed ``zero-module.yml``.

    The YAML uses camelCase keys (``requiredCredentials``) and nests the
    output directory under ``template.output``; both spellings are accepted.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., min_length=1, description="Unique module name")
    description: str = Field(default="")
    author: str = Field(default="")
    output_dir: str = Field(default="", alias="outputDir")
    required_credentials: list[str] = Field(
        default_factory=list, alias="requiredCredentials"
    )
    parameters: list[Parameter] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _lift_template_output(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if data.get("outputDir") or data.get("output_dir"):
            return data
        template = data.get("template")
        if isinstance(template, dict) and template.get("output"):
            return {**data, "outputDir": template["output"]}
        if data.get("name"):
            return {**data, "outputDir": data["name"]}
        return data

    @model_validator(mode="after")
    def _check_fields(self) -> "ModuleConfig":
        seen: set[str] = set()
        for param in self.parameters:
            if param.field in seen:
                raise ValueError(f"parameter field '{param.field}' declared twice")
            seen.add(param.field)
        return self

    def parameter_fields(self) -> set[str]:
        """Return the set of declared parameter field names."""
        return {p.field for p in self.parameters}


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------

class AWSInfrastructure(BaseModel):
    region: str = Field(default="us-east-1")
    account_id: str = Field(default="")


class Infrastructure(BaseModel):
    aws: Optional[AWSInfrastructure] = Field(default=None)


class ModuleFiles(BaseModel):
    directory: str = Field(default="", description="Local directory / repository name")
    repository: str = Field(default="", description="Remote repository, empty when not pushed")


class ProjectModule(BaseModel):
    parameters: dict[str, str] = Field(default_factory=dict)
    files: ModuleFiles = Field(default_factory=ModuleFiles)


class ZeroProjectConfig(BaseModel):
    """The configuration assembled by ``zero-init init``."""
    name: str = Field(default="")
    should_push_repositories: bool = Field(default=True)
    infrastructure: Infrastructure = Field(default_factory=Infrastructure)
    parameters: dict[str, str] = Field(default_factory=dict)
    modules: dict[str, ProjectModule] = Field(default_factory=dict)
