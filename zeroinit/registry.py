"""Stack and credential-vendor registry.

Both tables live in ``registry.yml`` next to this module (or in the file
pointed at by ``Config.registry_path``) and are loaded once into a frozen
``StackRegistry``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from zeroinit.errors import ZeroError
from zeroinit.utils import load_yaml

DEFAULT_REGISTRY_PATH = Path(__file__).parent / "registry.yml"


class VendorPrompt(BaseModel):
    """One credential question for a vendor."""
    model_config = ConfigDict(frozen=True)

    field: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    credential: str = Field(
        ..., pattern=r"^[a-z_]+\.[a-z_]+$", description="<vendor>.<attribute> on ProjectCredential"
    )
    secret: bool = Field(default=False, description="Hide the answer and the stored default")

    @field_validator("credential")
    @classmethod
    def _credential_attribute_exists(cls, value: str) -> str:
        from zeroinit.credentials.store import ProjectCredential

        vendor, attribute = value.split(".", 1)
        vendor_field = ProjectCredential.model_fields.get(vendor)
        if vendor_field is None or not hasattr(vendor_field.annotation, "model_fields"):
            raise ValueError(f"ProjectCredential has no vendor '{vendor}'")
        if attribute not in vendor_field.annotation.model_fields:
            raise ValueError(f"{vendor} credentials have no attribute '{attribute}'")
        return value


class StackRegistry(BaseModel):
    """Immutable view of the available stacks and vendor prompt schemas."""
    model_config = ConfigDict(frozen=True)

    stacks: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    vendors: dict[str, tuple[VendorPrompt, ...]] = Field(default_factory=dict)

    @field_validator("stacks", mode="before")
    @classmethod
    def _none_is_empty_stack(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {label: sources or () for label, sources in value.items()}
        return value

    def labels(self) -> list[str]:
        """Stack labels in the order they appear in the registry file."""
        return list(self.stacks)

    def sources(self, label: str) -> list[str]:
        """Module sources for the stack called *label*."""
        try:
            return list(self.stacks[label])
        except KeyError:
            raise ZeroError(f"Unknown stack: {label}") from None

    def vendor_prompts(self, vendor: str) -> tuple[VendorPrompt, ...]:
        """Prompt schema for *vendor*; empty for vendors we know nothing about."""
        return self.vendors.get(vendor, ())


def load_registry(path: str | Path | None = None) -> StackRegistry:
    """Load and validate a registry file.

    Raises:
        ZeroError: If the file is missing, not YAML, or fails validation.
    """
    registry_path = Path(path) if path else DEFAULT_REGISTRY_PATH
    try:
        data = load_yaml(registry_path)
        return StackRegistry.model_validate(data)
    except FileNotFoundError:
        raise ZeroError(f"Registry file not found: {registry_path}") from None
    except (yaml.YAMLError, ValidationError, ValueError) as exc:
        raise ZeroError(f"Invalid registry file {registry_path}: {exc}") from exc


@lru_cache(maxsize=1)
def default_registry() -> StackRegistry:
    """The packaged registry, loaded once per process."""
    return load_registry(DEFAULT_REGISTRY_PATH)
