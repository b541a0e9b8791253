"""Credential vendor resolution.

Works out which vendors the loaded modules need, builds the questions for
each vendor from the registry (with defaults taken from previously stored
credentials) and writes the answers back into a ``ProjectCredential``.
"""

from __future__ import annotations

from collections.abc import Iterable, MutableMapping

from zeroinit.credentials.store import ProjectCredential
from zeroinit.models import ModuleConfig, Parameter
from zeroinit.prompts.handler import NoCondition, NoValidation, PromptHandler, Prompter
from zeroinit.registry import StackRegistry, default_registry


def required_vendors(modules: Iterable[ModuleConfig]) -> list[str]:
    """Distinct vendors required by *modules*, in first-seen order."""
    vendors: dict[str, None] = {}
    for module in modules:
        for vendor in module.required_credentials:
            vendors.setdefault(vendor, None)
    return list(vendors)


def _get_attr(credential: ProjectCredential, path: str) -> str:
    vendor, attribute = path.split(".", 1)
    return getattr(getattr(credential, vendor), attribute)


def _set_attr(credential: ProjectCredential, path: str, value: str) -> None:
    vendor, attribute = path.split(".", 1)
    setattr(getattr(credential, vendor), attribute, value)


def prompts_for_vendor(
    stored: ProjectCredential,
    vendor: str,
    registry: StackRegistry | None = None,
) -> list[PromptHandler]:
    """Build the prompts for one vendor; unknown vendors get none."""
    registry = registry or default_registry()
    return [
        PromptHandler(
            Parameter(
                field=prompt.field,
                label=prompt.label,
                default=_get_attr(stored, prompt.credential),
                secret=prompt.secret,
            ),
            NoCondition,
            NoValidation,
        )
        for prompt in registry.vendor_prompts(vendor)
    ]


def get_credential_prompts(
    stored: ProjectCredential,
    modules: Iterable[ModuleConfig],
    registry: StackRegistry | None = None,
) -> dict[str, list[PromptHandler]]:
    """Map each required vendor to its prompts, keeping vendor order."""
    return {
        vendor: prompts_for_vendor(stored, vendor, registry)
        for vendor in required_vendors(modules)
    }


def fill_credentials(
    prompts: dict[str, list[PromptHandler]],
    stored: ProjectCredential,
    answers: MutableMapping[str, str],
    prompter: Prompter,
    registry: StackRegistry | None = None,
) -> ProjectCredential:
    """Ask every vendor prompt and return an updated copy of *stored*.

    Vendors absent from *prompts* keep whatever was stored.
    """
    registry = registry or default_registry()
    credential = stored.model_copy(deep=True)
    for vendor, handlers in prompts.items():
        targets = {p.field: p.credential for p in registry.vendor_prompts(vendor)}
        for handler in handlers:
            value = handler.resolve(answers, prompter)
            if value is not None and handler.field in targets:
                _set_attr(credential, targets[handler.field], value)
    return credential
