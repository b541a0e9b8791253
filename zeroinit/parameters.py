"""Module parameter prompting and fan-out.

All answers are collected into one flat mapping so a value entered once
(say ``region``) serves every module that declares it.  ``assign_module_parameters``
then projects that mapping back onto each module, keeping only the fields
the module itself declared.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping

from zeroinit.models import ModuleConfig
from zeroinit.prompts.handler import (
    NoCondition,
    NoValidation,
    PromptHandler,
    Prompter,
    SpecificValueValidation,
)


def module_prompt_handlers(module: ModuleConfig) -> list[PromptHandler]:
    """One handler per declared parameter, in declaration order."""
    handlers = []
    for parameter in module.parameters:
        validator = (
            SpecificValueValidation(*parameter.options) if parameter.options else NoValidation
        )
        handlers.append(PromptHandler(parameter, NoCondition, validator))
    return handlers


def prompt_module_params(
    module: ModuleConfig,
    answers: MutableMapping[str, str],
    prompter: Prompter,
) -> MutableMapping[str, str]:
    """Ask for each of *module*'s parameters not already answered.

    Returns the (mutated) *answers* mapping.
    """
    for handler in module_prompt_handlers(module):
        if handler.field in answers:
            continue
        handler.resolve(answers, prompter)
    return answers


def prompt_all_modules(
    modules: Mapping[str, ModuleConfig],
    answers: MutableMapping[str, str],
    prompter: Prompter,
) -> MutableMapping[str, str]:
    """Prompt for every module's parameters, in module load order."""
    for module in modules.values():
        prompt_module_params(module, answers, prompter)
    return answers


def assign_module_parameters(
    modules: Mapping[str, ModuleConfig],
    answers: Mapping[str, str],
) -> dict[str, dict[str, str]]:
    """Re-target the flat *answers* onto each module.

    Every module receives exactly the answered fields it declares; nothing
    answered for another module (or for the project) leaks in.
    """
    assigned: dict[str, dict[str, str]] = {}
    for name, module in modules.items():
        declared = module.parameter_fields()
        assigned[name] = {
            field: value for field, value in answers.items() if field in declared
        }
    return assigned
