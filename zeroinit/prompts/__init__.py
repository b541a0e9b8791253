"""Interactive prompts: handler model, conditions, validators and the Rich prompter."""

from zeroinit.prompts.console import RichPrompter
from zeroinit.prompts.handler import (
    Condition,
    HandlerState,
    KeyMatchCondition,
    NoCondition,
    NonEmptyValidation,
    NoValidation,
    PromptHandler,
    Prompter,
    SpecificValueValidation,
    Validator,
    check_prompt_order,
    resolve_all,
)

__all__ = [
    "Condition",
    "HandlerState",
    "KeyMatchCondition",
    "NoCondition",
    "NoValidation",
    "NonEmptyValidation",
    "PromptHandler",
    "Prompter",
    "RichPrompter",
    "SpecificValueValidation",
    "Validator",
    "check_prompt_order",
    "resolve_all",
]
