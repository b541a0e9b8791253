"""A uniform model for a single interactive question.

A ``PromptHandler`` couples a ``Parameter`` (field, label, default) with a
condition, evaluated against the answers collected so far, and a validator
applied to whatever the user types.  Handlers move from ``PENDING`` to
``RESOLVED`` exactly once; a handler whose condition is false resolves to
``None`` and leaves no trace in the answers.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from zeroinit.errors import PromptOrderError, ValidationRejected
from zeroinit.models import Parameter
from zeroinit.utils import print_warning


class Prompter(Protocol):
    """The interactive input capability consumed by handlers."""

    def ask(self, label: str, default: str, secret: bool = False) -> str: ...

    def select(self, label: str, options: list[str]) -> tuple[int, str]: ...


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------

class Condition:
    """Decides whether a prompt is asked at all."""

    depends_on: tuple[str, ...] = ()

    def __call__(self, answers: Mapping[str, str]) -> bool:
        raise NotImplementedError


class _Always(Condition):
    def __call__(self, answers: Mapping[str, str]) -> bool:
        return True

    def __repr__(self) -> str:
        return "NoCondition"


NoCondition = _Always()


class KeyMatchCondition(Condition):
    """True when a previous answer for *key* equals *value*."""

    def __init__(self, key: str, value: str) -> None:
        self.key = key
        self.value = value
        self.depends_on = (key,)

    def __call__(self, answers: Mapping[str, str]) -> bool:
        return answers.get(self.key) == self.value

    def __repr__(self) -> str:
        return f"KeyMatchCondition({self.key!r}, {self.value!r})"


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------

class Validator:
    """Accepts or rejects raw user input.

    Subclasses implement ``check`` which raises ``ValidationRejected``;
    calling the validator returns a plain bool.
    """

    def check(self, value: str) -> None:
        raise NotImplementedError

    def __call__(self, value: str) -> bool:
        try:
            self.check(value)
        except ValidationRejected:
            return False
        return True


class _AnyValue(Validator):
    def check(self, value: str) -> None:
        return None

    def __repr__(self) -> str:
        return "NoValidation"


NoValidation = _AnyValue()


class SpecificValueValidation(Validator):
    """Only accepts one of a fixed set of literal strings."""

    def __init__(self, *values: str) -> None:
        if not values:
            raise ValueError("SpecificValueValidation needs at least one value")
        self.values = tuple(values)

    def check(self, value: str) -> None:
        if value not in self.values:
            raise ValidationRejected(value, f"must be one of {', '.join(self.values)}")

    def __repr__(self) -> str:
        return f"SpecificValueValidation{self.values!r}"


class _NonEmpty(Validator):
    def check(self, value: str) -> None:
        if not value.strip():
            raise ValidationRejected(value, "a value is required")

    def __repr__(self) -> str:
        return "NonEmptyValidation"


NonEmptyValidation = _NonEmpty()


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------

class HandlerState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


@dataclass
class PromptHandler:
    """One question, asked at most once."""

    parameter: Parameter
    condition: Condition = NoCondition
    validator: Validator = NoValidation
    state: HandlerState = field(default=HandlerState.PENDING, init=False)
    value: Optional[str] = field(default=None, init=False)

    @property
    def field(self) -> str:
        return self.parameter.field

    @property
    def depends_on(self) -> tuple[str, ...]:
        return self.condition.depends_on

    def resolve(self, answers: MutableMapping[str, str], prompter: Prompter) -> Optional[str]:
        """Ask the question if its condition holds and record the answer.

        Returns the accepted value, or ``None`` when the condition is false
        (in which case nothing is asked and *answers* is untouched).  Input is
        requested again for as long as the validator rejects it.
        """
        if self.state is HandlerState.RESOLVED:
            return self.value

        if self.condition(answers):
            while True:
                raw = prompter.ask(
                    self.parameter.label, self.parameter.default, secret=self.parameter.secret
                )
                try:
                    self.validator.check(raw)
                except ValidationRejected as exc:
                    print_warning(f"  {exc}")
                    continue
                break
            answers[self.field] = raw
            self.value = raw

        self.state = HandlerState.RESOLVED
        return self.value


def check_prompt_order(
    handlers: Iterable[PromptHandler], known: Iterable[str] = ()
) -> None:
    """Ensure every condition only reads answers that can already exist.

    Raises:
        PromptOrderError: If a handler depends on a key that is neither in
            *known* nor the field of an earlier handler.
    """
    available = set(known)
    for handler in handlers:
        missing = [key for key in handler.depends_on if key not in available]
        if missing:
            raise PromptOrderError(
                f"Prompt '{handler.field}' depends on {', '.join(missing)} "
                "which is not asked before it"
            )
        available.add(handler.field)


def resolve_all(
    handlers: list[PromptHandler],
    answers: MutableMapping[str, str],
    prompter: Prompter,
) -> dict[str, Optional[str]]:
    """Resolve *handlers* in declaration order against the shared *answers*.

    Returns:
        Mapping of field to resolved value (``None`` for skipped prompts).
    """
    check_prompt_order(handlers, answers.keys())
    return {handler.field: handler.resolve(answers, prompter) for handler in handlers}
