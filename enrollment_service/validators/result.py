from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @staticmethod
    def from_messages(
        errors: Iterable[str], warnings: Iterable[str] = ()
    ) -> ValidationResult:
        errors = tuple(errors)
        return ValidationResult(
            valid=not errors, errors=errors, warnings=tuple(warnings)
        )
