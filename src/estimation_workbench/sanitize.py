from __future__ import annotations

import re
from typing import Iterable, TypeVar

from .errors import RequirementValidationError
from .models.bulk_interview import BulkRequirementInput

MAX_PROMPT_LENGTH = 5000
MIN_DESCRIPTION_LENGTH = 15
MAX_DESCRIPTION_LENGTH = 2000
MIN_BULK_DESCRIPTION_LENGTH = 10

_TAG_CHARS = re.compile(r"[<>{}]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

R = TypeVar("R", bound=BulkRequirementInput)


def sanitize_prompt_input(text: str | None) -> str:
    if not text:
        return ""
    cleaned = _TAG_CHARS.sub("", text)
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    return cleaned[:MAX_PROMPT_LENGTH].strip()


def validate_description(description: str, tech_category: str | None) -> str:
    """Sanitise a single requirement description and check its bounds."""
    sanitized = sanitize_prompt_input(description)
    if len(sanitized) < MIN_DESCRIPTION_LENGTH:
        raise RequirementValidationError(
            f"The description must contain at least {MIN_DESCRIPTION_LENGTH} characters."
        )
    if len(sanitized) > MAX_DESCRIPTION_LENGTH:
        raise RequirementValidationError(
            f"The description is too long (max {MAX_DESCRIPTION_LENGTH} characters)."
        )
    if not tech_category:
        raise RequirementValidationError("A technology category is required.")
    return sanitized


def validate_bulk_requirements(requirements: Iterable[R], tech_category: str | None) -> list[R]:
    """Sanitise a batch and keep the requirements with a usable description."""
    if not tech_category:
        raise RequirementValidationError("A technology category is required.")
    valid: list[R] = []
    for requirement in requirements:
        description = sanitize_prompt_input(requirement.description)
        if len(description) < MIN_BULK_DESCRIPTION_LENGTH:
            continue
        valid.append(
            requirement.model_copy(
                update={
                    "description": description,
                    "title": sanitize_prompt_input(requirement.title),
                }
            )
        )
    if not valid:
        raise RequirementValidationError(
            "No valid requirement. Each requirement needs at least "
            f"{MIN_BULK_DESCRIPTION_LENGTH} characters of description."
        )
    return valid


__all__ = [
    "MAX_DESCRIPTION_LENGTH",
    "MIN_BULK_DESCRIPTION_LENGTH",
    "MIN_DESCRIPTION_LENGTH",
    "sanitize_prompt_input",
    "validate_bulk_requirements",
    "validate_description",
]
