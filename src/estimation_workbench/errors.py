from __future__ import annotations


class EstimationError(Exception):
    """Base class for errors raised by the estimation workbench."""


class RequirementValidationError(EstimationError):
    """Input rejected before any collaborator is called."""


class CollaboratorError(EstimationError):
    """An AI or catalog collaborator failed or answered with garbage."""


class InterviewBusyError(EstimationError):
    """A network-bound interview action is already in flight."""

    def __init__(self, phase: str) -> None:
        super().__init__(f"Interview is busy (phase: {phase})")
        self.phase = phase


__all__ = [
    "CollaboratorError",
    "EstimationError",
    "InterviewBusyError",
    "RequirementValidationError",
]
