"""
Error taxonomy for the finboard core.

Every core operation either returns a complete new value or raises one
of these before touching anything. Callers (the view layer) decide how
to present them; the exception only says which precondition failed.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from finboard.models.common import ValidationIssue


class FinboardError(Exception):
    """Base exception for finboard operations."""
    pass


class ValidationError(FinboardError):
    """
    Input rejected before any mutation.

    Raised for zero or non-finite amounts, withdrawals without a reason,
    and malformed form input. `issues` lists every problem found so a
    form can show them all at once.
    """

    def __init__(
        self,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ):
        super().__init__(message)
        self.issues: list[ValidationIssue] = list(issues or [])

    @classmethod
    def for_field(
        cls,
        field: str,
        message: str,
        issue_type: str = "invalid_value",
        suggested_fix: Optional[str] = None,
    ) -> "ValidationError":
        return cls(
            message,
            issues=[
                ValidationIssue(
                    field=field,
                    issue_type=issue_type,
                    message=message,
                    suggested_fix=suggested_fix,
                )
            ],
        )

    @classmethod
    def from_pydantic(
        cls,
        exc: PydanticValidationError,
        message: str = "Invalid input",
    ) -> "ValidationError":
        """Translate a pydantic error into one issue per failing field."""
        issues = []
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ())) or "input"
            issues.append(
                ValidationIssue(
                    field=field,
                    issue_type="missing" if error.get("type") == "missing" else "invalid_value",
                    message=error.get("msg", "Invalid value"),
                )
            )
        return cls(message, issues=issues)

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]


class NotFoundError(FinboardError):
    """Referenced entity (goal, pending withdrawal, recurring payment) does not exist."""
    pass


class InternalError(FinboardError):
    """An invariant of the core itself was broken (e.g. an empty challenge pool)."""
    pass
