"""
Noteful Backend — Input & Ownership Checks
===========================================

What:  Small pure functions that each inspect one aspect of a request and
       return a tagged `CheckResult`, plus `enforce()` which runs them in
       order and raises the first failure.
Why:   Every check here can run before the store is touched. Keeping them
       pure (no session, no I/O) makes each one trivially unit-testable, and
       the order they are listed in is the order the client sees errors in.

Usage:
    enforce(
        require_owner(owner_id),
        require_text(body.title, "title", "missing title"),
        check_id_format(body.folder_id, "folderId", allow_empty=True),
        check_same_owner(body.owner_id, owner_id, "Cannot create a note on behalf of another user"),
    )

Ownership of referenced folders/tags needs the store and lives in
`noteful.services.ownership`, which returns the same `CheckResult` type.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from noteful.exceptions import (
    AuthenticationError,
    ForbiddenError,
    NotefulError,
    ValidationError,
)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check: `error` is None when the check passed."""
    error: Optional[NotefulError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


PASSED = CheckResult()


def failed(error: NotefulError) -> CheckResult:
    return CheckResult(error=error)


def enforce(*results: CheckResult) -> None:
    """Raises the first failed result, in argument order."""
    for result in results:
        if not result.ok:
            raise result.error


# ── Identifier helpers ───────────────────────────────────────────────────

def parse_id(value: Any) -> Optional[uuid.UUID]:
    """Returns the UUID for a well-formed id, else None."""
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def is_valid_id(value: Any) -> bool:
    return parse_id(value) is not None


def require_id(value: Any, field: str = "id") -> uuid.UUID:
    """Parses an id or raises ValidationError("invalid id")."""
    parsed = parse_id(value)
    if parsed is None:
        raise ValidationError(message="invalid id", field=field, context={"value": str(value)})
    return parsed


def unique_ids(values: Iterable[uuid.UUID]) -> List[uuid.UUID]:
    """De-duplicates while keeping first-seen order."""
    seen = set()
    out = []
    for value in values:
        if value not in seen:
            seen.add(value)
            out.append(value)
    return out


# ── Checks ───────────────────────────────────────────────────────────────

def require_owner(owner_id: Optional[uuid.UUID]) -> CheckResult:
    """The engine never runs without a trusted owner identity."""
    if owner_id is None:
        return failed(AuthenticationError(message="A trusted owner identity is required"))
    return PASSED


def require_text(value: Optional[str], field: str, message: str) -> CheckResult:
    if not value:
        return failed(ValidationError(message=message, field=field))
    return PASSED


def check_id_format(value: Optional[str], field: str, allow_empty: bool = False) -> CheckResult:
    """
    Absent is fine. Empty string is fine only where it means "no reference"
    (`folderId`).
    """
    if value is None:
        return PASSED
    if value == "" and allow_empty:
        return PASSED
    if not is_valid_id(value):
        return failed(ValidationError(message="invalid id", field=field, context={"value": value}))
    return PASSED


def check_id_list_format(values: Optional[List[str]], field: str) -> CheckResult:
    if not values:
        return PASSED
    bad = [value for value in values if not is_valid_id(value)]
    if bad:
        return failed(ValidationError(message="invalid id", field=field, context={"invalid_ids": bad}))
    return PASSED


def check_same_owner(
    claimed_owner: Optional[str],
    owner_id: Optional[uuid.UUID],
    message: str,
) -> CheckResult:
    """
    A body may repeat the caller's own id as owner; any other value is an
    attempt to act for (or transfer to) someone else.
    """
    if not claimed_owner:
        return PASSED
    if parse_id(claimed_owner) != owner_id:
        return failed(ForbiddenError(message=message, context={"claimed_owner": claimed_owner}))
    return PASSED


def check_password(password: str) -> CheckResult:
    if not 8 <= len(password) <= 72:
        return failed(
            ValidationError(
                message="`password` must be between 8 and 72 characters long",
                field="password",
            )
        )
    return PASSED


def check_no_surrounding_whitespace(value: str, field: str) -> CheckResult:
    if value.strip() != value:
        return failed(
            ValidationError(
                message=f"`{field}` must not have leading/trailing whitespace",
                field=field,
            )
        )
    return PASSED
