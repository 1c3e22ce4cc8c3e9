"""Safeguard exception hierarchy.

All exceptions inherit from SafeguardError and carry a three-part structure:
message (what happened), detail (technical context), suggestion (what to do next).
"""


class SafeguardError(Exception):
    """Base exception for all Safeguard errors."""

    def __init__(
        self,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.detail:
            parts.append(f"Detail: {self.detail}")
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return " | ".join(parts)


class InvalidInputError(SafeguardError):
    """Raised when an identifier or classification code is missing or blank."""

    def __init__(
        self,
        message: str = "Invalid input",
        detail: str | None = None,
        suggestion: str | None = "Check identifiers and classification codes",
    ) -> None:
        super().__init__(message, detail, suggestion)


class EstablishmentNotFoundError(SafeguardError):
    """Raised when an establishment cannot be found."""

    def __init__(
        self,
        message: str = "Establishment not found",
        detail: str | None = None,
        suggestion: str | None = "Check the establishment id",
    ) -> None:
        super().__init__(message, detail, suggestion)


class ClassificationNotFoundError(SafeguardError):
    """Raised when a classification code is not in the catalog."""

    def __init__(
        self,
        message: str = "Classification code not found",
        detail: str | None = None,
        suggestion: str | None = "Check the code format (e.g. 0111-3/01)",
    ) -> None:
        super().__init__(message, detail, suggestion)


class ClassificationConflictError(SafeguardError):
    """Raised when catalog get-or-create keeps colliding on the unique code.

    A single collision is expected under concurrency and handled by re-fetching;
    this error means the re-fetch itself failed repeatedly.
    """

    def __init__(
        self,
        message: str = "Could not resolve classification code",
        detail: str | None = None,
        suggestion: str | None = "Retry the operation; check catalog table constraints",
    ) -> None:
        super().__init__(message, detail, suggestion)


class TransactionFailureError(SafeguardError):
    """Raised when the replace-and-recompute unit could not commit.

    Prior state is left intact; the caller may retry.
    """

    def __init__(
        self,
        message: str = "Classification synchronization failed",
        detail: str | None = None,
        suggestion: str | None = "Retry the operation; prior state was preserved",
    ) -> None:
        super().__init__(message, detail, suggestion)


class SyncTimeoutError(TransactionFailureError):
    """Raised when a synchronization exceeds the caller's deadline."""

    def __init__(
        self,
        message: str = "Classification synchronization timed out",
        detail: str | None = None,
        suggestion: str | None = "Retry with a longer timeout; prior state was preserved",
    ) -> None:
        super().__init__(message, detail, suggestion)
