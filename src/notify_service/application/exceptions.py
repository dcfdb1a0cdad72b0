from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ValidationError(AppError):
    """Malformed input. Rejected synchronously, never retried."""


class FatalProcessingError(AppError):
    """A fan-out job that can never succeed (e.g. its outbox record is gone).

    The queue drops the job instead of retrying it.
    """
