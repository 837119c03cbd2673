"""Typed failures raised by the pet engine, the submission ledger and the scorer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class PetEngineError(Exception):
    """Base class for failures while applying a submission to a pet."""

    step = "unknown"

    def __init__(self, message: str, *, persisted: bool = False, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        # Whether anything from the failed operation reached the store.
        self.persisted = persisted
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "message": self.message, "persisted": self.persisted}


class SubmissionValidationError(PetEngineError):
    step = "validation"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["errors"] = self.errors
        return payload


class LedgerWriteError(PetEngineError):
    step = "ledger_write"


class LedgerIntegrityError(LedgerWriteError):
    """Refused to store a row that violates the ledger's value ranges."""


class HealthUpdateError(PetEngineError):
    step = "health_update"


class CounterIncrementError(PetEngineError):
    step = "counter_increment"


class SubmissionCommitError(PetEngineError):
    step = "commit"


class PetStoreError(PetEngineError):
    """Pet row could not be created or read."""

    step = "pet_store"


class ScorerError(Exception):
    """Credibility scorer failure, tagged with a category for the caller."""

    category = "upstream"

    def __init__(self, message: str, *, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url


class ScorerTimeoutError(ScorerError):
    category = "timeout"


class ScorerRateLimitError(ScorerError):
    category = "rate_limit"


class ScorerResponseError(ScorerError):
    category = "invalid_response"


class ScorerUnavailableError(ScorerError):
    category = "unavailable"
