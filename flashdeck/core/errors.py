from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    validation = "validation"
    unauthenticated = "unauthenticated"
    user_not_found = "user_not_found"
    not_found_or_denied = "not_found_or_denied"
    ownership = "ownership"
    limit_reached = "limit_reached"
    empty_deck = "empty_deck"
    premature_answer = "premature_answer"
    session_complete = "session_complete"
    operation_failed = "operation_failed"
    persistence = "persistence"


class FlashdeckError(Exception):
    """
    Base des erreurs métier. `kind` sert de discriminant dans les résultats,
    `status_code` au mapping HTTP dans les routers.
    """

    kind: ErrorKind = ErrorKind.operation_failed
    status_code: int = 500
    default_message: str = "Operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FlashdeckError):
    kind = ErrorKind.validation
    status_code = 422
    default_message = "Validation failed"

    def __init__(
        self,
        details: Optional[List[Dict[str, Any]]] = None,
        message: Optional[str] = None,
        requires_description: bool = False,
    ):
        super().__init__(message)
        self.details = details or []
        self.requires_description = requires_description


class UnauthenticatedError(FlashdeckError):
    kind = ErrorKind.unauthenticated
    status_code = 401
    default_message = "Unauthorized"


class UserNotFoundError(FlashdeckError):
    kind = ErrorKind.user_not_found
    status_code = 404
    default_message = "User not found"


class NotFoundOrDeniedError(FlashdeckError):
    # absence et refus volontairement confondus
    kind = ErrorKind.not_found_or_denied
    status_code = 404
    default_message = "Not found or access denied"


class OwnershipError(FlashdeckError):
    kind = ErrorKind.ownership
    status_code = 404
    default_message = "Deck not found or access denied"


class LimitReachedError(FlashdeckError):
    kind = ErrorKind.limit_reached
    status_code = 403
    default_message = "Deck limit reached. Upgrade to Pro for unlimited decks."


class EmptyDeckError(FlashdeckError):
    kind = ErrorKind.empty_deck
    status_code = 400
    default_message = "Cannot study an empty deck"


class PrematureAnswerError(FlashdeckError):
    kind = ErrorKind.premature_answer
    status_code = 409
    default_message = "Reveal the answer before grading the card"


class SessionCompleteError(FlashdeckError):
    kind = ErrorKind.session_complete
    status_code = 409
    default_message = "Study session is already complete"


class OperationFailedError(FlashdeckError):
    kind = ErrorKind.operation_failed
    status_code = 500
    default_message = "Operation failed, please try again"


class PersistenceError(FlashdeckError):
    kind = ErrorKind.persistence
    status_code = 500
    default_message = "Failed to save study session, please try again"
