from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from flashdeck.core.errors import ErrorKind, FlashdeckError, OperationFailedError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """
    Résultat discriminé renvoyé par les opérations de service:
    success=True + data, ou success=False + kind/error (+ details).
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    details: List[Dict[str, Any]] = field(default_factory=list)
    limit_reached: bool = False
    requires_description: bool = False
    status_code: int = 200

    @classmethod
    def ok(cls, data: Optional[T] = None, status_code: int = 200) -> "Result[T]":
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, exc: FlashdeckError) -> "Result[T]":
        return cls(
            success=False,
            error=exc.message,
            kind=exc.kind,
            details=list(getattr(exc, "details", []) or []),
            limit_reached=exc.kind == ErrorKind.limit_reached,
            requires_description=bool(getattr(exc, "requires_description", False)),
            status_code=exc.status_code,
        )


def parse_input(model, payload: Any):
    """
    Valide `payload` avec un modèle pydantic; une entrée par champ invalide.
    """
    try:
        return model.model_validate(payload if payload is not None else {})
    except PydanticValidationError as e:
        raise ValidationError(details=validation_details(e)) from e


def validation_details(e: PydanticValidationError) -> List[Dict[str, Any]]:
    details: List[Dict[str, Any]] = []
    seen = set()
    for err in e.errors():
        name = ".".join(str(p) for p in err.get("loc", ())) or "__root__"
        if name in seen:
            continue
        seen.add(name)
        details.append({"field": name, "message": err.get("msg", "Invalid value")})
    return details


def service_operation(label: str) -> Callable:
    """
    Enveloppe une opération de service `fn(db, ...)`:
    - erreurs métier -> Result.fail
    - erreurs SQLAlchemy -> rollback + OperationFailedError (sans détail interne)
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Result]:
        @functools.wraps(fn)
        def wrapper(db: Session, *args, **kwargs) -> Result:
            try:
                out = fn(db, *args, **kwargs)
            except FlashdeckError as e:
                return Result.fail(e)
            except SQLAlchemyError:
                db.rollback()
                logger.exception("%s failed", label)
                return Result.fail(OperationFailedError(f"Failed to {label}"))
            if isinstance(out, Result):
                return out
            return Result.ok(out)

        return wrapper

    return decorator
