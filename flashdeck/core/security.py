from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.security.api_key import APIKeyHeader
from starlette.status import HTTP_401_UNAUTHORIZED

from flashdeck.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)
api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)


@dataclass(frozen=True)
class Identity:
    """
    Identité résolue à partir du token du fournisseur d'identité.
    `external_id` est opaque (claim `sub`).
    """

    external_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    plan: str = "free"
    features: FrozenSet[str] = field(default_factory=frozenset)


def _strip_scope(value: str) -> str:
    # claims Clerk: "u:pro", "u:unlimited_decks"
    value = value.strip()
    if ":" in value:
        return value.split(":", 1)[1]
    return value


def decode_token(token: str, settings: Settings) -> dict:
    options = {"require": ["sub"]}
    return jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=[settings.AUTH_JWT_ALGORITHM],
        audience=settings.AUTH_JWT_AUDIENCE,
        issuer=settings.AUTH_JWT_ISSUER,
        options=options,
    )


def identity_from_claims(claims: dict) -> Identity:
    raw_features = claims.get("fea") or claims.get("features") or []
    if isinstance(raw_features, str):
        raw_features = raw_features.split(",")
    features = frozenset(_strip_scope(f) for f in raw_features if f and f.strip())

    plan = _strip_scope(str(claims.get("pla") or claims.get("plan") or "free")) or "free"

    return Identity(
        external_id=str(claims["sub"]),
        email=claims.get("email"),
        first_name=claims.get("first_name"),
        last_name=claims.get("last_name"),
        plan=plan,
        features=features,
    )


def get_optional_identity(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    settings: Settings = Depends(get_settings),
) -> Optional[Identity]:
    """
    Renvoie l'identité de l'appelant, ou None si le token est absent/invalide.
    Les services décident eux-mêmes de l'erreur (UnauthenticatedError).
    """
    if not creds:
        return None
    try:
        claims = decode_token(creds.credentials, settings)
    except jwt.PyJWTError as e:
        logger.info("Rejected bearer token: %s", e)
        return None
    return identity_from_claims(claims)


def get_api_key(
    api_key: str = Security(api_key_header),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Vérifie que la clé API envoyée dans l'en-tête est correcte.
    """
    if api_key and api_key == settings.ADMIN_API_KEY:
        return api_key
    raise HTTPException(
        status_code=HTTP_401_UNAUTHORIZED,
        detail="API Key invalide",
    )
