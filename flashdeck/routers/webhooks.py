from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from svix.webhooks import Webhook, WebhookVerificationError

from flashdeck.core.config import Settings
from flashdeck.core.deps import get_settings_dep
from flashdeck.db.database import get_db
from flashdeck.schemas.users import ProviderUser, WebhookEvent
from flashdeck.services.users import delete_user, upsert_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def verify_event(body: bytes, headers: dict, secret: str) -> WebhookEvent:
    """
    Vérifie la signature svix (id + timestamp + signature) puis parse l'événement.
    Toute anomalie -> 400, sans aucune écriture.
    """
    if not secret:
        logger.error("CLERK_WEBHOOK_SECRET is not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    svix_headers = {h: headers.get(h) for h in SVIX_HEADERS}
    if not all(svix_headers.values()):
        raise HTTPException(status_code=400, detail="Error occurred -- no svix headers")

    try:
        payload = Webhook(secret).verify(body, svix_headers)
    except WebhookVerificationError as e:
        logger.warning("Error verifying webhook: %s", e)
        raise HTTPException(status_code=400, detail="Error occurred")

    if isinstance(payload, (bytes, str)):
        payload = json.loads(payload)

    try:
        return WebhookEvent.model_validate(payload)
    except PydanticValidationError:
        raise HTTPException(status_code=400, detail="Invalid event payload")


@router.post("/clerk")
async def clerk_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    body = await request.body()
    evt = verify_event(body, request.headers, settings.CLERK_WEBHOOK_SECRET)

    if evt.type in ("user.created", "user.updated"):
        try:
            data = ProviderUser.model_validate(evt.data)
        except PydanticValidationError:
            raise HTTPException(status_code=400, detail="Invalid user payload")

        email = data.primary_email()
        if not email:
            return Response("No primary email found", status_code=400)

        _, created = upsert_user(
            db,
            external_id=data.id,
            email=email,
            first_name=data.first_name,
            last_name=data.last_name,
        )
        if created:
            return Response("User created successfully", status_code=201)
        return Response("User updated successfully", status_code=200)

    if evt.type == "user.deleted":
        external_id = evt.data.get("id")
        if not external_id:
            raise HTTPException(status_code=400, detail="Missing user id")
        delete_user(db, str(external_id))
        return Response("User deleted successfully", status_code=200)

    logger.info("Ignoring webhook event %s", evt.type)
    return Response("Webhook received", status_code=200)
