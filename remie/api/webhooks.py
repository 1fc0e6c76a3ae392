import json
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.schemas.common import MessageResponse
from remie.schemas.paystack import PaystackWebhookEvent
from remie.services.paystack_service import PaystackService
from remie.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/paystack", response_model=MessageResponse, status_code=status.HTTP_200_OK)
async def paystack_webhook(
        request: Request,
        db: Session = Depends(get_db),
):
    """
    Paystack webhook endpoint.

    Security:
    - Validates the Paystack signature (HMAC SHA512 of the raw body).

    Once the signature checks out the endpoint always answers 200 so
    Paystack stops retrying; processing errors are logged instead.
    """
    body = await request.body()
    signature = request.headers.get("x-paystack-signature")

    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing signature"
        )

    if not PaystackService.verify_webhook_signature(body, signature):
        logger.warning("Rejected Paystack webhook with bad signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )

    try:
        event = PaystackWebhookEvent.model_validate(json.loads(body))
        WebhookService.process_event(db, event.event, event.data)
    except (json.JSONDecodeError, ValidationError):
        logger.warning("Malformed Paystack webhook payload")
    except Exception:
        db.rollback()
        logger.exception("Paystack webhook processing failed")

    return MessageResponse(message="Webhook processed")
