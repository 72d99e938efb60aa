"""
Webhook Endpoints
Payment provider callbacks. Authenticated by signature, not by JWT.

Author: TM3
Date: 2025-11-07
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from buysell.core.exceptions import AppError
from buysell.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_webhook_service() -> WebhookService:
    return WebhookService()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    service: WebhookService = Depends(get_webhook_service)
):
    raw_body = await request.body()
    try:
        return service.handle_stripe(raw_body, stripe_signature)

    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Stripe webhook failed: {str(e)}")
        raise HTTPException(status_code=500, detail="Error processing webhook")


@router.post("/mobile-money/{provider}")
async def mobile_money_webhook(
    provider: str,
    request: Request,
    x_signature: Optional[str] = Header(None, alias="X-Signature"),
    service: WebhookService = Depends(get_webhook_service)
):
    raw_body = await request.body()
    try:
        return service.handle_mobile_money(provider, raw_body, x_signature)

    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"{provider} webhook failed: {str(e)}")
        raise HTTPException(status_code=500, detail="Error processing webhook")
