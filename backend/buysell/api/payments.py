"""
Payments API Endpoints
Payment methods, intents, status polling and refunds

Author: TM3
Date: 2025-11-07
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from buysell.core.auth import TokenUser, get_current_user, require_admin
from buysell.core.exceptions import AppError
from buysell.domain.payment import PaymentIntentCreate, RefundRequest
from buysell.services.payment_service import PaymentService, available_payment_methods

router = APIRouter()


def get_payment_service() -> PaymentService:
    return PaymentService()


@router.get("/methods")
async def get_payment_methods(
    country: str = Query(..., min_length=2, max_length=2, description="ISO country code"),
    amount: Decimal = Query(..., ge=0, description="Amount to pay"),
    currency: str = Query("XOF", description="Currency code")
):
    try:
        return {"status": "success", "data": available_payment_methods(country, amount, currency)}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching payment methods: {str(e)}")


@router.post("/intents", status_code=status.HTTP_201_CREATED)
async def create_payment_intent(
    payload: PaymentIntentCreate,
    user: TokenUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    """
    Start paying an order

    Cash returns immediately with next_action=wait_for_delivery. Mobile
    money and Stripe call the provider and return its next step.
    """
    try:
        result = await service.create_intent(user, payload)
        return {"status": "success", "message": "Payment initiated", "data": result}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating payment: {str(e)}")


@router.get("/order/{order_id}")
async def list_order_payments(
    order_id: int,
    user: TokenUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    try:
        payments = service.list_for_order(order_id, user)
        return {"status": "success", "data": [payment.to_dict() for payment in payments]}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching payments: {str(e)}")


@router.get("/{payment_id}")
async def get_payment_status(
    payment_id: int,
    user: TokenUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    """Unfinished payments are re-checked with the provider"""
    try:
        payment = await service.get_status(payment_id, user)
        return {"status": "success", "data": payment.to_dict()}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching payment: {str(e)}")


@router.post("/{payment_id}/refund")
async def refund_payment(
    payment_id: int,
    payload: Optional[RefundRequest] = Body(None),
    admin: TokenUser = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service)
):
    try:
        result = await service.refund(payment_id, admin, payload or RefundRequest())
        return {"status": "success", "message": "Refund processed", "data": result}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error refunding payment: {str(e)}")


@router.get("/{payment_id}/refunds")
async def list_payment_refunds(
    payment_id: int,
    user: TokenUser = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    try:
        refunds = service.list_refunds(payment_id, user)
        return {"status": "success", "data": [refund.to_dict() for refund in refunds]}

    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error fetching refunds: {str(e)}")
