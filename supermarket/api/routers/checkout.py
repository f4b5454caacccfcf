# supermarket/api/routers/checkout.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from supermarket.api.deps import get_actor
from supermarket.data.database import get_db
from supermarket.domain.schemas import (
    CheckoutFormOut,
    CheckoutIn,
    CheckoutOut,
    PaymentCaptureOut,
    PaymentStartIn,
    PaymentStartOut,
)
from supermarket.services.cart_service import Actor
from supermarket.services.checkout_service import CheckoutService

router = APIRouter(prefix="/checkout", tags=["checkout"])


def get_service(db: Session, actor: Actor, request: Request):
    return CheckoutService(db=db, actor=actor, state=request.session)


@router.get("/", response_model=CheckoutFormOut)
def checkout_form(request: Request, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    """
    Dane do formularza: wyceniony koszyk, cennik dostawy i poprzednio
    wyslany formularz (po nieudanej probie).
    """
    return get_service(db, actor, request).checkout_form()


@router.post("/", response_model=CheckoutOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db, actor, request).checkout(payload.model_dump(mode="json"))


@router.post("/payment", response_model=PaymentStartOut)
def start_payment(
    payload: PaymentStartIn,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db, actor, request).start_payment(payload.delivery_method)


@router.post("/payment/{gateway_order_id}/capture", response_model=PaymentCaptureOut)
def capture_payment(
    gateway_order_id: str,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return get_service(db, actor, request).capture_payment(gateway_order_id)
