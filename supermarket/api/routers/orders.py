# supermarket/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from supermarket.api.deps import get_actor, require_user
from supermarket.data.database import get_db
from supermarket.domain.schemas import ConfirmPaymentIn, ReceiptOut
from supermarket.services.cart_service import Actor
from supermarket.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.get("/", response_model=List[ReceiptOut])
def list_orders(actor: Actor = Depends(require_user), db: Session = Depends(get_db)):
    """
    Zamówienia zalogowanego użytkownika (razem z przypisanymi zamówieniami gościa).
    """
    return get_service(db).list_orders(actor.user_id)


@router.get("/{order_number}", response_model=ReceiptOut)
def get_receipt(
    order_number: str,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """
    Paragon - tylko z tej sesji, dla właściciela albo admina.
    """
    return get_service(db).get_receipt(order_number, actor, request.session)


@router.post("/{order_number}/confirm-payment", response_model=ReceiptOut)
def confirm_payment(
    order_number: str,
    request: Request,
    payload: ConfirmPaymentIn | None = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    #ten sam warunek dostępu co przy paragonie
    svc.get_receipt(order_number, actor, request.session)

    receipt = svc.confirm_payment(order_number, payload.reference if payload else None)

    last = request.session.get("last_order")
    if last and last.get("order_number") == order_number:
        request.session["last_order"] = receipt
    return receipt
