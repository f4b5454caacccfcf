# supermarket/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from supermarket.api.deps import get_actor
from supermarket.data.database import get_db
from supermarket.domain.schemas import (
    AddItemIn,
    CartSnapshotOut,
    CartUpdateOut,
    UpdateItemIn,
)
from supermarket.services.cart_service import Actor, CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session, actor: Actor):
    return CartService(db=db, actor=actor)


def _find(snapshot, product_id: str):
    return next((i for i in snapshot["items"] if str(i["product_id"]) == str(product_id).strip()), None)


@router.get("/", response_model=CartSnapshotOut)
def get_cart(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return get_service(db, actor).build_snapshot()


@router.post("/items/{product_id}", response_model=CartUpdateOut)
def add_item(
    product_id: str,
    payload: AddItemIn | None = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    quantity = payload.quantity if payload else 1
    snapshot = get_service(db, actor).add_product(product_id, quantity)
    return {"cart": snapshot, "item": _find(snapshot, product_id)}


@router.put("/items/{product_id}", response_model=CartUpdateOut)
def update_item(
    product_id: str,
    payload: UpdateItemIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    snapshot = get_service(db, actor).set_quantity(product_id, payload.quantity, payload.selected)
    return {"cart": snapshot, "item": _find(snapshot, product_id)}


@router.post("/items/{product_id}/increase", response_model=CartUpdateOut)
def increase_item(product_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    snapshot = get_service(db, actor).increase(product_id)
    return {"cart": snapshot, "item": _find(snapshot, product_id)}


@router.post("/items/{product_id}/decrease", response_model=CartUpdateOut)
def decrease_item(product_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    snapshot = get_service(db, actor).decrease(product_id)
    return {"cart": snapshot, "item": _find(snapshot, product_id)}


@router.delete("/items/{product_id}", response_model=CartUpdateOut)
def remove_item(product_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return {"cart": get_service(db, actor).remove(product_id)}


@router.delete("/", response_model=CartUpdateOut)
def clear_cart(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return {"cart": get_service(db, actor).clear()}
