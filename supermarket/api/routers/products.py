# supermarket/api/routers/products.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from supermarket.api.deps import require_admin
from supermarket.data.database import get_db
from supermarket.domain.cart import parse_product_id
from supermarket.domain.errors import NotFoundError
from supermarket.domain.schemas import ProductOut, ReplenishIn
from supermarket.repos.catalog_repo import CatalogRepo
from supermarket.services.cart_service import Actor
from supermarket.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/", response_model=List[ProductOut])
def list_products(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    repo = CatalogRepo(db)
    if not category and not search:
        return repo.get_all()
    return repo.get_filtered(category=category, search=search)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    product = CatalogRepo(db).get_by_id(parse_product_id(product_id))
    if not product:
        raise NotFoundError("Produkt nie istnieje", code="product_not_found")
    return product


@router.post("/{product_id}/replenish", response_model=ProductOut)
def replenish_product(
    product_id: str,
    payload: ReplenishIn,
    actor: Actor = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Uzupelnienie stanu - atomowy UPDATE quantity = quantity + n.
    """
    repo = CatalogRepo(db)
    pid = parse_product_id(product_id)

    if not repo.replenish_stock(pid, payload.quantity):
        repo.rollback()
        raise NotFoundError("Produkt nie istnieje", code="product_not_found")
    repo.commit()

    logger.info(f"Admin {actor.user_id} uzupelnil produkt {pid} o {payload.quantity} szt.")
    return repo.get_by_id(pid)
