# supermarket/repos/catalog_repo.py
from typing import Iterable, List

from sqlalchemy import case, or_, select, update
from sqlalchemy.orm import Session

from supermarket.data.models.product import ProductModel


class CatalogRepo:
    """
    Dostep do katalogu produktow (cena, stan magazynu).
    Zmiany stanu to pojedyncze atomowe UPDATE - bez read-modify-write.
    Metody zmieniajace stan NIE commituja, transakcja nalezy do wolajacego.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def exists(self, product_id: int) -> bool:
        #bez identity map - swiezy odczyt z bazy
        return self.db.execute(
            select(ProductModel.id).where(ProductModel.id == product_id)
        ).first() is not None

    def get_all(self) -> List[ProductModel]:
        return list(self.db.execute(select(ProductModel).order_by(ProductModel.id)).scalars().all())

    def get_many(self, product_ids: Iterable[int]) -> dict:
        ids = list(product_ids)
        if not ids:
            return {}
        rows = self.db.execute(select(ProductModel).where(ProductModel.id.in_(ids))).scalars().all()
        return {p.id: p for p in rows}

    def get_filtered(self, category: str | None = None, search: str | None = None) -> List[ProductModel]:
        stmt = select(ProductModel)
        if category and category.strip() and category.strip().lower() != "all":
            stmt = stmt.where(ProductModel.category == category.strip())
        if search and search.strip():
            like = f"%{search.strip()}%"
            stmt = stmt.where(or_(ProductModel.name.ilike(like), ProductModel.category.ilike(like)))
        return list(self.db.execute(stmt.order_by(ProductModel.id.desc())).scalars().all())

    def decrement_stock(self, product_id: int, quantity: int, strict: bool = False) -> bool:
        """
        strict=False: odejmij i obetnij do 0 (nigdy ujemny stan).
        strict=True: odejmij tylko gdy stan >= quantity, inaczej nic nie zmieniaj.
        Zwraca True gdy wiersz zostal zaktualizowany.
        """
        if strict:
            stmt = (
                update(ProductModel)
                .where(ProductModel.id == product_id, ProductModel.quantity >= quantity)
                .values(quantity=ProductModel.quantity - quantity)
            )
        else:
            stmt = (
                update(ProductModel)
                .where(ProductModel.id == product_id)
                .values(
                    quantity=case(
                        (ProductModel.quantity > quantity, ProductModel.quantity - quantity),
                        else_=0,
                    )
                )
            )
        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount > 0

    def replenish_stock(self, product_id: int, quantity: int) -> bool:
        # UPDATE products SET quantity = quantity + ? WHERE id = ?
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(quantity=ProductModel.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
