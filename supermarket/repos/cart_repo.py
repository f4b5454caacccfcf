# supermarket/repos/cart_repo.py
from typing import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from supermarket.data.models.user_cart import UserCartModel
from supermarket.domain.cart import Cart, clean_cart, is_product_key

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class UserCartRepo:
    """
    Trwaly koszyk uzytkownika - wiersze (user_id, product_id) unikalne.
    Wiersz z iloscia 0 nie istnieje: zamiast zera robimy DELETE.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, user_id: int) -> Cart:
        rows = self.db.execute(
            select(UserCartModel).where(UserCartModel.user_id == user_id)
        ).scalars().all()

        return clean_cart({
            str(r.product_id): {"quantity": r.quantity, "selected": r.selected}
            for r in rows
        })

    def _upsert(self, user_id: int, product_id: int, quantity: int, selected: bool, increment: bool):
        insert_fn = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)

        if insert_fn is not None:
            stmt = insert_fn(UserCartModel).values(
                user_id=user_id, product_id=product_id, quantity=quantity, selected=selected
            )
            new_quantity = UserCartModel.quantity + stmt.excluded.quantity if increment else stmt.excluded.quantity
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "product_id"],
                set_={"quantity": new_quantity, "selected": stmt.excluded.selected},
            )
            self.db.execute(stmt)
            return

        #inne bazy: UPDATE, a gdy nic nie trafil - INSERT
        new_quantity = UserCartModel.quantity + quantity if increment else quantity
        result = self.db.execute(
            update(UserCartModel)
            .where(UserCartModel.user_id == user_id, UserCartModel.product_id == product_id)
            .values(quantity=new_quantity, selected=selected)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.add(UserCartModel(user_id=user_id, product_id=product_id, quantity=quantity, selected=selected))
            self.db.flush()

    def add_item(self, user_id: int, product_id: int, quantity: int = 1):
        # INSERT ... ON CONFLICT DO UPDATE SET quantity = quantity + 1
        self._upsert(user_id, product_id, quantity, selected=True, increment=True)
        self.db.commit()

    def set_quantity(self, user_id: int, product_id: int, quantity: int, selected: bool | None = None):
        if quantity <= 0:
            return self.remove_item(user_id, product_id)

        if selected is None:
            current = self.db.execute(
                select(UserCartModel.selected).where(
                    UserCartModel.user_id == user_id, UserCartModel.product_id == product_id
                )
            ).scalar_one_or_none()
            selected = True if current is None else current

        self._upsert(user_id, product_id, quantity, selected=selected, increment=False)
        self.db.commit()

    def remove_item(self, user_id: int, product_id: int):
        self.remove_items(user_id, [product_id])

    def remove_items(self, user_id: int, product_ids: Iterable[int]):
        ids = [int(p) for p in product_ids]
        if not ids:
            return
        self.db.execute(
            delete(UserCartModel).where(UserCartModel.user_id == user_id, UserCartModel.product_id.in_(ids))
        )
        self.db.commit()

    def clear_cart(self, user_id: int):
        self.db.execute(delete(UserCartModel).where(UserCartModel.user_id == user_id))
        self.db.commit()

    def replace_cart(self, user_id: int, cart: Cart):
        """Clear-then-rewrite w jednej transakcji."""
        try:
            self.db.execute(delete(UserCartModel).where(UserCartModel.user_id == user_id))
            for key, entry in clean_cart(cart).items():
                if not is_product_key(key):
                    continue
                self.db.add(
                    UserCartModel(
                        user_id=user_id,
                        product_id=int(key),
                        quantity=entry["quantity"],
                        selected=entry["selected"],
                    )
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self):
        self.db.rollback()
