# supermarket/repos/order_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from supermarket.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        #bez commita - zamowienie, pozycje i stan magazynu ida w jednej transakcji
        self.db.add(order)
        self.db.flush()
        return order

    def number_exists(self, order_number: str) -> bool:
        return self.db.execute(
            select(OrderModel.id).where(OrderModel.order_number == order_number)
        ).first() is not None

    def get_by_number(self, order_number: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.order_number == order_number)
        ).scalar_one_or_none()

    def list_by_user(self, user_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.id.desc())
            ).scalars().all()
        )

    def mark_paid(self, order_number: str, reference: str | None) -> int:
        # warunek paid = false -> drugie potwierdzenie nic nie zmienia
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.order_number == order_number, OrderModel.paid.is_(False))
            .values(paid=True, payment_reference=reference)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def claim_guest_orders(self, user_id: int, email: str | None, phone: str | None, since: datetime) -> int:
        matches = []
        if email:
            matches.append(func.lower(OrderModel.customer_email) == email.strip().lower())
        if phone:
            matches.append(OrderModel.customer_phone == phone)
        if not matches:
            return 0

        result = self.db.execute(
            update(OrderModel)
            .where(
                OrderModel.user_id.is_(None),
                OrderModel.created_at >= since,
                or_(*matches),
            )
            .values(user_id=user_id)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
