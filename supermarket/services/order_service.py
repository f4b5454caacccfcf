# supermarket/services/order_service.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, MutableMapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supermarket.data.models.order import OrderModel
from supermarket.domain.errors import NotFoundError, PersistenceError
from supermarket.repos.order_repo import OrderRepo
from supermarket.services.cart_service import Actor
from supermarket.utils.settings import GUEST_ORDER_CLAIM_DAYS
from supermarket.utils.logging import get_logger

logger = get_logger(__name__)


def _money(value) -> str:
    return str(Decimal(str(value or 0)).quantize(Decimal("0.01")))


def order_to_receipt(order: OrderModel, saved: bool = True) -> Dict[str, Any]:
    """Paragon w postaci gotowej do JSON i do trzymania w sesji."""
    created_at = order.created_at
    return {
        "order_number": order.order_number,
        "user_id": order.user_id,
        "subtotal": _money(order.subtotal),
        "delivery_fee": _money(order.delivery_fee),
        "total": _money(order.total),
        "delivery_method": order.delivery_method,
        "payment_method": order.payment_method,
        "payment_reference": order.payment_reference,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "paid": bool(order.paid),
        "status": order.status,
        "created_at": created_at.isoformat() if created_at else None,
        "saved": saved,
        "items": [
            {
                "product_id": i.product_id,
                "name": i.name,
                "price": _money(i.price),
                "quantity": i.quantity,
                "subtotal": _money(i.subtotal),
            }
            for i in order.items
        ],
    }


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień po ich utworzeniu:
    paragon, potwierdzenie platnosci, przypisanie zamowien goscia.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)

    def _load(self, order_number: str) -> OrderModel | None:
        try:
            return self.repo.get_by_number(order_number)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Blad bazy przy pobieraniu zamowienia {order_number}: {e}")
            raise PersistenceError("Blad polaczenia z baza, sprobuj ponownie")

    def get_receipt(self, order_number: str, actor: Actor, state: MutableMapping) -> Dict[str, Any]:
        """
        Use Case: Pobranie paragonu (Query).
        Dostep: zamowienie z tej sesji, wlasciciel konta albo admin.
        Obcy numer zamowienia -> NotFound (nie zdradzamy ze istnieje).
        """
        last = state.get("last_order")
        from_session = bool(last) and last.get("order_number") == order_number

        if from_session and not last.get("saved", True):
            #zamowienie nie trafilo do bazy - paragon tylko z sesji
            return last

        order = self._load(order_number)
        if not order:
            if from_session:
                return last
            raise NotFoundError("Zamowienie nie istnieje", code="order_not_found")

        owner = actor.authenticated and order.user_id == actor.user_id
        if not (from_session or owner or actor.is_admin):
            raise NotFoundError("Zamowienie nie istnieje", code="order_not_found")

        return order_to_receipt(order)

    def confirm_payment(self, order_number: str, reference: str | None = None) -> Dict[str, Any]:
        """
        Use Case: Potwierdzenie platnosci (metody offline / zewnetrzne).
        Idempotentne: ponowne potwierdzenie oplaconego zamowienia nic nie zmienia.
        """
        order = self._load(order_number)
        if not order:
            raise NotFoundError("Zamowienie nie istnieje", code="order_not_found")

        if order.paid:
            logger.info(f"Zamowienie {order_number} juz oplacone, pomijam")
            return order_to_receipt(order)

        try:
            updated = self.repo.mark_paid(order_number, reference)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Nie udalo sie oznaczyc zamowienia {order_number} jako oplacone: {e}", exc_info=True)
            raise PersistenceError("Nie udalo sie potwierdzic platnosci, sprobuj ponownie")

        logger.info(f"Zamowienie {order_number} oplacone (ref: {reference}, zmienionych: {updated})")

        self.db.refresh(order)
        return order_to_receipt(order)

    def claim_guest_orders(
        self,
        user_id: int,
        email: str | None,
        phone: str | None,
        now: datetime | None = None,
        days: int | None = None,
    ) -> int:
        """
        Przypisuje swieze zamowienia goscia (user_id NULL) do logujacego sie
        uzytkownika po zgodnym emailu lub telefonie.
        To heurystyka, nie dowod wlasnosci - kontakt moze byc wpisany przez kogokolwiek.
        """
        now = now or datetime.now(timezone.utc)
        window = GUEST_ORDER_CLAIM_DAYS if days is None else days
        since = now - timedelta(days=window)

        try:
            claimed = self.repo.claim_guest_orders(user_id, email, phone, since)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Nie udalo sie przypisac zamowien goscia do uzytkownika {user_id}: {e}")
            return 0

        if claimed:
            logger.info(f"Przypisano {claimed} zamowien goscia do uzytkownika {user_id}")
        return claimed

    def list_orders(self, user_id: int):
        return [order_to_receipt(o) for o in self.repo.list_by_user(user_id)]
