# supermarket/services/checkout_service.py
import secrets
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, MutableMapping

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from supermarket.data.models.order import OrderModel
from supermarket.data.models.order_item import OrderItemModel
from supermarket.domain.cart import normalize_phone
from supermarket.domain.errors import (
    ExternalPaymentError,
    OrderNumberCollision,
    OutOfStockError,
    ShopError,
    ValidationError,
)
from supermarket.repos.catalog_repo import CatalogRepo
from supermarket.repos.order_repo import OrderRepo
from supermarket.services.cart_service import Actor, CartService
from supermarket.services.notification_service import NotificationService
from supermarket.services.order_service import order_to_receipt
from supermarket.services.payment_client import PaymentClient
from supermarket.utils.retry import order_number_retry
from supermarket.utils.settings import (
    DELIVERY_FEES,
    PAYMENT_CURRENCY,
    PHONE_OPTIONAL_DELIVERY,
    TRACK_INVENTORY,
)
from supermarket.utils.logging import get_logger

logger = get_logger(__name__)

# metoda -> czy wymaga potwierdzenia z bramki przed zlozeniem zamowienia
PAYMENT_METHODS = {
    "paypal": "gateway",
    "paynow": "offline",
    "cod": "offline",
}

NOT_SAVED_WARNING = "Zamowienie przyjete, ale nie zostalo zapisane"


def generate_order_number() -> str:
    # ORD-<ms>-<losowy sufiks>, unikalnosc pilnuje tez constraint w bazie
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


def _to_money(raw: Any, code: str) -> Decimal:
    try:
        return Decimal(str(raw).strip()).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise ValidationError("Niepoprawna kwota", code=code)


class CheckoutService:
    """
    Checkout jednej proby zakupu:
    1. walidacja (koszyk, dostawa, telefon, platnosc)
    2. wycena (zaznaczone pozycje + oplata za dostawe z cennika)
    3. zapis w jednej transakcji (zamowienie + pozycje + stan magazynu)
    4. finalizacja (czyszczenie koszyka, paragon w sesji, powiadomienie)
    """

    def __init__(
        self,
        db: Session,
        actor: Actor,
        state: MutableMapping,
        payment_client: PaymentClient | None = None,
        notification_service: NotificationService | None = None,
        delivery_fees: Dict[str, Decimal] | None = None,
    ):
        self.db = db
        self.actor = actor
        self.state = state
        self.cart_service = CartService(db, actor)
        self.orders = OrderRepo(db)
        self.catalog = CatalogRepo(db)
        self.payment_client = payment_client or PaymentClient()
        self.notification_service = notification_service or NotificationService()
        self.delivery_fees = delivery_fees if delivery_fees is not None else DELIVERY_FEES

    #query
    def checkout_form(self) -> Dict[str, Any]:
        return {
            "cart": self.cart_service.build_snapshot(),
            "delivery_fees": self.delivery_fees,
            "payment_methods": sorted(PAYMENT_METHODS),
            "form": self.state.get("checkout_form") or {},
        }

    #wycena
    def _quote(self, delivery_method: str | None, delivery_fee: Any = None):
        snapshot = self.cart_service.build_snapshot()
        if not snapshot["items"]:
            raise ValidationError("Koszyk jest pusty", code="cart_empty")

        items = [i for i in snapshot["items"] if i["selected"]]
        if not items:
            raise ValidationError("Nie zaznaczono zadnych produktow", code="nothing_selected")

        method = (delivery_method or "standard").strip().lower()
        if method not in self.delivery_fees:
            raise ValidationError("Nieznana metoda dostawy", code="invalid_delivery_method")

        fee = self.delivery_fees[method]
        if delivery_fee not in (None, ""):
            if _to_money(delivery_fee, "invalid_delivery_fee") != fee:
                logger.warning(f"Oplata za dostawe od klienta ({delivery_fee}) != cennik ({fee}) dla {method}")
                raise ValidationError("Niepoprawna oplata za dostawe", code="delivery_fee_mismatch")

        subtotal = sum((i["subtotal"] for i in items), Decimal("0.00"))
        return items, method, fee, subtotal, subtotal + fee

    #platnosc przez bramke
    def start_payment(self, delivery_method: str | None = None) -> Dict[str, Any]:
        _, method, _, _, total = self._quote(delivery_method)

        gateway_order = self.payment_client.create_order(total, PAYMENT_CURRENCY, "Supermarket checkout")
        gateway_order_id = gateway_order.get("id")
        if not gateway_order_id:
            raise ExternalPaymentError("Bramka nie zwrocila identyfikatora platnosci")

        self.state["payment"] = {
            "gateway_order_id": gateway_order_id,
            "amount": str(total),
            "delivery_method": method,
            "status": gateway_order.get("status", "CREATED"),
        }
        logger.info(f"Rozpoczeto platnosc {gateway_order_id} na kwote {total}")
        return {"gateway_order_id": gateway_order_id, "amount": total, "currency": PAYMENT_CURRENCY}

    def capture_payment(self, gateway_order_id: str) -> Dict[str, Any]:
        pending = self.state.get("payment") or {}
        if pending.get("gateway_order_id") != gateway_order_id:
            raise ExternalPaymentError("Nieznana platnosc", code="unknown_payment")

        capture = self.payment_client.capture_order(gateway_order_id)
        status = capture.get("status")
        if status != "COMPLETED":
            logger.warning(f"Platnosc {gateway_order_id} nie zakonczona, status: {status}")
            raise ExternalPaymentError("Platnosc nie zostala zrealizowana")

        try:
            capture_id = capture["purchase_units"][0]["payments"]["captures"][0]["id"]
        except (KeyError, IndexError, TypeError):
            capture_id = capture.get("id", gateway_order_id)

        pending.update({"status": "COMPLETED", "capture_id": capture_id})
        self.state["payment"] = pending
        logger.info(f"Platnosc {gateway_order_id} potwierdzona (capture {capture_id})")
        return {"gateway_order_id": gateway_order_id, "capture_id": capture_id, "status": status}

    def _require_capture(self, total: Decimal) -> str:
        capture = self.state.get("payment") or {}
        if capture.get("status") != "COMPLETED":
            raise ExternalPaymentError("Platnosc nie zostala zrealizowana")
        if _to_money(capture.get("amount", "0"), "invalid_amount") != total:
            raise ExternalPaymentError("Kwota platnosci nie zgadza sie z zamowieniem", code="payment_amount_mismatch")
        return capture.get("capture_id")

    #command
    def checkout(self, form: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self._checkout(form)
        except ShopError:
            #formularz zostaje w sesji do ponownego wypelnienia
            self.state["checkout_form"] = {k: v for k, v in form.items() if v is not None}
            raise

        self.state.pop("checkout_form", None)
        return result

    def _checkout(self, form: Dict[str, Any]) -> Dict[str, Any]:
        #1. walidacja + 2. wycena
        items, method, fee, subtotal, total = self._quote(form.get("delivery_method"), form.get("delivery_fee"))

        digits = normalize_phone(form.get("shipping_phone"))
        if method not in PHONE_OPTIONAL_DELIVERY and len(digits) != 8:
            raise ValidationError("Numer kontaktowy musi miec dokladnie 8 cyfr", code="invalid_phone")

        payment_method = (form.get("payment_method") or "paynow").strip().lower()
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError("Nieznana metoda platnosci", code="invalid_payment_method")

        paid, reference = False, None
        if PAYMENT_METHODS[payment_method] == "gateway":
            reference = self._require_capture(total)
            paid = True

        order = OrderModel(
            user_id=self.actor.user_id,
            subtotal=subtotal,
            delivery_fee=fee,
            total=total,
            delivery_method=method,
            payment_method=payment_method,
            payment_reference=reference,
            customer_name=form.get("shipping_name") or self.actor.username,
            customer_email=self.actor.email or form.get("customer_email"),
            customer_phone=digits if len(digits) == 8 else None,
            paid=paid,
            status="pending",
            created_at=datetime.now(timezone.utc),
        )
        order.items = [
            OrderItemModel(
                product_id=i["product_id"],
                name=i["name"],
                price=i["price"],
                quantity=i["quantity"],
                subtotal=i["subtotal"],
            )
            for i in items
        ]

        #3. zapis
        saved = True
        try:
            self._persist(order)
        except OutOfStockError:
            self.db.rollback()
            if reference:
                logger.warning(f"Platnosc {reference} pobrana, ale zamowienie odrzucone (brak towaru), total {total}")
            raise
        except (SQLAlchemyError, OrderNumberCollision) as e:
            self.db.rollback()
            logger.error(f"Zapis zamowienia nieudany: {e}", exc_info=True)
            if reference:
                logger.warning(f"Platnosc {reference} pobrana, ale zamowienie {order.order_number} nie zostalo zapisane")
            saved = False
            if not order.order_number:
                order.order_number = generate_order_number()

        receipt = order_to_receipt(order, saved=saved)
        self.state["last_order"] = receipt

        if not saved:
            #koszyk zostaje, user widzi paragon z sesji + ostrzezenie
            return {"order_number": order.order_number, "saved": False, "warning": NOT_SAVED_WARNING, "order": receipt}

        #4. finalizacja
        self.cart_service.discard(i["product_id"] for i in items)
        self.state.pop("payment", None)
        self.notification_service.send_order_confirmation(order.order_number, order.customer_email, receipt["total"])

        logger.info(f"Zamowienie {order.order_number} zapisane, total {total}, uzytkownik {self.actor.user_id}")
        return {"order_number": order.order_number, "saved": True, "warning": None, "order": receipt}

    @order_number_retry()
    def _insert_order(self, order: OrderModel):
        number = generate_order_number()
        if self.orders.number_exists(number):
            logger.warning(f"Kolizja numeru zamowienia {number}, losuje ponownie")
            raise OrderNumberCollision(number)

        order.order_number = number
        try:
            self.orders.add_order(order)
        except IntegrityError:
            #insert zamowienia to pierwszy zapis w transakcji, rollback nic wiecej nie cofa
            self.db.rollback()
            if not self.orders.number_exists(number):
                raise
            logger.warning(f"Numer zamowienia {number} zajety przy zapisie, losuje ponownie")
            raise OrderNumberCollision(number)

    def _persist(self, order: OrderModel):
        """Zamowienie + pozycje + stan magazynu: wszystko albo nic."""
        self._insert_order(order)

        for item in order.items:
            if item.product_id is None:
                continue
            if self.catalog.decrement_stock(item.product_id, item.quantity, strict=TRACK_INVENTORY):
                continue
            if not self.catalog.exists(item.product_id):
                #produkt usuniety z katalogu po wycenie - pozycja zostaje bez powiazania
                item.product_id = None
                continue
            raise OutOfStockError(f"Niewystarczajacy stan magazynu: {item.name}")

        self.orders.commit()
