# supermarket/services/cart_service.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supermarket.domain.cart import (
    Cart,
    cart_count,
    is_product_key,
    merge_carts,
    normalize_entry,
    parse_product_id,
    parse_quantity,
)
from supermarket.domain.errors import (
    NotFoundError,
    OutOfStockError,
    PersistenceError,
    ValidationError,
)
from supermarket.repos.cart_repo import UserCartRepo
from supermarket.repos.catalog_repo import CatalogRepo
from supermarket.utils.settings import TRACK_INVENTORY
from supermarket.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CATEGORY = "Groceries"


@dataclass
class Actor:
    """
    Kontekst wywolania: opcjonalny zalogowany user + referencja na koszyk sesji.
    cart to ten sam slownik co request.session["cart"], wiec zmiany trafiaja do sesji.
    """

    cart: Cart = field(default_factory=dict)
    user_id: int | None = None
    username: str | None = None
    email: str | None = None
    role: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def empty_snapshot() -> Dict[str, Any]:
    return {
        "items": [],
        "total": Decimal("0.00"),
        "selected_total": Decimal("0.00"),
        "count": 0,
    }


class CartService:
    """
    Koszyk w dwoch warstwach: sesja (zawsze) + baza (gdy user zalogowany).

    Kolejnosc zapisu jest stala: najpierw baza, potem sesja. Blad bazy
    -> PersistenceError i sesja zostaje bez zmian.
    """

    def __init__(self, db: Session, actor: Actor):
        self.db = db
        self.actor = actor
        self.repo = UserCartRepo(db)
        self.catalog = CatalogRepo(db)

    @property
    def cart(self) -> Cart:
        return self.actor.cart

    def _persist(self, operation, *args, **kwargs):
        if not self.actor.authenticated:
            return
        try:
            operation(self.actor.user_id, *args, **kwargs)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Zapis koszyka uzytkownika {self.actor.user_id} nieudany: {e}", exc_info=True)
            raise PersistenceError("Nie udalo sie zaktualizowac koszyka, sprobuj ponownie")

    def _replace_session(self, cart: Cart):
        self.cart.clear()
        self.cart.update(cart)

    #query - odczyt
    def build_snapshot(self) -> Dict[str, Any]:
        """
        Wycena koszyka wg aktualnego katalogu.
        Wpisy bez produktu albo z iloscia <= 0 wypadaja z migawki i z koszyka.
        Blad katalogu -> pusta migawka, bez wyjatku.
        """
        if not self.cart:
            return empty_snapshot()

        ids = [int(k) for k in self.cart if is_product_key(k)]
        try:
            products = self.catalog.get_many(ids)
        except SQLAlchemyError as e:
            self.catalog.rollback()
            logger.error(f"Nie udalo sie wczytac katalogu dla koszyka: {e}")
            return empty_snapshot()

        items = []
        stale = []
        for key in list(self.cart.keys()):
            quantity, selected = normalize_entry(self.cart[key])
            product = products.get(int(key)) if is_product_key(key) else None

            if not product or quantity <= 0:
                stale.append(key)
                del self.cart[key]
                continue

            self.cart[key] = {"quantity": quantity, "selected": selected}
            price = Decimal(str(product.price or 0))
            items.append({
                "product_id": product.id,
                "name": product.name,
                "price": price,
                "image": product.image,
                "category": product.category or DEFAULT_CATEGORY,
                "quantity": quantity,
                "subtotal": price * quantity,
                "selected": selected,
            })

        if stale:
            logger.warning(f"Usunieto nieaktualne pozycje z koszyka: {stale}")
            self._drop_persisted([k for k in stale if is_product_key(k)])

        total = sum((i["subtotal"] for i in items), Decimal("0.00"))
        selected_total = sum((i["subtotal"] for i in items if i["selected"]), Decimal("0.00"))

        return {
            "items": items,
            "total": total,
            "selected_total": selected_total,
            "count": sum(i["quantity"] for i in items),
        }

    def _drop_persisted(self, keys: Iterable[str]):
        keys = list(keys)
        if not keys or not self.actor.authenticated:
            return
        try:
            self.repo.remove_items(self.actor.user_id, [int(k) for k in keys])
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.warning(f"Nie udalo sie usunac nieaktualnych pozycji z bazy: {e}")

    #commands
    def add_product(self, raw_product_id: Any, quantity: Any = 1) -> Dict[str, Any]:
        product_id = parse_product_id(raw_product_id)
        quantity = parse_quantity(quantity)
        if quantity < 1:
            raise ValidationError("Ilosc musi byc wieksza niz 0", code="invalid_quantity")

        try:
            product = self.catalog.get_by_id(product_id)
        except SQLAlchemyError as e:
            self.catalog.rollback()
            logger.error(f"Blad bazy przy pobieraniu produktu {product_id}: {e}")
            raise PersistenceError("Blad polaczenia z baza, sprobuj ponownie")

        if not product:
            logger.warning(f"Produkt {product_id} nie istnieje")
            raise NotFoundError("Produkt nie istnieje", code="product_not_found")

        if TRACK_INVENTORY and (product.quantity or 0) < quantity:
            raise OutOfStockError("Produkt niedostepny")

        self._persist(self.repo.add_item, product_id, quantity)

        key = str(product_id)
        current, _ = normalize_entry(self.cart.get(key))
        self.cart[key] = {"quantity": current + quantity, "selected": True}

        logger.info(f"Dodano produkt {product_id} x{quantity} do koszyka (ilosc: {current + quantity})")
        return self.build_snapshot()

    def increase(self, raw_product_id: Any) -> Dict[str, Any]:
        product_id = parse_product_id(raw_product_id)
        self._persist(self.repo.add_item, product_id)

        key = str(product_id)
        current, _ = normalize_entry(self.cart.get(key))
        self.cart[key] = {"quantity": current + 1, "selected": True}
        return self.build_snapshot()

    def decrease(self, raw_product_id: Any) -> Dict[str, Any]:
        product_id = parse_product_id(raw_product_id)
        key = str(product_id)

        if key not in self.cart:
            return self.build_snapshot()

        current, selected = normalize_entry(self.cart[key])
        next_quantity = current - 1

        if next_quantity <= 0:
            self._persist(self.repo.remove_item, product_id)
            del self.cart[key]
        else:
            self._persist(self.repo.set_quantity, product_id, next_quantity)
            self.cart[key] = {"quantity": next_quantity, "selected": selected}

        return self.build_snapshot()

    def set_quantity(self, raw_product_id: Any, raw_quantity: Any, selected: bool | None = None) -> Dict[str, Any]:
        product_id = parse_product_id(raw_product_id)
        quantity = parse_quantity(raw_quantity)
        key = str(product_id)

        if quantity == 0:
            self._persist(self.repo.remove_item, product_id)
            self.cart.pop(key, None)
            return self.build_snapshot()

        self._persist(self.repo.set_quantity, product_id, quantity, selected)

        _, current_selected = normalize_entry(self.cart.get(key, {"selected": True}))
        self.cart[key] = {
            "quantity": quantity,
            "selected": current_selected if selected is None else bool(selected),
        }
        return self.build_snapshot()

    def remove(self, raw_product_id: Any) -> Dict[str, Any]:
        product_id = parse_product_id(raw_product_id)
        key = str(product_id)

        existing = self.cart.pop(key, None)
        try:
            self._persist(self.repo.remove_item, product_id)
        except PersistenceError:
            #rollback zmiany w sesji
            if existing is not None:
                self.cart[key] = existing
            raise

        return self.build_snapshot()

    def clear(self) -> Dict[str, Any]:
        self._persist(self.repo.clear_cart)
        self.cart.clear()
        return empty_snapshot()

    def discard(self, product_ids: Iterable[int]):
        """
        Usuwa zakupione pozycje z obu warstw po udanym zamowieniu.
        Zamowienie jest juz zapisane, wiec blad bazy tylko logujemy.
        """
        ids = [int(p) for p in product_ids]
        try:
            self._persist(self.repo.remove_items, ids)
        except PersistenceError:
            logger.warning(f"Koszyk w bazie nie zostal wyczyszczony po zamowieniu: {ids}")

        for product_id in ids:
            self.cart.pop(str(product_id), None)

    #logowanie / wylogowanie
    def merge_on_login(self, user_id: int) -> Cart:
        try:
            persisted = self.repo.get_cart(user_id)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Nie udalo sie wczytac zapisanego koszyka uzytkownika {user_id}: {e}")
            return self.cart

        merged = merge_carts(persisted, self.cart)

        #najpierw baza, sesja dopiero po udanym zapisie
        try:
            self.repo.replace_cart(user_id, merged)
        except SQLAlchemyError as e:
            logger.error(f"Nie udalo sie zapisac scalonego koszyka uzytkownika {user_id}, koszyk sesji bez zmian: {e}")
            return self.cart

        self._replace_session(merged)
        logger.info(f"Scalono koszyk uzytkownika {user_id}: {len(merged)} pozycji, {cart_count(merged)} szt.")
        return merged

    def persist_on_logout(self, user_id: int) -> bool:
        try:
            self.repo.replace_cart(user_id, self.cart)
        except SQLAlchemyError as e:
            logger.error(f"Nie udalo sie zapisac koszyka przed wylogowaniem uzytkownika {user_id}: {e}")
            return False
        return True
