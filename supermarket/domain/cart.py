# supermarket/domain/cart.py
"""
Czyste funkcje koszyka - bez I/O, testowalne bez bazy.

Koszyk (sesyjny i zapisany w bazie) to mapa:
    "product_id" -> {"quantity": int, "selected": bool}
Klucze sa stringami, bo sesja jest serializowana do JSON.
"""
import re
from typing import Any, Dict, Tuple

from supermarket.domain.errors import InvalidIdentifierError, ValidationError

Cart = Dict[str, Dict[str, Any]]

_NON_DIGITS = re.compile(r"\D", re.ASCII)


def is_product_key(key: Any) -> bool:
    #tylko cyfry ASCII, "²" czy "٤٢" to nie identyfikator
    text = str(key)
    return text.isascii() and text.isdigit()


def parse_product_id(raw: Any) -> int:
    if isinstance(raw, bool):
        raise InvalidIdentifierError("Niepoprawny identyfikator produktu")
    if isinstance(raw, int):
        product_id = raw
    else:
        text = str(raw).strip()
        if not is_product_key(text):
            raise InvalidIdentifierError("Niepoprawny identyfikator produktu")
        product_id = int(text)

    if product_id <= 0:
        raise InvalidIdentifierError("Niepoprawny identyfikator produktu")
    return product_id


def parse_quantity(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValidationError("Niepoprawna ilosc", code="invalid_quantity")
    text = str(raw).strip()
    if not text.isascii():
        raise ValidationError("Niepoprawna ilosc", code="invalid_quantity")
    try:
        quantity = int(text)
    except (TypeError, ValueError):
        raise ValidationError("Niepoprawna ilosc", code="invalid_quantity")

    if quantity < 0:
        raise ValidationError("Niepoprawna ilosc", code="invalid_quantity")
    return quantity


def _as_bool(value: Any) -> bool:
    return not (value is False or value == 0 or str(value).strip().lower() == "false")


def normalize_entry(entry: Any) -> Tuple[int, bool]:
    """
    Zwraca (quantity, selected). Wpis moze byc slownikiem albo sama liczba
    (stary format sesji). Brak flagi selected = zaznaczony.
    """
    if isinstance(entry, dict):
        try:
            quantity = int(entry.get("quantity") or 0)
        except (TypeError, ValueError):
            quantity = 0
        return quantity, _as_bool(entry.get("selected", True))

    try:
        return int(entry or 0), True
    except (TypeError, ValueError):
        return 0, True


def clean_cart(cart: Cart) -> Cart:
    """Kopia koszyka w postaci kanonicznej, bez wpisow z iloscia <= 0."""
    result = {}
    for key, entry in (cart or {}).items():
        quantity, selected = normalize_entry(entry)
        if quantity > 0:
            result[str(key)] = {"quantity": quantity, "selected": selected}
    return result


def merge_carts(persisted: Cart, session: Cart) -> Cart:
    """
    Scalanie koszyka z bazy z koszykiem sesji przy logowaniu.

    - produkt tylko w jednym koszyku -> przechodzi bez zmian
    - produkt w obu -> ilosci sie SUMUJA
    - selected z sesji tylko gdy wpis sesji jawnie ma pole "selected",
      inaczej zostaje flaga z bazy
    """
    merged = clean_cart(persisted)

    for key, raw in (session or {}).items():
        key = str(key)
        quantity, selected = normalize_entry(raw)
        if quantity <= 0:
            continue

        current = merged.get(key)
        if current is None:
            merged[key] = {"quantity": quantity, "selected": selected}
            continue

        explicit = isinstance(raw, dict) and "selected" in raw
        merged[key] = {
            "quantity": current["quantity"] + quantity,
            "selected": selected if explicit else current["selected"],
        }

    return merged


def cart_count(cart: Cart) -> int:
    return sum(normalize_entry(entry)[0] for entry in (cart or {}).values())


def normalize_phone(raw: Any) -> str:
    """Zostawia same cyfry, np. "+65 9123-4567" -> "6591234567"."""
    return _NON_DIGITS.sub("", str(raw or ""))
