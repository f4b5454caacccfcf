# supermarket/domain/errors.py


class ShopError(Exception):
    """
    Bazowy blad domeny sklepu.
    code - kod maszynowy zwracany w JSON, status_code - status HTTP.
    """

    status_code = 400
    code = "error"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(message)


class ValidationError(ShopError):
    """Zle dane wejsciowe (ilosc, telefon, pusty koszyk). Nigdy nie ponawiamy."""

    code = "validation_error"


class InvalidIdentifierError(ValidationError):
    code = "invalid_id"


class OutOfStockError(ValidationError):
    code = "out_of_stock"


class NotFoundError(ShopError):
    status_code = 404
    code = "not_found"


class AuthenticationError(ShopError):
    status_code = 401
    code = "unauthorized"


class PersistenceError(ShopError):
    """Baza niedostepna / transakcja nieudana."""

    status_code = 503
    code = "persistence_error"


class ExternalPaymentError(ShopError):
    status_code = 402
    code = "payment_not_completed"


class OrderNumberCollision(Exception):
    """Wygenerowany numer zamowienia juz istnieje - wewnetrzny sygnal do retry."""
