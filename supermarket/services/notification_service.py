# supermarket/services/notification_service.py
from supermarket.celery_worker import celery_app
from supermarket.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """Zleca potwierdzenia zamowien do kolejki Celery, poza requestem checkoutu."""

    @staticmethod
    def send_order_confirmation(order_number: str, email: str | None, total: str) -> bool:
        """
        Potwierdzenie zamowienia. Zamowienie jest juz zapisane, wiec blad
        brokera nie moze wywrocic checkoutu - tylko logujemy.
        """
        try:
            send_order_confirmation_task.delay(order_number, email, total)
        except Exception as e:
            logger.warning(f"Nie udalo sie zlecic powiadomienia dla zamowienia {order_number}: {e}")
            return False
        return True


@celery_app.task(name="supermarket.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(order_number: str, email: str | None, total: str):
    """
    Potwierdzenie zamowienia dla klienta (email albo "gosc" bez adresu).
    Kanal wysylki jest poza serwisem, task zapisuje potwierdzenie w logu.
    """
    recipient = email or "gosc"
    logger.info(f"[NOTIFICATION] {recipient}: zamowienie {order_number} przyjete, do zaplaty {total}")

    return {"order_number": order_number, "email": email, "status": "sent"}
