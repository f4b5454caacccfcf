# supermarket/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import requests

from supermarket.domain.errors import OrderNumberCollision
from supermarket.utils.settings import ORDER_NUMBER_ATTEMPTS


def http_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(requests.RequestException),
    )


def order_number_retry():
    #kolizja numeru zamowienia -> losujemy jeszcze raz, bez czekania
    return retry(
        reraise=True,
        stop=stop_after_attempt(ORDER_NUMBER_ATTEMPTS),
        retry=retry_if_exception_type(OrderNumberCollision),
    )
