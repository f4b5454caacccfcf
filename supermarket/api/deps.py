# supermarket/api/deps.py
from fastapi import Request

from supermarket.domain.errors import AuthenticationError
from supermarket.services.cart_service import Actor


def get_actor(request: Request) -> Actor:
    """
    Actor z sesji. request.session["cart"] i actor.cart to ten sam slownik,
    wiec zmiany koszyka zapisuja sie w ciasteczku sesji przy odpowiedzi.
    """
    session = request.session
    cart = session.get("cart")
    if not isinstance(cart, dict):
        cart = {}
        session["cart"] = cart

    user = session.get("user") or {}
    return Actor(
        cart=cart,
        user_id=user.get("id"),
        username=user.get("username"),
        email=user.get("email"),
        role=user.get("role"),
    )


def require_user(request: Request) -> Actor:
    actor = get_actor(request)
    if not actor.authenticated:
        raise AuthenticationError("Zaloguj sie")
    return actor


def require_admin(request: Request) -> Actor:
    actor = require_user(request)
    if not actor.is_admin:
        raise PermissionError("Brak dostępu")
    return actor
