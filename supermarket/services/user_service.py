import hashlib
import hmac
import secrets
from typing import MutableMapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from supermarket.data.models.user import UserModel
from supermarket.domain.cart import normalize_phone
from supermarket.domain.errors import AuthenticationError, NotFoundError, ValidationError
from supermarket.domain.schemas import UserCreate, UserRead
from supermarket.repos.user_repo import UserRepo
from supermarket.services.cart_service import Actor, CartService
from supermarket.services.order_service import OrderService
from supermarket.utils.logging import get_logger

logger = get_logger(__name__)

_ITERATIONS = 120_000


def hash_password(password: str, salt: str | None = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _ITERATIONS).hex()
    return f"{salt}${digest}"


def verify_password(password: str, stored: str) -> bool:
    salt, _, digest = (stored or "").partition("$")
    if not salt or not digest:
        return False
    return hmac.compare_digest(hash_password(password, salt), stored)


class UserService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepo(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        contact = normalize_phone(payload.contact)
        if len(contact) != 8:
            raise ValidationError("Numer kontaktowy musi miec dokladnie 8 cyfr", code="invalid_phone")

        if self.repo.get_by_email(payload.email):
            raise ValidationError("Email jest juz zarejestrowany", code="email_taken")

        #rola zawsze "user", niezaleznie od tego co przyszlo w formularzu
        user = UserModel(
            username=payload.username,
            email=payload.email.lower(),
            password_hash=hash_password(payload.password),
            address=payload.address,
            contact=contact,
            role="user",
        )
        try:
            created = self.repo.create_user(user)
        except IntegrityError:
            self.db.rollback()
            raise ValidationError("Email jest juz zarejestrowany", code="email_taken")

        logger.info(f"Zarejestrowano uzytkownika {created.id}")
        return UserRead.model_validate(created)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise NotFoundError("User not found", code="user_not_found")
        return UserRead.model_validate(user)

    def authenticate(self, email: str, password: str) -> UserModel:
        user = self.repo.get_by_email(email)
        if not user:
            raise AuthenticationError("Nie znaleziono uzytkownika")
        if not verify_password(password, user.password_hash):
            raise AuthenticationError("Niepoprawne haslo")
        return user

    def login(self, email: str, password: str, actor: Actor, state: MutableMapping) -> UserRead:
        """
        Logowanie + efekty uboczne:
        - scalenie koszyka sesji z koszykiem z bazy
        - przypisanie swiezych zamowien goscia po emailu / telefonie
        """
        user = self.authenticate(email, password)

        state["user"] = {"id": user.id, "username": user.username, "email": user.email, "role": user.role}
        actor.user_id = user.id
        actor.username = user.username
        actor.email = user.email
        actor.role = user.role

        CartService(self.db, actor).merge_on_login(user.id)
        OrderService(self.db).claim_guest_orders(user.id, user.email, user.contact)

        logger.info(f"Zalogowano uzytkownika {user.id}")
        return UserRead.model_validate(user)

    def logout(self, actor: Actor, state: MutableMapping):
        if actor.authenticated:
            CartService(self.db, actor).persist_on_logout(actor.user_id)
            logger.info(f"Wylogowano uzytkownika {actor.user_id}")
        state.clear()
