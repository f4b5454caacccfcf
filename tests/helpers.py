import unittest
from decimal import Decimal

from sqlalchemy.exc import OperationalError

import supermarket.data.models  # noqa: F401
from supermarket.data.database import Base, SessionLocal, engine
from supermarket.data.models.product import ProductModel
from supermarket.data.models.user import UserModel
from supermarket.services.user_service import hash_password


def db_down():
    return OperationalError("SELECT 1", {}, Exception("database is down"))


class DatabaseTestCase(unittest.TestCase):
    """Swieza baza dla kazdego testu."""

    def setUp(self):
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        self.db = SessionLocal()

    def tearDown(self):
        self.db.close()

    def make_product(self, product_id=None, name="Test Product", price="2.50", quantity=10, category="Dairy"):
        product = ProductModel(
            id=product_id,
            name=name,
            price=Decimal(price),
            category=category,
            image="test.png",
            quantity=quantity,
        )
        self.db.add(product)
        self.db.commit()
        return product

    def make_user(self, email="shopper@gmail.com", password="secret123", contact="91234567", role="user"):
        user = UserModel(
            username=email.split("@")[0],
            email=email,
            password_hash=hash_password(password),
            address="1 Test Street",
            contact=contact,
            role=role,
        )
        self.db.add(user)
        self.db.commit()
        return user

    def stock_of(self, product_id):
        fresh = SessionLocal()
        try:
            return fresh.get(ProductModel, product_id).quantity
        finally:
            fresh.close()
