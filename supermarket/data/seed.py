# supermarket/data/seed.py
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from supermarket.data.models.product import ProductModel
from supermarket.data.models.user import UserModel
from supermarket.services.user_service import hash_password
from supermarket.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    ("Fresh Milk 1L", "3.20", "Dairy", "milk.png", 40),
    ("Cheddar Cheese", "6.50", "Dairy", "cheddar.png", 15),
    ("Chicken Breast 500g", "7.90", "Meat", "chicken.png", 20),
    ("Bananas (bunch)", "2.50", "Produce", "bananas.png", 60),
    ("Broccoli", "1.80", "Produce", "broccoli.png", 35),
    ("Jasmine Rice 5kg", "12.90", "Pantry", "rice.png", 10),
    ("Orange Juice 1L", "4.20", "Drinks", "juice.png", 0),
]


def seed(db: Session):
    # not forcing: only seed if empty
    if db.execute(select(ProductModel.id)).first():
        return

    for name, price, category, image, quantity in PRODUCTS:
        db.add(ProductModel(name=name, price=Decimal(price), category=category, image=image, quantity=quantity))

    db.add(
        UserModel(
            username="admin",
            email="admin@supermarket.sg",
            password_hash=hash_password("admin123"),
            contact="91234567",
            role="admin",
        )
    )
    db.commit()
    logger.info(f"Seed: dodano {len(PRODUCTS)} produktow i konto admina")
