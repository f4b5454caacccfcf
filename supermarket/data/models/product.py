from sqlalchemy import Column, Integer, String, Numeric

from supermarket.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    category = Column(String(100), nullable=True)
    image = Column(String(255), nullable=True)

    #stan magazynu, nigdy ponizej 0
    quantity = Column(Integer, nullable=False, default=0)
