from sqlalchemy import Column, Integer, Boolean, ForeignKey, UniqueConstraint

from supermarket.data.database import Base


class UserCartModel(Base):
    __tablename__ = "user_carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)

    quantity = Column(Integer, nullable=False)
    selected = Column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("user_id", "product_id", name="u_user_product"),)
