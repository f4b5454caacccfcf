#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w Base.metadata

from supermarket.data.models.product import ProductModel
from supermarket.data.models.user import UserModel
from supermarket.data.models.user_cart import UserCartModel
from supermarket.data.models.order import OrderModel
from supermarket.data.models.order_item import OrderItemModel

__all__ = ["ProductModel", "UserModel", "UserCartModel", "OrderModel", "OrderItemModel"]
