# Import SQLAlchemy models so they register on Base.metadata
from storefront.models.order import Order, OrderItem, OrderStatus  # noqa: F401
from storefront.models.order_event import OrderEvent  # noqa: F401
from storefront.models.product import Product  # noqa: F401
from storefront.models.cart import CartItem, WishlistItem  # noqa: F401
