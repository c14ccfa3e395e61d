# app/models/order.py
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base
from app.models.installation import utc_now


class Order(Base):
    """
    A fulfilment order, reconciled from a marketplace or created by hand.

    ``order_number`` is the marketplace order id and the idempotency key of the
    sync: a second sighting updates the row, never re-creates it.

    Two status axes are kept side by side:
    - ``order_status`` / ``shipping_status``: marketplace-native values
      (e.g. 'SHIPPED')
    - ``status``: internal fulfilment stage (e.g. 'shipped')
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(100), unique=True, nullable=False)
    installation_id = Column(Integer, ForeignKey("installations.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Customer
    customer_name = Column(String(255))
    customer_email = Column(String(255))
    address = Column(String(500))
    country = Column(String(2))

    # Origin
    store_name = Column(String(100))
    platform = Column(String(50))

    order_date = Column(DateTime)
    delivery_date = Column(DateTime)

    order_status = Column(String(50))
    shipping_status = Column(String(50))
    status = Column(String(50), index=True)

    order_value = Column(Numeric(12, 2), default=0)
    item_count = Column(Integer, default=0)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    installation = relationship("Installation", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Order(order_number='{self.order_number}', status='{self.status}')>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_name = Column(String(500))
    product_image = Column(String(1000))
    ean = Column(String(20), index=True)
    sku = Column(String(100))
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(12, 2), default=0)
    unit_price = Column(Numeric(12, 2), default=0)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        UniqueConstraint('order_id', 'ean', name='uq_order_items_order_id_ean'),
    )
