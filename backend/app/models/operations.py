"""
Operational tables: stock reservations, return requests, notifications,
system logs and promotion transaction logs
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, DECIMAL, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.core.database import Base


class StockReservation(Base):
    """
    Temporary hold on variant stock while a shopper checks out
    """
    __tablename__ = "stock_reservations"

    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    session_id = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="ACTIVE", server_default="ACTIVE", index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ReturnRequest(Base):
    """
    Customer return / exchange request for one order line
    """
    __tablename__ = "return_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False)

    type = Column(String(20), nullable=False, default="RETURN", server_default="RETURN")
    status = Column(String(20), nullable=False, default="PENDING", server_default="PENDING", index=True)
    reason = Column(String(255), nullable=False)
    description = Column(Text)
    quantity = Column(Integer, nullable=False, default=1)

    refund_amount = Column(DECIMAL(12, 2))
    refund_method = Column(String(50))
    refund_date = Column(DateTime(timezone=True))
    admin_notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, server_default="false")

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SystemLog(Base):
    """
    Audit trail of notable actions (type ERROR, WARNING or INFO)
    """
    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(20), nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    ip_address = Column(String(64))
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSONB)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class TransactionLog(Base):
    """
    Lifecycle of a checkout and of its promotion redemptions (coupon, gift card, campaign)
    """
    __tablename__ = "transaction_logs"
    # One running or finished checkout per idempotency key
    __table_args__ = (
        Index(
            "uq_transaction_logs_checkout_key",
            "idempotency_key",
            unique=True,
            postgresql_where=text("type = 'CHECKOUT' AND status IN ('RESERVED', 'COMPLETED')"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(30), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"))
    reference_id = Column(Integer)
    amount = Column(DECIMAL(12, 2))
    idempotency_key = Column(String(100), index=True)
    metadata_ = Column("metadata", JSONB)
    error_message = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
