from sqlalchemy import Column, Integer, String, Date, DateTime, Boolean, Enum, ForeignKey, Index
from sqlalchemy.sql import func
from app.database import Base

NOTIFICATION_TYPES = ("ticket_available", "price_drop", "below_expected")

class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False)  # owned by the auth service
    from_airport = Column(String(3), nullable=False)
    to_airport = Column(String(3), nullable=False)
    date = Column(Date, nullable=False)
    expected_price = Column(Integer, nullable=False)
    current_price = Column(Integer, nullable=True)
    last_checked_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    notification_sent = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        Index('idx_active_date', 'is_active', 'date'),
        Index('idx_user_route_date', 'user_id', 'from_airport', 'to_airport', 'date'),
    )


class NotificationHistory(Base):
    __tablename__ = "notification_history"

    id = Column(Integer, primary_key=True, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=False, index=True)
    price = Column(Integer, nullable=False)
    type = Column(Enum(*NOTIFICATION_TYPES, name="notification_type"), nullable=False)
    sent_at = Column(DateTime, nullable=False)
