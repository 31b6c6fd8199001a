from sqlalchemy import Column, Integer, String, Date, DateTime, Enum, Index
from app.database import Base

CLASS_TYPES = ("economy", "business", "first")

class FlightPrice(Base):
    __tablename__ = "flight_prices"

    id = Column(Integer, primary_key=True, index=True)

    from_airport = Column(String(3), nullable=False)
    to_airport = Column(String(3), nullable=False)
    date = Column(Date, nullable=False)
    airline = Column(String(100), nullable=False)
    flight_number = Column(String(20), nullable=True)
    departure_time = Column(String(5), nullable=True)  # HH:MM local
    arrival_time = Column(String(5), nullable=True)
    price = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="VND")
    class_type = Column(Enum(*CLASS_TYPES, name="class_type"), nullable=False, default="economy")
    seats_available = Column(Integer, nullable=True)
    source = Column(String(50), nullable=False)
    fetched_at = Column(DateTime, nullable=False, index=True)

    __table_args__ = (
        Index('idx_route_date', 'from_airport', 'to_airport', 'date'),
    )
