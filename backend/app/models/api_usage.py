from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from app.database import Base

class ApiUsage(Base):
    __tablename__ = "api_usage"

    id = Column(Integer, primary_key=True, index=True)
    api_provider = Column(String(50), nullable=False)
    month = Column(String(7), nullable=False)  # YYYY-MM
    call_count = Column(Integer, nullable=False, default=0)
    success_count = Column(Integer, nullable=False, default=0)
    fail_count = Column(Integer, nullable=False, default=0)
    rate_limit_count = Column(Integer, nullable=False, default=0)
    last_called_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint('api_provider', 'month', name='uq_provider_month'),
    )
