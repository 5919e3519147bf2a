
import uuid
from sqlalchemy import Column, String, DateTime, func, DECIMAL, Integer
from sqlalchemy.dialects.postgresql import UUID
from app.db.session import Base

class Equipment(Base):
    __tablename__ = "equipment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    type = Column(String(50), nullable=True)  # racket, shoes, other
    total_quantity = Column(Integer, nullable=False)  # fixed pool; free stock is derived per window
    hourly_rate = Column(DECIMAL(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
