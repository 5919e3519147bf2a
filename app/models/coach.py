
import uuid
from sqlalchemy import Column, String, DateTime, func, DECIMAL
from sqlalchemy.dialects.postgresql import UUID
from app.db.session import Base

class Coach(Base):
    __tablename__ = "coaches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    hourly_rate = Column(DECIMAL(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
