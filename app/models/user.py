from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    identity_key = Column(String, unique=True, index=True, nullable=False)  # Clerk user ID
    has_paid = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Insertion order is chronological order
    uploads = relationship(
        "Upload",
        back_populates="user",
        order_by="Upload.id",
        cascade="all, delete-orphan",
    )
