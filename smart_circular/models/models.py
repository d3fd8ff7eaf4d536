from sqlalchemy import Column, Integer, Float, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from smart_circular.core.database import Base

class AccountRow(Base):
    __tablename__ = "accounts"
    id = Column(String(36), primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    pincode = Column(String, default="")
    address = Column(String, default="")
    reward_points = Column(Integer, default=0, nullable=False)
    role = Column(String, default="citizen", nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    reports = relationship("ReportRow", back_populates="owner")

class ReportRow(Base):
    __tablename__ = "reports"
    id = Column(String(36), primary_key=True)
    owner_id = Column(String(36), ForeignKey("accounts.id"), index=True, nullable=False)
    category = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False)
    label = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    address = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    status = Column(String, index=True, default="pending", nullable=False)
    points = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    owner = relationship("AccountRow", back_populates="reports")

class RevokedTokenRow(Base):
    __tablename__ = "revoked_tokens"
    jti = Column(String(64), primary_key=True)
    expires_at = Column(DateTime(timezone=True), index=True, nullable=False)
