from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from socialapp.database import Base


class WalletNonce(Base):
    __tablename__ = "wallet_nonces"
    address = Column(String(42), primary_key=True)
    nonce = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
