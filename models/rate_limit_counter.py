# models/rate_limit_counter.py
"""
Rate limit state shared by every server process through the database.

RateLimitCounter - fixed-window request counters
RateLimitBlock - a client blocked for an endpoint until `blocked_until`
"""
from sqlalchemy import Column, Integer, BigInteger, String, UniqueConstraint
from .base import Base


class RateLimitCounter(Base):
     __tablename__ = "rate_limit_counters"
     __table_args__ = (
          UniqueConstraint("key", "window_start", name="uq_rate_limit_counters_key_window"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     key = Column(String(255), nullable=False, index=True)
     window_start = Column(BigInteger, nullable=False)  # epoch seconds
     count = Column(Integer, nullable=False, default=0)

     def __repr__(self):
          return f"<RateLimitCounter(key='{self.key}', window_start={self.window_start}, count={self.count})>"


class RateLimitBlock(Base):
     __tablename__ = "rate_limit_blocks"
     __table_args__ = (
          UniqueConstraint("key", name="uq_rate_limit_blocks_key"),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)
     key = Column(String(255), nullable=False)
     blocked_until = Column(BigInteger, nullable=False)  # epoch seconds

     def __repr__(self):
          return f"<RateLimitBlock(key='{self.key}', blocked_until={self.blocked_until})>"
