from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from app.db.base import Base


class OrderStats(Base):
    __tablename__ = 'order_stats'

    order_id = Column(Integer, primary_key=True, autoincrement=False)
    customer_id = Column(Integer, ForeignKey('customer_lookup.customer_id'), nullable=True, index=True)
    date_created = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String(200), nullable=False, index=True)
    num_items_sold = Column(Integer, default=0, nullable=False)
    gross_total = Column(Numeric(12, 2), default=0, nullable=False)
    net_total = Column(Numeric(12, 2), default=0, nullable=False)

    customer = relationship("CustomerLookup", back_populates="orders")
