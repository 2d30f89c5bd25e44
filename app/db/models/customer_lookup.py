from sqlalchemy import Column, DateTime, Index, Integer, String, text
from sqlalchemy.orm import relationship

from app.db.base import Base


class CustomerLookup(Base):
    __tablename__ = 'customer_lookup'

    customer_id = Column(Integer, primary_key=True, autoincrement=True)
    # NULL for guest customers, who are identified by email instead
    user_id = Column(Integer, nullable=True, unique=True)
    username = Column(String(60), nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(100), nullable=True, index=True)
    country = Column(String(2), nullable=True)
    city = Column(String(100), nullable=True)
    postcode = Column(String(20), nullable=True)
    date_registered = Column(DateTime(timezone=True), nullable=True)
    date_last_active = Column(DateTime(timezone=True), nullable=True)

    orders = relationship("OrderStats", back_populates="customer")

    __table_args__ = (
        # At most one guest row per email; registered rows may share it
        Index(
            'uq_customer_lookup_guest_email',
            'email',
            unique=True,
            postgresql_where=text('user_id IS NULL'),
            sqlite_where=text('user_id IS NULL'),
        ),
    )

    @property
    def is_guest(self) -> bool:
        return self.user_id is None
