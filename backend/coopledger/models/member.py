from sqlalchemy import Integer, Date, DateTime, func, String
from sqlalchemy.orm import Mapped, mapped_column
from coopledger.db.base import Base

class Member(Base):
    __tablename__ = "members"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    society_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(128))
    phone: Mapped[str] = mapped_column(String(32), default="")
    join_date: Mapped[Date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="active")
    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
