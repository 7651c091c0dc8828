from sqlalchemy import Integer, Date, DateTime, func, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from coopledger.db.base import Base

class Loan(Base):
    __tablename__ = "loans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), index=True)

    principal_amount: Mapped[float] = mapped_column(Numeric(14, 2))
    interest_rate_percent_per_month: Mapped[float] = mapped_column(Numeric(8, 4), server_default="1.0")
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    remaining_balance: Mapped[float] = mapped_column(Numeric(14, 2), server_default="0")

    disbursed_date: Mapped[Date | None] = mapped_column(Date, nullable=True)
    next_due_date: Mapped[Date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
