from sqlalchemy import Boolean, Integer, Date, DateTime, func, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from coopledger.db.base import Base

class Transaction(Base):
    __tablename__ = "transactions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), index=True)
    transaction_date: Mapped[Date] = mapped_column(Date, index=True)
    deposit_amount: Mapped[float | None] = mapped_column(Numeric(14, 2), nullable=True)
    loan_installment_amount: Mapped[float | None] = mapped_column(Numeric(14, 2), nullable=True)
    interest_amount: Mapped[float | None] = mapped_column(Numeric(14, 2), nullable=True)
    fine_amount: Mapped[float | None] = mapped_column(Numeric(14, 2), nullable=True)
    mode: Mapped[str] = mapped_column(String(64), default="")
    loan_reference_id: Mapped[int | None] = mapped_column(ForeignKey("loans.id", ondelete="SET NULL"), nullable=True, index=True)
    kind: Mapped[str | None] = mapped_column(String(24), nullable=True)
    needs_review: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
