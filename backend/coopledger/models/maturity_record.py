from sqlalchemy import Boolean, Integer, Date, DateTime, func, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from coopledger.db.base import Base

class MaturityRecord(Base):
    __tablename__ = "maturity_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), unique=True, index=True)

    total_deposit: Mapped[float] = mapped_column(Numeric(14, 2))
    start_date: Mapped[Date] = mapped_column(Date)
    maturity_date: Mapped[Date] = mapped_column(Date, index=True)
    months_completed: Mapped[int] = mapped_column(Integer)
    remaining_months: Mapped[int] = mapped_column(Integer)

    monthly_interest_rate: Mapped[float] = mapped_column(Numeric(12, 10))
    current_interest: Mapped[float] = mapped_column(Numeric(14, 2))
    full_interest: Mapped[float] = mapped_column(Numeric(14, 2))
    adjusted_interest: Mapped[float] = mapped_column(Numeric(14, 2))
    loan_adjustment: Mapped[float] = mapped_column(Numeric(14, 2), server_default="0")

    manual_override: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(16), default="active", index=True)
    claimed_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
