"""
SQLAlchemy ORM models for the loan ledger schema.

These models provide type-safe database access and support for:
- Per-user loan ownership
- Immutable payment history per loan
- Idempotent payment retries (unique key per loan)
- Automatic timestamp management
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# ======================
# Core Tables
# ======================


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    email = Column(Text, unique=True)
    external_subject = Column(Text, unique=True, index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    is_active = Column(Boolean, default=True)

    # Relationships
    loans = relationship("Loan", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', email='{self.email}')>"


class Loan(Base):
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    lender_name = Column(Text)
    notes = Column(Text)

    # Schedule parameters, fixed at creation
    principal = Column(Numeric(15, 2), nullable=False)
    annual_interest_rate = Column(Numeric(7, 4), nullable=False)
    payment_frequency = Column(Text, nullable=False, default="monthly")
    compounding_frequency = Column(Text, nullable=False, default="monthly")
    number_of_payments = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    payment_amount = Column(Numeric(15, 2), nullable=False)

    # Running ledger state
    status = Column(Text, nullable=False, default="active")
    amount_paid = Column(Numeric(15, 2), nullable=False, default=0)
    remaining_balance = Column(Numeric(15, 2), nullable=False)
    total_interest_paid = Column(Numeric(15, 2), nullable=False, default=0)
    payments_made = Column(Integer, nullable=False, default=0)
    payments_remaining = Column(Integer, nullable=False)
    next_due_date = Column(Date)
    last_payment_date = Column(Date)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="loans")
    payments = relationship(
        "LoanPayment",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="LoanPayment.id",
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("status IN ('active', 'paid_off')", name="ck_loan_status"),
        CheckConstraint(
            "payment_frequency IN ('monthly', 'quarterly', 'half-yearly')",
            name="ck_loan_payment_frequency",
        ),
        CheckConstraint(
            "compounding_frequency IN ('monthly', 'quarterly', 'half-yearly')",
            name="ck_loan_compounding_frequency",
        ),
        CheckConstraint("number_of_payments > 0", name="ck_loan_number_of_payments"),
        CheckConstraint("principal > 0", name="ck_loan_principal"),
        CheckConstraint("remaining_balance >= 0", name="ck_loan_remaining_balance"),
        Index("idx_loans_user_id", "user_id"),
        Index("idx_loans_status", "status"),
    )

    def __repr__(self):
        return f"<Loan(id={self.id}, title='{self.title}', status='{self.status}', balance={self.remaining_balance})>"


class LoanPayment(Base):
    __tablename__ = "loan_payments"

    id = Column(Integer, primary_key=True)
    loan_id = Column(Integer, ForeignKey("loans.id", ondelete="CASCADE"), nullable=False)
    kind = Column(Text, nullable=False, default="regular")
    amount = Column(Numeric(15, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    interest = Column(Numeric(15, 2), nullable=False)
    principal_paid = Column(Numeric(15, 2), nullable=False)
    unpaid_interest = Column(Numeric(15, 2), nullable=False, default=0)
    balance_after = Column(Numeric(15, 2), nullable=False)
    # Set only on the transaction that closed the loan
    savings = Column(Numeric(15, 2))
    idempotency_key = Column(Text)
    recorded_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    loan = relationship("Loan", back_populates="payments")

    # Constraints
    __table_args__ = (
        UniqueConstraint("loan_id", "idempotency_key", name="uq_payment_loan_idempotency_key"),
        CheckConstraint("kind IN ('regular', 'payoff')", name="ck_payment_kind"),
        CheckConstraint("amount > 0", name="ck_payment_amount"),
        Index("idx_loan_payments_loan_id", "loan_id"),
        Index("idx_loan_payments_date", "payment_date"),
    )

    def __repr__(self):
        return f"<LoanPayment(id={self.id}, loan_id={self.loan_id}, amount={self.amount}, kind='{self.kind}')>"
