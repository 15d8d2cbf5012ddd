from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy import Integer, String, Text, Numeric, ForeignKey, DateTime, CheckConstraint, func

from .authz import Base

# Exact purpose text that routes a transfer through the recipient-side approvals
INTERCOMPANY_PURPOSE = 'Transfer to other intercompany/Cost Center/Owner'


class AssetTransfer(Base):
    __tablename__ = 'asset_transfers'
    # Status constants
    STATUS_DRAFT = 'Draft'
    STATUS_PENDING_MANAGER = 'PendingManagerApproval'
    STATUS_PENDING_ACCOUNTANT = 'PendingAccountantUpdate'
    STATUS_PENDING_RECIPIENT = 'PendingRecipientApproval'
    STATUS_PENDING_RECIPIENT_MANAGER = 'PendingRecipientManagerApproval'
    STATUS_PENDING_FINANCE_CONTROLLER = 'PendingFinanceControllerApproval'
    STATUS_APPROVED = 'Approved'
    STATUS_REJECTED = 'Rejected'
    ALL_STATUSES = (
        STATUS_DRAFT, STATUS_PENDING_MANAGER, STATUS_PENDING_ACCOUNTANT, STATUS_PENDING_RECIPIENT,
        STATUS_PENDING_RECIPIENT_MANAGER, STATUS_PENDING_FINANCE_CONTROLLER, STATUS_APPROVED, STATUS_REJECTED,
    )
    TERMINAL_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)
    # Transfer kind constants (fixed at creation, drives the accountant branch)
    KIND_INTERCOMPANY = 'INTERCOMPANY'
    KIND_INTERNAL = 'INTERNAL'
    ALL_KINDS = (KIND_INTERCOMPANY, KIND_INTERNAL)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    requestor_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    request_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    asset_description: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_tag_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    current_location: Mapped[str] = mapped_column(String(128), nullable=False)
    current_cost_center: Mapped[str] = mapped_column(String(64), nullable=False)
    current_owner: Mapped[str] = mapped_column(String(128), nullable=False)
    new_location: Mapped[str] = mapped_column(String(128), nullable=False)
    new_cost_center: Mapped[str] = mapped_column(String(64), nullable=False)
    new_owner: Mapped[str] = mapped_column(String(128), nullable=False)
    purpose: Mapped[str] = mapped_column(String(255), nullable=False)
    transfer_kind: Mapped[str] = mapped_column(String(16), nullable=False, default=KIND_INTERNAL)
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    # Financial details (filled by accountant)
    cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    net_book_value: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    accountant_sign_off_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    accountant_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'), nullable=True)
    recipient_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'), nullable=True, index=True)
    # Approval workflow
    status: Mapped[str] = mapped_column(String(40), nullable=False, default=STATUS_DRAFT, index=True)
    manager_approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    recipient_approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    recipient_manager_approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    finance_controller_approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rejected_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    requestor = relationship('User', foreign_keys='AssetTransfer.requestor_id')
    accountant = relationship('User', foreign_keys='AssetTransfer.accountant_id')
    recipient = relationship('User', foreign_keys='AssetTransfer.recipient_id')
    rejected_by = relationship('User', foreign_keys='AssetTransfer.rejected_by_id')

    __mapper_args__ = {'version_id_col': version}
    __table_args__ = (
        CheckConstraint(
            "status IN ('Draft','PendingManagerApproval','PendingAccountantUpdate','PendingRecipientApproval',"
            "'PendingRecipientManagerApproval','PendingFinanceControllerApproval','Approved','Rejected')",
            name='ck_asset_transfers_status',
        ),
        CheckConstraint("transfer_kind IN ('INTERCOMPANY','INTERNAL')", name='ck_asset_transfers_kind'),
    )

    @validates('status')
    def _check_status(self, key, value):
        if value not in self.ALL_STATUSES:
            raise ValueError(f'Unknown transfer status {value!r}')
        return value

    @validates('transfer_kind')
    def _check_kind(self, key, value):
        if value not in self.ALL_KINDS:
            raise ValueError(f'Unknown transfer kind {value!r}')
        return value

    @classmethod
    def kind_for_purpose(cls, purpose: str) -> str:
        return cls.KIND_INTERCOMPANY if purpose == INTERCOMPANY_PURPOSE else cls.KIND_INTERNAL

# Status flow: Draft -> PendingManagerApproval -> PendingAccountantUpdate
#   -> [PendingRecipientApproval -> PendingRecipientManagerApproval] (INTERCOMPANY only)
#   -> PendingFinanceControllerApproval -> Approved; Rejected from any non-terminal status.
