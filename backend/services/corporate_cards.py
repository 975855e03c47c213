"""
Corporate virtual cards, expenses and the card-issuer webhook.
"""

from __future__ import annotations

import json
import logging
import time
from collections import defaultdict
from datetime import date
from typing import Optional

import stripe
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from backend.auth import CurrentUser
from backend.card_issuer import CardIssuer, CardIssuerError
from backend.db import (
    CardTransactionRow,
    CorporateCardRow,
    Database,
    ExpenseRow,
    UserRow,
)
from backend.errors import (
    AccessDeniedError,
    BadRequestError,
    NotFoundError,
    UpstreamUnavailableError,
)
from backend.schemas import (
    CardIssueRequest,
    CardUpdateRequest,
    ExpenseApproveRequest,
    ExpenseCreate,
    SpendAnalyticsResponse,
    SpendBreakdownItem,
)
from backend.services.trips import load_trip

logger = logging.getLogger(__name__)

ISSUER_FAILURE = "Card issuer is unavailable"


def _organization_of(user: CurrentUser) -> int:
    if user.organization_id is None:
        raise BadRequestError("User is not part of an organization")
    return user.organization_id


def _load_card(session: Session, card_id: int, user: CurrentUser) -> CorporateCardRow:
    card = session.get(CorporateCardRow, card_id)
    if not card:
        raise NotFoundError("Card not found")
    if not user.is_superadmin and card.organization_id != user.organization_id:
        raise AccessDeniedError("Card belongs to another organization")
    return card


def _manages(user: CurrentUser, card: CorporateCardRow) -> bool:
    return user.is_superadmin or (
        user.is_admin and card.organization_id == user.organization_id
    )


# Cards


def issue_card(
    db: Database, user: CurrentUser, payload: CardIssueRequest, issuer: CardIssuer
) -> CorporateCardRow:
    organization_id = _organization_of(user)
    with db.session() as session:
        holder = session.execute(
            select(UserRow).where(func.lower(UserRow.email) == payload.user_email.lower())
        ).scalar_one_or_none()
        if not holder:
            raise NotFoundError("User not found")
        if holder.organization_id != organization_id:
            raise AccessDeniedError("User belongs to another organization")
        try:
            issued = issuer.issue_card(
                cardholder_name=payload.cardholder_name,
                email=holder.email,
                spend_limit=payload.spend_limit,
                interval=payload.interval,
                allowed_categories=payload.allowed_categories,
                blocked_categories=payload.blocked_categories,
                metadata={
                    "organization_id": str(organization_id),
                    "user_id": str(holder.id),
                },
            )
        except CardIssuerError as e:
            raise UpstreamUnavailableError(ISSUER_FAILURE) from e
        card = CorporateCardRow(
            organization_id=organization_id,
            user_id=holder.id,
            issuer_card_id=issued.card_id,
            issuer_cardholder_id=issued.cardholder_id,
            last4=issued.last4,
            cardholder_name=payload.cardholder_name,
            spend_limit=payload.spend_limit,
            interval=payload.interval,
            status="active",
            purpose=payload.purpose,
            department=payload.department,
            allowed_categories=payload.allowed_categories,
            blocked_categories=payload.blocked_categories,
        )
        session.add(card)
    logger.info("Issued card %s to user %s", card.id, card.user_id)
    return card


def list_cards(db: Database, user: CurrentUser) -> list[CorporateCardRow]:
    organization_id = _organization_of(user)
    with db.session() as session:
        return list(
            session.execute(
                select(CorporateCardRow)
                .where(CorporateCardRow.organization_id == organization_id)
                .order_by(CorporateCardRow.created_at.desc())
            ).scalars()
        )


def user_cards(db: Database, user: CurrentUser, user_id: int) -> list[CorporateCardRow]:
    query = select(CorporateCardRow).where(CorporateCardRow.user_id == user_id)
    if user.id != user_id:
        if not user.is_admin:
            raise AccessDeniedError("Access denied")
        if not user.is_superadmin:
            query = query.where(
                CorporateCardRow.organization_id == _organization_of(user)
            )
    with db.session() as session:
        return list(session.execute(query.order_by(CorporateCardRow.id)).scalars())


def update_card(
    db: Database,
    user: CurrentUser,
    card_id: int,
    payload: CardUpdateRequest,
    issuer: CardIssuer,
) -> CorporateCardRow:
    changes = payload.model_dump(exclude_unset=True)
    with db.session() as session:
        card = _load_card(session, card_id, user)
        if card.status == "canceled":
            raise BadRequestError("Card is canceled")
        try:
            issuer.update_card(
                card.issuer_card_id,
                spend_limit=changes.get("spend_limit"),
                interval=changes.get("interval") or card.interval,
                allowed_categories=changes.get("allowed_categories"),
                blocked_categories=changes.get("blocked_categories"),
                status=changes.get("status"),
            )
        except CardIssuerError as e:
            raise UpstreamUnavailableError(ISSUER_FAILURE) from e
        for key, value in changes.items():
            setattr(card, key, value)
        return card


def freeze_card(
    db: Database, user: CurrentUser, card_id: int, freeze: bool, issuer: CardIssuer
) -> CorporateCardRow:
    with db.session() as session:
        card = _load_card(session, card_id, user)
        if card.status == "canceled":
            raise BadRequestError("Card is canceled")
        status = "frozen" if freeze else "active"
        try:
            issuer.update_card(card.issuer_card_id, status=status)
        except CardIssuerError as e:
            raise UpstreamUnavailableError(ISSUER_FAILURE) from e
        card.status = status
        return card


def cancel_card(
    db: Database, user: CurrentUser, card_id: int, issuer: CardIssuer
) -> CorporateCardRow:
    with db.session() as session:
        card = _load_card(session, card_id, user)
        if card.status != "canceled":
            try:
                issuer.cancel_card(card.issuer_card_id)
            except CardIssuerError as e:
                raise UpstreamUnavailableError(ISSUER_FAILURE) from e
            card.status = "canceled"
        return card


def card_transactions(
    db: Database, user: CurrentUser, card_id: int, limit: int = 50, offset: int = 0
) -> tuple[list[CardTransactionRow], int]:
    with db.session() as session:
        card = _load_card(session, card_id, user)
        if card.user_id != user.id and not _manages(user, card):
            raise AccessDeniedError("Access denied")
        total = session.execute(
            select(func.count(CardTransactionRow.id)).where(
                CardTransactionRow.card_id == card.id
            )
        ).scalar_one()
        rows = list(
            session.execute(
                select(CardTransactionRow)
                .where(CardTransactionRow.card_id == card.id)
                .order_by(CardTransactionRow.created_at.desc())
                .limit(limit)
                .offset(offset)
            ).scalars()
        )
        return rows, total


def spend_analytics(
    db: Database,
    user: CurrentUser,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> SpendAnalyticsResponse:
    organization_id = _organization_of(user)
    query = select(ExpenseRow).where(ExpenseRow.organization_id == organization_id)
    if start_date:
        query = query.where(ExpenseRow.transaction_date >= start_date)
    if end_date:
        query = query.where(ExpenseRow.transaction_date <= end_date)
    with db.session() as session:
        expenses = list(session.execute(query).scalars())
        cards = {
            c.id: c
            for c in session.execute(
                select(CorporateCardRow).where(
                    CorporateCardRow.organization_id == organization_id
                )
            ).scalars()
        }
        users = {
            u.id: u
            for u in session.execute(
                select(UserRow).where(UserRow.organization_id == organization_id)
            ).scalars()
        }

    counted = [e for e in expenses if e.approval_status != "rejected"]
    total = round(sum(e.amount for e in counted), 2)

    def breakdown(key_of, label_of) -> list[SpendBreakdownItem]:
        totals: dict = defaultdict(float)
        counts: dict = defaultdict(int)
        for expense in counted:
            key = key_of(expense)
            if key is None:
                continue
            totals[key] += expense.amount
            counts[key] += 1
        return sorted(
            (
                SpendBreakdownItem(
                    key=str(key),
                    label=label_of(key),
                    total=round(amount, 2),
                    count=counts[key],
                )
                for key, amount in totals.items()
            ),
            key=lambda item: item.total,
            reverse=True,
        )

    return SpendAnalyticsResponse(
        total_spend=total,
        expense_count=len(counted),
        average_expense=round(total / len(counted), 2) if counted else 0.0,
        by_category=breakdown(lambda e: e.expense_category, lambda key: key),
        by_card=breakdown(
            lambda e: e.card_id,
            lambda key: f"**** {cards[key].last4}" if key in cards else None,
        ),
        by_user=breakdown(
            lambda e: e.user_id,
            lambda key: users[key].email if key in users else None,
        ),
        pending_approvals=sum(1 for e in expenses if e.approval_status == "pending"),
    )


# Expenses


def create_expense(
    db: Database,
    user: CurrentUser,
    payload: ExpenseCreate,
    *,
    auto_approve_limit: float,
) -> ExpenseRow:
    with db.session() as session:
        if payload.card_id is not None:
            card = _load_card(session, payload.card_id, user)
            if card.user_id != user.id and not _manages(user, card):
                raise AccessDeniedError("Card belongs to another user")
        if payload.trip_id is not None:
            load_trip(session, payload.trip_id, user)
        expense = ExpenseRow(
            organization_id=user.organization_id,
            user_id=user.id,
            **payload.model_dump(),
            status="pending",
            approval_status=(
                "pending" if payload.amount > auto_approve_limit else "auto_approved"
            ),
        )
        expense.currency = expense.currency.upper()
        session.add(expense)
    return expense


def list_expenses(
    db: Database,
    user: CurrentUser,
    *,
    user_id: Optional[int] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[ExpenseRow], int]:
    query = select(ExpenseRow)
    if not user.is_admin:
        query = query.where(ExpenseRow.user_id == user.id)
    else:
        if not user.is_superadmin:
            query = query.where(ExpenseRow.organization_id == _organization_of(user))
        if user_id is not None:
            query = query.where(ExpenseRow.user_id == user_id)
    if status:
        query = query.where(
            or_(ExpenseRow.status == status, ExpenseRow.approval_status == status)
        )
    if category:
        query = query.where(ExpenseRow.expense_category == category)
    with db.session() as session:
        total = session.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar_one()
        rows = list(
            session.execute(
                query.order_by(ExpenseRow.transaction_date.desc(), ExpenseRow.id.desc())
                .limit(limit)
                .offset(offset)
            ).scalars()
        )
    return rows, total


def review_expense(
    db: Database, user: CurrentUser, payload: ExpenseApproveRequest
) -> ExpenseRow:
    with db.session() as session:
        expense = session.get(ExpenseRow, payload.expense_id)
        if not expense:
            raise NotFoundError("Expense not found")
        if not user.is_superadmin and expense.organization_id != user.organization_id:
            raise AccessDeniedError("Expense belongs to another organization")
        expense.status = payload.status
        expense.approval_status = payload.status
        expense.approved_by = user.id
        expense.approved_at = time.time()
        if payload.status == "approved":
            expense.approved_amount = (
                payload.approved_amount
                if payload.approved_amount is not None
                else expense.amount
            )
            expense.rejection_reason = None
        else:
            expense.approved_amount = None
            expense.rejection_reason = payload.comments or "Rejected"
    logger.info("Expense %s %s by user %s", expense.id, payload.status, user.id)
    return expense


# Webhook


def verify_webhook(payload: bytes, signature: Optional[str], secret: Optional[str]) -> dict:
    if not secret:
        raise BadRequestError("Webhook secret is not configured")
    if not signature:
        raise BadRequestError("Missing signature")
    body = payload.decode("utf-8")
    try:
        stripe.WebhookSignature.verify_header(
            body, signature, secret, stripe.Webhook.DEFAULT_TOLERANCE
        )
        return json.loads(body)
    except (stripe.SignatureVerificationError, ValueError) as e:
        logger.warning("Rejected card webhook: %s", e)
        raise BadRequestError("Invalid webhook signature") from e


def _record_transaction(session: Session, data: dict) -> None:
    card_ref = data.get("card")
    issuer_card_id = card_ref.get("id") if isinstance(card_ref, dict) else card_ref
    card = session.execute(
        select(CorporateCardRow).where(CorporateCardRow.issuer_card_id == issuer_card_id)
    ).scalar_one_or_none()
    if not card:
        logger.warning("Transaction for unknown card %s", issuer_card_id)
        return
    transaction_id = data.get("id")
    seen = session.execute(
        select(CardTransactionRow.id).where(
            CardTransactionRow.issuer_transaction_id == transaction_id
        )
    ).first()
    if seen:
        return
    # Issuer amounts are in cents and negative for purchases.
    amount = abs(int(data.get("amount") or 0)) / 100
    merchant = data.get("merchant_data") or {}
    session.add(
        CardTransactionRow(
            card_id=card.id,
            issuer_transaction_id=transaction_id,
            amount=amount,
            currency=(data.get("currency") or "usd").upper(),
            merchant_name=merchant.get("name"),
            merchant_category=merchant.get("category"),
        )
    )
    card.current_spend = round(card.current_spend + amount, 2)


def _sync_card_status(session: Session, data: dict) -> None:
    card = session.execute(
        select(CorporateCardRow).where(CorporateCardRow.issuer_card_id == data.get("id"))
    ).scalar_one_or_none()
    if not card:
        logger.warning("Status update for unknown card %s", data.get("id"))
        return
    status = data.get("status")
    # A card we froze comes back as "inactive".
    if status == "inactive" and card.status == "frozen":
        return
    if status in ("active", "inactive", "canceled"):
        card.status = status


def handle_webhook(db: Database, event: dict) -> None:
    event_type = event.get("type")
    data = (event.get("data") or {}).get("object") or {}
    with db.session() as session:
        if event_type == "issuing_transaction.created":
            _record_transaction(session, data)
        elif event_type == "issuing_card.updated":
            _sync_card_status(session, data)
        else:
            logger.info("Ignoring card webhook event %s", event_type)
