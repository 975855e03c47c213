"""
Routes for corporate cards, expenses and the card-issuer webhook.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request

from backend.auth import CurrentUser, get_current_user, require_role
from backend.card_issuer import CardIssuer
from backend.config import Settings, get_settings
from backend.db import Database
from backend.dependencies import get_card_issuer, get_db
from backend.schemas import (
    CardFreezeRequest,
    CardIssueRequest,
    CardResponse,
    CardsResponse,
    CardUpdateRequest,
    ExpenseApproveRequest,
    ExpenseCreate,
    ExpenseResponse,
    ExpensesResponse,
    SpendAnalyticsResponse,
    StatusResponse,
    TransactionsResponse,
)
from backend.services import corporate_cards
from shared.types import Role

router = APIRouter()
expenses_router = APIRouter()
webhooks_router = APIRouter()

require_admin = require_role(Role.ADMIN)


@router.post("/issue", response_model=CardResponse, status_code=201)
def issue_card(
    payload: CardIssueRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
    issuer: CardIssuer = Depends(get_card_issuer),
):
    return corporate_cards.issue_card(db, user, payload, issuer)


@router.get("/cards", response_model=CardsResponse)
def list_cards(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return CardsResponse(cards=corporate_cards.list_cards(db, user))


@router.get("/analytics", response_model=SpendAnalyticsResponse)
def spend_analytics(
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return corporate_cards.spend_analytics(db, user, start_date, end_date)


@router.get("/user/{user_id}", response_model=CardsResponse)
def user_cards(
    user_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return CardsResponse(cards=corporate_cards.user_cards(db, user, user_id))


@router.put("/{card_id}", response_model=CardResponse)
def update_card(
    card_id: int,
    payload: CardUpdateRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
    issuer: CardIssuer = Depends(get_card_issuer),
):
    return corporate_cards.update_card(db, user, card_id, payload, issuer)


@router.post("/{card_id}/freeze", response_model=CardResponse)
def freeze_card(
    card_id: int,
    payload: CardFreezeRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
    issuer: CardIssuer = Depends(get_card_issuer),
):
    return corporate_cards.freeze_card(db, user, card_id, payload.freeze, issuer)


@router.delete("/{card_id}", response_model=CardResponse)
def cancel_card(
    card_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
    issuer: CardIssuer = Depends(get_card_issuer),
):
    return corporate_cards.cancel_card(db, user, card_id, issuer)


@router.get("/{card_id}/transactions", response_model=TransactionsResponse)
def card_transactions(
    card_id: int,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    rows, total = corporate_cards.card_transactions(db, user, card_id, limit, offset)
    return TransactionsResponse(transactions=rows, total=total)


@expenses_router.post("", response_model=ExpenseResponse, status_code=201)
def create_expense(
    payload: ExpenseCreate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    return corporate_cards.create_expense(
        db, user, payload, auto_approve_limit=settings.expense_auto_approve_limit
    )


@expenses_router.get("", response_model=ExpensesResponse)
def list_expenses(
    user_id: Optional[int] = Query(default=None),
    status: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    rows, total = corporate_cards.list_expenses(
        db,
        user,
        user_id=user_id,
        status=status,
        category=category,
        limit=limit,
        offset=offset,
    )
    return ExpensesResponse(expenses=rows, total=total)


@expenses_router.post("/approve", response_model=ExpenseResponse)
def review_expense(
    payload: ExpenseApproveRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return corporate_cards.review_expense(db, user, payload)


@webhooks_router.post("/card-issuing", response_model=StatusResponse)
async def card_issuing_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Receives issuer events; the raw body is needed to check the signature."""
    payload = await request.body()
    event = corporate_cards.verify_webhook(
        payload, stripe_signature, settings.stripe_issuing_webhook_secret
    )
    corporate_cards.handle_webhook(db, event)
    return StatusResponse(message="received")
