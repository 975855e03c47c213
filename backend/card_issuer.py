"""
Virtual corporate card issuing (Stripe Issuing) and an in-memory stand-in.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import stripe

logger = logging.getLogger(__name__)

# Our "frozen" state is Stripe's "inactive".
ISSUER_STATUS = {
    "active": "active",
    "inactive": "inactive",
    "frozen": "inactive",
    "canceled": "canceled",
}


class CardIssuerError(Exception):
    pass


@dataclass
class IssuedCard:
    card_id: str
    cardholder_id: str
    last4: str
    status: str


class CardIssuer(Protocol):
    def issue_card(
        self,
        *,
        cardholder_name: str,
        email: str,
        spend_limit: float,
        interval: str,
        allowed_categories: list[str],
        blocked_categories: list[str],
        metadata: dict,
    ) -> IssuedCard:
        ...

    def update_card(
        self,
        card_id: str,
        *,
        spend_limit: Optional[float] = None,
        interval: Optional[str] = None,
        allowed_categories: Optional[list[str]] = None,
        blocked_categories: Optional[list[str]] = None,
        status: Optional[str] = None,
    ) -> None:
        ...

    def cancel_card(self, card_id: str) -> None:
        ...


def spending_controls(
    spend_limit: Optional[float],
    interval: Optional[str],
    allowed_categories: Optional[list[str]],
    blocked_categories: Optional[list[str]],
) -> dict:
    controls: dict = {}
    if spend_limit is not None:
        controls["spending_limits"] = [
            {"amount": int(round(spend_limit * 100)), "interval": interval or "monthly"}
        ]
    # Stripe accepts either an allow list or a block list, not both.
    if allowed_categories:
        controls["allowed_categories"] = allowed_categories
    elif blocked_categories:
        controls["blocked_categories"] = blocked_categories
    return controls


@dataclass
class StripeCardIssuer:
    api_key: str
    billing_address: dict

    def issue_card(
        self,
        *,
        cardholder_name: str,
        email: str,
        spend_limit: float,
        interval: str,
        allowed_categories: list[str],
        blocked_categories: list[str],
        metadata: dict,
    ) -> IssuedCard:
        try:
            cardholder = stripe.issuing.Cardholder.create(
                api_key=self.api_key,
                type="individual",
                name=cardholder_name,
                email=email,
                status="active",
                billing={"address": self.billing_address},
                metadata=metadata,
            )
            card = stripe.issuing.Card.create(
                api_key=self.api_key,
                cardholder=cardholder.id,
                currency="usd",
                type="virtual",
                status="active",
                spending_controls=spending_controls(
                    spend_limit, interval, allowed_categories, blocked_categories
                ),
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.exception("Stripe card issuing failed for %s", email)
            raise CardIssuerError(str(e)) from e
        return IssuedCard(
            card_id=card.id,
            cardholder_id=cardholder.id,
            last4=card.last4,
            status=card.status,
        )

    def update_card(
        self,
        card_id: str,
        *,
        spend_limit: Optional[float] = None,
        interval: Optional[str] = None,
        allowed_categories: Optional[list[str]] = None,
        blocked_categories: Optional[list[str]] = None,
        status: Optional[str] = None,
    ) -> None:
        params: dict = {}
        controls = spending_controls(
            spend_limit, interval, allowed_categories, blocked_categories
        )
        if controls:
            params["spending_controls"] = controls
        if status:
            params["status"] = ISSUER_STATUS[status]
        if not params:
            return
        try:
            stripe.issuing.Card.modify(card_id, api_key=self.api_key, **params)
        except stripe.StripeError as e:
            logger.exception("Stripe card update failed for %s", card_id)
            raise CardIssuerError(str(e)) from e

    def cancel_card(self, card_id: str) -> None:
        self.update_card(card_id, status="canceled")


@dataclass
class InMemoryCardIssuer:
    cards: dict = field(default_factory=dict)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def reset(self) -> None:
        self.cards.clear()
        self._ids = itertools.count(1)

    def issue_card(
        self,
        *,
        cardholder_name: str,
        email: str,
        spend_limit: float,
        interval: str,
        allowed_categories: list[str],
        blocked_categories: list[str],
        metadata: dict,
    ) -> IssuedCard:
        number = next(self._ids)
        card = IssuedCard(
            card_id=f"ic_test_{number}",
            cardholder_id=f"ich_test_{number}",
            last4=f"{4240 + number:04d}"[-4:],
            status="active",
        )
        self.cards[card.card_id] = {
            "card": card,
            "controls": spending_controls(
                spend_limit, interval, allowed_categories, blocked_categories
            ),
            "metadata": metadata,
        }
        return card

    def update_card(
        self,
        card_id: str,
        *,
        spend_limit: Optional[float] = None,
        interval: Optional[str] = None,
        allowed_categories: Optional[list[str]] = None,
        blocked_categories: Optional[list[str]] = None,
        status: Optional[str] = None,
    ) -> None:
        entry = self.cards.get(card_id)
        if not entry:
            raise CardIssuerError(f"No such card: {card_id}")
        controls = spending_controls(
            spend_limit, interval, allowed_categories, blocked_categories
        )
        entry["controls"].update(controls)
        if status:
            entry["card"].status = ISSUER_STATUS[status]

    def cancel_card(self, card_id: str) -> None:
        self.update_card(card_id, status="canceled")
