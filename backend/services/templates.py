"""
Trip templates: the creator marketplace and purchases.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.auth import CurrentUser
from backend.db import (
    ActivityRow,
    Database,
    TemplatePurchaseRow,
    TemplateRow,
    TripRow,
    UserRow,
)
from backend.errors import AccessDeniedError, BadRequestError, NotFoundError
from backend.schemas import (
    TemplateCreate,
    TemplateFromTripRequest,
    TemplatePurchaseRequest,
    TemplateUpdate,
)
from backend.services.trips import load_trip, trip_activities
from shared.geo import trip_day_count
from shared.string_utils import random_code, slugify

logger = logging.getLogger(__name__)

PURCHASE_LEAD_DAYS = 14


def unique_slug(session: Session, model, title: str) -> str:
    """A slug for `title` not yet used by any row of `model`."""
    base = slugify(title) or "untitled"
    slug = base
    while session.execute(select(model.id).where(model.slug == slug)).first():
        slug = f"{base}-{random_code(6).lower()}"
    return slug


def _load_template(session: Session, template_id: int) -> TemplateRow:
    template = session.get(TemplateRow, template_id)
    if not template:
        raise NotFoundError("Template not found")
    return template


def _check_owner(template: TemplateRow, user: CurrentUser) -> None:
    if template.user_id != user.id and not user.is_admin:
        raise AccessDeniedError("Only the creator can modify this template")


def _mark_creator(session: Session, user_id: int) -> None:
    row = session.get(UserRow, user_id)
    if row and not row.is_creator:
        row.is_creator = True


def is_available(template: TemplateRow) -> bool:
    return template.status == "published" and template.moderation_status != "rejected"


def has_purchased(session: Session, template_id: int, user_id: int) -> bool:
    return bool(
        session.execute(
            select(TemplatePurchaseRow.id).where(
                TemplatePurchaseRow.template_id == template_id,
                TemplatePurchaseRow.buyer_id == user_id,
                TemplatePurchaseRow.status == "completed",
            )
        ).first()
    )


def list_templates(
    db: Database,
    *,
    tag: Optional[str] = None,
    destination: Optional[str] = None,
    max_price: Optional[float] = None,
    creator_id: Optional[int] = None,
) -> list[TemplateRow]:
    query = select(TemplateRow).where(
        TemplateRow.status == "published",
        TemplateRow.moderation_status != "rejected",
    )
    if max_price is not None:
        query = query.where(TemplateRow.price <= max_price)
    if creator_id is not None:
        query = query.where(TemplateRow.user_id == creator_id)
    query = query.order_by(TemplateRow.sales_count.desc(), TemplateRow.created_at.desc())
    with db.session() as session:
        templates = list(session.execute(query).scalars())
    # Tags and destinations are JSON lists; filter them here so every
    # database backend behaves the same.
    if tag:
        templates = [t for t in templates if tag.lower() in (x.lower() for x in t.tags)]
    if destination:
        needle = destination.lower()
        templates = [
            t for t in templates if any(needle in d.lower() for d in t.destinations)
        ]
    return templates


def get_template(
    db: Database, slug: str, user: Optional[CurrentUser]
) -> tuple[TemplateRow, bool]:
    """Returns the template (counting the view) and whether the caller bought it."""
    with db.session() as session:
        template = session.execute(
            select(TemplateRow).where(TemplateRow.slug == slug)
        ).scalar_one_or_none()
        if not template:
            raise NotFoundError("Template not found")
        is_owner = user is not None and (template.user_id == user.id or user.is_admin)
        if not is_available(template) and not is_owner:
            raise NotFoundError("Template not found")
        template.view_count += 1
        purchased = user is not None and has_purchased(session, template.id, user.id)
        return template, purchased


def create_template(db: Database, user: CurrentUser, payload: TemplateCreate) -> TemplateRow:
    with db.session() as session:
        template = TemplateRow(
            user_id=user.id,
            title=payload.title,
            slug=unique_slug(session, TemplateRow, payload.title),
            description=payload.description,
            price=payload.price,
            currency=payload.currency.upper(),
            cover_image=payload.cover_image,
            destinations=payload.destinations,
            duration=payload.duration,
            tags=payload.tags,
            trip_data={"activities": [a.model_dump() for a in payload.activities]},
            status="draft",
            moderation_status="pending",
        )
        session.add(template)
        _mark_creator(session, user.id)
    logger.info("User %s created template %s", user.id, template.slug)
    return template


def update_template(
    db: Database, user: CurrentUser, template_id: int, payload: TemplateUpdate
) -> TemplateRow:
    changes = payload.model_dump(exclude_unset=True)
    with db.session() as session:
        template = _load_template(session, template_id)
        _check_owner(template, user)
        activities = changes.pop("activities", None)
        for key, value in changes.items():
            setattr(template, key, value)
        if activities is not None:
            template.trip_data = {"activities": activities}
        return template


def delete_template(db: Database, user: CurrentUser, template_id: int) -> str:
    """Archives a template that has sales, deletes it otherwise."""
    with db.session() as session:
        template = _load_template(session, template_id)
        _check_owner(template, user)
        sold = session.execute(
            select(TemplatePurchaseRow.id).where(
                TemplatePurchaseRow.template_id == template.id
            )
        ).first()
        if sold:
            template.status = "archived"
            return "archived"
        session.delete(template)
        return "deleted"


def template_from_trip(
    db: Database, user: CurrentUser, trip_id: int, payload: TemplateFromTripRequest
) -> TemplateRow:
    with db.session() as session:
        trip = load_trip(session, trip_id, user, write=True)
        activities = [
            {
                "day": (a.date - trip.start_date).days + 1,
                "title": a.title,
                "time": a.time,
                "location_name": a.location_name,
                "latitude": a.latitude,
                "longitude": a.longitude,
                "notes": a.notes,
                "tag": a.tag,
            }
            for a in trip_activities(session, trip.id)
        ]
        title = payload.title or trip.title
        template = TemplateRow(
            user_id=user.id,
            title=title,
            slug=unique_slug(session, TemplateRow, title),
            description=payload.description or trip.description,
            price=payload.price,
            destinations=[part for part in (trip.city, trip.country) if part],
            duration=trip_day_count(trip.start_date, trip.end_date),
            tags=payload.tags,
            trip_data={"activities": activities},
            status="draft",
            moderation_status="pending",
        )
        session.add(template)
        _mark_creator(session, user.id)
        return template


def publish_template(db: Database, user: CurrentUser, template_id: int) -> TemplateRow:
    with db.session() as session:
        template = _load_template(session, template_id)
        _check_owner(template, user)
        template.status = "published"
        template.moderation_status = "pending"
        template.rejection_reason = None
        return template


def _copy_into_trip(
    session: Session, template: TemplateRow, user: CurrentUser, start: date
) -> TripRow:
    end = start + timedelta(days=max(template.duration, 1) - 1)
    destinations = template.destinations or []
    trip = TripRow(
        user_id=user.id,
        organization_id=user.organization_id,
        title=template.title,
        description=template.description,
        start_date=start,
        end_date=end,
        city=destinations[0] if destinations else None,
        country=destinations[1] if len(destinations) > 1 else None,
    )
    session.add(trip)
    session.flush()

    positions: dict[date, int] = defaultdict(int)
    for item in (template.trip_data or {}).get("activities", []):
        day = min(start + timedelta(days=max(int(item.get("day") or 1), 1) - 1), end)
        session.add(
            ActivityRow(
                trip_id=trip.id,
                title=item.get("title") or "Activity",
                date=day,
                time=item.get("time"),
                location_name=item.get("location_name"),
                latitude=item.get("latitude"),
                longitude=item.get("longitude"),
                notes=item.get("notes"),
                tag=item.get("tag"),
                order=positions[day],
            )
        )
        positions[day] += 1
    return trip


def split_fee(price: float, fee_rate: float) -> tuple[float, float]:
    """(platform fee, seller earnings) for a sale."""
    fee = round(price * fee_rate, 2)
    return fee, round(price - fee, 2)


def purchase_template(
    db: Database,
    user: CurrentUser,
    template_id: int,
    payload: TemplatePurchaseRequest,
    *,
    fee_rate: float,
    today: Optional[date] = None,
) -> tuple[TemplatePurchaseRow, TripRow]:
    today = today or date.today()
    with db.session() as session:
        template = _load_template(session, template_id)
        if not is_available(template):
            raise BadRequestError("Template is not available for purchase")
        if has_purchased(session, template.id, user.id):
            raise BadRequestError("Template already purchased")
        fee, earnings = split_fee(template.price, fee_rate)
        trip = _copy_into_trip(
            session,
            template,
            user,
            payload.start_date or today + timedelta(days=PURCHASE_LEAD_DAYS),
        )
        purchase = TemplatePurchaseRow(
            template_id=template.id,
            buyer_id=user.id,
            seller_id=template.user_id,
            price=template.price,
            platform_fee=fee,
            seller_earnings=earnings,
            trip_id=trip.id,
            status="completed",
        )
        session.add(purchase)
        template.sales_count += 1
    logger.info("User %s purchased template %s", user.id, template_id)
    return purchase, trip


def purchased_templates(db: Database, user: CurrentUser) -> list[TemplateRow]:
    with db.session() as session:
        return list(
            session.execute(
                select(TemplateRow)
                .join(TemplatePurchaseRow, TemplatePurchaseRow.template_id == TemplateRow.id)
                .where(
                    TemplatePurchaseRow.buyer_id == user.id,
                    TemplatePurchaseRow.status == "completed",
                )
                .order_by(TemplatePurchaseRow.purchased_at.desc())
            )
            .scalars()
            .unique()
        )


def my_templates(db: Database, user: CurrentUser) -> list[TemplateRow]:
    with db.session() as session:
        return list(
            session.execute(
                select(TemplateRow)
                .where(TemplateRow.user_id == user.id)
                .order_by(TemplateRow.created_at.desc())
            ).scalars()
        )
