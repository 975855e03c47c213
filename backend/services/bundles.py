"""
Template bundles: discounted packages of templates sold together.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.auth import CurrentUser
from backend.db import BundlePurchaseRow, BundleRow, Database, TemplatePurchaseRow, TemplateRow
from backend.errors import AccessDeniedError, BadRequestError, NotFoundError
from backend.schemas import BundleCreate, BundleResponse, BundleUpdate, TemplateSummary
from backend.services.templates import has_purchased, split_fee, unique_slug

logger = logging.getLogger(__name__)

CARD_FEE_RATE = 0.029
CARD_FEE_FIXED = 0.30


def card_fee(price: float) -> float:
    if price <= 0:
        return 0.0
    return round(price * CARD_FEE_RATE + CARD_FEE_FIXED, 2)


def _load_bundle(session: Session, bundle_id: int) -> BundleRow:
    bundle = session.get(BundleRow, bundle_id)
    if not bundle:
        raise NotFoundError("Bundle not found")
    return bundle


def _check_owner(bundle: BundleRow, user: CurrentUser) -> None:
    if bundle.creator_id != user.id and not user.is_admin:
        raise AccessDeniedError("Only the creator can modify this bundle")


def _templates(session: Session, template_ids: list[int]) -> list[TemplateRow]:
    if not template_ids:
        return []
    found = {
        t.id: t
        for t in session.execute(
            select(TemplateRow).where(TemplateRow.id.in_(template_ids))
        ).scalars()
    }
    return [found[i] for i in template_ids if i in found]


def _validated_templates(
    session: Session, user: CurrentUser, template_ids: list[int]
) -> list[TemplateRow]:
    template_ids = list(dict.fromkeys(template_ids))
    templates = _templates(session, template_ids)
    if len(templates) != len(template_ids):
        raise BadRequestError("One or more templates not found")
    if not user.is_admin and any(t.user_id != user.id for t in templates):
        raise AccessDeniedError("You can only bundle your own templates")
    return templates


def _apply_pricing(bundle: BundleRow, templates: list[TemplateRow]) -> None:
    original = round(sum(t.price for t in templates), 2)
    if bundle.bundle_price > original:
        raise BadRequestError("Bundle price cannot exceed the combined template price")
    bundle.original_price = original
    bundle.discount_percentage = (
        round((original - bundle.bundle_price) / original * 100, 2) if original else 0.0
    )


def _check_validity_window(valid_from: Optional[date], valid_until: Optional[date]) -> None:
    if valid_from and valid_until and valid_until < valid_from:
        raise BadRequestError("valid_until must be on or after valid_from")


def bundle_view(
    session: Session, bundle: BundleRow, purchased: Optional[bool] = None
) -> BundleResponse:
    return BundleResponse.model_validate(bundle).model_copy(
        update={
            "templates": [
                TemplateSummary.model_validate(t)
                for t in _templates(session, bundle.template_ids)
            ],
            "savings": round(bundle.original_price - bundle.bundle_price, 2),
            "has_purchased": purchased,
        }
    )


def _has_bought_bundle(session: Session, bundle_id: int, user_id: int) -> bool:
    return bool(
        session.execute(
            select(BundlePurchaseRow.id).where(
                BundlePurchaseRow.bundle_id == bundle_id,
                BundlePurchaseRow.buyer_id == user_id,
            )
        ).first()
    )


def list_bundles(
    db: Database,
    *,
    bundle_type: Optional[str] = None,
    featured: Optional[bool] = None,
    creator_id: Optional[int] = None,
) -> list[BundleResponse]:
    query = select(BundleRow).where(BundleRow.status == "published")
    if bundle_type:
        query = query.where(BundleRow.type == bundle_type)
    if featured is not None:
        query = query.where(BundleRow.featured.is_(featured))
    if creator_id is not None:
        query = query.where(BundleRow.creator_id == creator_id)
    query = query.order_by(BundleRow.featured.desc(), BundleRow.created_at.desc())
    with db.session() as session:
        return [bundle_view(session, b) for b in session.execute(query).scalars()]


def get_bundle(db: Database, slug: str, user: Optional[CurrentUser]) -> BundleResponse:
    with db.session() as session:
        bundle = session.execute(
            select(BundleRow).where(BundleRow.slug == slug)
        ).scalar_one_or_none()
        if not bundle:
            raise NotFoundError("Bundle not found")
        is_owner = user is not None and (bundle.creator_id == user.id or user.is_admin)
        if bundle.status != "published" and not is_owner:
            raise NotFoundError("Bundle not found")
        bundle.view_count += 1
        purchased = _has_bought_bundle(session, bundle.id, user.id) if user else None
        return bundle_view(session, bundle, purchased)


def create_bundle(db: Database, user: CurrentUser, payload: BundleCreate) -> BundleResponse:
    if payload.type != "creator" and not user.is_admin:
        raise AccessDeniedError("Only admins can create curated or seasonal bundles")
    _check_validity_window(payload.valid_from, payload.valid_until)
    with db.session() as session:
        templates = _validated_templates(session, user, payload.template_ids)
        bundle = BundleRow(
            creator_id=user.id,
            title=payload.title,
            slug=unique_slug(session, BundleRow, payload.title),
            description=payload.description,
            template_ids=[t.id for t in templates],
            bundle_price=payload.bundle_price,
            cover_image=payload.cover_image,
            tags=payload.tags,
            type=payload.type,
            featured=payload.featured and user.is_admin,
            status="draft",
            valid_from=payload.valid_from,
            valid_until=payload.valid_until,
            max_sales=payload.max_sales,
        )
        _apply_pricing(bundle, templates)
        session.add(bundle)
        session.flush()
        logger.info("User %s created bundle %s", user.id, bundle.slug)
        return bundle_view(session, bundle)


def update_bundle(
    db: Database, user: CurrentUser, bundle_id: int, payload: BundleUpdate
) -> BundleResponse:
    changes = payload.model_dump(exclude_unset=True)
    with db.session() as session:
        bundle = _load_bundle(session, bundle_id)
        _check_owner(bundle, user)
        if "featured" in changes and not user.is_admin:
            changes.pop("featured")
        template_ids = changes.pop("template_ids", None)
        for key, value in changes.items():
            setattr(bundle, key, value)
        _check_validity_window(bundle.valid_from, bundle.valid_until)
        if template_ids is not None:
            templates = _validated_templates(session, user, template_ids)
            bundle.template_ids = [t.id for t in templates]
        else:
            templates = _templates(session, bundle.template_ids)
        if template_ids is not None or "bundle_price" in changes:
            _apply_pricing(bundle, templates)
        session.flush()
        return bundle_view(session, bundle)


def set_status(db: Database, user: CurrentUser, bundle_id: int, status: str) -> BundleResponse:
    with db.session() as session:
        bundle = _load_bundle(session, bundle_id)
        _check_owner(bundle, user)
        bundle.status = status
        return bundle_view(session, bundle)


def creator_bundles(
    db: Database, creator_id: int, viewer: Optional[CurrentUser]
) -> list[BundleResponse]:
    query = select(BundleRow).where(BundleRow.creator_id == creator_id)
    if not viewer or (viewer.id != creator_id and not viewer.is_admin):
        query = query.where(BundleRow.status == "published")
    with db.session() as session:
        return [
            bundle_view(session, b)
            for b in session.execute(query.order_by(BundleRow.created_at.desc())).scalars()
        ]


def purchase_bundle(
    db: Database,
    user: CurrentUser,
    bundle_id: int,
    *,
    fee_rate: float,
    today: Optional[date] = None,
) -> tuple[BundlePurchaseRow, BundleRow]:
    today = today or date.today()
    with db.session() as session:
        bundle = _load_bundle(session, bundle_id)
        if bundle.status != "published":
            raise BadRequestError("Bundle is not available for purchase")
        if _has_bought_bundle(session, bundle.id, user.id):
            raise BadRequestError("Bundle already purchased")
        if bundle.max_sales is not None and bundle.sales_count >= bundle.max_sales:
            raise BadRequestError("Bundle is sold out")
        if bundle.valid_from and today < bundle.valid_from:
            raise BadRequestError("Bundle is not yet available")
        if bundle.valid_until and today > bundle.valid_until:
            raise BadRequestError("Bundle has expired")

        platform_fee, creator_earnings = split_fee(bundle.bundle_price, fee_rate)
        purchase = BundlePurchaseRow(
            bundle_id=bundle.id,
            buyer_id=user.id,
            price=bundle.bundle_price,
            platform_fee=platform_fee,
            creator_earnings=creator_earnings,
            card_fee=card_fee(bundle.bundle_price),
        )
        session.add(purchase)
        session.flush()
        for template in _templates(session, bundle.template_ids):
            if has_purchased(session, template.id, user.id):
                continue
            session.add(
                TemplatePurchaseRow(
                    template_id=template.id,
                    buyer_id=user.id,
                    seller_id=template.user_id,
                    price=0.0,
                    platform_fee=0.0,
                    seller_earnings=0.0,
                    bundle_purchase_id=purchase.id,
                    status="completed",
                )
            )
        bundle.sales_count += 1
    logger.info("User %s purchased bundle %s", user.id, bundle_id)
    return purchase, bundle


def delete_bundle(db: Database, user: CurrentUser, bundle_id: int) -> str:
    with db.session() as session:
        bundle = _load_bundle(session, bundle_id)
        _check_owner(bundle, user)
        sold = session.execute(
            select(BundlePurchaseRow.id).where(BundlePurchaseRow.bundle_id == bundle.id)
        ).first()
        if sold:
            bundle.status = "archived"
            return "archived"
        session.delete(bundle)
        return "deleted"
