"""
Admin and superadmin consoles: moderation, user management and
organizations.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from backend.auth import CurrentUser
from backend.db import (
    ActivityRow,
    BundlePurchaseRow,
    CorporateCardRow,
    Database,
    OrganizationRow,
    TemplatePurchaseRow,
    TemplateRow,
    TripRow,
    UserRow,
    WhiteLabelSettingsRow,
)
from backend.errors import AccessDeniedError, BadRequestError, NotFoundError
from backend.schemas import (
    AdminStatsResponse,
    DashboardResponse,
    OrganizationCreate,
    OrganizationUpdate,
    SalesStats,
    TemplateStats,
    UserStats,
)
from backend.services.white_label import apply_plan
from shared.types import Plan, Role

logger = logging.getLogger(__name__)


def _count(session: Session, query) -> int:
    return session.execute(select(func.count()).select_from(query.subquery())).scalar_one()


def stats(db: Database) -> AdminStatsResponse:
    with db.session() as session:
        templates = TemplateStats(
            total=_count(session, select(TemplateRow.id)),
            published=_count(
                session, select(TemplateRow.id).where(TemplateRow.status == "published")
            ),
            pending=_count(
                session,
                select(TemplateRow.id).where(TemplateRow.moderation_status == "pending"),
            ),
        )
        users = UserStats(
            total=_count(session, select(UserRow.id)),
            creators=_count(session, select(UserRow.id).where(UserRow.is_creator.is_(True))),
            verified=_count(
                session, select(UserRow.id).where(UserRow.creator_verified.is_(True))
            ),
        )
        # Templates bought as part of a bundle are counted with the bundle.
        template_sales = list(
            session.execute(
                select(TemplatePurchaseRow).where(
                    TemplatePurchaseRow.bundle_purchase_id.is_(None)
                )
            ).scalars()
        )
        bundle_sales = list(session.execute(select(BundlePurchaseRow)).scalars())
    sales = template_sales + bundle_sales
    return AdminStatsResponse(
        templates=templates,
        users=users,
        sales=SalesStats(
            total_sales=len(sales),
            total_revenue=round(sum(s.price for s in sales), 2),
            total_platform_fees=round(sum(s.platform_fee for s in sales), 2),
        ),
    )


# Users


def list_users(
    db: Database,
    *,
    search: Optional[str] = None,
    role: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[UserRow], int]:
    query = select(UserRow)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(
                func.lower(UserRow.email).like(pattern),
                func.lower(UserRow.display_name).like(pattern),
            )
        )
    if role:
        query = query.where(UserRow.role == Role.parse(role).value)
    with db.session() as session:
        total = _count(session, query)
        rows = list(
            session.execute(query.order_by(UserRow.id).limit(limit).offset(offset)).scalars()
        )
    return rows, total


def _load_user(session: Session, user_id: int) -> UserRow:
    row = session.get(UserRow, user_id)
    if not row:
        raise NotFoundError("User not found")
    return row


def verify_creator(db: Database, user_id: int) -> UserRow:
    with db.session() as session:
        row = _load_user(session, user_id)
        row.is_creator = True
        row.creator_verified = True
        return row


def set_suspended(
    db: Database, actor: CurrentUser, user_id: int, suspended: bool
) -> UserRow:
    if user_id == actor.id:
        raise BadRequestError("You cannot suspend your own account")
    with db.session() as session:
        row = _load_user(session, user_id)
        if Role.parse(row.role).rank > actor.role.rank:
            raise AccessDeniedError("Cannot suspend a user with a higher role")
        row.suspended = suspended
    logger.info(
        "User %s %s user %s", actor.id, "suspended" if suspended else "restored", user_id
    )
    return row


def set_role(db: Database, actor: CurrentUser, user_id: int, role: Role) -> UserRow:
    with db.session() as session:
        row = _load_user(session, user_id)
        row.role = role.value
    logger.info("User %s set role of user %s to %s", actor.id, user_id, role.value)
    return row


# Template moderation


def pending_templates(db: Database) -> list[TemplateRow]:
    with db.session() as session:
        return list(
            session.execute(
                select(TemplateRow)
                .where(TemplateRow.moderation_status == "pending")
                .order_by(TemplateRow.created_at)
            ).scalars()
        )


def _load_template(session: Session, template_id: int) -> TemplateRow:
    template = session.get(TemplateRow, template_id)
    if not template:
        raise NotFoundError("Template not found")
    return template


def approve_template(db: Database, template_id: int) -> TemplateRow:
    with db.session() as session:
        template = _load_template(session, template_id)
        template.moderation_status = "approved"
        template.rejection_reason = None
        return template


def reject_template(db: Database, template_id: int, reason: str) -> TemplateRow:
    with db.session() as session:
        template = _load_template(session, template_id)
        template.moderation_status = "rejected"
        template.rejection_reason = reason
        return template


# Organizations


def list_organizations(db: Database) -> list[OrganizationRow]:
    with db.session() as session:
        return list(
            session.execute(select(OrganizationRow).order_by(OrganizationRow.id)).scalars()
        )


def _load_organization(session: Session, organization_id: int) -> OrganizationRow:
    organization = session.get(OrganizationRow, organization_id)
    if not organization:
        raise NotFoundError("Organization not found")
    return organization


def create_organization(db: Database, payload: OrganizationCreate) -> OrganizationRow:
    organization = OrganizationRow(name=payload.name, domain=payload.domain)
    apply_plan(organization, payload.plan)
    with db.session() as session:
        session.add(organization)
    logger.info("Created organization %s (%s)", organization.id, organization.name)
    return organization


def get_organization(db: Database, organization_id: int) -> OrganizationRow:
    with db.session() as session:
        return _load_organization(session, organization_id)


def update_organization(
    db: Database, organization_id: int, payload: OrganizationUpdate
) -> OrganizationRow:
    with db.session() as session:
        organization = _load_organization(session, organization_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(organization, key, value)
        return organization


def delete_organization(db: Database, organization_id: int) -> None:
    with db.session() as session:
        organization = _load_organization(session, organization_id)
        members = _count(
            session, select(UserRow.id).where(UserRow.organization_id == organization.id)
        )
        if members:
            raise BadRequestError(
                f"Organization still has {members} users; move or remove them first"
            )
        settings = session.execute(
            select(WhiteLabelSettingsRow).where(
                WhiteLabelSettingsRow.organization_id == organization.id
            )
        ).scalar_one_or_none()
        if settings:
            session.delete(settings)
        session.delete(organization)


def set_organization_plan(db: Database, organization_id: int, plan: Plan) -> OrganizationRow:
    with db.session() as session:
        organization = _load_organization(session, organization_id)
        apply_plan(organization, plan)
        return organization


def dashboard(db: Database) -> DashboardResponse:
    with db.session() as session:
        plans = Counter(
            session.execute(select(OrganizationRow.plan)).scalars()
        )
        return DashboardResponse(
            organizations=sum(plans.values()),
            users=_count(session, select(UserRow.id)),
            trips=_count(session, select(TripRow.id)),
            activities=_count(session, select(ActivityRow.id)),
            active_cards=_count(
                session,
                select(CorporateCardRow.id).where(CorporateCardRow.status == "active"),
            ),
            plans={plan.value: plans.get(plan.value, 0) for plan in Plan},
        )
