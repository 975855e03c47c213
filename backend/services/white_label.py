"""
White-label branding: plan rules, per-organization brand settings and the
CSS theme derived from them.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.auth import CurrentUser
from backend.config import Settings
from backend.db import Database, OrganizationRow, WhiteLabelSettingsRow
from backend.errors import BadRequestError, NotFoundError, UpgradeRequiredError
from backend.schemas import (
    BrandConfig,
    OnboardingStatusResponse,
    ThemeResponse,
    WhiteLabelConfigResponse,
    WhiteLabelConfigureRequest,
    WhiteLabelPermissionsResponse,
)
from shared.colors import (
    InvalidColorError,
    build_theme_variables,
    normalize_hex,
    render_stylesheet,
)
from shared.types import WHITE_LABEL_PLANS, Plan

logger = logging.getLogger(__name__)

DEFAULT_COMPANY_NAME = "My Company"
UPGRADE_MESSAGE = "White label branding requires a Pro plan or higher"
UPGRADE_LIMITATIONS = [
    "Custom branding requires the Pro plan or higher",
    "Enabled automatically with a plan upgrade, no manual approval needed",
]


def plan_allows_white_label(plan: Optional[str]) -> bool:
    try:
        return Plan(plan) in WHITE_LABEL_PLANS
    except ValueError:
        return False


def apply_plan(organization: OrganizationRow, plan: Plan) -> None:
    """Sets the plan and switches white-label on or off to match it."""
    organization.plan = plan.value
    organization.white_label_enabled = plan in WHITE_LABEL_PLANS


def _organization(session: Session, user: CurrentUser) -> OrganizationRow:
    if user.organization_id is None:
        raise BadRequestError("No organization found")
    organization = session.get(OrganizationRow, user.organization_id)
    if not organization:
        raise NotFoundError("Organization not found")
    return organization


def _settings_row(session: Session, organization_id: int) -> Optional[WhiteLabelSettingsRow]:
    return session.execute(
        select(WhiteLabelSettingsRow).where(
            WhiteLabelSettingsRow.organization_id == organization_id
        )
    ).scalar_one_or_none()


def _default_brand(settings: Settings) -> BrandConfig:
    color = settings.brand_primary_color
    return BrandConfig(
        company_name=settings.brand_name,
        primary_color=color,
        secondary_color=color,
        accent_color=color,
    )


def get_config(
    db: Database, user: CurrentUser, settings: Settings
) -> WhiteLabelConfigResponse:
    """The caller's active brand, or the platform default."""
    if user.organization_id is None:
        return WhiteLabelConfigResponse(
            is_white_label_active=False, config=_default_brand(settings)
        )
    with db.session() as session:
        organization = session.get(OrganizationRow, user.organization_id)
        row = _settings_row(session, user.organization_id) if organization else None
    active = bool(
        organization
        and organization.white_label_enabled
        and row is not None
        and row.status == "approved"
    )
    if not active:
        return WhiteLabelConfigResponse(
            is_white_label_active=False, config=_default_brand(settings)
        )
    return WhiteLabelConfigResponse(
        is_white_label_active=True,
        config=BrandConfig(
            company_name=row.company_name,
            tagline=row.tagline,
            primary_color=row.primary_color,
            secondary_color=row.secondary_color,
            accent_color=row.accent_color,
            logo_url=row.logo_url,
        ),
    )


def get_theme(db: Database, user: CurrentUser, settings: Settings) -> ThemeResponse:
    active = get_config(db, user, settings)
    config = active.config
    try:
        variables = build_theme_variables(
            config.primary_color, config.secondary_color, config.accent_color
        )
    except InvalidColorError as e:
        raise BadRequestError(str(e)) from e
    return ThemeResponse(
        is_white_label_active=active.is_white_label_active,
        variables=variables,
        css=render_stylesheet(variables),
    )


def get_permissions(db: Database, user: CurrentUser) -> WhiteLabelPermissionsResponse:
    with db.session() as session:
        organization = _organization(session, user)
    can_access = plan_allows_white_label(organization.plan)
    return WhiteLabelPermissionsResponse(
        can_access_white_label=can_access,
        current_plan=organization.plan,
        white_label_enabled=organization.white_label_enabled,
        upgrade_required=not can_access,
        limitations=[] if can_access else list(UPGRADE_LIMITATIONS),
    )


def _color(value: Optional[str], current: Optional[str], default: str) -> str:
    if not value:
        return current or default
    try:
        return normalize_hex(value)
    except InvalidColorError as e:
        raise BadRequestError(f"Invalid color: {value}") from e


def configure(
    db: Database,
    user: CurrentUser,
    payload: WhiteLabelConfigureRequest,
    settings: Settings,
) -> WhiteLabelSettingsRow:
    default_color = settings.brand_primary_color
    with db.session() as session:
        organization = _organization(session, user)
        if not plan_allows_white_label(organization.plan):
            raise UpgradeRequiredError(UPGRADE_MESSAGE)
        row = _settings_row(session, organization.id)
        if row is None:
            row = WhiteLabelSettingsRow(organization_id=organization.id)
            session.add(row)
        row.company_name = payload.company_name or row.company_name or DEFAULT_COMPANY_NAME
        row.primary_color = _color(payload.primary_color, row.primary_color, default_color)
        row.secondary_color = _color(
            payload.secondary_color, row.secondary_color, default_color
        )
        row.accent_color = _color(payload.accent_color, row.accent_color, default_color)
        for key in ("tagline", "logo_url", "favicon_url", "custom_domain", "support_email"):
            if key in payload.model_fields_set:
                setattr(row, key, getattr(payload, key))
        row.status = "approved"
        organization.white_label_enabled = True
    logger.info("Organization %s configured white-label branding", organization.id)
    return row


def auto_enable(db: Database, user: CurrentUser, plan: Plan) -> OrganizationRow:
    with db.session() as session:
        organization = _organization(session, user)
        apply_plan(organization, plan)
    logger.info(
        "Organization %s moved to plan %s (white-label %s)",
        organization.id,
        plan.value,
        "on" if organization.white_label_enabled else "off",
    )
    return organization


def onboarding_status(db: Database, user: CurrentUser) -> OnboardingStatusResponse:
    with db.session() as session:
        organization = _organization(session, user)
        row = _settings_row(session, organization.id)
    steps = {
        "plan_eligible": plan_allows_white_label(organization.plan),
        "branding_configured": row is not None and row.status == "approved",
        "logo_uploaded": bool(row and row.logo_url),
        "domain_configured": bool(row and row.custom_domain),
    }
    completed = sum(steps.values())
    return OnboardingStatusResponse(
        **steps,
        completed_steps=completed,
        total_steps=len(steps),
        is_complete=completed == len(steps),
    )


def organization_plan(db: Database, user: CurrentUser) -> OrganizationRow:
    with db.session() as session:
        return _organization(session, user)
