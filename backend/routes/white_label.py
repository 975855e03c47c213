"""
Routes for white-label branding and the organization plan.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.auth import CurrentUser, get_current_user, require_role
from backend.config import Settings, get_settings
from backend.db import Database
from backend.dependencies import get_db
from backend.schemas import (
    OnboardingStatusResponse,
    OrganizationPlanResponse,
    PlanRequest,
    ThemeResponse,
    WhiteLabelConfigResponse,
    WhiteLabelConfigureRequest,
    WhiteLabelConfigureResponse,
    WhiteLabelPermissionsResponse,
    WhiteLabelSettingsResponse,
)
from backend.services import white_label
from shared.types import Role

router = APIRouter()
organization_router = APIRouter()


def _plan_response(organization) -> OrganizationPlanResponse:
    return OrganizationPlanResponse(
        organization_id=organization.id,
        plan=organization.plan,
        white_label_enabled=organization.white_label_enabled,
    )


@router.get("/config", response_model=WhiteLabelConfigResponse)
def get_config(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    return white_label.get_config(db, user, settings)


@router.get("/theme", response_model=ThemeResponse)
def get_theme(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    return white_label.get_theme(db, user, settings)


@router.get("/permissions", response_model=WhiteLabelPermissionsResponse)
def get_permissions(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return white_label.get_permissions(db, user)


@router.post("/configure", response_model=WhiteLabelConfigureResponse)
def configure(
    payload: WhiteLabelConfigureRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.ADMIN)),
    settings: Settings = Depends(get_settings),
):
    row = white_label.configure(db, user, payload, settings)
    return WhiteLabelConfigureResponse(
        success=True, settings=WhiteLabelSettingsResponse.model_validate(row)
    )


@router.post("/auto-enable", response_model=OrganizationPlanResponse)
def auto_enable(
    payload: PlanRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_role(Role.ADMIN)),
):
    return _plan_response(white_label.auto_enable(db, user, payload.plan))


@router.get("/onboarding-status", response_model=OnboardingStatusResponse)
def onboarding_status(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return white_label.onboarding_status(db, user)


@organization_router.get("/plan", response_model=OrganizationPlanResponse)
def organization_plan(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return _plan_response(white_label.organization_plan(db, user))
