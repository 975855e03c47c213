"""
Routes for the admin and superadmin consoles.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend.auth import CurrentUser, require_role
from backend.db import Database
from backend.dependencies import get_db
from backend.schemas import (
    AdminStatsResponse,
    DashboardResponse,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
    PlanRequest,
    RejectTemplateRequest,
    RoleUpdateRequest,
    StatusResponse,
    SuspendRequest,
    TemplateResponse,
    UserResponse,
    UsersResponse,
)
from backend.services import admin
from shared.types import Role

router = APIRouter()

require_admin = require_role(Role.ADMIN)
require_superadmin = require_role(Role.SUPERADMIN)


@router.get("/stats", response_model=AdminStatsResponse)
def stats(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return admin.stats(db)


@router.get("/users", response_model=UsersResponse)
def list_users(
    search: Optional[str] = Query(default=None),
    role: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    rows, total = admin.list_users(
        db, search=search, role=role, limit=limit, offset=offset
    )
    return UsersResponse(users=rows, total=total)


@router.post("/users/{user_id}/verify", response_model=UserResponse)
def verify_creator(
    user_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return admin.verify_creator(db, user_id)


@router.post("/users/{user_id}/suspend", response_model=UserResponse)
def suspend_user(
    user_id: int,
    payload: SuspendRequest = SuspendRequest(),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return admin.set_suspended(db, user, user_id, payload.suspended)


@router.post("/users/{user_id}/role", response_model=UserResponse)
def set_role(
    user_id: int,
    payload: RoleUpdateRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_superadmin),
):
    return admin.set_role(db, user, user_id, payload.role)


@router.get("/templates/pending", response_model=list[TemplateResponse])
def pending_templates(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return admin.pending_templates(db)


@router.post("/templates/{template_id}/approve", response_model=TemplateResponse)
def approve_template(
    template_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return admin.approve_template(db, template_id)


@router.post("/templates/{template_id}/reject", response_model=TemplateResponse)
def reject_template(
    template_id: int,
    payload: RejectTemplateRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_admin),
):
    return admin.reject_template(db, template_id, payload.reason)


@router.get("/organizations", response_model=list[OrganizationResponse])
def list_organizations(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_superadmin),
):
    return admin.list_organizations(db)


@router.post("/organizations", response_model=OrganizationResponse, status_code=201)
def create_organization(
    payload: OrganizationCreate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_superadmin),
):
    return admin.create_organization(db, payload)


@router.get("/organizations/{organization_id}", response_model=OrganizationResponse)
def get_organization(
    organization_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_superadmin),
):
    return admin.get_organization(db, organization_id)


@router.put("/organizations/{organization_id}", response_model=OrganizationResponse)
def update_organization(
    organization_id: int,
    payload: OrganizationUpdate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_superadmin),
):
    return admin.update_organization(db, organization_id, payload)


@router.delete("/organizations/{organization_id}", response_model=StatusResponse)
def delete_organization(
    organization_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_superadmin),
):
    admin.delete_organization(db, organization_id)
    return StatusResponse(message="Organization deleted")


@router.put(
    "/organizations/{organization_id}/plan", response_model=OrganizationResponse
)
def set_organization_plan(
    organization_id: int,
    payload: PlanRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_superadmin),
):
    return admin.set_organization_plan(db, organization_id, payload.plan)


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(require_superadmin),
):
    return admin.dashboard(db)
