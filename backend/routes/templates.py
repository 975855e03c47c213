"""
Routes for the template marketplace.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend.auth import CurrentUser, get_current_user, get_optional_user
from backend.config import Settings, get_settings
from backend.db import Database
from backend.dependencies import get_db
from backend.schemas import (
    StatusResponse,
    TemplateCreate,
    TemplateDetailResponse,
    TemplateFromTripRequest,
    TemplatePurchaseRequest,
    TemplatePurchaseResponse,
    TemplateResponse,
    TemplateUpdate,
)
from backend.services import templates

router = APIRouter()


@router.get("", response_model=list[TemplateResponse])
def list_templates(
    tag: Optional[str] = Query(default=None),
    destination: Optional[str] = Query(default=None),
    max_price: Optional[float] = Query(default=None, ge=0),
    creator_id: Optional[int] = Query(default=None),
    db: Database = Depends(get_db),
):
    return templates.list_templates(
        db, tag=tag, destination=destination, max_price=max_price, creator_id=creator_id
    )


@router.get("/purchased", response_model=list[TemplateResponse])
def purchased_templates(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return templates.purchased_templates(db, user)


@router.get("/mine", response_model=list[TemplateResponse])
def my_templates(
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return templates.my_templates(db, user)


@router.post("", response_model=TemplateResponse, status_code=201)
def create_template(
    payload: TemplateCreate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return templates.create_template(db, user, payload)


@router.post("/from-trip/{trip_id}", response_model=TemplateResponse, status_code=201)
def template_from_trip(
    trip_id: int,
    payload: TemplateFromTripRequest = TemplateFromTripRequest(),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return templates.template_from_trip(db, user, trip_id, payload)


@router.get("/{slug}", response_model=TemplateDetailResponse)
def get_template(
    slug: str,
    db: Database = Depends(get_db),
    user: Optional[CurrentUser] = Depends(get_optional_user),
):
    template, purchased = templates.get_template(db, slug, user)
    return TemplateDetailResponse.model_validate(template).model_copy(
        update={"has_purchased": purchased}
    )


@router.put("/{template_id}", response_model=TemplateResponse)
def update_template(
    template_id: int,
    payload: TemplateUpdate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return templates.update_template(db, user, template_id, payload)


@router.delete("/{template_id}", response_model=StatusResponse)
def delete_template(
    template_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    outcome = templates.delete_template(db, user, template_id)
    return StatusResponse(message=f"Template {outcome}")


@router.post("/{template_id}/publish", response_model=TemplateResponse)
def publish_template(
    template_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return templates.publish_template(db, user, template_id)


@router.post(
    "/{template_id}/purchase", response_model=TemplatePurchaseResponse, status_code=201
)
def purchase_template(
    template_id: int,
    payload: TemplatePurchaseRequest = TemplatePurchaseRequest(),
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    purchase, trip = templates.purchase_template(
        db, user, template_id, payload, fee_rate=settings.platform_fee_rate
    )
    return TemplatePurchaseResponse(
        purchase_id=purchase.id,
        template_id=purchase.template_id,
        trip_id=trip.id,
        price=purchase.price,
        platform_fee=purchase.platform_fee,
        seller_earnings=purchase.seller_earnings,
    )
