"""
Routes for template bundles.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend.auth import CurrentUser, get_current_user, get_optional_user
from backend.config import Settings, get_settings
from backend.db import Database
from backend.dependencies import get_db
from backend.schemas import (
    BundleCreate,
    BundlePublishRequest,
    BundlePurchaseResponse,
    BundleResponse,
    BundleUpdate,
    StatusResponse,
)
from backend.services import bundles

router = APIRouter()


@router.get("", response_model=list[BundleResponse])
def list_bundles(
    type: Optional[str] = Query(default=None),
    featured: Optional[bool] = Query(default=None),
    creator_id: Optional[int] = Query(default=None),
    db: Database = Depends(get_db),
):
    return bundles.list_bundles(
        db, bundle_type=type, featured=featured, creator_id=creator_id
    )


@router.get("/creator/{user_id}", response_model=list[BundleResponse])
def creator_bundles(
    user_id: int,
    db: Database = Depends(get_db),
    viewer: Optional[CurrentUser] = Depends(get_optional_user),
):
    return bundles.creator_bundles(db, user_id, viewer)


@router.post("", response_model=BundleResponse, status_code=201)
def create_bundle(
    payload: BundleCreate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return bundles.create_bundle(db, user, payload)


@router.get("/{slug}", response_model=BundleResponse)
def get_bundle(
    slug: str,
    db: Database = Depends(get_db),
    user: Optional[CurrentUser] = Depends(get_optional_user),
):
    return bundles.get_bundle(db, slug, user)


@router.put("/{bundle_id}", response_model=BundleResponse)
def update_bundle(
    bundle_id: int,
    payload: BundleUpdate,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return bundles.update_bundle(db, user, bundle_id, payload)


@router.post("/{bundle_id}/publish", response_model=BundleResponse)
def publish_bundle(
    bundle_id: int,
    payload: BundlePublishRequest,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return bundles.set_status(db, user, bundle_id, payload.status)


@router.post(
    "/{bundle_id}/purchase", response_model=BundlePurchaseResponse, status_code=201
)
def purchase_bundle(
    bundle_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    purchase, bundle = bundles.purchase_bundle(
        db, user, bundle_id, fee_rate=settings.platform_fee_rate
    )
    return BundlePurchaseResponse(
        purchase_id=purchase.id,
        bundle_id=purchase.bundle_id,
        price=purchase.price,
        platform_fee=purchase.platform_fee,
        creator_earnings=purchase.creator_earnings,
        card_fee=purchase.card_fee,
        template_ids=bundle.template_ids,
    )


@router.delete("/{bundle_id}", response_model=StatusResponse)
def delete_bundle(
    bundle_id: int,
    db: Database = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    outcome = bundles.delete_bundle(db, user, bundle_id)
    return StatusResponse(message=f"Bundle {outcome}")
