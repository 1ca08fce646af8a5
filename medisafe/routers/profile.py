"""
Health profile endpoints and the public emergency page.

``/emergency/{user_id}`` is public and has no expiry or view
quota: it is what the QR code on the user's phone or wallet card opens.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..config.settings import get_settings
from ..database import get_data_sources, get_profile_store
from ..models.document import EmergencyQRResponse, HealthProfile, HealthProfileUpdate
from ..services.auth import get_current_user
from ..services.data_sources import DataSourceResolver
from ..services.document_store import ProfileStore
from ..services.profile_service import ProfileService
from ..utils.auth_helpers import get_user_id
from ..utils.exceptions import ReadOnlyDataSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["profile"])
public_router = APIRouter(tags=["emergency"])


def get_profile_service(
    profiles: ProfileStore = Depends(get_profile_store),
    data_sources: DataSourceResolver = Depends(get_data_sources),
) -> ProfileService:
    return ProfileService(
        profiles=profiles,
        data_sources=data_sources,
        base_url=get_settings().PUBLIC_BASE_URL,
    )


@router.get("", response_model=HealthProfile)
async def get_profile(
    current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
) -> HealthProfile:
    """Get the caller's health profile."""
    profile = await service.get_profile(get_user_id(current_user))
    if profile is None:
        raise HTTPException(status_code=404, detail="No health profile yet")
    return profile


@router.put("", response_model=HealthProfile)
async def update_profile(
    update: HealthProfileUpdate,
    current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
) -> HealthProfile:
    """Create or replace the caller's health profile.

    Raises:
        403: For demo accounts
    """
    try:
        return await service.update_profile(get_user_id(current_user), update)
    except ReadOnlyDataSource as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.get("/emergency-qr", response_model=EmergencyQRResponse)
async def get_emergency_qr(
    current_user: dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
) -> EmergencyQRResponse:
    """Public emergency URL for the caller and a QR code pointing at it."""
    return service.emergency_qr(get_user_id(current_user))


@public_router.get("/emergency/{user_id}", response_model=HealthProfile)
async def view_emergency_profile(
    user_id: str,
    service: ProfileService = Depends(get_profile_service),
) -> HealthProfile:
    """Critical medical facts for first responders. No authentication."""
    profile = await service.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Emergency profile not found")
    return profile
