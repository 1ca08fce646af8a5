"""Health profiles and the public emergency URL."""

from typing import Optional

from ..models.document import EmergencyQRResponse, HealthProfile, HealthProfileUpdate
from ..utils.clock import utcnow
from ..utils.exceptions import ReadOnlyDataSource
from ..utils.logging import get_logger
from ..utils.qrcode import generate_qr_code_data_url
from .data_sources import DataSourceResolver
from .document_store import ProfileStore

logger = get_logger(__name__, prefix="Profile")


class ProfileService:
    def __init__(self, profiles: ProfileStore, data_sources: DataSourceResolver, base_url: str):
        self.profiles = profiles
        self.data_sources = data_sources
        self.base_url = base_url.rstrip("/")

    async def get_profile(self, user_id: str) -> Optional[HealthProfile]:
        return await self.data_sources.for_user(user_id).get_profile(user_id)

    async def update_profile(self, user_id: str, update: HealthProfileUpdate) -> HealthProfile:
        """Replace the caller's profile.

        Raises:
            ReadOnlyDataSource: For demo accounts
        """
        if self.data_sources.for_user(user_id).read_only:
            raise ReadOnlyDataSource("Demo accounts cannot modify their profile")

        profile = HealthProfile(user_id=user_id, updated_at=utcnow(), **update.model_dump())
        saved = await self.profiles.upsert(profile)
        logger.info(f"Updated health profile for {user_id}")
        return saved

    def emergency_url(self, user_id: str) -> str:
        return f"{self.base_url}/emergency/{user_id}"

    def emergency_qr(self, user_id: str) -> EmergencyQRResponse:
        """Emergency URL and a PNG QR code pointing at it."""
        url = self.emergency_url(user_id)
        return EmergencyQRResponse(emergency_url=url, qr_code=generate_qr_code_data_url(url))
