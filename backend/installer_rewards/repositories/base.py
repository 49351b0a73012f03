"""
Storage interface for promotions, participations and the installer data they read
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from installer_rewards.models.installer import ActivityRecord, InstallerRecord
from installer_rewards.models.participation import ParticipationInDB
from installer_rewards.models.promotion import PromotionInDB, PromotionStatus


class RewardsRepository(ABC):
    """Persistence operations used by the promotion services"""

    # Promotions

    @abstractmethod
    async def get_promotion(self, promotion_id: str) -> Optional[PromotionInDB]:
        ...

    @abstractmethod
    async def list_promotions(
        self,
        status_filter: Optional[PromotionStatus] = None,
        promotion_type: Optional[str] = None
    ) -> List[PromotionInDB]:
        """Newest first"""

    @abstractmethod
    async def save_promotion(self, promotion: PromotionInDB) -> PromotionInDB:
        """Insert or replace a promotion"""

    @abstractmethod
    async def delete_promotion(self, promotion_id: str) -> Optional[PromotionInDB]:
        """Delete a promotion together with its participations; None if unknown"""

    # Participations

    @abstractmethod
    async def add_participation(self, participation: ParticipationInDB) -> ParticipationInDB:
        """Insert a new participation.

        Raises AlreadyParticipatingError when the (promotion, installer) pair exists.
        """

    @abstractmethod
    async def save_participation(self, participation: ParticipationInDB) -> ParticipationInDB:
        """Replace an existing participation"""

    @abstractmethod
    async def get_participation(self, promotion_id: str, installer_id: str) -> Optional[ParticipationInDB]:
        ...

    @abstractmethod
    async def get_participation_by_id(self, participation_id: str) -> Optional[ParticipationInDB]:
        ...

    @abstractmethod
    async def list_participations(
        self,
        promotion_id: Optional[str] = None,
        installer_id: Optional[str] = None
    ) -> List[ParticipationInDB]:
        """Most recently joined first"""

    @abstractmethod
    async def delete_participations_for_promotion(self, promotion_id: str) -> int:
        ...

    # Collaborator data (read-only)

    @abstractmethod
    async def get_installer(self, installer_id: str) -> Optional[InstallerRecord]:
        ...

    @abstractmethod
    async def list_activity_records(self, installer_id: str) -> List[ActivityRecord]:
        ...
