"""
Dict-backed repository for development and tests
"""

from typing import Dict, List, Optional, Tuple

from installer_rewards.core.exceptions import AlreadyParticipatingError
from installer_rewards.models.installer import ActivityRecord, InstallerRecord
from installer_rewards.models.participation import ParticipationInDB
from installer_rewards.models.promotion import PromotionInDB, PromotionStatus
from installer_rewards.repositories.base import RewardsRepository


class InMemoryRewardsRepository(RewardsRepository):
    """Keeps every record in process memory; returns copies so callers never alias stored state"""

    def __init__(self):
        self.promotions: Dict[str, PromotionInDB] = {}
        self.participations: Dict[str, ParticipationInDB] = {}
        self.installers: Dict[str, InstallerRecord] = {}
        self.activity_records: List[ActivityRecord] = []

    def add_installer(self, installer: InstallerRecord) -> InstallerRecord:
        self.installers[installer.id] = installer.model_copy(deep=True)
        return installer

    def add_activity_record(self, record: ActivityRecord) -> ActivityRecord:
        self.activity_records.append(record.model_copy(deep=True))
        return record

    def _pair_index(self) -> Dict[Tuple[str, str], ParticipationInDB]:
        return {(p.promotion_id, p.installer_id): p for p in self.participations.values()}

    async def get_promotion(self, promotion_id: str) -> Optional[PromotionInDB]:
        promotion = self.promotions.get(promotion_id)
        return promotion.model_copy(deep=True) if promotion else None

    async def list_promotions(
        self,
        status_filter: Optional[PromotionStatus] = None,
        promotion_type: Optional[str] = None
    ) -> List[PromotionInDB]:
        promotions = list(self.promotions.values())
        if status_filter:
            promotions = [p for p in promotions if p.status == status_filter]
        if promotion_type:
            promotions = [p for p in promotions if p.type == promotion_type]
        promotions.sort(key=lambda p: p.created_at, reverse=True)
        return [p.model_copy(deep=True) for p in promotions]

    async def save_promotion(self, promotion: PromotionInDB) -> PromotionInDB:
        self.promotions[promotion.id] = promotion.model_copy(deep=True)
        return promotion

    async def delete_promotion(self, promotion_id: str) -> Optional[PromotionInDB]:
        if promotion_id not in self.promotions:
            return None
        await self.delete_participations_for_promotion(promotion_id)
        return self.promotions.pop(promotion_id)

    async def add_participation(self, participation: ParticipationInDB) -> ParticipationInDB:
        key = (participation.promotion_id, participation.installer_id)
        if key in self._pair_index():
            raise AlreadyParticipatingError(*key)
        self.participations[participation.id] = participation.model_copy(deep=True)
        return participation

    async def save_participation(self, participation: ParticipationInDB) -> ParticipationInDB:
        self.participations[participation.id] = participation.model_copy(deep=True)
        return participation

    async def get_participation(self, promotion_id: str, installer_id: str) -> Optional[ParticipationInDB]:
        participation = self._pair_index().get((promotion_id, installer_id))
        return participation.model_copy(deep=True) if participation else None

    async def get_participation_by_id(self, participation_id: str) -> Optional[ParticipationInDB]:
        participation = self.participations.get(participation_id)
        return participation.model_copy(deep=True) if participation else None

    async def list_participations(
        self,
        promotion_id: Optional[str] = None,
        installer_id: Optional[str] = None
    ) -> List[ParticipationInDB]:
        participations = list(self.participations.values())
        if promotion_id:
            participations = [p for p in participations if p.promotion_id == promotion_id]
        if installer_id:
            participations = [p for p in participations if p.installer_id == installer_id]
        participations.sort(key=lambda p: p.joined_at, reverse=True)
        return [p.model_copy(deep=True) for p in participations]

    async def delete_participations_for_promotion(self, promotion_id: str) -> int:
        doomed = [pid for pid, p in self.participations.items() if p.promotion_id == promotion_id]
        for participation_id in doomed:
            del self.participations[participation_id]
        return len(doomed)

    async def get_installer(self, installer_id: str) -> Optional[InstallerRecord]:
        installer = self.installers.get(installer_id)
        return installer.model_copy(deep=True) if installer else None

    async def list_activity_records(self, installer_id: str) -> List[ActivityRecord]:
        return [r.model_copy(deep=True) for r in self.activity_records if r.installer_id == installer_id]
