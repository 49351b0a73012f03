"""
Participation Service - promotion join, progress and reward lifecycle
"""

import asyncio
import math
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple
import structlog

from installer_rewards.core.config import settings
from installer_rewards.core.exceptions import (
    AlreadyParticipatingError, IneligibleError, NotFoundError, PromotionValidationError
)
from installer_rewards.models.installer import ActivityRecord, InstallerRecord
from installer_rewards.models.participation import (
    InstallerPromotionStats, InstallerPromotionView, ParticipantProgress,
    ParticipationInDB, ParticipationStatus, ProgressSnapshot, PromotionAnalytics,
    PromotionHistoryEntry, RewardStatus
)
from installer_rewards.models.promotion import PromotionInDB
from installer_rewards.monitoring.metrics import metrics_collector, track_timing
from installer_rewards.monitoring.tracing import traced_operation
from installer_rewards.repositories.base import RewardsRepository
from installer_rewards.services.progress_calculator import compute_progress
from installer_rewards.services.promotion_service import is_running, list_active, require_promotion
from installer_rewards.utils.datetime_helpers import ensure_utc

logger = structlog.get_logger()


class ParticipationLocks:
    """One asyncio lock per (promotion, installer) pair, dropped once no task holds or awaits it"""

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._holders: Dict[Tuple[str, str], int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def for_pair(self, promotion_id: str, installer_id: str):
        key = (promotion_id, installer_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]


participation_locks = ParticipationLocks()


def check_eligibility(
    promotion: PromotionInDB,
    installer: InstallerRecord,
    activity_records: Sequence[ActivityRecord],
    now: datetime,
    require_running: bool = False
) -> Optional[str]:
    """Return the first eligibility rule the installer fails, or None"""
    now = ensure_utc(now)
    eligibility = promotion.eligibility

    if require_running and not is_running(promotion, now):
        return "promotion_not_running"

    if eligibility.installer_status and installer.status != eligibility.installer_status:
        return "installer_status"

    installations = sum(1 for record in activity_records if record.installer_id == installer.id)
    if installations < eligibility.min_installations:
        return "min_installations"

    if eligibility.new_installers_only:
        window_start = now - timedelta(days=settings.NEW_INSTALLER_WINDOW_DAYS)
        if ensure_utc(installer.joined_at) < window_start:
            return "new_installers_only"

    return None


def is_eligible(
    promotion: PromotionInDB,
    installer: InstallerRecord,
    activity_records: Sequence[ActivityRecord],
    now: datetime
) -> bool:
    return check_eligibility(promotion, installer, activity_records, now) is None


def days_remaining(promotion: PromotionInDB, now: datetime) -> int:
    seconds = (ensure_utc(promotion.end_date) - ensure_utc(now)).total_seconds()
    return max(0, math.ceil(seconds / 86400))


class ParticipationService:
    """Coordinates joins, progress recomputation and reward decisions"""

    def __init__(
        self,
        repo: RewardsRepository,
        locks: ParticipationLocks = participation_locks,
        revert_on_regression: Optional[bool] = None
    ):
        self.repo = repo
        self.locks = locks
        if revert_on_regression is None:
            revert_on_regression = settings.REVERT_COMPLETION_ON_REGRESSION
        self.revert_on_regression = revert_on_regression

    async def _require_installer(self, installer_id: str) -> InstallerRecord:
        installer = await self.repo.get_installer(installer_id)
        if not installer:
            raise NotFoundError("installer", installer_id)
        return installer

    @traced_operation("promotion.join")
    @track_timing("join_promotion")
    async def join(self, promotion_id: str, installer_id: str, now: datetime) -> ParticipationInDB:
        """
        Enrol an installer in a promotion

        Args:
            promotion_id: Promotion ID
            installer_id: Installer ID
            now: Join time

        Returns:
            The new participation with its first progress snapshot

        Raises:
            NotFoundError: promotion or installer unknown
            IneligibleError: an eligibility rule failed
            AlreadyParticipatingError: the installer already joined
        """
        now = ensure_utc(now)
        promotion = await require_promotion(self.repo, promotion_id)
        installer = await self._require_installer(installer_id)
        records = await self.repo.list_activity_records(installer_id)

        failed_rule = check_eligibility(promotion, installer, records, now, require_running=True)
        if failed_rule:
            logger.info("Promotion join rejected",
                        promotion_id=promotion_id,
                        installer_id=installer_id,
                        rule=failed_rule)
            metrics_collector.increment_counter("promotion_join_rejections", label=failed_rule)
            raise IneligibleError(failed_rule)

        async with self.locks.for_pair(promotion_id, installer_id):
            if await self.repo.get_participation(promotion_id, installer_id):
                raise AlreadyParticipatingError(promotion_id, installer_id)

            participation = ParticipationInDB(
                id=str(uuid.uuid4()),
                promotion_id=promotion_id,
                installer_id=installer_id,
                status=ParticipationStatus.ACTIVE,
                joined_at=now,
                created_at=now,
                updated_at=now,
            )
            snapshot = compute_progress(promotion, participation, records, installer, now)
            self._apply_progress(participation, snapshot, now)
            await self.repo.add_participation(participation)

        metrics_collector.increment_counter("promotion_joins", label=promotion.type)
        logger.info("Promotion joined",
                    promotion_id=promotion_id,
                    installer_id=installer_id,
                    participation_id=participation.id)
        return participation

    def _apply_progress(
        self,
        participation: ParticipationInDB,
        snapshot: ProgressSnapshot,
        now: datetime
    ) -> ParticipationInDB:
        """Store a snapshot and move the participation's status to match it"""
        if snapshot.is_completed and participation.status == ParticipationStatus.ACTIVE:
            participation.status = ParticipationStatus.COMPLETED
            participation.completed_at = snapshot.completed_at
            participation.reward_claimable = True
            metrics_collector.increment_counter("participations_completed")
            logger.info("Promotion participation completed",
                        participation_id=participation.id,
                        promotion_id=participation.promotion_id,
                        installer_id=participation.installer_id)

        elif not snapshot.is_completed and participation.status == ParticipationStatus.COMPLETED:
            metrics_collector.increment_counter("completion_regressions")
            if self.revert_on_regression and not participation.reward_claimed:
                logger.warning("Completed participation no longer meets target; reverting to active",
                               participation_id=participation.id,
                               promotion_id=participation.promotion_id,
                               installer_id=participation.installer_id,
                               current=snapshot.current,
                               target=snapshot.target)
                participation.status = ParticipationStatus.ACTIVE
                participation.completed_at = None
                participation.reward_claimable = False
                snapshot.completed_at = None
            else:
                logger.warning("Completed participation no longer meets target; completion kept",
                               participation_id=participation.id,
                               promotion_id=participation.promotion_id,
                               installer_id=participation.installer_id,
                               current=snapshot.current,
                               target=snapshot.target)

        participation.progress = snapshot
        participation.updated_at = now
        return participation

    async def _refresh(
        self,
        promotion: PromotionInDB,
        participation: ParticipationInDB,
        installer: InstallerRecord,
        records: Sequence[ActivityRecord],
        now: datetime
    ) -> ParticipationInDB:
        snapshot = compute_progress(promotion, participation, records, installer, now)
        self._apply_progress(participation, snapshot, now)
        await self.repo.save_participation(participation)
        metrics_collector.increment_counter("progress_refreshes")
        return participation

    @traced_operation("promotion.refresh_progress")
    @track_timing("refresh_progress")
    async def refresh_progress(self, promotion_id: str, installer_id: str, now: datetime) -> ParticipationInDB:
        """Recompute progress for one participation and persist the result"""
        now = ensure_utc(now)
        promotion = await require_promotion(self.repo, promotion_id)
        installer = await self._require_installer(installer_id)

        async with self.locks.for_pair(promotion_id, installer_id):
            participation = await self.repo.get_participation(promotion_id, installer_id)
            if not participation:
                raise NotFoundError("participation", f"{promotion_id}/{installer_id}")

            records = await self.repo.list_activity_records(installer_id)
            return await self._refresh(promotion, participation, installer, records, now)

    @traced_operation("promotion.set_reward_status")
    @track_timing("set_reward_status")
    async def set_reward_status(
        self,
        participation_id: str,
        new_status: RewardStatus,
        admin_id: str,
        now: datetime
    ) -> ParticipationInDB:
        """Record an admin's reward decision for a completed participation"""
        now = ensure_utc(now)
        try:
            new_status = RewardStatus(new_status)
        except ValueError as e:
            raise PromotionValidationError(["reward_status"], f"Unknown reward status: {new_status}") from e

        participation = await self.repo.get_participation_by_id(participation_id)
        if not participation:
            raise NotFoundError("participation", participation_id)

        async with self.locks.for_pair(participation.promotion_id, participation.installer_id):
            participation = await self.repo.get_participation_by_id(participation_id)
            if not participation:
                raise NotFoundError("participation", participation_id)

            if participation.status != ParticipationStatus.COMPLETED:
                raise PromotionValidationError(
                    ["reward_status"],
                    "Reward can only be processed for a completed participation"
                )

            participation.reward_status = new_status
            participation.reward_processed_at = now
            participation.reward_processed_by = admin_id

            if new_status == RewardStatus.PAID:
                participation.reward_claimed = True
                participation.reward_claimed_at = now
            elif new_status == RewardStatus.REJECTED:
                participation.reward_claimed = False
                participation.reward_claimed_at = None

            participation.updated_at = now
            await self.repo.save_participation(participation)

        metrics_collector.increment_counter("reward_updates", label=new_status.value)
        logger.info("Promotion reward processed",
                    participation_id=participation_id,
                    reward_status=new_status.value,
                    admin_id=admin_id)
        return participation

    def _view(
        self,
        promotion: PromotionInDB,
        participation: Optional[ParticipationInDB],
        installer: InstallerRecord,
        records: Sequence[ActivityRecord],
        now: datetime
    ) -> InstallerPromotionView:
        can_join = participation is None and check_eligibility(
            promotion, installer, records, now, require_running=True
        ) is None

        return InstallerPromotionView(
            promotion=promotion,
            participation=participation,
            progress=participation.progress if participation else None,
            can_join=can_join,
            is_participating=participation is not None,
            days_remaining=days_remaining(promotion, now),
        )

    async def _current_participation(
        self,
        promotion: PromotionInDB,
        installer: InstallerRecord,
        records: Sequence[ActivityRecord],
        now: datetime
    ) -> Optional[ParticipationInDB]:
        # Installers who never joined need no lock
        if not await self.repo.get_participation(promotion.id, installer.id):
            return None

        async with self.locks.for_pair(promotion.id, installer.id):
            participation = await self.repo.get_participation(promotion.id, installer.id)
            if participation:
                participation = await self._refresh(promotion, participation, installer, records, now)
            return participation

    async def list_for_installer(self, installer_id: str, now: datetime) -> List[InstallerPromotionView]:
        """Running promotions with the installer's participation and fresh progress"""
        now = ensure_utc(now)
        installer = await self._require_installer(installer_id)
        records = await self.repo.list_activity_records(installer_id)

        views = []
        for promotion in await list_active(self.repo, now):
            participation = await self._current_participation(promotion, installer, records, now)
            views.append(self._view(promotion, participation, installer, records, now))
        return views

    async def get_for_installer(
        self,
        promotion_id: str,
        installer_id: str,
        now: datetime
    ) -> InstallerPromotionView:
        """One promotion as the installer sees it"""
        now = ensure_utc(now)
        promotion = await require_promotion(self.repo, promotion_id)
        installer = await self._require_installer(installer_id)
        records = await self.repo.list_activity_records(installer_id)

        participation = await self._current_participation(promotion, installer, records, now)
        return self._view(promotion, participation, installer, records, now)

    async def promotion_history(self, installer_id: str) -> List[PromotionHistoryEntry]:
        """Every participation of the installer, most recently joined first"""
        await self._require_installer(installer_id)

        history = []
        for participation in await self.repo.list_participations(installer_id=installer_id):
            promotion = await self.repo.get_promotion(participation.promotion_id)
            history.append(PromotionHistoryEntry(participation=participation, promotion=promotion))
        return history

    async def dashboard_stats(self, installer_id: str, now: datetime) -> InstallerPromotionStats:
        """Counters for the installer dashboard"""
        await self._require_installer(installer_id)
        active_promotions = await list_active(self.repo, ensure_utc(now))
        participations = await self.repo.list_participations(installer_id=installer_id)

        total_rewards = 0
        for participation in participations:
            if participation.status == ParticipationStatus.COMPLETED and participation.reward_claimed:
                promotion = await self.repo.get_promotion(participation.promotion_id)
                if promotion:
                    total_rewards += promotion.rewards.amount

        return InstallerPromotionStats(
            available_promotions=len(active_promotions),
            active_participations=sum(1 for p in participations if p.status == ParticipationStatus.ACTIVE),
            completed_promotions=sum(1 for p in participations if p.status == ParticipationStatus.COMPLETED),
            total_rewards_earned=total_rewards,
        )

    async def promotion_analytics(self, promotion_id: str, now: datetime) -> PromotionAnalytics:
        """Participation summary for admins; progress is computed, not persisted"""
        now = ensure_utc(now)
        promotion = await require_promotion(self.repo, promotion_id)
        participations = await self.repo.list_participations(promotion_id=promotion_id)

        participants = []
        for participation in participations:
            installer = await self.repo.get_installer(participation.installer_id)
            records = await self.repo.list_activity_records(participation.installer_id)
            participants.append(ParticipantProgress(
                participation=participation,
                installer=installer,
                total_installations=len(records),
                progress=compute_progress(promotion, participation, records, installer, now),
            ))

        total = len(participants)
        completed = sum(1 for p in participants if p.participation.status == ParticipationStatus.COMPLETED)

        return PromotionAnalytics(
            promotion=promotion,
            total_participants=total,
            active_participants_count=total - completed,
            completed_participants_count=completed,
            completion_rate=(completed / total * 100) if total else 0.0,
            average_progress=(sum(p.progress.percentage for p in participants) / total) if total else 0.0,
            participants=participants,
        )
