"""
SQL repository - promotions and participations over an async SQLAlchemy session
"""

import json
from typing import Any, Dict, List, Optional
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
import structlog

from installer_rewards.core.exceptions import AlreadyParticipatingError
from installer_rewards.models.installer import ActivityRecord, InstallerRecord
from installer_rewards.models.participation import ParticipationInDB, ProgressSnapshot
from installer_rewards.models.promotion import PromotionInDB, PromotionStatus
from installer_rewards.repositories.base import RewardsRepository

logger = structlog.get_logger()

PROMOTION_COLUMNS = """
    id, title, description, type, status, start_date, end_date,
    target_json, rewards_json, eligibility_json, created_by, created_at, updated_at
"""

PARTICIPATION_COLUMNS = """
    id, promotion_id, installer_id, status, joined_at, completed_at, progress_json,
    reward_claimable, reward_claimed, reward_claimed_at, reward_status,
    reward_processed_at, reward_processed_by, created_at, updated_at
"""


def _promotion_from_row(row) -> PromotionInDB:
    row_dict = dict(row._mapping)
    row_dict["target"] = json.loads(row_dict.pop("target_json"))
    row_dict["rewards"] = json.loads(row_dict.pop("rewards_json"))
    row_dict["eligibility"] = json.loads(row_dict.pop("eligibility_json"))
    return PromotionInDB(**row_dict)


def _promotion_params(promotion: PromotionInDB) -> Dict[str, Any]:
    return {
        "id": promotion.id,
        "title": promotion.title,
        "description": promotion.description,
        "type": promotion.type,
        "status": promotion.status.value,
        "start_date": promotion.start_date,
        "end_date": promotion.end_date,
        "target_json": promotion.target.model_dump_json(),
        "rewards_json": promotion.rewards.model_dump_json(),
        "eligibility_json": promotion.eligibility.model_dump_json(),
        "created_by": promotion.created_by,
        "created_at": promotion.created_at,
        "updated_at": promotion.updated_at,
    }


def _participation_from_row(row) -> ParticipationInDB:
    row_dict = dict(row._mapping)
    progress_json = row_dict.pop("progress_json")
    row_dict["progress"] = ProgressSnapshot.model_validate_json(progress_json) if progress_json else None
    return ParticipationInDB(**row_dict)


def _participation_params(participation: ParticipationInDB) -> Dict[str, Any]:
    return {
        "id": participation.id,
        "promotion_id": participation.promotion_id,
        "installer_id": participation.installer_id,
        "status": participation.status.value,
        "joined_at": participation.joined_at,
        "completed_at": participation.completed_at,
        "progress_json": participation.progress.model_dump_json() if participation.progress else None,
        "reward_claimable": participation.reward_claimable,
        "reward_claimed": participation.reward_claimed,
        "reward_claimed_at": participation.reward_claimed_at,
        "reward_status": participation.reward_status.value if participation.reward_status else None,
        "reward_processed_at": participation.reward_processed_at,
        "reward_processed_by": participation.reward_processed_by,
        "created_at": participation.created_at,
        "updated_at": participation.updated_at,
    }


class SqlRewardsRepository(RewardsRepository):
    """Repository bound to one session; the caller owns commit and rollback"""

    def __init__(self, session):
        self.session = session

    async def get_promotion(self, promotion_id: str) -> Optional[PromotionInDB]:
        result = await self.session.execute(
            text(f"SELECT {PROMOTION_COLUMNS} FROM promotions WHERE id = :id"),
            {"id": promotion_id}
        )
        row = result.fetchone()
        if not row:
            return None
        return _promotion_from_row(row)

    async def list_promotions(
        self,
        status_filter: Optional[PromotionStatus] = None,
        promotion_type: Optional[str] = None
    ) -> List[PromotionInDB]:
        conditions = []
        params = {}

        if status_filter:
            conditions.append("status = :status")
            params["status"] = PromotionStatus(status_filter).value
        if promotion_type:
            conditions.append("type = :type")
            params["type"] = promotion_type

        where_clause = "WHERE " + " AND ".join(conditions) if conditions else ""

        result = await self.session.execute(
            text(f"""
                SELECT {PROMOTION_COLUMNS}
                FROM promotions
                {where_clause}
                ORDER BY created_at DESC
            """),
            params
        )
        return [_promotion_from_row(row) for row in result.fetchall()]

    async def save_promotion(self, promotion: PromotionInDB) -> PromotionInDB:
        params = _promotion_params(promotion)
        result = await self.session.execute(
            text("""
                UPDATE promotions
                SET title = :title,
                    description = :description,
                    type = :type,
                    status = :status,
                    start_date = :start_date,
                    end_date = :end_date,
                    target_json = :target_json,
                    rewards_json = :rewards_json,
                    eligibility_json = :eligibility_json,
                    created_by = :created_by,
                    updated_at = :updated_at
                WHERE id = :id
            """),
            params
        )
        if result.rowcount == 0:
            await self.session.execute(
                text("""
                    INSERT INTO promotions (
                        id, title, description, type, status, start_date, end_date,
                        target_json, rewards_json, eligibility_json, created_by, created_at, updated_at
                    )
                    VALUES (
                        :id, :title, :description, :type, :status, :start_date, :end_date,
                        :target_json, :rewards_json, :eligibility_json, :created_by, :created_at, :updated_at
                    )
                """),
                params
            )
        return promotion

    async def delete_promotion(self, promotion_id: str) -> Optional[PromotionInDB]:
        promotion = await self.get_promotion(promotion_id)
        if not promotion:
            return None

        # Both deletes run in the session's transaction
        removed = await self.delete_participations_for_promotion(promotion_id)
        await self.session.execute(
            text("DELETE FROM promotions WHERE id = :id"),
            {"id": promotion_id}
        )
        logger.info("Promotion rows deleted", promotion_id=promotion_id, participations_removed=removed)
        return promotion

    async def add_participation(self, participation: ParticipationInDB) -> ParticipationInDB:
        try:
            await self.session.execute(
                text("""
                    INSERT INTO promotion_participations (
                        id, promotion_id, installer_id, status, joined_at, completed_at, progress_json,
                        reward_claimable, reward_claimed, reward_claimed_at, reward_status,
                        reward_processed_at, reward_processed_by, created_at, updated_at
                    )
                    VALUES (
                        :id, :promotion_id, :installer_id, :status, :joined_at, :completed_at, :progress_json,
                        :reward_claimable, :reward_claimed, :reward_claimed_at, :reward_status,
                        :reward_processed_at, :reward_processed_by, :created_at, :updated_at
                    )
                """),
                _participation_params(participation)
            )
        except IntegrityError as e:
            if "unique" in str(e).lower():
                raise AlreadyParticipatingError(participation.promotion_id, participation.installer_id) from e
            raise
        return participation

    async def save_participation(self, participation: ParticipationInDB) -> ParticipationInDB:
        await self.session.execute(
            text("""
                UPDATE promotion_participations
                SET status = :status,
                    completed_at = :completed_at,
                    progress_json = :progress_json,
                    reward_claimable = :reward_claimable,
                    reward_claimed = :reward_claimed,
                    reward_claimed_at = :reward_claimed_at,
                    reward_status = :reward_status,
                    reward_processed_at = :reward_processed_at,
                    reward_processed_by = :reward_processed_by,
                    updated_at = :updated_at
                WHERE id = :id
            """),
            _participation_params(participation)
        )
        return participation

    async def get_participation(self, promotion_id: str, installer_id: str) -> Optional[ParticipationInDB]:
        result = await self.session.execute(
            text(f"""
                SELECT {PARTICIPATION_COLUMNS}
                FROM promotion_participations
                WHERE promotion_id = :promotion_id AND installer_id = :installer_id
            """),
            {"promotion_id": promotion_id, "installer_id": installer_id}
        )
        row = result.fetchone()
        if not row:
            return None
        return _participation_from_row(row)

    async def get_participation_by_id(self, participation_id: str) -> Optional[ParticipationInDB]:
        result = await self.session.execute(
            text(f"SELECT {PARTICIPATION_COLUMNS} FROM promotion_participations WHERE id = :id"),
            {"id": participation_id}
        )
        row = result.fetchone()
        if not row:
            return None
        return _participation_from_row(row)

    async def list_participations(
        self,
        promotion_id: Optional[str] = None,
        installer_id: Optional[str] = None
    ) -> List[ParticipationInDB]:
        conditions = []
        params = {}

        if promotion_id:
            conditions.append("promotion_id = :promotion_id")
            params["promotion_id"] = promotion_id
        if installer_id:
            conditions.append("installer_id = :installer_id")
            params["installer_id"] = installer_id

        where_clause = "WHERE " + " AND ".join(conditions) if conditions else ""

        result = await self.session.execute(
            text(f"""
                SELECT {PARTICIPATION_COLUMNS}
                FROM promotion_participations
                {where_clause}
                ORDER BY joined_at DESC
            """),
            params
        )
        return [_participation_from_row(row) for row in result.fetchall()]

    async def delete_participations_for_promotion(self, promotion_id: str) -> int:
        result = await self.session.execute(
            text("DELETE FROM promotion_participations WHERE promotion_id = :promotion_id"),
            {"promotion_id": promotion_id}
        )
        return result.rowcount

    async def get_installer(self, installer_id: str) -> Optional[InstallerRecord]:
        result = await self.session.execute(
            text("""
                SELECT id, name, status, joined_at, average_rating
                FROM installers WHERE id = :id
            """),
            {"id": installer_id}
        )
        row = result.fetchone()
        if not row:
            return None

        row_dict = dict(row._mapping)
        row_dict["performance"] = {"average_rating": row_dict.pop("average_rating")}
        return InstallerRecord(**row_dict)

    async def list_activity_records(self, installer_id: str) -> List[ActivityRecord]:
        result = await self.session.execute(
            text("""
                SELECT id, installer_id, serial_number, city, created_at
                FROM serial_registrations
                WHERE installer_id = :installer_id
                ORDER BY created_at ASC
            """),
            {"installer_id": installer_id}
        )

        records = []
        for row in result.fetchall():
            row_dict = dict(row._mapping)
            row_dict["location"] = {"city": row_dict.pop("city")}
            records.append(ActivityRecord(**row_dict))
        return records
