"""
Promotion Service - registry of promotion definitions
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError as PydanticValidationError

from installer_rewards.core.exceptions import NotFoundError, PromotionValidationError
from installer_rewards.models.promotion import (
    PromotionCreate, PromotionUpdate, PromotionInDB, PromotionStatus, PromotionType
)
from installer_rewards.monitoring.metrics import metrics_collector, track_timing
from installer_rewards.monitoring.tracing import traced_operation
from installer_rewards.repositories.base import RewardsRepository
from installer_rewards.utils.datetime_helpers import ensure_utc, utcnow

logger = structlog.get_logger()

_datetime_adapter = TypeAdapter(datetime)

Payload = Union[Dict[str, Any], BaseModel]


def _as_dict(payload: Payload, exclude_unset: bool = False) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_unset=exclude_unset)
    return dict(payload)


def _error_fields(error: PydanticValidationError) -> List[str]:
    return [".".join(str(part) for part in err["loc"]) for err in error.errors()]


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return ensure_utc(_datetime_adapter.validate_python(value))
    except PydanticValidationError:
        return None


def validate_promotion(payload: Payload) -> PromotionCreate:
    """Validate a full promotion payload, reporting every failing field at once"""
    data = _as_dict(payload)
    fields = []
    promotion = None

    try:
        promotion = PromotionCreate.model_validate(data)
    except PydanticValidationError as e:
        fields.extend(_error_fields(e))

    start_date = _parse_datetime(data.get("start_date"))
    end_date = _parse_datetime(data.get("end_date"))
    if start_date and end_date and start_date >= end_date:
        fields.append("end_date")

    if fields:
        raise PromotionValidationError(fields)
    return promotion


def _merge(existing: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a patch; nested objects (target, rewards, eligibility) merge one level deep"""
    merged = dict(existing)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


@traced_operation("promotion.create")
@track_timing("create_promotion")
async def create_promotion(
    repo: RewardsRepository,
    promotion_data: Payload,
    now: Optional[datetime] = None
) -> PromotionInDB:
    """Create a new promotion"""
    promotion = validate_promotion(promotion_data)
    now = ensure_utc(now) or utcnow()

    row_dict = promotion.model_dump()
    row_dict["type"] = PromotionType(row_dict["type"]).value
    record = PromotionInDB(
        id=str(uuid.uuid4()),
        created_at=now,
        updated_at=now,
        **row_dict
    )
    await repo.save_promotion(record)

    metrics_collector.increment_counter("promotions_created", label=record.type)
    logger.info("Promotion created", promotion_id=record.id, type=record.type, title=record.title)
    return record


async def get_promotion_by_id(repo: RewardsRepository, promotion_id: str) -> Optional[PromotionInDB]:
    """Get promotion by ID"""
    return await repo.get_promotion(promotion_id)


async def require_promotion(repo: RewardsRepository, promotion_id: str) -> PromotionInDB:
    promotion = await repo.get_promotion(promotion_id)
    if not promotion:
        raise NotFoundError("promotion", promotion_id)
    return promotion


async def list_promotions(
    repo: RewardsRepository,
    status_filter: Optional[PromotionStatus] = None,
    promotion_type: Optional[PromotionType] = None
) -> List[PromotionInDB]:
    """List promotions with filters"""
    type_value = PromotionType(promotion_type).value if promotion_type else None
    return await repo.list_promotions(status_filter=status_filter, promotion_type=type_value)


def is_running(promotion: PromotionInDB, now: datetime) -> bool:
    """Active and inside its start/end window"""
    now = ensure_utc(now)
    return (
        promotion.status == PromotionStatus.ACTIVE
        and ensure_utc(promotion.start_date) <= now <= ensure_utc(promotion.end_date)
    )


async def list_active(repo: RewardsRepository, now: datetime) -> List[PromotionInDB]:
    """Promotions that are active and running at `now`"""
    promotions = await repo.list_promotions(status_filter=PromotionStatus.ACTIVE)
    return [p for p in promotions if is_running(p, now)]


@traced_operation("promotion.update")
@track_timing("update_promotion")
async def update_promotion(
    repo: RewardsRepository,
    promotion_id: str,
    promotion_data: Payload,
    now: Optional[datetime] = None
) -> PromotionInDB:
    """Update promotion"""
    existing = await require_promotion(repo, promotion_id)

    # Identity and audit timestamps are not patchable
    patch = {
        key: value
        for key, value in _as_dict(promotion_data, exclude_unset=True).items()
        if key in PromotionUpdate.model_fields
    }
    if not patch:
        return existing

    current = existing.model_dump(exclude={"id", "created_at", "updated_at"})
    promotion = validate_promotion(_merge(current, patch))

    row_dict = promotion.model_dump()
    row_dict["type"] = PromotionType(row_dict["type"]).value
    record = PromotionInDB(
        id=existing.id,
        created_at=existing.created_at,
        updated_at=ensure_utc(now) or utcnow(),
        **row_dict
    )
    await repo.save_promotion(record)

    logger.info("Promotion updated", promotion_id=promotion_id, fields=sorted(patch))
    return record


@traced_operation("promotion.delete")
@track_timing("delete_promotion")
async def delete_promotion(repo: RewardsRepository, promotion_id: str) -> PromotionInDB:
    """Delete promotion and every participation in it"""
    deleted = await repo.delete_promotion(promotion_id)
    if not deleted:
        raise NotFoundError("promotion", promotion_id)

    metrics_collector.increment_counter("promotions_deleted")
    logger.info("Promotion deleted", promotion_id=promotion_id)
    return deleted


async def expire_promotions(repo: RewardsRepository, now: datetime) -> int:
    """Mark active promotions past their end date as expired"""
    now = ensure_utc(now)
    expired = 0

    for promotion in await repo.list_promotions(status_filter=PromotionStatus.ACTIVE):
        if ensure_utc(promotion.end_date) < now:
            promotion.status = PromotionStatus.EXPIRED
            promotion.updated_at = now
            await repo.save_promotion(promotion)
            expired += 1

    if expired:
        logger.info("Promotions expired", count=expired)
    return expired
