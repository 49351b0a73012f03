"""
Progress Calculator - promotion progress from an installer's serial registrations

Only registrations made between the counting start date (the later of the
promotion start and the installer's join time) and the promotion end date are
credited. Completion timestamps are sticky: once a participation is completed
its completed_at is carried forward unchanged.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from installer_rewards.models.installer import ActivityRecord, InstallerRecord
from installer_rewards.models.participation import (
    ParticipationInDB, ParticipationStatus, ProgressSnapshot
)
from installer_rewards.models.promotion import PromotionInDB, PromotionType, TargetPeriod
from installer_rewards.utils.datetime_helpers import ensure_utc, quarter_of


def counting_start_date(promotion: PromotionInDB, participation: ParticipationInDB) -> datetime:
    """Later of promotion start and join time"""
    return max(ensure_utc(promotion.start_date), ensure_utc(participation.joined_at))


def valid_records(
    promotion: PromotionInDB,
    participation: ParticipationInDB,
    activity_records: Sequence[ActivityRecord]
) -> List[ActivityRecord]:
    """Records inside [counting start, promotion end], both ends inclusive"""
    start = counting_start_date(promotion, participation)
    end = ensure_utc(promotion.end_date)
    return [
        record for record in activity_records
        if record.installer_id == participation.installer_id
        and start <= ensure_utc(record.created_at) <= end
    ]


def _percentage(current: int, target: int) -> float:
    if target <= 0:
        return 0.0
    return min(current / target * 100, 100.0)


def _installation_target(promotion, records, installer, now) -> Dict:
    target = promotion.target.value
    period = promotion.target.period

    if period == TargetPeriod.MONTHLY:
        current = sum(
            1 for r in records
            if ensure_utc(r.created_at).year == now.year and ensure_utc(r.created_at).month == now.month
        )
    elif period == TargetPeriod.QUARTERLY:
        current = sum(
            1 for r in records
            if ensure_utc(r.created_at).year == now.year
            and quarter_of(ensure_utc(r.created_at)) == quarter_of(now)
        )
    elif period == TargetPeriod.LIFETIME:
        current = len(records)
    else:
        current = 0

    return {
        "current": current,
        "target": target,
        "percentage": _percentage(current, target),
        "is_completed": current >= target,
    }


def _quality_target(promotion, records, installer, now) -> Dict:
    installations_target = promotion.target.installations
    rating_target = promotion.target.rating
    current = len(records)
    rating = (installer.performance.average_rating if installer else None) or 0
    meets_quality = rating >= rating_target

    return {
        "current": current,
        "target": installations_target,
        "percentage": _percentage(current, installations_target),
        "rating": rating,
        "rating_target": rating_target,
        "meets_quality": meets_quality,
        "is_completed": meets_quality and current >= installations_target,
    }


def _geographic_expansion(promotion, records, installer, now) -> Dict:
    target = promotion.target.value
    cities = []
    for record in records:
        city = record.location.city
        if city and city not in cities:
            cities.append(city)

    return {
        "current": len(cities),
        "target": target,
        "percentage": _percentage(len(cities), target),
        "cities": cities,
        "is_completed": len(cities) >= target,
    }


def _zero(promotion, records, installer, now) -> Dict:
    return {"current": 0, "target": 0, "percentage": 0.0, "is_completed": False}


ProgressRule = Callable[[PromotionInDB, List[ActivityRecord], Optional[InstallerRecord], datetime], Dict]

PROGRESS_RULES: Dict[str, ProgressRule] = {
    PromotionType.INSTALLATION_TARGET.value: _installation_target,
    PromotionType.QUALITY_TARGET.value: _quality_target,
    PromotionType.GEOGRAPHIC_EXPANSION.value: _geographic_expansion,
    # Milestone promotions have no progress rule of their own
    PromotionType.MILESTONE.value: _zero,
}


def compute_progress(
    promotion: PromotionInDB,
    participation: ParticipationInDB,
    activity_records: Sequence[ActivityRecord],
    installer: Optional[InstallerRecord],
    now: datetime
) -> ProgressSnapshot:
    """
    Compute an installer's progress towards a promotion target

    Args:
        promotion: Promotion definition
        participation: The installer's participation (join time, status, completed_at)
        activity_records: The installer's serial registrations
        installer: Installer record (rating for quality targets)
        now: Evaluation time; also the completion time when newly completed

    Returns:
        Progress snapshot. Unknown promotion types yield a zeroed snapshot.
    """
    now = ensure_utc(now)
    start = counting_start_date(promotion, participation)
    records = valid_records(promotion, participation, activity_records)

    promotion_type = promotion.type.value if isinstance(promotion.type, PromotionType) else promotion.type
    rule = PROGRESS_RULES.get(promotion_type, _zero)
    values = rule(promotion, records, installer, now)

    if values["is_completed"] and participation.status != ParticipationStatus.COMPLETED:
        completed_at = now
    else:
        completed_at = participation.completed_at

    return ProgressSnapshot(
        completed_at=completed_at,
        counting_start_date=start,
        valid_records=len(records),
        **values
    )
