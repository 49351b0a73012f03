# Models package - Export all models

from .promotion import (
    PromotionCreate, PromotionUpdate, PromotionInDB,
    PromotionTarget, PromotionRewards, PromotionEligibility,
    PromotionType, PromotionStatus, TargetPeriod, RewardType
)

from .participation import (
    ParticipationInDB, ProgressSnapshot, RewardStatusUpdate,
    InstallerPromotionView, PromotionHistoryEntry, InstallerPromotionStats,
    ParticipantProgress, PromotionAnalytics,
    ParticipationStatus, RewardStatus
)

from .installer import (
    InstallerRecord, InstallerPerformance, ActivityRecord, ActivityLocation
)

__all__ = [
    # Promotion models
    "PromotionCreate", "PromotionUpdate", "PromotionInDB",
    "PromotionTarget", "PromotionRewards", "PromotionEligibility",
    "PromotionType", "PromotionStatus", "TargetPeriod", "RewardType",

    # Participation models
    "ParticipationInDB", "ProgressSnapshot", "RewardStatusUpdate",
    "InstallerPromotionView", "PromotionHistoryEntry", "InstallerPromotionStats",
    "ParticipantProgress", "PromotionAnalytics",
    "ParticipationStatus", "RewardStatus",

    # Collaborator records
    "InstallerRecord", "InstallerPerformance", "ActivityRecord", "ActivityLocation",
]
