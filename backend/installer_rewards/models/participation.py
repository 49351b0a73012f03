"""
Participation and Progress Models
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from installer_rewards.models.installer import InstallerRecord
from installer_rewards.models.promotion import PromotionInDB


class ParticipationStatus(str, Enum):
    """Participation status"""
    ACTIVE = "active"
    COMPLETED = "completed"


class RewardStatus(str, Enum):
    """Reward processing status"""
    PENDING = "pending"
    PAID = "paid"
    REJECTED = "rejected"


class ProgressSnapshot(BaseModel):
    """Progress of one installer towards one promotion target"""
    current: int = Field(0, ge=0)
    target: int = Field(0, ge=0)
    percentage: float = Field(0, ge=0, le=100)
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    counting_start_date: Optional[datetime] = None
    valid_records: int = Field(0, ge=0)
    # quality_target
    rating: Optional[float] = None
    rating_target: Optional[float] = None
    meets_quality: Optional[bool] = None
    # geographic_expansion
    cities: Optional[List[str]] = None


class ParticipationInDB(BaseModel):
    """Participation in database model"""
    id: str
    promotion_id: str
    installer_id: str
    status: ParticipationStatus = ParticipationStatus.ACTIVE
    joined_at: datetime
    completed_at: Optional[datetime] = None
    progress: Optional[ProgressSnapshot] = None
    reward_claimable: bool = False
    reward_claimed: bool = False
    reward_claimed_at: Optional[datetime] = None
    reward_status: Optional[RewardStatus] = None
    reward_processed_at: Optional[datetime] = None
    reward_processed_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RewardStatusUpdate(BaseModel):
    """Admin reward decision"""
    status: RewardStatus
    admin_id: str = Field(..., min_length=1, max_length=64)


class InstallerPromotionView(BaseModel):
    """A promotion as offered to one installer"""
    promotion: PromotionInDB
    participation: Optional[ParticipationInDB] = None
    progress: Optional[ProgressSnapshot] = None
    can_join: bool
    is_participating: bool
    days_remaining: int = 0


class PromotionHistoryEntry(BaseModel):
    """Past or current participation with its promotion"""
    participation: ParticipationInDB
    promotion: Optional[PromotionInDB] = None


class InstallerPromotionStats(BaseModel):
    """Installer dashboard counters"""
    available_promotions: int
    active_participations: int
    completed_promotions: int
    total_rewards_earned: int


class ParticipantProgress(BaseModel):
    """Participation row in the admin analytics view"""
    participation: ParticipationInDB
    installer: Optional[InstallerRecord] = None
    total_installations: int = 0
    progress: ProgressSnapshot


class PromotionAnalytics(BaseModel):
    """Admin analytics for one promotion"""
    promotion: PromotionInDB
    total_participants: int
    active_participants_count: int
    completed_participants_count: int
    completion_rate: float
    average_progress: float
    participants: List[ParticipantProgress]
