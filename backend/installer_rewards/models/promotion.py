"""
Promotion Models
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from installer_rewards.core.config import settings


class PromotionType(str, Enum):
    """Promotion types"""
    INSTALLATION_TARGET = "installation_target"
    MILESTONE = "milestone"
    QUALITY_TARGET = "quality_target"
    GEOGRAPHIC_EXPANSION = "geographic_expansion"


class PromotionStatus(str, Enum):
    """Promotion status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"


class TargetPeriod(str, Enum):
    """Window a target is counted over"""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    LIFETIME = "lifetime"


class RewardType(str, Enum):
    """Reward payout types"""
    CASH = "cash"
    CASH_AND_RECOGNITION = "cash_and_recognition"
    RECOGNITION = "recognition"


class PromotionTarget(BaseModel):
    """Target definition; quality targets also use installations and rating"""
    type: Optional[str] = Field(None, max_length=50)
    value: int = Field(..., gt=0)
    period: TargetPeriod = TargetPeriod.LIFETIME
    installations: int = Field(0, ge=0)
    rating: float = Field(0, ge=0, le=5)


class PromotionRewards(BaseModel):
    """Reward paid out on completion"""
    type: RewardType = RewardType.CASH
    amount: int = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=500)


class PromotionEligibility(BaseModel):
    """Who may join"""
    min_installations: int = Field(0, ge=0)
    installer_status: Optional[str] = Field(None, max_length=20)
    new_installers_only: bool = False


class PromotionBase(BaseModel):
    """Base promotion model"""
    title: str = Field(..., min_length=1, max_length=settings.PROMOTION_TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=settings.PROMOTION_DESCRIPTION_MAX_LENGTH)
    type: PromotionType
    status: PromotionStatus = PromotionStatus.ACTIVE
    start_date: datetime
    end_date: datetime
    target: PromotionTarget
    rewards: PromotionRewards
    eligibility: PromotionEligibility = Field(default_factory=PromotionEligibility)


class PromotionCreate(PromotionBase):
    """Promotion creation model"""
    created_by: Optional[str] = Field(None, max_length=64)


class PromotionUpdate(BaseModel):
    """Promotion update model"""
    title: Optional[str] = Field(None, min_length=1, max_length=settings.PROMOTION_TITLE_MAX_LENGTH)
    description: Optional[str] = Field(None, min_length=1, max_length=settings.PROMOTION_DESCRIPTION_MAX_LENGTH)
    type: Optional[PromotionType] = None
    status: Optional[PromotionStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    target: Optional[PromotionTarget] = None
    rewards: Optional[PromotionRewards] = None
    eligibility: Optional[PromotionEligibility] = None


class PromotionInDB(PromotionBase):
    """Promotion in database model"""
    id: str
    # Stored rows may carry types this service has no progress rule for
    type: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
