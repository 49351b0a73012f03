"""
Promotions Endpoints - admin management
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import List, Optional

from installer_rewards.core.database import get_repository
from installer_rewards.models.participation import ParticipationInDB, PromotionAnalytics, RewardStatusUpdate
from installer_rewards.models.promotion import (
    PromotionCreate, PromotionUpdate, PromotionInDB, PromotionStatus, PromotionType
)
from installer_rewards.services import promotion_service
from installer_rewards.services.participation_service import ParticipationService
from installer_rewards.utils.datetime_helpers import utcnow

router = APIRouter(prefix="/admin/promotions", tags=["admin-promotions"])


@router.post("", response_model=PromotionInDB, status_code=status.HTTP_201_CREATED)
async def create_promotion(
    promotion_data: PromotionCreate,
    repo = Depends(get_repository)
):
    """Create promotion"""
    return await promotion_service.create_promotion(repo, promotion_data, utcnow())


@router.get("", response_model=List[PromotionInDB])
async def list_promotions(
    status_filter: Optional[PromotionStatus] = Query(None),
    promotion_type: Optional[PromotionType] = Query(None),
    repo = Depends(get_repository)
):
    """List promotions"""
    return await promotion_service.list_promotions(repo, status_filter, promotion_type)


@router.post("/expire")
async def expire_promotions(repo = Depends(get_repository)):
    """Mark promotions past their end date as expired"""
    expired = await promotion_service.expire_promotions(repo, utcnow())
    return {"expired": expired}


@router.put("/participations/{participation_id}/reward", response_model=ParticipationInDB)
async def update_reward_status(
    participation_id: str,
    reward_update: RewardStatusUpdate,
    repo = Depends(get_repository)
):
    """Mark a completed participation's reward as pending, paid or rejected"""
    service = ParticipationService(repo)
    return await service.set_reward_status(
        participation_id, reward_update.status, reward_update.admin_id, utcnow()
    )


@router.get("/{promotion_id}", response_model=PromotionInDB)
async def get_promotion(
    promotion_id: str,
    repo = Depends(get_repository)
):
    """Get promotion details"""
    promotion = await promotion_service.get_promotion_by_id(repo, promotion_id)
    if not promotion:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Promotion not found")
    return promotion


@router.patch("/{promotion_id}", response_model=PromotionInDB)
async def update_promotion(
    promotion_id: str,
    promotion_data: PromotionUpdate,
    repo = Depends(get_repository)
):
    """Update promotion"""
    return await promotion_service.update_promotion(repo, promotion_id, promotion_data, utcnow())


@router.delete("/{promotion_id}", response_model=PromotionInDB)
async def delete_promotion(
    promotion_id: str,
    repo = Depends(get_repository)
):
    """Delete promotion and its participations"""
    return await promotion_service.delete_promotion(repo, promotion_id)


@router.get("/{promotion_id}/analytics", response_model=PromotionAnalytics)
async def promotion_analytics(
    promotion_id: str,
    repo = Depends(get_repository)
):
    """Participation analytics"""
    return await ParticipationService(repo).promotion_analytics(promotion_id, utcnow())
