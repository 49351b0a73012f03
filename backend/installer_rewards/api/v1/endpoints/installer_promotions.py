"""
Installer Promotions Endpoints
"""

from fastapi import APIRouter, Depends, status
from typing import List

from installer_rewards.core.database import get_repository
from installer_rewards.models.participation import (
    InstallerPromotionStats, InstallerPromotionView, ParticipationInDB, PromotionHistoryEntry
)
from installer_rewards.services.participation_service import ParticipationService
from installer_rewards.utils.datetime_helpers import utcnow

router = APIRouter(prefix="/installers/{installer_id}/promotions", tags=["installer-promotions"])


@router.get("", response_model=List[InstallerPromotionView])
async def list_installer_promotions(
    installer_id: str,
    repo = Depends(get_repository)
):
    """Running promotions with the installer's progress"""
    return await ParticipationService(repo).list_for_installer(installer_id, utcnow())


@router.get("/stats", response_model=InstallerPromotionStats)
async def get_promotion_stats(
    installer_id: str,
    repo = Depends(get_repository)
):
    """Promotion dashboard stats"""
    return await ParticipationService(repo).dashboard_stats(installer_id, utcnow())


@router.get("/history", response_model=List[PromotionHistoryEntry])
async def get_promotion_history(
    installer_id: str,
    repo = Depends(get_repository)
):
    """Promotion participation history"""
    return await ParticipationService(repo).promotion_history(installer_id)


@router.get("/{promotion_id}", response_model=InstallerPromotionView)
async def get_installer_promotion(
    installer_id: str,
    promotion_id: str,
    repo = Depends(get_repository)
):
    """Promotion details and progress"""
    return await ParticipationService(repo).get_for_installer(promotion_id, installer_id, utcnow())


@router.post("/{promotion_id}/join", response_model=ParticipationInDB, status_code=status.HTTP_201_CREATED)
async def join_promotion(
    installer_id: str,
    promotion_id: str,
    repo = Depends(get_repository)
):
    """Join a promotion"""
    return await ParticipationService(repo).join(promotion_id, installer_id, utcnow())


@router.post("/{promotion_id}/refresh", response_model=ParticipationInDB)
async def refresh_promotion_progress(
    installer_id: str,
    promotion_id: str,
    repo = Depends(get_repository)
):
    """Recompute progress"""
    return await ParticipationService(repo).refresh_progress(promotion_id, installer_id, utcnow())
