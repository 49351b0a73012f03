"""
Installer and activity records read by the promotion services
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class InstallerPerformance(BaseModel):
    average_rating: Optional[float] = Field(None, ge=0, le=5)


class InstallerRecord(BaseModel):
    """Installer as seen by the promotion services"""
    id: str
    name: Optional[str] = None
    status: str
    joined_at: datetime
    performance: InstallerPerformance = Field(default_factory=InstallerPerformance)


class ActivityLocation(BaseModel):
    city: Optional[str] = None


class ActivityRecord(BaseModel):
    """Serial-number registration credited to an installer"""
    id: str
    installer_id: str
    serial_number: Optional[str] = None
    created_at: datetime
    location: ActivityLocation = Field(default_factory=ActivityLocation)
