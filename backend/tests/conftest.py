"""
Pytest configuration and fixtures for the promotion lifecycle tests.

Every test gets a fresh in-memory repository and a fixed clock.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from installer_rewards.models.installer import (
    ActivityLocation, ActivityRecord, InstallerPerformance, InstallerRecord
)
from installer_rewards.models.participation import ParticipationInDB
from installer_rewards.models.promotion import PromotionInDB
from installer_rewards.monitoring.metrics import metrics_collector
from installer_rewards.repositories.memory import InMemoryRewardsRepository
from installer_rewards.services.participation_service import ParticipationLocks, ParticipationService

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics_collector.reset()
    yield
    metrics_collector.reset()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def repo():
    return InMemoryRewardsRepository()


@pytest.fixture
def service(repo):
    return ParticipationService(repo, locks=ParticipationLocks())


@pytest.fixture
def add_installer(repo):
    """Register an installer; approved, long-standing and rated 4.5 unless overridden"""
    def _add(installer_id="inst-1", status="approved", joined_at=None, rating=4.5, name="Ali Solar"):
        installer = InstallerRecord(
            id=installer_id,
            name=name,
            status=status,
            joined_at=joined_at or NOW - timedelta(days=365),
            performance=InstallerPerformance(average_rating=rating),
        )
        repo.add_installer(installer)
        return installer
    return _add


@pytest.fixture
def installer(add_installer):
    return add_installer()


@pytest.fixture
def add_serials(repo):
    """Register serial numbers for an installer at the given times"""
    def _add(installer_id, timestamps, cities=None):
        records = []
        for index, created_at in enumerate(timestamps):
            city = cities[index] if cities else None
            record = ActivityRecord(
                id=str(uuid.uuid4()),
                installer_id=installer_id,
                serial_number=f"SN-{installer_id}-{len(repo.activity_records) + 1:05d}",
                created_at=created_at,
                location=ActivityLocation(city=city),
            )
            repo.add_activity_record(record)
            records.append(record)
        return records
    return _add


@pytest.fixture
def promotion_payload():
    """Valid create payload for a lifetime installation target running through 2026"""
    def _payload(**overrides):
        payload = {
            "title": "Spring Install Drive",
            "description": "Register five inverters to earn a cash bonus",
            "type": "installation_target",
            "status": "active",
            "start_date": datetime(2026, 1, 1, tzinfo=timezone.utc),
            "end_date": datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc),
            "target": {"type": "installations", "value": 5, "period": "lifetime"},
            "rewards": {"type": "cash", "amount": 5000, "description": "PKR 5,000 bonus"},
            "eligibility": {"min_installations": 0, "installer_status": None, "new_installers_only": False},
        }
        payload.update(overrides)
        return payload
    return _payload


@pytest.fixture
def make_promotion():
    """Build a stored promotion directly, bypassing registry validation"""
    def _make(**overrides):
        fields = {
            "id": "promo-1",
            "title": "Spring Install Drive",
            "description": "Register inverters to earn a bonus",
            "type": "installation_target",
            "status": "active",
            "start_date": datetime(2026, 1, 1, tzinfo=timezone.utc),
            "end_date": datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc),
            "target": {"value": 5, "period": "lifetime"},
            "rewards": {"type": "cash", "amount": 5000},
            "created_at": datetime(2025, 12, 1, tzinfo=timezone.utc),
            "updated_at": datetime(2025, 12, 1, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return PromotionInDB(**fields)
    return _make


@pytest.fixture
def make_participation():
    def _make(joined_at=NOW, **overrides):
        fields = {
            "id": "part-1",
            "promotion_id": "promo-1",
            "installer_id": "inst-1",
            "joined_at": joined_at,
            "created_at": joined_at,
            "updated_at": joined_at,
        }
        fields.update(overrides)
        return ParticipationInDB(**fields)
    return _make
