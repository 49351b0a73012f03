"""
Database schema for promotions, participations and the collaborator tables
they read from (installers, serial registrations)
"""

from typing import List
from sqlalchemy import text

SCHEMA_STATEMENTS: List[str] = [
    """
    -- Installers (owned by the installer directory, read-only here)
    CREATE TABLE IF NOT EXISTS installers (
        id VARCHAR(64) PRIMARY KEY,
        name VARCHAR(200),
        status VARCHAR(20) NOT NULL,  -- pending, approved, suspended
        joined_at TIMESTAMP WITH TIME ZONE NOT NULL,
        average_rating DOUBLE PRECISION
    )
    """,
    """
    -- Serial-number registrations (activity records)
    CREATE TABLE IF NOT EXISTS serial_registrations (
        id VARCHAR(64) PRIMARY KEY,
        installer_id VARCHAR(64) NOT NULL,
        serial_number VARCHAR(100),
        city VARCHAR(100),
        created_at TIMESTAMP WITH TIME ZONE NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_serial_registrations_installer
    ON serial_registrations (installer_id, created_at)
    """,
    """
    -- Promotions
    CREATE TABLE IF NOT EXISTS promotions (
        id VARCHAR(64) PRIMARY KEY,
        title VARCHAR(200) NOT NULL,
        description TEXT NOT NULL,
        type VARCHAR(40) NOT NULL,  -- installation_target, milestone, quality_target, geographic_expansion
        status VARCHAR(20) NOT NULL,  -- active, inactive, expired
        start_date TIMESTAMP WITH TIME ZONE NOT NULL,
        end_date TIMESTAMP WITH TIME ZONE NOT NULL,
        target_json TEXT NOT NULL,
        rewards_json TEXT NOT NULL,
        eligibility_json TEXT NOT NULL,
        created_by VARCHAR(64),
        created_at TIMESTAMP WITH TIME ZONE NOT NULL,
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL,
        CONSTRAINT promotion_dates_ordered CHECK (start_date < end_date)
    )
    """,
    """
    -- Promotion participations
    CREATE TABLE IF NOT EXISTS promotion_participations (
        id VARCHAR(64) PRIMARY KEY,
        promotion_id VARCHAR(64) NOT NULL REFERENCES promotions(id) ON DELETE CASCADE,
        installer_id VARCHAR(64) NOT NULL,
        status VARCHAR(20) NOT NULL,  -- active, completed
        joined_at TIMESTAMP WITH TIME ZONE NOT NULL,
        completed_at TIMESTAMP WITH TIME ZONE,
        progress_json TEXT,
        reward_claimable BOOLEAN NOT NULL DEFAULT FALSE,
        reward_claimed BOOLEAN NOT NULL DEFAULT FALSE,
        reward_claimed_at TIMESTAMP WITH TIME ZONE,
        reward_status VARCHAR(20),  -- pending, paid, rejected
        reward_processed_at TIMESTAMP WITH TIME ZONE,
        reward_processed_by VARCHAR(64),
        created_at TIMESTAMP WITH TIME ZONE NOT NULL,
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL,
        CONSTRAINT unique_promotion_installer UNIQUE (promotion_id, installer_id),
        CONSTRAINT completed_at_matches_status CHECK (
            (status = 'completed' AND completed_at IS NOT NULL)
            OR (status <> 'completed' AND completed_at IS NULL)
        )
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_participations_installer
    ON promotion_participations (installer_id)
    """,
]


async def create_schema(conn) -> None:
    """Apply every statement on an open async connection"""
    for statement in SCHEMA_STATEMENTS:
        await conn.execute(text(statement))
