"""
Domain errors raised by the promotion services
"""

from typing import Iterable, List, Optional


class RewardsError(Exception):
    """Base exception for the rewards domain"""
    kind = "rewards_error"


class PromotionValidationError(RewardsError):
    """Promotion payload failed one or more field checks"""
    kind = "validation_error"

    def __init__(self, fields: Iterable[str], message: Optional[str] = None):
        self.fields: List[str] = list(dict.fromkeys(fields))
        super().__init__(message or f"Invalid fields: {', '.join(self.fields)}")


class NotFoundError(RewardsError):
    """Referenced record does not exist"""
    kind = "not_found"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")


class IneligibleError(RewardsError):
    """Installer does not satisfy a promotion's eligibility rules"""
    kind = "ineligible"

    def __init__(self, rule: str):
        self.rule = rule
        super().__init__(f"Not eligible for this promotion ({rule})")


class AlreadyParticipatingError(RewardsError):
    """Installer already joined the promotion"""
    kind = "already_participating"

    def __init__(self, promotion_id: str, installer_id: str):
        self.promotion_id = promotion_id
        self.installer_id = installer_id
        super().__init__("Already participating in this promotion")
