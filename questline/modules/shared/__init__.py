"""
Questline Shared Module

Provides domain-level foundations for the quest modules:
- Domain exceptions and error handling
- Base service and repository patterns

Usage
-----
    from questline.modules.shared import (
        BaseService,
        BaseRepository,
        NotFoundError,
        QuestErrorKind,
    )
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    AlreadyClaimedError,
    ErrorSeverity,
    GenerationConfigError,
    InvalidStateError,
    NotFoundError,
    QuestDomainException,
    QuestErrorKind,
    RewardGrantError,
    TargetNotReachedError,
    UnauthenticatedError,
    ValidationError,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "AlreadyClaimedError",
    "ErrorSeverity",
    "GenerationConfigError",
    "InvalidStateError",
    "NotFoundError",
    "QuestDomainException",
    "QuestErrorKind",
    "RewardGrantError",
    "TargetNotReachedError",
    "UnauthenticatedError",
    "ValidationError",
]
