# backend/app/repositories/user_repository.py
"""User data access, including row locks for trust-state updates."""

import logging
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.find_one_by(email=email)

    def get_for_update(self, user_id: str) -> Optional[User]:
        """Load a user holding a row lock (ignored by dialects without FOR UPDATE)."""
        return self._execute_first(
            self._build_query().filter(User.id == user_id).with_for_update()
        )

    def decrement_strikes(self, counts: Dict[str, int]) -> int:
        """Subtract per-user strike counts, never going below zero."""
        if not counts:
            return 0
        try:
            users = self._build_query().filter(User.id.in_(list(counts))).with_for_update().all()
            for user in users:
                user.active_strikes = max(0, (user.active_strikes or 0) - counts[user.id])
            self.db.flush()
            return len(users)
        except SQLAlchemyError as e:
            self.logger.error(f"Error decrementing strikes: {str(e)}")
            raise RepositoryException(f"Failed to decrement strikes: {str(e)}")
