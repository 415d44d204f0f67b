"""
Identity provider boundary.

Purge removes the login accounts of a firm's staff. The accounts live in an
identity provider; ``DatabaseIdentityProvider`` treats the ``users`` table as
that provider.
"""

from abc import ABC, abstractmethod
import uuid

from sqlalchemy.orm import Session

from studio_sync.database.models import User
from studio_sync.utils.logger import get_logger


logger = get_logger(__name__)


class IdentityProvider(ABC):
    """Deletes user accounts."""

    @abstractmethod
    def delete_user(self, user_id: uuid.UUID) -> bool:
        """
        Delete a login account.

        Returns:
            True if the account was deleted, False if it did not exist.
        """
        pass


class DatabaseIdentityProvider(IdentityProvider):
    """Identity provider backed by the ``users`` table."""

    def __init__(self, db: Session):
        self.db = db

    def delete_user(self, user_id: uuid.UUID) -> bool:
        user = self.db.get(User, user_id)
        if user is None:
            logger.info(f"User {user_id} already deleted")
            return False

        try:
            self.db.delete(user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Deleted user account {user_id}")
        return True
