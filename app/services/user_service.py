# app/services/user_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import UserUpdate, UserRoleUpdate, UserStatusUpdate

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - enforce app rules (no email change, admins cannot lock themselves out)
      - orchestrate repository operations
      - map domain errors to HTTP errors
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Self profile -----

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits.
        Currently, only `name` is editable; email belongs to Supabase Auth.
        """
        if payload.name is not None:
            current_user.name = payload.name

        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        skip: int,
        limit: int,
        role: str | None = None,
    ) -> list[User]:
        """List users with pagination (admin only)."""
        return self.repo.list_users(session, skip=skip, limit=limit, role=role)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Get a user by id (admin only).

        Raises:
            HTTPException(404): if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def update_role(
        self,
        session: Session,
        admin: User,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change user's role (admin only).

        Role validation is enforced by the schema (Literal).
        """
        user = self.get_user(session, user_id)
        if user.id == admin.id and payload.role != "admin":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot remove your own admin role",
            )
        user.role = payload.role
        logger.info("User %s role set to %s by %s", user.id, payload.role, admin.id)
        return self.repo.update(session, user)

    def update_status(
        self,
        session: Session,
        admin: User,
        user_id: uuid.UUID,
        payload: UserStatusUpdate,
    ) -> User:
        """Activate or deactivate an account (admin only)."""
        user = self.get_user(session, user_id)
        if user.id == admin.id and not payload.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot deactivate your own account",
            )
        user.is_active = payload.is_active
        logger.info("User %s is_active=%s set by %s", user.id, payload.is_active, admin.id)
        return self.repo.update(session, user)
