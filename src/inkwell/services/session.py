"""Login session service (refresh tokens)."""

from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.config import settings
from inkwell.core.exceptions import UnauthorizedError
from inkwell.core.logging import get_logger
from inkwell.core.security import generate_token
from inkwell.models.base import utcnow
from inkwell.models.session import Session
from inkwell.repositories.base import EntityId, as_uuid
from inkwell.repositories.session import SessionRepository

logger = get_logger(__name__)


class SessionService:
    """Creates, validates and revokes refresh-token sessions.

    Expired sessions found during validation are removed and committed
    before the 401 is raised, so the cleanup survives the request rollback.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = SessionRepository(session)
        self._logger = get_logger(f"{__name__}.SessionService")

    async def create_session(self, user_id: EntityId, user_agent: Optional[str] = None) -> Session:
        expires_at = utcnow() + timedelta(days=settings.refresh_token_expires_days)
        login_session = await self.repo.create(
            {
                "user_id": as_uuid(user_id),
                "refresh_token": generate_token(),
                "expires_at": expires_at,
                "user_agent": user_agent,
            }
        )
        self._logger.info("Session created", user_id=str(user_id), session_id=str(login_session.id))
        return login_session

    async def _discard_expired(self, login_session: Session) -> None:
        await self.repo.delete_by_refresh_token(login_session.refresh_token)
        await self.session.commit()
        self._logger.info("Expired session removed", session_id=str(login_session.id))

    async def validate_refresh_token(
        self, refresh_token: str, user_id: Optional[EntityId] = None
    ) -> Session:
        """Return the live session for ``refresh_token``.

        Raises:
            UnauthorizedError: If the token is unknown, belongs to another
                user, or has expired
        """
        login_session = await self.repo.find_by_refresh_token(refresh_token)
        if login_session is None:
            raise UnauthorizedError("Invalid refresh token")
        if user_id is not None and login_session.user_id != as_uuid(user_id):
            raise UnauthorizedError("Invalid refresh token")
        if login_session.expires_at < utcnow():
            await self._discard_expired(login_session)
            raise UnauthorizedError("Refresh token expired")
        return login_session

    async def revoke_session(self, refresh_token: str) -> None:
        await self.repo.delete_by_refresh_token(refresh_token)

    async def revoke_all_user_sessions(self, user_id: EntityId) -> int:
        return await self.repo.delete_by_user_id(user_id)

    async def assert_active_session(self, session_id: EntityId) -> None:
        """Guard for access tokens: the session they were issued for must still exist.

        Raises:
            UnauthorizedError: If the session was revoked or has expired
        """
        login_session = await self.repo.find_one_by_id(session_id)
        if login_session is None:
            raise UnauthorizedError("Session revoked or not found")
        if login_session.expires_at < utcnow():
            await self._discard_expired(login_session)
            raise UnauthorizedError("Session expired")

    async def cleanup_expired_sessions(self) -> int:
        return await self.repo.delete_expired()
