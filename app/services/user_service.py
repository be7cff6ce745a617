"""
User service.

Registration of new members under an optional referrer.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.services.base_service import BaseService, transaction
from app.services.hierarchy.hierarchy_store import HierarchyStore
from app.utils.exceptions import InvalidParent


class UserService(BaseService):
    """User service handles registration."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user service."""
        super().__init__(session)
        self.user_repo = UserRepository(session)
        self.hierarchy = HierarchyStore(session)

    @transaction
    async def register(
        self, external_id: str, parent_external_id: str | None = None
    ) -> User:
        """
        Register a new user, optionally under a referrer.

        User row and referral edge are committed together; a rejected
        referrer leaves no user behind.

        Args:
            external_id: Public member code
            parent_external_id: Referrer's member code

        Returns:
            Created user

        Raises:
            ValueError: If the member code is taken
            InvalidParent: If the referrer is unknown or already has three
                active children
        """
        if await self.user_repo.get_by_external_id(external_id):
            raise ValueError(f"User {external_id} already registered")

        parent = None
        if parent_external_id:
            parent = await self.user_repo.get_by_external_id(parent_external_id)
            if parent is None:
                raise InvalidParent(
                    f"Referrer {parent_external_id} does not exist"
                )

        user = await self.user_repo.create(external_id=external_id)

        if parent is not None:
            await self.hierarchy.attach(user.id, parent.id)

        self.logger.info(
            "User registered",
            extra={
                "user_id": user.id,
                "external_id": external_id,
                "parent_id": parent.id if parent else None,
            },
        )
        return user
