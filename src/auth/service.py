"""User service layer.

Business logic for:
- First sign-in user creation from a verified identity
- Sign-up with an unused email
- User lookups and username snapshots
"""

import structlog

from src.auth.models import USERS_COLLECTION, User, username_from_email
from src.auth.permissions import UserRole
from src.auth.schemas import SignUpRequest
from src.auth.verifier import VerifiedIdentity
from src.core.database import SERVER_TIMESTAMP, DocumentStore
from src.core.errors import NotFound, ValidationError


logger = structlog.get_logger(__name__)

UNKNOWN_USERNAME = "Unknown User"


class UserService:
    """User documents keyed by identity provider uid."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_user(self, user_id: str) -> User:
        """Get user by id. Raises ``NotFound``."""
        doc = await self.store.get(USERS_COLLECTION, user_id)
        return User.from_document(doc)

    async def find_by_email(self, email: str) -> User | None:
        page = await self.store.query(
            USERS_COLLECTION,
            filters=[("email", "==", email.lower().strip())],
            limit=1,
        )
        if not page.documents:
            return None
        return User.from_document(page.documents[0])

    async def get_username(self, user_id: str) -> str:
        """Username snapshot for denormalising onto posts and comments."""
        try:
            user = await self.get_user(user_id)
        except NotFound:
            return UNKNOWN_USERNAME
        return user.username or UNKNOWN_USERNAME

    def _new_user(self, identity: VerifiedIdentity, **fields) -> User:
        return User(
            id=identity.uid,
            email=identity.email,
            username=fields.pop("username", "") or username_from_email(identity.email),
            display_name=identity.name or "",
            photo_url=identity.picture or "",
            role=UserRole.AUTHENTICATED.value,
            google_id=identity.uid if identity.provider == "google.com" else None,
            provider=identity.provider,
            **fields,
        )

    async def _create(self, user: User) -> User:
        await self.store.set(
            USERS_COLLECTION,
            user.id,
            {
                **user.to_document(),
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            },
        )
        return await self.get_user(user.id)

    async def get_or_create_from_identity(
        self, identity: VerifiedIdentity
    ) -> tuple[User, bool]:
        """Load the user for a verified identity, creating it on first sign-in.

        Returns:
            Tuple of (user, created)
        """
        try:
            return await self.get_user(identity.uid), False
        except NotFound:
            pass

        user = await self._create(self._new_user(identity))
        logger.info(
            "user_created",
            user_id=user.id,
            provider=identity.provider,
        )
        return user, True

    async def sign_up(self, identity: VerifiedIdentity, data: SignUpRequest) -> User:
        """Create a user with explicit profile fields.

        Raises:
            ValidationError: If the uid already has a user or the email is in use
        """
        if not identity.email:
            raise ValidationError("Verified identity has no email address")

        existing = await self.find_by_email(identity.email)
        if existing is not None:
            raise ValidationError("Email is already in use.")

        try:
            await self.get_user(identity.uid)
        except NotFound:
            pass
        else:
            raise ValidationError("Account already exists.")

        user = await self._create(
            self._new_user(
                identity,
                username=data.username,
                first_name=data.first_name,
                last_name=data.last_name,
                phone_number=data.phone_number,
            )
        )
        logger.info("user_signed_up", user_id=user.id)
        return user
