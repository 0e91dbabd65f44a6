"""Account creation, authentication, authorization and session sweeping."""

from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from identity_core.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateUserError,
    NotFoundError,
    ValidationError,
)
from identity_core.core.models import (
    CreateUserRequest,
    ExternalUser,
    LoginRequest,
    ProviderConnection,
    SocialProfile,
    UpdateUserRequest,
)
from identity_core.core.ports import SocialConnection, UnitOfWork
from identity_core.core.services.password_hasher import CredentialHasher
from identity_core.core.services.session_tokens import SessionTokenManager
from identity_core.entities.social_user import SocialUser
from identity_core.entities.user import Role, User

RequestT = TypeVar("RequestT", bound=BaseModel)


class IdentityService:
    """Orchestrates every identity operation inside one unit of work.

    Each public method opens a fresh unit of work from ``uow_factory`` and
    commits it only once the whole operation succeeded, so a failure at any
    step leaves nothing persisted.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        hasher: CredentialHasher,
        session_tokens: SessionTokenManager,
    ) -> None:
        self._uow_factory = uow_factory
        self._hasher = hasher
        self._session_tokens = session_tokens

    def create_user(
        self, request: CreateUserRequest | Mapping[str, Any], role: Role
    ) -> ExternalUser:
        """Create a password account with ``role`` and a first session token.

        Raises:
            ValidationError: If the request is malformed
            DuplicateUserError: If the email address is already registered
        """
        create_request = self._validate(CreateUserRequest, request)
        with self._uow_factory() as uow:
            if uow.users.find_by_email(create_request.email_address) is not None:
                logger.info("Rejected duplicate registration")
                raise DuplicateUserError()

            salt = self._hasher.generate_salt()
            user = User(
                first_name=create_request.first_name,
                last_name=create_request.last_name,
                email_address=create_request.email_address,
                salt=salt,
                hashed_password=self._hasher.hash(create_request.password, salt),
                role=role,
            )
            self._session_tokens.issue_token(user)
            uow.users.save(user)
            session = self._session_tokens.primary_session(user)
            uow.commit()

        logger.info("Created user {} with role {}", user.id, role.value)
        return ExternalUser.from_user(user, session)

    def create_anonymous_user(self, role: Role = Role.anonymous) -> ExternalUser:
        """Create a profile-less account, e.g. to hold a guest session."""
        with self._uow_factory() as uow:
            user = User(role=role)
            self._session_tokens.issue_token(user)
            uow.users.save(user)
            session = self._session_tokens.primary_session(user)
            uow.commit()

        logger.info("Created anonymous user {} with role {}", user.id, role.value)
        return ExternalUser.from_user(user, session)

    def login(self, request: LoginRequest | Mapping[str, Any]) -> ExternalUser:
        """Authenticate by email address and password.

        Unknown users and wrong passwords raise the same error.

        Raises:
            ValidationError: If the request is malformed
            AuthenticationError: If the credentials do not match an account
        """
        login_request = self._validate(LoginRequest, request)
        with self._uow_factory() as uow:
            user = uow.users.find_by_email(login_request.username)
            if user is None or not self._password_matches(user, login_request.password):
                logger.info("Password login failed")
                raise AuthenticationError()

            session = self._session_tokens.issue_token(user)
            uow.users.save(user)
            uow.commit()

        logger.info("User {} logged in", user.id)
        return ExternalUser.from_user(user, session)

    def social_login(self, connection: SocialConnection) -> ExternalUser:
        """Authenticate through an already linked provider connection.

        Profile data from the provider overwrites the local profile and the
        account is marked verified. A lowest-tier account is promoted.

        Raises:
            AuthenticationError: If no local user is linked to the connection
        """
        user_ids = connection.linked_user_ids()
        if not user_ids:
            logger.info("Social login rejected: connection is not linked")
            raise AuthenticationError()

        with self._uow_factory() as uow:
            # Several users may share a connection; the first one wins.
            user = uow.users.find_by_id(user_ids[0])
            if user is None:
                logger.warning("Social login linked to missing user {}", user_ids[0])
                raise AuthenticationError()

            self._update_from_profile(user, connection.fetch_profile())
            session = self._session_tokens.issue_token(user)
            uow.users.save(user)
            uow.commit()

        logger.info("User {} logged in through social connection", user.id)
        return ExternalUser.from_user(user, session)

    def get_user(self, requesting_user: ExternalUser, user_id: str) -> ExternalUser:
        """Load a profile. Users see their own, administrators see any.

        Raises:
            NotFoundError: If ``user_id`` does not resolve
            AuthorizationError: If the requester may not view the profile
        """
        with self._uow_factory() as uow:
            user = self._ensure_user_is_loaded(uow, user_id)

        if not self._may_view(requesting_user, user):
            logger.info("User {} denied access to profile {}", requesting_user.id, user_id)
            raise AuthorizationError("User not authorized to load profile")
        return ExternalUser.from_user(user)

    def delete_user(self, requesting_user: ExternalUser, user_id: str) -> None:
        """Delete a low-privilege account on behalf of an administrator.

        Raises:
            NotFoundError: If ``user_id`` does not resolve
            AuthorizationError: If the requester is not an administrator or
                the target is not an anonymous or authenticated account
        """
        with self._uow_factory() as uow:
            user = self._ensure_user_is_loaded(uow, user_id)
            if not self._may_delete(requesting_user, user):
                logger.info("User {} denied deletion of {}", requesting_user.id, user_id)
                raise AuthorizationError(
                    "User cannot be deleted. Only users with anonymous or "
                    "authenticated role can be deleted."
                )

            uow.social_users.delete_for_user(user.id)
            uow.users.delete(user)
            uow.commit()

        logger.info("User {} deleted by {}", user_id, requesting_user.id)

    def update_user(
        self, user_id: str, request: UpdateUserRequest | Mapping[str, Any]
    ) -> ExternalUser:
        """Apply the fields present in ``request``.

        A changed email address clears the verified flag.

        Raises:
            ValidationError: If the request is malformed
            NotFoundError: If ``user_id`` does not resolve
        """
        update_request = self._validate(UpdateUserRequest, request)
        with self._uow_factory() as uow:
            user = self._ensure_user_is_loaded(uow, user_id)

            if update_request.first_name is not None:
                user.first_name = update_request.first_name
            if update_request.last_name is not None:
                user.last_name = update_request.last_name
            if (
                update_request.email_address is not None
                and update_request.email_address != user.email_address
            ):
                user.email_address = update_request.email_address
                user.verified = False

            uow.users.save(user)
            uow.commit()

        logger.info("Updated user {}", user_id)
        return ExternalUser.from_user(user)

    def sweep_expired_sessions(self, staleness: timedelta | int) -> int:
        """Remove sessions idle for longer than ``staleness``.

        Args:
            staleness: Idle time, or a number of minutes

        Returns:
            Number of users that lost at least one session
        """
        if isinstance(staleness, int):
            staleness = timedelta(minutes=staleness)
        cutoff: datetime = self._session_tokens.cutoff_for(staleness)

        with self._uow_factory() as uow:
            users = uow.users.find_users_with_expired_sessions_before(cutoff)
            removed = self._session_tokens.sweep_expired(users, cutoff)
            if users:
                uow.users.save_all(users)
            uow.commit()

        logger.info(
            "Swept {} expired sessions from {} users (cutoff {})",
            removed,
            len(users),
            cutoff.isoformat(),
        )
        return len(users)

    def attach_external_session(self, external_user: ExternalUser) -> None:
        """Re-attach an already issued token as the user's current session.

        A token that has since been swept is treated as expired: the current
        session marker is cleared instead.

        Raises:
            NotFoundError: If the user does not resolve
        """
        with self._uow_factory() as uow:
            user = self._ensure_user_is_loaded(uow, external_user.id)
            token = external_user.active_session
            if token is not None and self._session_tokens.touch(user, token) is None:
                logger.debug("Session for user {} already expired", user.id)
                token = None
            user.active_session = token
            uow.users.save(user)
            uow.commit()

    def link_social_account(
        self,
        user_id: str,
        provider_id: str,
        provider_user_id: str,
        **details: Any,
    ) -> SocialUser:
        """Link an external provider account to an existing user.

        Linking the same provider account again updates the stored details.

        Raises:
            NotFoundError: If ``user_id`` does not resolve
        """
        now = self._session_tokens.clock.now()
        with self._uow_factory() as uow:
            self._ensure_user_is_loaded(uow, user_id)
            existing = uow.social_users.find_link(user_id, provider_id, provider_user_id)
            if existing is not None:
                social_user = existing.model_copy(update={**details, "updated_at": now})
            else:
                social_user = SocialUser(
                    user_id=user_id,
                    provider_id=provider_id,
                    provider_user_id=provider_user_id,
                    rank=uow.social_users.next_rank(user_id, provider_id),
                    created_at=now,
                    updated_at=now,
                    **details,
                )
            linked = uow.social_users.link(social_user)
            uow.commit()

        logger.info("Linked {} account to user {}", provider_id, user_id)
        return linked

    def connection_for(
        self,
        provider_id: str,
        provider_user_id: str,
        profile: SocialProfile | None = None,
    ) -> ProviderConnection:
        """Describe a completed handshake together with its linked local users."""
        with self._uow_factory() as uow:
            user_ids = uow.social_users.find_user_ids_with_connection(
                provider_id, provider_user_id
            )
        return ProviderConnection(
            provider_id=provider_id,
            provider_user_id=provider_user_id,
            profile=profile or SocialProfile(),
            user_ids=user_ids,
        )

    @staticmethod
    def _validate(model: type[RequestT], request: RequestT | Mapping[str, Any]) -> RequestT:
        """Re-validate ``request`` as ``model`` and raise the core's error on failure."""
        data = request.model_dump() if isinstance(request, BaseModel) else request
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"The {model.__name__} was invalid",
                errors=e.errors(include_url=False, include_input=False),
            ) from e

    @staticmethod
    def _ensure_user_is_loaded(uow: UnitOfWork, user_id: str) -> User:
        user = uow.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def _password_matches(self, user: User, password: str) -> bool:
        if user.hashed_password is None or user.salt is None:
            return False
        return self._hasher.verify(password, user.salt, user.hashed_password)

    @staticmethod
    def _update_from_profile(user: User, profile: SocialProfile) -> None:
        user.email_address = profile.email
        user.first_name = profile.first_name
        user.last_name = profile.last_name
        # Provider accounts are already verified
        user.verified = True
        if user.role is Role.lowest():
            user.role = user.role.next_tier()

    @staticmethod
    def _may_view(requesting_user: ExternalUser, user: User) -> bool:
        if requesting_user.role is Role.administrator:
            return True
        return requesting_user.id == user.id

    @staticmethod
    def _may_delete(requesting_user: ExternalUser, user: User) -> bool:
        if requesting_user.role is not Role.administrator:
            return False
        return user.role.is_low_privilege
