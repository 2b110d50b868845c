"""Identity providers and authorization guards.

Sign-in itself happens elsewhere; services only ask an
:class:`~vibedev.interfaces.IdentityProvider` who the caller is.
"""

from dataclasses import dataclass
from typing import Optional

from vibedev.config import Role
from vibedev.errors import AuthorizationError
from vibedev.interfaces import DataGateway, IdentityProvider
from vibedev.models import UserRow
from vibedev.repository import Filters

LOGIN_REQUIRED = "You must be logged in"
ADMIN_REQUIRED = "Unauthorized: Admin access required"
ACCOUNT_SUSPENDED = "Your account has been suspended"


@dataclass(frozen=True)
class CurrentUser:
    """The signed-in caller."""

    id: str
    username: str
    role: Role = Role.USER
    is_suspended: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_row(cls, row: UserRow) -> "CurrentUser":
        return cls(id=row.id, username=row.username, role=Role(row.role), is_suspended=row.is_suspended)


class StaticIdentity:
    """Identity fixed at construction time."""

    def __init__(self, user: Optional[CurrentUser]):
        self.user = user

    async def current_user(self) -> Optional[CurrentUser]:
        return self.user


class AnonymousIdentity(StaticIdentity):
    """No signed-in user."""

    def __init__(self) -> None:
        super().__init__(None)


class UsernameIdentity:
    """Identity resolved from a username through the gateway.

    Used by the CLI ``--as`` option. The role is read from the store on
    every call so role changes apply immediately.
    """

    def __init__(self, gateway: DataGateway, username: str):
        self.gateway = gateway
        self.username = username

    async def current_user(self) -> Optional[CurrentUser]:
        rows = await self.gateway.select(UserRow, Filters.where(username=self.username), limit=1)
        return CurrentUser.from_row(rows[0]) if rows else None


async def require_user(identity: IdentityProvider, message: str = LOGIN_REQUIRED) -> CurrentUser:
    """Return the signed-in, unsuspended user or raise AuthorizationError."""
    user = await identity.current_user()
    if user is None:
        raise AuthorizationError(message)
    if user.is_suspended:
        raise AuthorizationError(ACCOUNT_SUSPENDED)
    return user


async def require_admin(identity: IdentityProvider) -> CurrentUser:
    """Return the signed-in admin (role 0) or raise AuthorizationError."""
    user = await require_user(identity, ADMIN_REQUIRED)
    if not user.is_admin:
        raise AuthorizationError(ADMIN_REQUIRED)
    return user


__all__ = [
    "CurrentUser",
    "StaticIdentity",
    "AnonymousIdentity",
    "UsernameIdentity",
    "require_user",
    "require_admin",
    "LOGIN_REQUIRED",
    "ADMIN_REQUIRED",
    "ACCOUNT_SUSPENDED",
]
