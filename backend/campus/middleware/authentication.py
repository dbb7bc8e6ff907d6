"""
Campus Portal Backend — Header Authentication Backend
=======================================================

What:  Supplies caller identity and role claims to the filter pipeline.
How:   A Starlette `AuthenticationBackend` reads the identity asserted by the
       trusted front proxy:
           X-User:       user name
           X-User-Roles: comma-separated roles, e.g. "Admin,Instructor"
       and exposes the roles as `request.auth.scopes`.
Who:   Registered with Starlette's AuthenticationMiddleware, innermost.

Requests without X-User are anonymous: empty scopes, UnauthenticatedUser.
Token issuance and verification happen upstream of this service.
"""

from typing import Optional, Tuple

from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    BaseUser,
    SimpleUser,
)
from starlette.requests import HTTPConnection

USER_HEADER = "X-User"
ROLES_HEADER = "X-User-Roles"


def parse_roles(raw: Optional[str]) -> list:
    if not raw:
        return []
    return [role.strip() for role in raw.split(",") if role.strip()]


class HeaderAuthBackend(AuthenticationBackend):
    async def authenticate(
        self, conn: HTTPConnection
    ) -> Optional[Tuple[AuthCredentials, BaseUser]]:
        username = conn.headers.get(USER_HEADER, "").strip()
        if not username:
            return None
        return AuthCredentials(parse_roles(conn.headers.get(ROLES_HEADER))), SimpleUser(username)
