from dataclasses import dataclass, field
from uuid import UUID

from fastapi import Depends, Request

from loggers import get_logger
from src.core.errors.exceptions import PermissionDeniedException
from src.core.validations import JWT_VALIDATOR
from src.user.auth.exceptions import InvalidTokenException
from src.user.auth.services.auth_service import AuthService, get_auth_service
from src.user.auth.services.token_service import parse_subject
from src.user.enums import UserRole
from src.user.models import User

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class AccessGuardConfig:
    """
    Where the guard looks for the access token and what it demands of it.

    header_name/scheme: primary source, e.g. "Authorization: Bearer <token>"
    cookie_name: fallback source, None to disable
    required_roles: roles allowed through, empty for any authenticated user
    load_user: re-read the user and reject missing or disabled accounts
    """

    header_name: str = "Authorization"
    scheme: str = "Bearer"
    cookie_name: str | None = "Authentication"
    required_roles: frozenset[UserRole] = field(default_factory=frozenset)
    load_user: bool = False


@dataclass(frozen=True, slots=True)
class AuthenticatedPrincipal:
    id: UUID
    email: str
    role: UserRole
    token: str
    token_id: str
    user: User | None = None


class AccessTokenGuard:
    """
    FastAPI dependency that authenticates a request by its access token.

    Usage:
        require_admin = AccessTokenGuard(
            AccessGuardConfig(required_roles=frozenset({UserRole.ADMIN}))
        )

        @router.get("/admin")
        async def admin_only(principal = Depends(require_admin)): ...
    """

    def __init__(self, guard_config: AccessGuardConfig | None = None) -> None:
        self.config = guard_config or AccessGuardConfig()

    def extract_token(self, request: Request) -> str | None:
        header = request.headers.get(self.config.header_name)
        if header:
            scheme, _, credentials = header.strip().partition(" ")
            if scheme.lower() == self.config.scheme.lower() and credentials.strip():
                return credentials.strip()
            return None

        if self.config.cookie_name:
            return request.cookies.get(self.config.cookie_name) or None
        return None

    async def __call__(
        self,
        request: Request,
        auth_service: AuthService = Depends(get_auth_service),
    ) -> AuthenticatedPrincipal:
        token = self.extract_token(request)
        if not token or not JWT_VALIDATOR.match(token):
            raise InvalidTokenException({"reason": "missing or malformed token"})

        claims = auth_service.tokens.verify_access_token(token)
        if await auth_service.is_token_blacklisted(token):
            raise InvalidTokenException({"reason": "blacklisted"})

        try:
            role = UserRole(claims.get("role"))
        except ValueError as exc:
            raise InvalidTokenException({"reason": "unknown role"}) from exc

        if self.config.required_roles and role not in self.config.required_roles:
            raise PermissionDeniedException(
                "Insufficient role", {"role": str(role), "path": request.url.path}
            )

        user_id = parse_subject(claims.get("sub"))
        user = None
        if self.config.load_user:
            user = await auth_service.users.find_by_id(user_id)
            if user is None or not user.is_active:
                raise InvalidTokenException({"reason": "unknown or inactive user"})

        return AuthenticatedPrincipal(
            id=user_id,
            email=claims.get("email", ""),
            role=role,
            token=token,
            token_id=claims["jti"],
            user=user,
        )


require_access_token = AccessTokenGuard()
require_active_user = AccessTokenGuard(AccessGuardConfig(load_user=True))
