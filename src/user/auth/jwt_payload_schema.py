from typing import Literal, TypedDict


class AccessTokenPayload(TypedDict):
    """Claims carried by an access token"""

    sub: str  # User ID
    email: str
    role: str
    jti: str  # Token id, the blacklist key
    iat: int
    exp: int
    mode: Literal["access_token"]


class RefreshTokenPayload(TypedDict):
    """Claims carried by a refresh token"""

    sub: str  # User ID
    device_id: str
    jti: str  # Keeps tokens minted in the same second distinct
    iat: int
    exp: int
    mode: Literal["refresh_token"]
