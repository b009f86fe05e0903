"""Session token issuance and verification.

Sessions are stateless JWTs signed with JWT_SECRET_KEY. Lifetime depends on
the login path that produced the token.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

import pytz
from jose import JWTError, jwt

from config import JWT_ALGORITHM, JWT_SECRET_KEY, SESSION_TTL_POLICY
from core.exceptions import InvalidTokenError, TokenExpiredError
from utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)

ROLES = ("admin", "faculty", "student")


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime
    login_path: str
    requires_registration: bool = False


@dataclass
class TokenClaims:
    """Decoded, verified session claims."""

    principal_id: str
    role: str
    tenant_id: str
    login_path: str
    issued_at: datetime
    expires_at: datetime
    requires_registration: bool = False


class SessionIssuer:
    """Signs and verifies session tokens."""

    def __init__(
        self,
        now: Clock = utc_now,
        secret_key: str = JWT_SECRET_KEY,
        algorithm: str = JWT_ALGORITHM,
        ttl_policy: Optional[Dict[str, int]] = None,
    ):
        self.now = now
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl_policy = ttl_policy if ttl_policy is not None else SESSION_TTL_POLICY

    def issue(
        self,
        principal_id: str,
        role: str,
        tenant_id: str,
        login_path: str,
        requires_registration: bool = False,
    ) -> IssuedToken:
        """Create a signed session token.

        Args:
            principal_id: Admin, faculty or student id (the ``sub`` claim).
            role: 'admin', 'faculty' or 'student'.
            tenant_id: Tenant the principal belongs to.
            login_path: Key into the session TTL policy.
            requires_registration: Set for faculty who still have to finish
                their profile.

        Returns:
            IssuedToken with the encoded JWT and its expiry.

        Raises:
            ValueError: Unknown role or login path.
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        if login_path not in self.ttl_policy:
            raise ValueError(f"Unknown login path: {login_path}")

        issued_at = self.now()
        expires_at = issued_at + timedelta(minutes=self.ttl_policy[login_path])
        claims = {
            "sub": principal_id,
            "role": role,
            "tenant_id": tenant_id,
            "login_path": login_path,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        if requires_registration:
            claims["requires_registration"] = True

        token = jwt.encode(claims, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(
            token=token,
            expires_at=expires_at,
            login_path=login_path,
            requires_registration=requires_registration,
        )

    def verify(self, token: str) -> TokenClaims:
        """Verify a token's signature and expiry.

        Expiry is checked against the injected clock rather than by the JWT
        library, so tests can move time.

        Args:
            token: Encoded JWT.

        Returns:
            TokenClaims.

        Raises:
            TokenExpiredError: ``now`` is past the ``exp`` claim.
            InvalidTokenError: Bad signature, malformed token or missing claims.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            logger.info("Rejected session token: %s", exc)
            raise InvalidTokenError() from exc

        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=pytz.utc)
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=pytz.utc)
            claims = TokenClaims(
                principal_id=payload["sub"],
                role=payload["role"],
                tenant_id=payload["tenant_id"],
                login_path=payload["login_path"],
                issued_at=issued_at,
                expires_at=expires_at,
                requires_registration=bool(payload.get("requires_registration", False)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidTokenError() from exc

        if claims.role not in ROLES:
            raise InvalidTokenError()
        if self.now() > expires_at:
            raise TokenExpiredError()
        return claims
