"""Session and shared response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from utils.session_issuer import IssuedToken, TokenClaims


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class SessionInfo(BaseModel):
    """An issued session token."""

    access_token: str = Field(description="Signed JWT to send as a Bearer token.")
    token_type: str = "bearer"
    expires_at: datetime
    login_path: str = Field(description="Flow that produced the token; decides its lifetime.")
    requires_registration: bool = Field(
        default=False,
        description="True when the principal must finish registration first.",
    )

    @classmethod
    def from_issued(cls, issued: IssuedToken) -> "SessionInfo":
        return cls(
            access_token=issued.token,
            expires_at=issued.expires_at,
            login_path=issued.login_path,
            requires_registration=issued.requires_registration,
        )


class CurrentPrincipalResponse(BaseModel):
    principal_id: str
    role: str
    tenant_id: str
    login_path: str
    requires_registration: bool = False
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "CurrentPrincipalResponse":
        return cls(
            principal_id=claims.principal_id,
            role=claims.role,
            tenant_id=claims.tenant_id,
            login_path=claims.login_path,
            requires_registration=claims.requires_registration,
            issued_at=claims.issued_at,
            expires_at=claims.expires_at,
        )
