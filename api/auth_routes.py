"""Authentication routes for mailpass."""

import re
from pydantic import BaseModel, field_validator

from fastapi import APIRouter, Depends

from auth.middleware import require_auth
from auth.models import SessionMetadata, User
from auth.orchestrator import CODE_LENGTH, VerificationOrchestrator, normalize_identifier
from .dependencies import get_orchestrator, get_session_metadata
from .responses import ok_response, to_unix_ms

router = APIRouter(prefix="/auth", tags=["auth"])

# Basic shape check; deliverability is proven by the code itself
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CODE_PATTERN = re.compile(rf"[0-9]{{{CODE_LENGTH}}}")
CODE_NOT_STRING_MESSAGE = "Verification code must be provided as a string."

# Messages for absent body fields that differ from "<Field> is required."
MISSING_FIELD_MESSAGES = {"code": CODE_NOT_STRING_MESSAGE}


def _validate_email(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Email is required.")
    email = normalize_identifier(value)
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Email must be a valid address.")
    return email


class SendCodeRequest(BaseModel):
    """Request to send verification code."""

    email: str

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _validate_email(v)


class VerifyCodeRequest(BaseModel):
    """Request to verify code."""

    email: str
    code: str

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _validate_email(v)

    @field_validator("code", mode="before")
    @classmethod
    def check_code(cls, v):
        if not isinstance(v, str):
            raise ValueError(CODE_NOT_STRING_MESSAGE)
        if not CODE_PATTERN.fullmatch(v):
            raise ValueError(f"Verification code must be a {CODE_LENGTH}-digit string.")
        return v


def serialize_user(user: User) -> dict:
    """Public identity payload; displayName is omitted when unset."""
    data = {
        "id": user.id,
        "email": user.email,
        "isActive": user.is_active,
        "createdAt": to_unix_ms(user.created_at),
        "updatedAt": to_unix_ms(user.updated_at),
    }
    if user.display_name is not None:
        data["displayName"] = user.display_name
    return data


@router.post("/send-code")
async def send_verification_code(
    request_data: SendCodeRequest,
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
):
    """Issue a verification code for the email."""
    result = await orchestrator.request_code(request_data.email)
    return ok_response(
        {
            "expiresAt": to_unix_ms(result.expires_at),
            "maskedIdentifier": result.masked_identifier,
        }
    )


@router.post("/verify-code")
async def verify_code(
    request_data: VerifyCodeRequest,
    metadata: SessionMetadata = Depends(get_session_metadata),
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
):
    """Verify code and return the identity with a new session token."""
    issued = await orchestrator.verify_and_issue_session(
        request_data.email, request_data.code, metadata
    )
    return ok_response(
        {
            "identity": serialize_user(issued.user),
            "token": {
                "value": issued.token,
                "issuedAt": to_unix_ms(issued.issued_at),
                "expiresAt": to_unix_ms(issued.expires_at),
            },
        }
    )


@router.get("/me")
async def get_me(user: User = Depends(require_auth)):
    """Identity behind the bearer token."""
    return ok_response({"identity": serialize_user(user)})
