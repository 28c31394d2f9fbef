import logging

from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError

from kue.config import get_settings

logger = logging.getLogger("kue.auth")

security = HTTPBearer()


async def verify_supabase_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> dict:
    """
    Validate Supabase JWT from Authorization header.

    Tokens are HS256, signed with the project's JWT secret. The subject
    claim is the owner id for every graph operation.
    """
    settings = get_settings()
    token = credentials.credentials

    alg = "unknown"
    try:
        unverified = jwt.get_unverified_header(token)
        alg = unverified.get("alg", "unknown")
        if alg != "HS256":
            raise JWTError(f"Unsupported algorithm: {alg}")
        if not settings.supabase_jwt_secret:
            raise JWTError("JWT secret is not configured")

        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            options={"verify_aud": False}
        )
        if not payload.get("sub"):
            raise JWTError("Token has no subject")
    except JWTError as e:
        logger.warning(f"[AUTH] JWT verification failed: {e}, algorithm was: {alg}")
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired authentication token"
        )

    logger.debug(f"[AUTH] Token verified for user: {payload['sub']}")
    return payload


def get_user_id(token_payload: dict) -> str:
    """Extract user_id from verified token payload."""
    return token_payload.get("sub")
