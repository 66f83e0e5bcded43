import base64
import json
import logging
import time
from typing import Optional

import httpx
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from . import config
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)
CLOCK_SKEW_SECONDS = 60

# auto_error=False so a missing header answers 401 instead of FastAPI's default
bearer_scheme = HTTPBearer(auto_error=False)

# Cache for Google's public signing certificates, keyed by kid
_cached_keys: Optional[dict] = None


async def get_google_public_keys(force_refresh: bool = False) -> Optional[dict]:
    """Fetch the x509 certificates Firebase signs ID tokens with"""
    global _cached_keys
    if _cached_keys and not force_refresh:
        return _cached_keys

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(GOOGLE_CERTS_URL)
        if response.status_code == 200:
            _cached_keys = response.json()
            logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
            return _cached_keys
        logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {e}")
    return None


def _b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _check_claims(payload: dict, project_id: str) -> None:
    if payload.get("aud") != project_id:
        raise HTTPException(status_code=401, detail="Invalid token audience")

    if payload.get("iss") != f"https://securetoken.google.com/{project_id}":
        raise HTTPException(status_code=401, detail="Invalid token issuer")

    now = time.time()
    if payload.get("exp", 0) < now:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )

    if payload.get("iat", 0) > now + CLOCK_SKEW_SECONDS:
        raise HTTPException(status_code=401, detail="Token issued in the future")

    if "auth_time" not in payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token claims")


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token: RS256 signature against Google's published
    certificates, then audience, issuer and time claims.
    Returns the decoded payload.
    """
    project_id = config.FIREBASE_PROJECT_ID
    if not project_id:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Auth provider not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64url_decode(header_b64))
        payload = json.loads(_b64url_decode(payload_b64))
        signature = _b64url_decode(signature_b64)
    except (ValueError, TypeError) as e:
        logger.warning(f"⚠️ Undecodable token: {e}")
        raise HTTPException(status_code=401, detail="Invalid token encoding") from e

    if header.get("alg") != "RS256":
        raise HTTPException(status_code=401, detail="Invalid token algorithm")

    kid = header.get("kid")
    if not kid:
        raise HTTPException(status_code=401, detail="Token missing key ID")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        # Keys rotate; refetch once before giving up
        logger.warning(f"⚠️ Key ID {kid} not in cached keys, refreshing")
        public_keys = await get_google_public_keys(force_refresh=True)
        if not public_keys or kid not in public_keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    cert = load_pem_x509_certificate(public_keys[kid].encode(), default_backend())
    message = f"{header_b64}.{payload_b64}".encode()
    try:
        cert.public_key().verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature as e:
        logger.warning(f"❌ Token signature verification failed: {type(e).__name__}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    _check_claims(payload, project_id)
    return payload


async def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """Verified claims of the bearer token. Does not require a registered profile."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=401, detail="Unauthorized - No valid authentication token"
        )
    return await verify_firebase_token(credentials.credentials)


async def get_current_user(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> User:
    """The registered profile behind the bearer token"""
    uid = claims.get("sub") or claims.get("user_id")
    user = db.query(User).filter(User.id == uid).first()
    if not user:
        logger.warning(f"⚠️ Token for unregistered account {uid}")
        raise HTTPException(
            status_code=401, detail="Unauthorized - Account is not registered"
        )
    return user
