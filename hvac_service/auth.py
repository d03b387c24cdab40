import base64
import json
import logging
import time
from dataclasses import dataclass

import httpx
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import FIREBASE_PROJECT_ID
from .database import get_db
from .models import MANAGER_ROLES, Tenant, User, UserTenantRole

logger = logging.getLogger(__name__)

security = HTTPBearer()

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)

# Cache for Google's public keys
_cached_keys = None


def _b64_decode(segment: str) -> bytes:
    padding_len = 4 - len(segment) % 4
    return base64.urlsafe_b64decode(segment + ("=" * padding_len if padding_len != 4 else ""))


async def get_google_public_keys(refresh: bool = False):
    """Fetch Google's public keys for Firebase token verification"""
    global _cached_keys
    if _cached_keys and not refresh:
        return _cached_keys

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(GOOGLE_CERTS_URL)
            if response.status_code == 200:
                _cached_keys = response.json()
                logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
                return _cached_keys
            logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {str(e)}")
    return None


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token (RS256) against Google's x509 certificates and
    check audience, issuer and expiry claims.
    """
    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64_decode(header_b64))
        payload = json.loads(_b64_decode(payload_b64))
        signature = _b64_decode(signature_b64)
    except (ValueError, json.JSONDecodeError) as e:
        raise HTTPException(status_code=401, detail="Invalid token encoding") from e

    kid = header.get("kid")
    if header.get("alg") != "RS256" or not kid:
        raise HTTPException(status_code=401, detail="Invalid token header")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        logger.warning(f"⚠️ Key ID {kid} not found in public keys, refreshing cache")
        public_keys = await get_google_public_keys(refresh=True)
        if not public_keys or kid not in public_keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    cert = load_pem_x509_certificate(public_keys[kid].encode(), default_backend())
    try:
        cert.public_key().verify(
            signature,
            f"{header_b64}.{payload_b64}".encode(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    if payload.get("aud") != FIREBASE_PROJECT_ID:
        raise HTTPException(status_code=401, detail="Invalid token audience")
    if payload.get("iss") != f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}":
        raise HTTPException(status_code=401, detail="Invalid token issuer")

    now = time.time()
    if payload.get("exp", 0) < now:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )
    if payload.get("iat", 0) > now + 60:  # Allow 60 seconds clock skew
        raise HTTPException(status_code=401, detail="Invalid token")

    return payload


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from Firebase token, creating the row on first sign-in"""
    decoded_token = await verify_firebase_token(credentials.credentials)

    firebase_uid = decoded_token.get("sub") or decoded_token.get("user_id")
    email = decoded_token.get("email")
    if not firebase_uid:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = db.query(User).filter(User.firebase_uid == firebase_uid).first()
    if user:
        return user

    # Members added by e-mail before their first sign-in get linked here
    if email:
        user = db.query(User).filter(User.email == email.lower()).first()
        if user and not user.firebase_uid:
            user.firebase_uid = firebase_uid
            user.full_name = user.full_name or decoded_token.get("name")
            db.commit()
            db.refresh(user)
            logger.info(f"🔗 Linked existing member {user.email} to Firebase UID")
            return user
        if user:
            raise HTTPException(
                status_code=409,
                detail="This email is already registered with a different sign-in method.",
            )

    logger.info(f"🆕 Creating new user: {email}")
    user = User(
        firebase_uid=firebase_uid,
        email=(email or f"{firebase_uid}@users.invalid").lower(),
        full_name=decoded_token.get("name"),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@dataclass
class TenantContext:
    """The caller, their active tenant and the role they hold in it"""

    user: User
    tenant: Tenant
    role: str

    @property
    def tenant_id(self) -> int:
        return self.tenant.id

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES


def get_tenant_context(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TenantContext:
    """Resolve the caller's active tenant and role"""
    if not user.active_tenant_id:
        raise HTTPException(status_code=409, detail="No active tenant. Set active tenant first.")

    role_row = (
        db.query(UserTenantRole)
        .filter(
            UserTenantRole.tenant_id == user.active_tenant_id,
            UserTenantRole.user_id == user.id,
            UserTenantRole.is_active.is_(True),
        )
        .first()
    )
    if not role_row:
        logger.warning(f"⚠️ User {user.id} has no active role in tenant {user.active_tenant_id}")
        raise HTTPException(status_code=403, detail="Forbidden")

    tenant = db.query(Tenant).filter(Tenant.id == user.active_tenant_id).first()
    if not tenant or not tenant.is_active:
        raise HTTPException(status_code=403, detail="Tenant is not active")

    return TenantContext(user=user, tenant=tenant, role=role_row.role)


def require_roles(*roles: str):
    """Dependency factory restricting an endpoint to the given tenant roles"""

    def dependency(ctx: TenantContext = Depends(get_tenant_context)) -> TenantContext:
        if ctx.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return ctx

    return dependency


require_manager = require_roles(*MANAGER_ROLES)
