"""
Signed link tokens for team invitations, technician activation, client
portal invitations and shared report links
"""

import logging
from typing import Any, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .config import SECRET_KEY

logger = logging.getLogger(__name__)

INVITATION_SALT = "team-invitation"
ACTIVATION_SALT = "technician-activation"
PORTAL_SALT = "client-portal"
REPORT_LINK_SALT = "client-report"


def generate_timed_token(data: dict[str, Any], salt: str) -> str:
    """Sign a payload; expiry is enforced when the token is read back"""
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    return serializer.dumps(data, salt=salt)


def verify_timed_token(token: str, salt: str, max_age: int) -> Optional[dict[str, Any]]:
    """
    Verify and decode a timed token

    Returns:
        Decoded data if valid, None if invalid or expired
    """
    serializer = URLSafeTimedSerializer(SECRET_KEY)
    try:
        return serializer.loads(token, salt=salt, max_age=max_age)
    except SignatureExpired:
        logger.warning(f"Token expired ({salt})")
        return None
    except BadSignature:
        logger.warning(f"Invalid token signature ({salt})")
        return None
