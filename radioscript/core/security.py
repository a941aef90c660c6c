"""
Security and authentication
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fastapi import HTTPException, status, Request
from fastapi.security.utils import get_authorization_scheme_param
from radioscript.config import settings
from radioscript.core.logging import get_logger

logger = get_logger(__name__)


class SecurityManager:
    """Token handling and request identifiers"""

    def __init__(self, secret_key: str, algorithm: str, issuer: str):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.issuer = issuer

    def create_access_token(self, data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """Creates a JWT access token"""
        to_encode = data.copy()
        expire = datetime.utcnow() + (
            expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
        )
        to_encode.update({"exp": expire, "iss": self.issuer})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Verifies a JWT token"""
        try:
            return jwt.decode(
                token, self.secret_key, algorithms=[self.algorithm], issuer=self.issuer
            )
        except JWTError as e:
            logger.warning(f"Token verification failed: {e}")
            return None

    def hash_api_key(self, api_key: str) -> str:
        """Short hash of an API key, safe to log"""
        return hashlib.sha256(api_key.encode()).hexdigest()[:16]

    def generate_request_id(self) -> str:
        return secrets.token_urlsafe(16)

    def validate_api_key(self, api_key: str) -> bool:
        """Demo validation: any non-empty key is accepted"""
        return bool(api_key and len(api_key.strip()) > 0)

    def issue_demo_token(self, email: str) -> str:
        """
        The login and signup screens are stubs: any credentials are accepted
        and exchanged for a short-lived token bound to the email address.
        """
        logger.info(f"Issuing demo token for {self.hash_api_key(email.lower())}")
        return self.create_access_token({"sub": email.lower(), "auth_type": "demo_login"})


# Global security manager instance
security_manager = SecurityManager(
    secret_key=settings.api_secret_key,
    algorithm=settings.token_algorithm,
    issuer=settings.jwt_issuer,
)


async def get_current_user(request: Request) -> Dict[str, Any]:
    """
    Dependency for authenticated requests.
    Accepts a JWT bearer token or an X-API-Key header.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header:
        scheme, credentials = get_authorization_scheme_param(auth_header)
        if scheme.lower() == "bearer":
            token_payload = security_manager.verify_token(credentials)
            if token_payload:
                logger.info(f"Authenticated via JWT for subject: {token_payload.get('sub')}")
                return token_payload

    api_key = request.headers.get("X-API-Key")
    if api_key and security_manager.validate_api_key(api_key):
        key_hash = security_manager.hash_api_key(api_key)
        logger.info(f"Authenticated via API Key with hash: {key_hash}")
        return {"sub": f"api_key_{key_hash}", "auth_type": "api_key"}

    logger.warning("Authentication failed: No valid Bearer token or API key provided.")
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
