"""
Dashboard authentication: Shopify App Bridge session tokens.
The token is an HS256 JWT signed with the app's API secret; `dest` names the shop.
"""
import logging
from urllib.parse import urlparse

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.config import settings
from app.services.shopify_graphql import normalize_shop_domain

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_session_token(token: str) -> dict:
    options = {"verify_aud": bool(settings.SHOPIFY_API_KEY)}
    return jwt.decode(
        token,
        settings.SHOPIFY_API_SECRET,
        algorithms=[settings.SESSION_TOKEN_ALGORITHM],
        audience=settings.SHOPIFY_API_KEY or None,
        options=options,
    )


def shop_from_claims(claims: dict) -> str:
    dest = (claims.get("dest") or "").strip()
    host = urlparse(dest).netloc or dest
    if not host:
        raise ValueError("Session token has no dest claim")
    return normalize_shop_domain(host)


async def get_current_shop(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> str:
    """Shop domain of the merchant making a dashboard request."""
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing session token")
    if not settings.SHOPIFY_API_SECRET:
        logger.error("SHOPIFY_API_SECRET is not set; cannot verify session tokens")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="App secret not configured")
    try:
        return shop_from_claims(decode_session_token(credentials.credentials))
    except (JWTError, ValueError) as e:
        logger.warning("Invalid session token: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session token")
