"""
Credential encryption/decryption and stored Shopify access tokens.
"""
import base64
from typing import Optional

from cryptography.fernet import Fernet
from sqlalchemy.orm import Session

from app.config import settings
from app.models import ShopifyIntegration

def get_encryption_key() -> bytes:
    """Derive the Fernet key from ENCRYPTION_KEY"""
    key_str = settings.ENCRYPTION_KEY
    # Ensure key is 32 bytes for Fernet
    key_bytes = key_str.encode()[:32].ljust(32, b'0')
    return base64.urlsafe_b64encode(key_bytes)

def encrypt_token(token: str) -> str:
    """Encrypt a token"""
    f = Fernet(get_encryption_key())
    return f.encrypt(token.encode()).decode()

def decrypt_token(encrypted: str) -> str:
    """Decrypt a token"""
    f = Fernet(get_encryption_key())
    return f.decrypt(encrypted.encode()).decode()


def store_shop_access_token(db: Session, shop_domain: str, access_token: str, scopes: Optional[str] = None) -> ShopifyIntegration:
    """Create or replace the encrypted Admin API token for a shop. Caller commits."""
    integration = db.query(ShopifyIntegration).filter(ShopifyIntegration.shop_domain == shop_domain).first()
    if integration:
        integration.access_token_encrypted = encrypt_token(access_token)
        integration.scopes = scopes
    else:
        integration = ShopifyIntegration(
            shop_domain=shop_domain,
            access_token_encrypted=encrypt_token(access_token),
            scopes=scopes,
        )
        db.add(integration)
    db.flush()
    return integration
