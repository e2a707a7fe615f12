"""
Shopify Admin GraphQL client - authenticated requests for one shop.
Queries are retried on 5xx/connection errors; mutations are sent exactly once.
Never expose access_token to the frontend.
"""
import logging
import re
from typing import Any, Optional

import httpx
from sqlalchemy.orm import Session

from app.config import settings
from app.models import ShopifyIntegration
from app.services.credentials import decrypt_token
from app.services.errors import MissingConfigurationError, ShopifyAPIError
from app.services.http_client import post_no_retry, request_with_retry

logger = logging.getLogger(__name__)

_OPERATION_RE = re.compile(r"\b(query|mutation)\s+(\w+)")


def operation_name(document: str) -> str:
    """Name of the GraphQL operation in document ("anonymous" when unnamed)."""
    match = _OPERATION_RE.search(document or "")
    return match.group(2) if match else "anonymous"


def shop_gid(resource: str, numeric_id: Any) -> str:
    """gid://shopify/<Resource>/<id>; ids that are already GIDs pass through."""
    value = str(numeric_id)
    if value.startswith("gid://"):
        return value
    return f"gid://shopify/{resource}/{value}"


def user_error_messages(payload: Optional[dict]) -> list[str]:
    """Messages from a mutation payload's userErrors list."""
    if not payload:
        return []
    return [str(e.get("message") or "") for e in (payload.get("userErrors") or []) if e]


def normalize_shop_domain(shop_domain: str) -> str:
    shop = (shop_domain or "").lower().strip()
    shop = shop.removeprefix("https://").removeprefix("http://").rstrip("/")
    if not shop.endswith(".myshopify.com") and "." not in shop:
        shop = f"{shop}.myshopify.com"
    return shop


class ShopifyAdminClient:
    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.shop = normalize_shop_domain(shop_domain)
        self.access_token = access_token
        self.api_version = api_version or settings.SHOPIFY_API_VERSION
        self.graphql_url = f"https://{self.shop}/admin/api/{self.api_version}/graphql.json"
        self.transport = transport

    @property
    def headers(self) -> dict:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

    async def query(self, document: str, variables: Optional[dict] = None) -> dict:
        """Run a read-only query; returns the `data` object."""
        name = operation_name(document)
        try:
            response = await request_with_retry(
                "POST",
                self.graphql_url,
                json=self._body(document, variables),
                headers=self.headers,
                transport=self.transport,
            )
        except httpx.HTTPError as e:
            raise ShopifyAPIError(f"Shopify API {name} unreachable: {e}") from e
        return self._data(name, response)

    async def mutate(self, document: str, variables: Optional[dict] = None) -> dict:
        """Run a mutation once; returns the `data` object. userErrors are left to the caller."""
        name = operation_name(document)
        try:
            response = await post_no_retry(
                self.graphql_url,
                json=self._body(document, variables),
                headers=self.headers,
                transport=self.transport,
            )
        except httpx.HTTPError as e:
            raise ShopifyAPIError(f"Shopify API {name} unreachable: {e}") from e
        return self._data(name, response)

    @staticmethod
    def _body(document: str, variables: Optional[dict]) -> dict:
        body = {"query": document}
        if variables:
            body["variables"] = variables
        return body

    def _data(self, name: str, response: httpx.Response) -> dict:
        if response.status_code >= 400:
            logger.warning("Shopify GraphQL %s %s -> %s %s", self.shop, name, response.status_code, response.text[:200])
            raise ShopifyAPIError(f"Shopify API {name} failed with HTTP {response.status_code}")
        logger.info("Shopify GraphQL %s %s -> %s", self.shop, name, response.status_code)
        try:
            body = response.json()
        except ValueError as e:
            raise ShopifyAPIError(f"Shopify API {name} returned invalid JSON") from e
        errors = body.get("errors")
        if errors:
            if isinstance(errors, list):
                messages = [str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors]
            else:
                messages = [str(errors)]
            raise ShopifyAPIError(f"GraphQL errors in {name}: {', '.join(messages)}")
        return body.get("data") or {}


def get_shop_client(db: Session, shop_domain: str) -> ShopifyAdminClient:
    """Client for a shop using its stored (encrypted) Admin API access token."""
    shop = normalize_shop_domain(shop_domain)
    integration = db.query(ShopifyIntegration).filter(ShopifyIntegration.shop_domain == shop).first()
    if not integration or not integration.access_token_encrypted:
        raise MissingConfigurationError(f"No Shopify access token stored for {shop}. Install the app first.")
    return ShopifyAdminClient(shop, decrypt_token(integration.access_token_encrypted))
