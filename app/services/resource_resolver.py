"""
Create-or-discover for the three Shopify resources the app depends on:
carrier service, fulfillment service and the orders/create webhook subscription.

Shopify has no create-or-get mutation. A create that collides with an existing
resource comes back as userErrors, so a known "already exists" message is turned
into a lookup by name. Which messages count as a collision is declared per kind
in CONFLICT_SIGNATURES.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from app.config import settings
from app.services import shopify_queries as q
from app.services.errors import RemoteValidationError, ResolutionInconsistencyError
from app.services.shopify_graphql import user_error_messages

logger = logging.getLogger(__name__)


class ResourceKind(str, enum.Enum):
    CARRIER_SERVICE = "carrier service"
    FULFILLMENT_SERVICE = "fulfillment service"
    WEBHOOK = "order webhook"


# Lower-cased substrings of a userError message meaning "a resource with this name exists".
CONFLICT_SIGNATURES: dict[ResourceKind, tuple[str, ...]] = {
    ResourceKind.FULFILLMENT_SERVICE: ("name has already been taken",),
    ResourceKind.CARRIER_SERVICE: ("already configured",),
    ResourceKind.WEBHOOK: (),
}


def find_conflict(kind: ResourceKind, messages: list[str]) -> Optional[str]:
    """Return the first message carrying a conflict signature for kind, else None."""
    signatures = CONFLICT_SIGNATURES.get(kind, ())
    for message in messages:
        lowered = (message or "").lower()
        if any(sig in lowered for sig in signatures):
            return message
    return None


@dataclass(frozen=True)
class ResourceSchema:
    """Request/response shape of one resource kind."""

    create_document: str
    payload_key: str
    entity_key: str
    create_variables: Callable[[dict], dict]
    lookup_document: Optional[str] = None
    lookup_variables: Optional[Callable[[dict], dict]] = None
    lookup_nodes: Optional[Callable[[dict], list]] = None
    name_field: str = "name"


def _carrier_nodes(data: dict) -> list:
    edges = (data.get("carrierServices") or {}).get("edges") or []
    return [e.get("node") or {} for e in edges]


def _fulfillment_nodes(data: dict) -> list:
    return (data.get("shop") or {}).get("fulfillmentServices") or []


SCHEMAS: dict[ResourceKind, ResourceSchema] = {
    ResourceKind.CARRIER_SERVICE: ResourceSchema(
        create_document=q.CARRIER_SERVICE_CREATE,
        payload_key="carrierServiceCreate",
        entity_key="carrierService",
        create_variables=lambda config: {"input": config},
        lookup_document=q.CARRIER_SERVICE_LIST,
        lookup_variables=lambda config: {"first": 50, "query": f'name:"{config["name"]}"'},
        lookup_nodes=_carrier_nodes,
        name_field="name",
    ),
    ResourceKind.FULFILLMENT_SERVICE: ResourceSchema(
        create_document=q.FULFILLMENT_SERVICE_CREATE,
        payload_key="fulfillmentServiceCreate",
        entity_key="fulfillmentService",
        create_variables=lambda config: dict(config),
        lookup_document=q.FULFILLMENT_SERVICE_LIST,
        lookup_variables=lambda config: {},
        lookup_nodes=_fulfillment_nodes,
        name_field="serviceName",
    ),
    ResourceKind.WEBHOOK: ResourceSchema(
        create_document=q.WEBHOOK_SUBSCRIPTION_CREATE,
        payload_key="webhookSubscriptionCreate",
        entity_key="webhookSubscription",
        create_variables=lambda config: dict(config),
    ),
}


def build_carrier_config() -> dict:
    return {
        "name": settings.CARRIER_SERVICE_NAME,
        "callbackUrl": settings.CARRIER_SERVICE_CALLBACK_URL,
        "active": True,
        "supportsServiceDiscovery": True,
    }


def build_fulfillment_config() -> dict:
    return {
        "name": settings.FULFILLMENT_SERVICE_NAME,
        "callbackUrl": settings.APP_URL,
        "trackingSupport": True,
        "inventoryManagement": True,
        "requiresShippingMethod": True,
    }


def build_webhook_config() -> dict:
    return {
        "topic": "ORDERS_CREATE",
        "callbackUrl": settings.ORDER_WEBHOOK_URL,
        "format": "JSON",
    }


DEFAULT_CONFIGS: dict[ResourceKind, Callable[[], dict]] = {
    ResourceKind.CARRIER_SERVICE: build_carrier_config,
    ResourceKind.FULFILLMENT_SERVICE: build_fulfillment_config,
    ResourceKind.WEBHOOK: build_webhook_config,
}


async def resolve(client, kind: ResourceKind, config: dict) -> str:
    """
    Return the remote id of the resource described by config, creating it if needed.

    Raises RemoteValidationError when creation fails for any reason other than a
    known name conflict, and ResolutionInconsistencyError when Shopify reports a
    conflict but the lookup cannot find the resource by exact name.
    """
    schema = SCHEMAS[kind]
    data = await client.mutate(schema.create_document, schema.create_variables(config))
    payload = data.get(schema.payload_key)
    if not payload:
        raise RemoteValidationError(kind.value, [], action="create")

    messages = user_error_messages(payload)
    if not messages:
        entity = payload.get(schema.entity_key) or {}
        remote_id = entity.get("id")
        if not remote_id:
            raise RemoteValidationError(kind.value, ["No id returned"], action="create")
        logger.info("Created %s %s", kind.value, remote_id)
        return remote_id

    conflict = find_conflict(kind, messages)
    if not conflict or not schema.lookup_document:
        logger.error("%s create userErrors: %s", kind.value, messages)
        raise RemoteValidationError(kind.value, messages, action="create")

    name = config.get("name")
    logger.info("%s %r already exists (%s); looking it up", kind.value, name, conflict)
    lookup = await client.query(schema.lookup_document, schema.lookup_variables(config))
    for node in schema.lookup_nodes(lookup):
        if node.get(schema.name_field) == name and node.get("id"):
            logger.info("Reusing existing %s %s", kind.value, node["id"])
            return node["id"]

    raise ResolutionInconsistencyError(
        f"{kind.value.capitalize()} {name!r} reported as already existing ({conflict}) but could not be found"
    )
