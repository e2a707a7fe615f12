"""
GraphQL documents for the Shopify Admin API.
Every document is named; the operation name is what gets logged per call.
"""

WEBHOOK_SUBSCRIPTION_CREATE = """
mutation WebhookSubscriptionCreate($topic: WebhookSubscriptionTopic!, $callbackUrl: URL!, $format: WebhookSubscriptionFormat) {
  webhookSubscriptionCreate(
    topic: $topic
    webhookSubscription: { callbackUrl: $callbackUrl, format: $format }
  ) {
    webhookSubscription { id }
    userErrors { field message }
  }
}
"""

FULFILLMENT_SERVICE_CREATE = """
mutation FulfillmentServiceCreate(
  $name: String!
  $callbackUrl: URL!
  $trackingSupport: Boolean
  $inventoryManagement: Boolean
  $requiresShippingMethod: Boolean
) {
  fulfillmentServiceCreate(
    name: $name
    callbackUrl: $callbackUrl
    trackingSupport: $trackingSupport
    inventoryManagement: $inventoryManagement
    requiresShippingMethod: $requiresShippingMethod
  ) {
    fulfillmentService { id serviceName }
    userErrors { field message }
  }
}
"""

FULFILLMENT_SERVICE_LIST = """
query FulfillmentServiceList {
  shop {
    fulfillmentServices { id serviceName handle callbackUrl }
  }
}
"""

CARRIER_SERVICE_CREATE = """
mutation CarrierServiceCreate($input: DeliveryCarrierServiceCreateInput!) {
  carrierServiceCreate(input: $input) {
    carrierService { id name active callbackUrl }
    userErrors { field message }
  }
}
"""

CARRIER_SERVICE_LIST = """
query CarrierServices($first: Int!, $query: String) {
  carrierServices(first: $first, query: $query) {
    edges { node { id name active callbackUrl } }
  }
}
"""

PRODUCTS_WITH_VARIANTS = """
query LoadProducts {
  products(first: 100) {
    nodes {
      id
      title
      variants(first: 50) {
        nodes { id title sku }
      }
    }
  }
}
"""

FULFILLMENT_SERVICE_LOCATION = """
query GetFulfillmentServiceLocation($id: ID!) {
  fulfillmentService(id: $id) {
    location { id }
  }
}
"""

VARIANT_INVENTORY_ITEMS = """
query VariantInventoryItems($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on ProductVariant {
      id
      inventoryItem { id }
    }
  }
}
"""

LOCATIONS = """
query Locations($first: Int!, $after: String) {
  locations(first: $first, after: $after) {
    nodes { id name fulfillsOnlineOrders }
    pageInfo { hasNextPage endCursor }
  }
}
"""

INVENTORY_SET_QUANTITIES = """
mutation InventorySetQuantities($input: InventorySetQuantitiesInput!) {
  inventorySetQuantities(input: $input) {
    userErrors { field message }
  }
}
"""

INVENTORY_ACTIVATE = """
mutation InventoryActivate($inventoryItemId: ID!, $locationId: ID!) {
  inventoryActivate(inventoryItemId: $inventoryItemId, locationId: $locationId) {
    userErrors { field message }
  }
}
"""

ORDER_FULFILLMENT_ORDERS = """
query OrderFulfillmentOrders($id: ID!) {
  order(id: $id) {
    fulfillmentOrders(first: 5) {
      edges { node { id status } }
    }
  }
}
"""

FULFILLMENT_CREATE = """
mutation FulfillmentCreate($fulfillment: FulfillmentInput!, $message: String) {
  fulfillmentCreate(fulfillment: $fulfillment, message: $message) {
    fulfillment { id status }
    userErrors { field message }
  }
}
"""
