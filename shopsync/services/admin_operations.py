"""Admin GraphQL queries and mutations used by the catalog tools.

Variant creation and updates go through the bulk variant mutations, which
only accept price and compare-at price. SKUs live on the variant's
inventory item and are set with a separate, best-effort call.
"""

from typing import Any

import logfire

from shopsync.models.admin_models import AdminImage, AdminProduct, AdminVariant, PageInfo, ProductPage
from shopsync.models.upload_models import DeleteError, DeleteResult, VariantUploadInput
from shopsync.services.admin_client import ShopifyAdminClient

PRODUCT_CREATE_MUTATION = """
mutation productCreate($input: ProductInput!) {
  productCreate(input: $input) {
    product {
      id
      title
      handle
    }
    userErrors {
      field
      message
    }
  }
}
"""

DEFAULT_VARIANT_QUERY = """
query getProduct($id: ID!) {
  product(id: $id) {
    variants(first: 1) {
      edges {
        node {
          id
        }
      }
    }
  }
}
"""

VARIANTS_BULK_UPDATE_MUTATION = """
mutation productVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {
    productVariants {
      id
      price
    }
    userErrors {
      field
      message
    }
  }
}
"""

VARIANTS_BULK_CREATE_MUTATION = """
mutation productVariantsBulkCreate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkCreate(productId: $productId, variants: $variants) {
    productVariants {
      id
      price
    }
    userErrors {
      field
      message
    }
  }
}
"""

VARIANT_INVENTORY_ITEM_QUERY = """
query getVariant($id: ID!) {
  productVariant(id: $id) {
    id
    inventoryItem {
      id
    }
  }
}
"""

INVENTORY_ITEM_UPDATE_MUTATION = """
mutation inventoryItemUpdate($id: ID!, $input: InventoryItemInput!) {
  inventoryItemUpdate(id: $id, input: $input) {
    inventoryItem {
      id
      sku
    }
    userErrors {
      field
      message
    }
  }
}
"""

PRODUCT_CREATE_MEDIA_MUTATION = """
mutation productCreateMedia($productId: ID!, $media: [CreateMediaInput!]!) {
  productCreateMedia(productId: $productId, media: $media) {
    media {
      id
      mediaContentType
      alt
    }
    mediaUserErrors {
      field
      message
    }
  }
}
"""

PRODUCTS_QUERY = """
query getProducts($first: Int!, $after: String, $query: String) {
  products(first: $first, after: $after, query: $query) {
    edges {
      node {
        id
        title
        handle
        descriptionHtml
        vendor
        productType
        tags
        status
        createdAt
        updatedAt
        featuredImage {
          id
          url
          altText
        }
        images(first: 10) {
          edges {
            node {
              id
              url
              altText
            }
          }
        }
        media(first: 10) {
          edges {
            node {
              mediaContentType
              alt
              ... on MediaImage {
                id
                image {
                  url
                  altText
                }
              }
            }
          }
        }
        variants(first: 100) {
          edges {
            node {
              id
              title
              price
              sku
              compareAtPrice
              inventoryQuantity
            }
          }
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

PRODUCT_DELETE_MUTATION = """
mutation productDelete($input: ProductDeleteInput!) {
  productDelete(input: $input) {
    deletedProductId
    userErrors {
      field
      message
    }
  }
}
"""


def _price_fields(variant: VariantUploadInput) -> dict[str, Any]:
    fields: dict[str, Any] = {"price": variant.price}
    if variant.compare_at_price:
        fields["compareAtPrice"] = variant.compare_at_price
    return fields


async def create_product(client: ShopifyAdminClient, product_input: dict[str, Any]) -> str:
    """Create a product without variants and return its id.

    The platform creates one default variant automatically.
    """
    data = await client.mutate(PRODUCT_CREATE_MUTATION, {"input": product_input})
    return data["productCreate"]["product"]["id"]


async def get_default_variant_id(client: ShopifyAdminClient, product_id: str) -> str | None:
    """Id of the variant the platform auto-created, or None if it cannot be read."""
    try:
        data = await client.query(DEFAULT_VARIANT_QUERY, {"id": product_id})
    except Exception as e:
        logfire.error(
            "Failed to get default variant id",
            product_id=product_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        return None
    edges = ((data.get("product") or {}).get("variants") or {}).get("edges") or []
    return edges[0]["node"]["id"] if edges else None


async def update_variant_price(
    client: ShopifyAdminClient,
    product_id: str,
    variant_id: str,
    variant: VariantUploadInput,
) -> None:
    """Set price and compare-at price on an existing variant."""
    await client.mutate(
        VARIANTS_BULK_UPDATE_MUTATION,
        {"productId": product_id, "variants": [{"id": variant_id, **_price_fields(variant)}]},
    )


async def create_variant(
    client: ShopifyAdminClient,
    product_id: str,
    variant: VariantUploadInput,
) -> str | None:
    """Add a variant (price fields only) and return its id."""
    data = await client.mutate(
        VARIANTS_BULK_CREATE_MUTATION,
        {"productId": product_id, "variants": [_price_fields(variant)]},
    )
    created = (data.get("productVariantsBulkCreate") or {}).get("productVariants") or []
    return created[0]["id"] if created else None


async def set_variant_sku(client: ShopifyAdminClient, variant_id: str, sku: str | None) -> bool:
    """Attach a SKU to the variant's inventory item.

    Best-effort: any failure is logged and reported as False, never raised.
    """
    if not sku:
        return False
    try:
        data = await client.query(VARIANT_INVENTORY_ITEM_QUERY, {"id": variant_id})
        inventory_item = ((data.get("productVariant") or {}).get("inventoryItem") or {})
        inventory_item_id = inventory_item.get("id")
        if not inventory_item_id:
            logfire.warn("No inventory item found for variant", variant_id=variant_id)
            return False
        await client.mutate(
            INVENTORY_ITEM_UPDATE_MUTATION,
            {"id": inventory_item_id, "input": {"sku": sku}},
        )
    except Exception as e:
        logfire.error(
            "Failed to update SKU",
            variant_id=variant_id,
            sku=sku,
            error=str(e),
            error_type=type(e).__name__,
        )
        return False
    logfire.info("SKU updated", variant_id=variant_id, sku=sku)
    return True


async def add_product_media(
    client: ShopifyAdminClient,
    product_id: str,
    media: list[dict[str, str]],
) -> dict[str, Any]:
    """Attach images by source URL in one call.

    Args:
        media: ``{"originalSource": url, "alt": text}`` items

    Returns:
        The ``productCreateMedia`` payload (``media`` and ``mediaUserErrors``)
    """
    formatted = [
        {
            "originalSource": item["originalSource"],
            "alt": item.get("alt", ""),
            "mediaContentType": "IMAGE",
        }
        for item in media
    ]
    data = await client.mutate(
        PRODUCT_CREATE_MEDIA_MUTATION, {"productId": product_id, "media": formatted}
    )
    return data.get("productCreateMedia") or {"media": [], "mediaUserErrors": []}


def _product_images(node: dict[str, Any]) -> list[AdminImage]:
    """Uploaded media first, then legacy images, then the featured image."""
    media_edges = (node.get("media") or {}).get("edges") or []
    images = [
        AdminImage(
            id=edge["node"].get("id"),
            url=(edge["node"].get("image") or {}).get("url") or "",
            alt_text=(edge["node"].get("image") or {}).get("altText")
            or edge["node"].get("alt")
            or "",
        )
        for edge in media_edges
        if edge["node"].get("mediaContentType") == "IMAGE"
    ]
    images = [image for image in images if image.url]
    if images:
        return images

    image_edges = (node.get("images") or {}).get("edges") or []
    if image_edges:
        return [
            AdminImage(
                id=edge["node"].get("id"),
                url=edge["node"]["url"],
                alt_text=edge["node"].get("altText") or "",
            )
            for edge in image_edges
        ]

    featured = node.get("featuredImage")
    if featured:
        return [
            AdminImage(
                id=featured.get("id"),
                url=featured["url"],
                alt_text=featured.get("altText") or "",
            )
        ]
    return []


def parse_product_node(node: dict[str, Any]) -> AdminProduct:
    """Flatten one ``products`` edge node into an AdminProduct."""
    variant_edges = (node.get("variants") or {}).get("edges") or []
    return AdminProduct(
        id=node["id"],
        title=node.get("title") or "",
        handle=node.get("handle") or "",
        description_html=node.get("descriptionHtml") or "",
        vendor=node.get("vendor") or "",
        product_type=node.get("productType") or "",
        tags=node.get("tags") or [],
        status=node.get("status"),
        created_at=node.get("createdAt"),
        updated_at=node.get("updatedAt"),
        images=_product_images(node),
        variants=[
            AdminVariant(
                id=edge["node"]["id"],
                title=edge["node"].get("title") or "",
                price=edge["node"].get("price") or "0.00",
                sku=edge["node"].get("sku") or "",
                compare_at_price=edge["node"].get("compareAtPrice") or "",
                inventory_quantity=edge["node"].get("inventoryQuantity") or 0,
            )
            for edge in variant_edges
        ],
    )


async def fetch_products(
    client: ShopifyAdminClient,
    first: int = 50,
    after: str | None = None,
    query: str | None = None,
) -> ProductPage:
    """One page of the destination catalog."""
    data = await client.query(
        PRODUCTS_QUERY, {"first": first, "after": after, "query": query}
    )
    products = data["products"]
    return ProductPage(
        products=[parse_product_node(edge["node"]) for edge in products["edges"]],
        page_info=PageInfo(
            has_next_page=products["pageInfo"].get("hasNextPage", False),
            end_cursor=products["pageInfo"].get("endCursor"),
        ),
    )


async def delete_product(client: ShopifyAdminClient, product_id: str) -> None:
    """Delete one product; raises AdminAPIError on failure."""
    await client.mutate(PRODUCT_DELETE_MUTATION, {"input": {"id": product_id}})


async def delete_products(client: ShopifyAdminClient, product_ids: list[str]) -> DeleteResult:
    """Delete products one at a time; one failure never stops the rest."""
    result = DeleteResult()
    for product_id in product_ids:
        try:
            await delete_product(client, product_id)
        except Exception as e:
            result.failed += 1
            result.errors.append(
                DeleteError(product_id=product_id, error=str(e) or "Failed to delete product")
            )
            logfire.warn(
                "Product delete failed",
                product_id=product_id,
                error=str(e),
                error_type=type(e).__name__,
            )
        else:
            result.successful += 1

    logfire.info(
        "Product delete run finished",
        requested=len(product_ids),
        successful=result.successful,
        failed=result.failed,
    )
    return result
