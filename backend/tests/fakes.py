"""In-memory stand-ins for an external commerce platform."""
from multistore.exceptions import PlatformError
from multistore.schemas.platform import ExternalProduct, ExternalProductRef, ProductPage
from multistore.services.platform_adapter import PlatformAdapter


def external_product(id, name="", sku="", slug="", **kwargs) -> ExternalProduct:
    return ExternalProduct(id=id, name=name, sku=sku, slug=slug, **kwargs)


class FakeAdapter(PlatformAdapter):
    """In-memory platform: pages of products (models or raw dicts), variations by id, and a record of writes."""

    sku_prefix = "WOO"

    def __init__(self, pages=None, variations=None, failing_pages=(), failing_variations=(), remote_skus=()):
        self.pages = pages or []
        self.variations = variations or {}
        self.failing_pages = set(failing_pages)
        self.failing_variations = set(failing_variations)
        self.remote_skus = set(remote_skus)
        self.list_calls = []
        self.created = []
        self.updated = []
        self.deleted = []
        self.closed = False
        self.next_id = 500

    def list_products(self, page, page_size, order_by="modified", order="desc", modified_after=None):
        self.list_calls.append({"page": page, "page_size": page_size, "modified_after": modified_after})
        if page in self.failing_pages:
            raise PlatformError("WooCommerce GET products returned 500: boom", status_code=500)
        if page > len(self.pages):
            return ProductPage(items=[], total_pages=len(self.pages))
        items = [p.model_dump() if isinstance(p, ExternalProduct) else p for p in self.pages[page - 1]]
        return ProductPage(items=items, total_pages=len(self.pages))

    def get_variation(self, product_id, variation_id):
        if variation_id in self.failing_variations:
            raise PlatformError(f"Variation {variation_id} unavailable", status_code=404)
        return self.variations[variation_id]

    def create_product(self, payload):
        self.next_id += 1
        self.created.append(payload)
        return ExternalProductRef(external_id=str(self.next_id), permalink=f"https://shop.example.com/p/{self.next_id}")

    def update_product(self, external_id, payload):
        self.updated.append((external_id, payload))
        return ExternalProductRef(external_id=external_id, permalink=f"https://shop.example.com/p/{external_id}")

    def delete_product(self, external_id, force=True):
        self.deleted.append((external_id, force))

    def find_by_sku(self, sku):
        if sku in self.remote_skus:
            return [{"id": 999, "name": "Remote", "sku": sku}]
        return []

    def close(self):
        self.closed = True
