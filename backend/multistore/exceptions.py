"""Errors raised by the catalog services."""


class SyncConfigurationError(Exception):
    """A store cannot be synced at all; raised before any platform call."""


class StoreNotFoundError(SyncConfigurationError):
    def __init__(self, store_id):
        super().__init__(f"Store not found: {store_id}")
        self.store_id = store_id


class StoreInactiveError(SyncConfigurationError):
    def __init__(self, store_name: str):
        super().__init__(f"Store is not active: {store_name}")


class UnsupportedPlatformError(SyncConfigurationError):
    def __init__(self, expected: str, actual: str):
        super().__init__(f"Store platform must be {expected}, got: {actual}")


class MissingCredentialsError(SyncConfigurationError):
    def __init__(self, store_name: str):
        super().__init__(f"Store missing platform credentials: {store_name}")


class PlatformError(Exception):
    """The external commerce platform rejected or failed a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StoreMappingNotFoundError(Exception):
    def __init__(self, store_id, product_id):
        super().__init__(f"Product {product_id} is not mapped to store {store_id}")
        self.store_id = store_id
        self.product_id = product_id
