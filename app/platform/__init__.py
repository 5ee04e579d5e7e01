"""
app/platform/__init__.py
------------------------
Commerce platform boundary: HTTP client, storefront token cache,
cart signals and the errors raised by them.
"""
from app.platform.client import CommerceClient  # noqa: F401
from app.platform.errors import (  # noqa: F401
    PlatformError, PlatformTimeout, MissingCartError,
    CartNotFoundError, LineItemNotFoundError,
)
