"""
app/platform/errors.py
----------------------
Exceptions raised at the commerce platform boundary.
"""


class PlatformError(Exception):
    """A platform call failed: transport error, HTTP status >= 400 or GraphQL errors."""

    def __init__(self, message, status_code=None, messages=None):
        super().__init__(message)
        self.status_code = status_code
        self.messages = list(messages or [])


class PlatformTimeout(PlatformError):
    """The platform did not answer within PLATFORM_TIMEOUT."""


class MissingCartError(PlatformError):
    """A cart mutation succeeded but the platform returned no cart id."""

    def __init__(self, message='Cart is missing from the platform response'):
        super().__init__(message)


class CartNotFoundError(LookupError):
    """No cart id is known for the caller."""


class LineItemNotFoundError(LookupError):
    """No line item id was given for a removal."""
