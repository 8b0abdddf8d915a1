"""
Errors raised at the HTTP boundary, outside any bounded context.
"""


class AuthenticationRequiredError(Exception):
    """Raised when a request carries no owner identity."""

    def __init__(self, message: str = "Authentication required") -> None:
        self.message = message
        super().__init__(self.message)
