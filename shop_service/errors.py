class ShopError(Exception):
    status_code = 400
    message = "Bad request"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class Unauthorized(ShopError):
    status_code = 401
    message = "Unauthorized"


class InvalidCredentials(Unauthorized):
    message = "Invalid credentials"


class InvalidInput(ShopError):
    status_code = 400
    message = "Invalid request"


class NotFound(ShopError):
    status_code = 404
    message = "Account not found"


class UnknownItem(ShopError):
    status_code = 400
    message = "Unknown item"


class InsufficientFunds(ShopError):
    status_code = 409
    message = "Insufficient funds"


class LedgerInconsistency(ShopError):
    """Second leg of a transfer failed after the first was applied."""
    status_code = 500
    message = "Transfer failed"

    def __init__(self, message: str = None, **details):
        super().__init__(message)
        self.details = details
