"""Domain exceptions raised by the link service and mapped to HTTP by the routes."""

__all__ = ["LinkNotFoundError", "ShortCodeCollisionError"]


class LinkNotFoundError(LookupError):
    """No link configuration exists for the requested short code or id."""

    def __init__(self, key: str | int):
        super().__init__(f"Link not found: {key}")
        self.key = key


class ShortCodeCollisionError(ValueError):
    """Every generated short code collided with an existing one."""

    def __init__(self, attempts: int):
        super().__init__("Short code collision, please try again.")
        self.attempts = attempts
