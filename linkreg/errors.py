"""Exception types raised by the link registry."""


class LinkRegistryError(Exception):
    """Base class for link registry errors."""


class ValidationError(LinkRegistryError, ValueError):
    """Raised when create() input is malformed."""


class DuplicateCodeError(LinkRegistryError, ValueError):
    """Raised when a custom short code is already in use."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' already exists")


class CodeSpaceExhaustedError(LinkRegistryError):
    """Raised when no free short code was found within the retry budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Unable to generate unique short code after {attempts} attempts"
        )


class PersistenceError(LinkRegistryError):
    """Raised when durable storage cannot be read or written.

    After a failed write the in-memory registry keeps its previous state,
    but the durable copy may or may not hold the new snapshot.
    """
