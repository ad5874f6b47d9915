"""Short code generation utilities."""

import random
import string
from typing import Optional


class ShortCodeGenerator:
    """Generate short codes for links."""

    # Base36 characters (codes are case-normalized to lowercase)
    BASE36_CHARS = string.ascii_lowercase + string.digits  # a-z0-9

    def __init__(self, default_length: int = 6, rng: Optional[random.Random] = None):
        """Initialize short code generator.

        Args:
            default_length: Default length for generated codes
            rng: Optional random source (seed one for reproducible codes)
        """
        if default_length < 1:
            raise ValueError("default_length must be at least 1")
        self.default_length = default_length
        self._rng = rng or random.Random()

    def generate_random(self, length: Optional[int] = None) -> str:
        """Generate a random short code.

        Args:
            length: Length of the code (uses default if not specified)

        Returns:
            Random short code
        """
        length = length or self.default_length
        return ''.join(self._rng.choices(self.BASE36_CHARS, k=length))

    def code_space_size(self, length: Optional[int] = None) -> int:
        """Number of distinct codes of the given length."""
        return len(self.BASE36_CHARS) ** (length or self.default_length)

    @staticmethod
    def normalize(code: str) -> str:
        """Case-normalize a user supplied or looked-up code."""
        return code.strip().lower()

    @staticmethod
    def is_valid_format(code: str) -> bool:
        """Check if code has valid format (lowercase alphanumeric).

        Args:
            code: Code to validate

        Returns:
            True if valid format
        """
        return isinstance(code, str) and bool(code) and all(c in ShortCodeGenerator.BASE36_CHARS for c in code)
