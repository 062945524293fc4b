"""Environment settings."""

import os
from typing import Optional


class Settings:
    """Application settings from environment variables."""

    @staticmethod
    def get(key: str) -> Optional[str]:
        """
        Get environment variable value.

        Args:
            key: Environment variable name

        Returns:
            Optional[str]: The value, or None when unset or empty
        """
        return os.getenv(key) or None
