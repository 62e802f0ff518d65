"""Environment configuration for the external lookups.

Each credential unlocks one lookup. A missing credential turns that lookup
off; the rest of the flow keeps working with manual data entry.
"""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


class LookupUnavailable(LookupError):
    """The credentials for a lookup are not configured."""


@dataclass(frozen=True)
class Settings:
    google_places_api_key: str | None = None
    apify_token: str | None = None
    dataforseo_login: str | None = None
    dataforseo_password: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        if load_dotenv_file:
            load_dotenv()

        timeout = os.getenv("LOOKUP_TIMEOUT_SECONDS")
        try:
            timeout_seconds = float(timeout) if timeout else DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            logger.warning(
                "LOOKUP_TIMEOUT_SECONDS=%r is not a number; using %.0fs",
                timeout, DEFAULT_TIMEOUT_SECONDS,
            )
            timeout_seconds = DEFAULT_TIMEOUT_SECONDS

        return cls(
            google_places_api_key=os.getenv("GOOGLE_PLACES_API_KEY") or None,
            apify_token=os.getenv("APIFY_TOKEN") or None,
            dataforseo_login=os.getenv("DATAFORSEO_LOGIN") or None,
            dataforseo_password=os.getenv("DATAFORSEO_PASSWORD") or None,
            timeout_seconds=timeout_seconds,
        )

    @property
    def places_available(self) -> bool:
        return bool(self.google_places_api_key)

    @property
    def social_metrics_available(self) -> bool:
        return bool(self.apify_token)

    @property
    def keywords_available(self) -> bool:
        return bool(self.dataforseo_login and self.dataforseo_password)

    def validate(self) -> list[str]:
        """Log and return one warning per lookup that is switched off."""
        problems = []
        if not self.places_available:
            problems.append(
                "Google Places API key is missing. Set GOOGLE_PLACES_API_KEY to enable restaurant search."
            )
        if not self.social_metrics_available:
            problems.append(
                "Apify token is missing. Set APIFY_TOKEN to fetch Instagram and Facebook metrics."
            )
        if not self.keywords_available:
            problems.append(
                "DataForSEO not configured. Set DATAFORSEO_LOGIN and DATAFORSEO_PASSWORD to detect ranked keywords."
            )
        for problem in problems:
            logger.warning(problem)
        return problems
