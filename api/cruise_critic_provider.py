"""Cruise specialty provider.

Runs SerpAPI queries restricted to cruisecritic.com, so it shares the SERP
credentials and payload format.
"""

from api.serp_provider import SerpProvider
from models.search import SearchRequest

CRUISE_CRITIC_SITE = "cruisecritic.com"


class CruiseCriticProvider(SerpProvider):
    name = "cruise-critic"

    def _query_text(self, request: SearchRequest) -> str:
        return f"site:{CRUISE_CRITIC_SITE} {request.query_text}"
