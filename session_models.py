"""
session_models.py — Data structures shared by the autonomous flow and the server

Author      : Breno Farias da Silva
Created     : 2026-10-02
Description :
    Plain data holders for one autonomous shopping search:

    - `SiteProfile`: the immutable selector configuration of one site.
    - `ExtractedProduct`: the title/price read from the first result card.
    - `AnalysisResult`: the summary built once at the end of a flow.
    - `SessionState`: the request-scoped state of a flow (products, analysis
      and the processing flag), created fresh for every search.

    The `to_dict` methods produce the JSON payloads pushed to the client, using
    the camelCase keys the landing page expects.

Dependencies:
    - Python standard library: `dataclasses`, `datetime`
"""


import datetime  # For the capture and analysis timestamps
from dataclasses import dataclass, field  # For the data holders
from typing import Any, Dict, List, Optional, Tuple  # For type hints


# Functions Definitions:


def utc_timestamp() -> str:
    """
    Returns the current UTC time as an ISO-8601 string.

    :return: Timestamp string (e.g. "2026-10-02T10:15:30.123456+00:00")
    """

    return datetime.datetime.now(datetime.timezone.utc).isoformat()  # Timezone-aware so clients can localize it


# Classes Definitions:


@dataclass(frozen=True)
class SiteProfile:
    """
    Selector configuration of one e-commerce site. Every selector list is tried in
    declared order and the first structural match wins.
    """

    site_id: str
    display_name: str
    base_url: str
    search_box_selectors: Tuple[str, ...]
    product_container_selectors: Tuple[str, ...]
    product_link_selectors: Tuple[str, ...]
    search_button_selector: Optional[str] = None


@dataclass(frozen=True)
class ExtractedProduct:
    """
    Product data read from the first result card of a site. Never mutated after creation.
    """

    title: str
    price: str
    source: str
    original_query: str
    position: int = 1
    timestamp: str = field(default_factory=utc_timestamp)


    def to_dict(self) -> Dict[str, Any]:
        """
        Converts the product to its wire format.

        :return: Dictionary with the product fields
        """

        return {
            "title": self.title,
            "price": self.price,
            "source": self.source,
            "timestamp": self.timestamp,
            "position": self.position,
            "originalQuery": self.original_query,
        }


@dataclass
class AnalysisResult:
    """
    Summary of one flow. Built once after every site was processed; read-only afterwards.
    """

    original_query: str
    total_products_found: int
    sites_searched: List[str]
    recommendation: str
    products: Optional[List[ExtractedProduct]] = None
    timestamp: str = field(default_factory=utc_timestamp)
    success: bool = True
    full_automation: bool = True


    def to_dict(self) -> Dict[str, Any]:
        """
        Converts the analysis to its wire format. The "products" key is only present
        when at least one product was extracted.

        :return: Dictionary with the analysis fields
        """

        payload = {
            "originalQuery": self.original_query,
            "totalProductsFound": self.total_products_found,
            "sitesSearched": list(self.sites_searched),
            "timestamp": self.timestamp,
            "fullAutomation": self.full_automation,
            "success": self.success,
            "recommendation": self.recommendation,
        }

        if self.products:  # Never send an empty list next to the neutral message
            payload["products"] = [product.to_dict() for product in self.products]

        return payload


@dataclass
class SessionState:
    """
    State of a single flow. Owns the extracted products; discarded at the next request.
    """

    products: List[ExtractedProduct] = field(default_factory=list)
    analysis: Optional[AnalysisResult] = None
    is_processing: bool = False
