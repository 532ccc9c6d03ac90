"""
site_profiles.py — Static selector registry for the supported e-commerce sites

Author      : Breno Farias da Silva
Created     : 2026-10-02
Description :
    Single source-of-truth for every CSS selector used by the autonomous flow.
    Each site has a SiteProfile (base URL, search box, search button, product
    containers and product links) and the module also holds the generic
    fallback lists shared by every site (search inputs, product containers,
    clickable links, popups, titles and prices).

    All lists are tried in the declared order and the first structural match
    short-circuits the rest, so the most specific selectors come first.

Usage:
    from site_profiles import SITE_ORDER, get_site_profile
    for site_id in SITE_ORDER:
        profile = get_site_profile(site_id)

Dependencies:
    - Python standard library only

Notes:
    - Website structure may change over time; update the lists here only.
"""


from session_models import SiteProfile  # Immutable site configuration


# Site Profiles Dictionary:
SITE_PROFILES = {
    "amazon": SiteProfile(
        site_id="amazon",
        display_name="Amazon",
        base_url="https://www.amazon.in",
        search_box_selectors=(
            "#twotabsearchtextbox",  # Amazon main search input with specific id
            'input[name="field-keywords"]',  # Amazon search input by name (fallback)
            'input[type="text"]',  # Any text input as last resort fallback
        ),
        search_button_selector="#nav-search-submit-button",  # Amazon search submit button
        product_container_selectors=(
            '[data-component-type="s-search-result"]',  # Amazon search result card
            ".s-result-item[data-asin]",  # Result item carrying an ASIN (fallback)
            ".s-result-item",  # Any result item as last resort fallback
        ),
        product_link_selectors=(
            "h2 a",  # Title link of the result card
            'a.a-link-normal[href*="/dp/"]',  # Normal link to a product detail page
            'a[href*="/dp/"]',  # Any link to a product detail page
        ),
    ),
    "flipkart": SiteProfile(
        site_id="flipkart",
        display_name="Flipkart",
        base_url="https://www.flipkart.com",
        search_box_selectors=(
            'input[name="q"]',  # Flipkart search input by name
            "._3704LK",  # Flipkart search input class (fallback)
            'input[placeholder*="Search"]',  # Input with a search placeholder
            'input[title*="Search"]',  # Input with a search title as last resort fallback
        ),
        search_button_selector=None,  # Flipkart submits with Enter only
        product_container_selectors=(
            "._1AtVbE",  # Flipkart result row
            "._13oc-S",  # Flipkart result grid (fallback)
            ".col",  # Generic result column
            '[data-testid="product-base"]',  # Fashion result card
            "._2kHMtA",  # Older list layout card
            "._2-gKeQ",  # Older grid layout card as last resort fallback
        ),
        product_link_selectors=(
            "a",  # First link inside the card
            "._1fQZEK",  # Card link class (fallback)
        ),
    ),
}  # Dictionary containing the selector configuration of every supported site

SITE_ORDER = ("amazon", "flipkart")  # Fixed priority order in which the sites are searched

# Generic Fallback Selectors:
GENERIC_SEARCH_BOX_SELECTORS = (
    'input[type="text"]',
    'input[name*="search"]',
    'input[placeholder*="search"]',
    'input[placeholder*="Search"]',
    'input[title*="Search"]',
)  # Tried when no site specific search box was found

GENERIC_PRODUCT_CONTAINER_SELECTORS = (
    "[data-asin]",  # Attribute based
    'a[href*="/dp/"]',  # Link pattern based
    'a[href*="product"]',
    ".product",
    '[class*="product"]',
)  # Tried when no site specific product container was found

GENERIC_LINK_SELECTORS = (
    'a[href*="dp/"]',
    'a[href*="product"]',
    'a[href*="item"]',
    ".product a",
    "h2 a",
    "a[href]",
)  # Last resort: the first available hyperlink of the page

POPUP_SELECTORS = (
    # Generic
    'button:has-text("Accept")',
    'button:has-text("Allow")',
    'button:has-text("Continue")',
    'button:has-text("OK")',
    'button:has-text("I Agree")',
    'button:has-text("Accept All")',
    'button:has-text("Close")',
    '[aria-label="Close"]',
    ".close-button",
    "#close-button",
    # Amazon specific
    'button[data-action-type="DISMISS"]',
    ".a-button-close",
    "#sp-cc-accept",
    "#attach-close_sideSheet-link",
    ".cvf-widget__close",
    # Flipkart specific
    "._2KpZ6l._2doB4z",
    "button._2KpZ6l._2doB4z",
    "._3dTWyP",
    # Cookie banners
    'button[data-testid="cookie-accept"]',
    # Login dismissals
    'button:has-text("Not now")',
    'button:has-text("Skip")',
    'button:has-text("Later")',
)  # Consent, close and dismiss-login buttons; the first visible one is clicked

OVERLAY_SELECTOR = '[role="dialog"], .notification, .toast, .modal'  # Overlays hidden after popup dismissal

TITLE_SELECTORS = (
    "h2 a span",
    "h2",
    ".s1Q9rs",
    "._4rR01T",
    ".a-size-mini span",
    ".a-size-base-plus",
    "a[title]",
    '[data-cy="title-recipe"]',
)  # Title candidates inside a result card, in priority order

PRICE_SELECTORS = (
    ".a-price-whole",
    ".a-offscreen",
    ".a-price",
    "._30jeq3",
    "._1_WHN1",
    "._25b18c",
)  # Price candidates inside a result card, in priority order


# Classes Definitions:


class SiteProfileNotFoundError(KeyError):
    """
    Raised when a site identifier has no registered profile.
    """


# Functions Definitions:


def get_site_profile(site_id: str) -> SiteProfile:
    """
    Returns the profile of a registered site.

    :param site_id: The site identifier (e.g. "amazon")
    :return: The SiteProfile of the site
    :raises SiteProfileNotFoundError: If the site is not registered
    """

    profile = SITE_PROFILES.get(site_id)  # Lookup without raising a bare KeyError
    if profile is None:  # Unknown site identifier
        raise SiteProfileNotFoundError(site_id)

    return profile


def get_site_display_names(site_ids=SITE_ORDER):
    """
    Returns the display names of the given sites, keeping their order.

    :param site_ids: Iterable of site identifiers
    :return: List of display names (e.g. ["Amazon", "Flipkart"])
    """

    return [get_site_profile(site_id).display_name for site_id in site_ids]
