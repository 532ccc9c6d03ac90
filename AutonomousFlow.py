"""
================================================================================
Autonomous Shopping Flow
================================================================================
Author      : Breno Farias da Silva
Created     : 2026-10-02
Description :
    This script provides an AutonomousFlow class that drives the shared browser
    page through a scripted shopping search on every configured site (Amazon,
    then Flipkart), extracts the title and price of the first result and pushes
    its progress through the StatusChannel.

    For each site, in fixed order and strictly one after the other:
        1. Navigate to the site home page
        2. Wait a randomized, human-like interval
        3. Dismiss consent/login popups and hide overlays
        4. Type the exact query in the search box and submit it
        5. Scroll the results to trigger lazy loading
        6. Locate the product cards (site selectors, then generic ones)
        7. Extract title and price from the first card
        8. Click the first product and scroll its page

    After every site was processed, an analysis is built, pushed to the client
    together with a narration text, and returned.

Usage:
    1. Create an instance with the browser page and a status channel:
            flow = AutonomousFlow(page, channel)
    2. Run a search:
            analysis = flow.run_flow("wireless mouse")

Outputs:
    - AnalysisResult returned to the caller
    - status, voice_prompt, products and analysis notifications

TODOs:
    - Add a flow-level timeout; only per-operation timeouts bound a flow today

Dependencies:
    - Python >= 3.8
    - playwright
    - colorama

Assumptions & Notes:
    - run_flow never raises: every phase failure becomes a status message
    - Website structure may change over time; selectors live in site_profiles.py
    - The page must only be driven from the thread that launched the browser
"""

import time  # For the human-like delays
from colorama import Style  # For coloring the terminal
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError  # For timeout handling
from product_utils import random_delay_ms, select_price, select_title  # Candidate selection rules
from session_models import AnalysisResult, ExtractedProduct, SessionState  # Flow data structures
from site_profiles import (  # Selector registry
    GENERIC_LINK_SELECTORS,
    GENERIC_PRODUCT_CONTAINER_SELECTORS,
    GENERIC_SEARCH_BOX_SELECTORS,
    OVERLAY_SELECTOR,
    POPUP_SELECTORS,
    PRICE_SELECTORS,
    SITE_ORDER,
    TITLE_SELECTORS,
    get_site_display_names,
    get_site_profile,
)
from typing import Any, Callable, Dict, List, Optional, Tuple  # For type hints


# Macros:
class BackgroundColors:  # Colors for the terminal
    CYAN = "\033[96m"  # Cyan
    GREEN = "\033[92m"  # Green
    YELLOW = "\033[93m"  # Yellow
    RED = "\033[91m"  # Red
    BOLD = "\033[1m"  # Bold
    UNDERLINE = "\033[4m"  # Underline
    CLEAR_TERMINAL = "\033[H\033[J"  # Clear the terminal


# Execution Constants:
VERBOSE = False  # Set to True to output verbose messages

# Timeout Constants (milliseconds):
PAGE_LOAD_TIMEOUT = 30000  # Maximum time to wait for a site home page
SEARCH_BOX_TIMEOUT = 3000  # Maximum time to wait for each site specific search box selector
POPUP_TIMEOUT = 1500  # Maximum time to wait for each popup selector
NETWORK_IDLE_TIMEOUT = 15000  # Maximum time to wait for the search results to settle
CLICK_NAVIGATION_TIMEOUT = 10000  # Maximum time to wait for the product page after the click
TYPE_DELAY = 50  # Delay between typed characters

# Delay Ranges (inclusive, milliseconds):
SETTLE_DELAY = (2000, 3000)  # After opening a site, after searching and between sites
POPUP_DELAY = (500, 1000)  # After closing a popup
FOCUS_DELAY = (500, 800)  # After clicking the search box
CLEAR_DELAY = (300, 500)  # After clearing the search box
SUBMIT_DELAY = (1000, 1500)  # After typing the query
SCROLL_DELAY = (1500, 2500)  # Between scroll-downs of the results
SCROLL_BACK_DELAY = (1000, 1500)  # After scrolling back to the first results
PRE_CLICK_DELAY = (1000, 1500)  # After scrolling the product into view
PRODUCT_PAGE_DELAY = (1500, 2000)  # After scrolling the product page

# Scroll Constants:
SCROLL_STEPS = 3  # Number of incremental scroll-downs on the results page
SCROLL_VIEWPORT_FRACTION = 0.8  # Fraction of the viewport scrolled per step
SCROLL_BACK_OFFSET = 500  # Offset scrolled back to so the first results are visible
PRODUCT_SCROLL_FRACTION = 0.6  # Fraction of the viewport scrolled on the product page

# Site Outcomes (only reported in the terminal/log):
COMPLETED = "completed"
NAVIGATION_FAILED = "navigation_failed"
SEARCH_FAILED = "search_failed"
NO_PRODUCTS = "no_products"
INTERACTION_FAILED = "interaction_failed"

# Analysis Constants:
NEUTRAL_RECOMMENDATION = "Autonomous navigation completed successfully"  # Used when no product was extracted


# Classes Definitions:


class AutonomousFlow:
    """
    Sequences the shopping search phases of every configured site on one shared page.

    :return: None
    """


    def __init__(self, page: Any, channel: Any, site_ids: Tuple[str, ...] = SITE_ORDER, sleep: Callable[[float], Any] = time.sleep) -> None:
        """
        Initializes the flow with the page it drives and the channel it reports to.

        :param page: The Playwright page (shared, never cloned)
        :param channel: The StatusChannel receiving the notifications
        :param site_ids: Site identifiers searched in this order
        :param sleep: Function used to wait, receiving seconds
        :return: None
        """

        self.page = page  # Single shared browser page
        self.channel = channel  # Push channel to the client
        self.site_ids: Tuple[str, ...] = tuple(site_ids)  # Fixed priority order
        self.sleep = sleep  # Injected so tests don't wait for real
        self.site_outcomes: Dict[str, str] = {}  # Outcome of every site of the last flow


    def run_flow(self, query: str, session: Optional[SessionState] = None) -> AnalysisResult:
        """
        Runs the complete autonomous search for the query on every configured site.

        :param query: The exact text typed in the search boxes
        :param session: Request-scoped state filled by this flow (created when None)
        :return: The AnalysisResult of the flow, also pushed to the client
        """

        session = session if session is not None else SessionState()  # Fresh state for this request
        session.products = []  # Products of a previous request are never mixed in
        session.analysis = None
        session.is_processing = True
        self.site_outcomes = {}

        try:  # Nothing escapes a flow
            self.channel.send_status(f'Starting fully autonomous flow for: "{query}"')
            self.channel.send_voice_prompt(
                f'I\'m now executing a fully autonomous shopping search for "{query}". '
                f"I'll search {self.get_sites_text()} automatically, one after the other."
            )

            for index, site_id in enumerate(self.site_ids):  # Strictly sequential: all sites share the page
                if index > 0:  # Small pause between platforms
                    self.human_delay(*SETTLE_DELAY)
                self.site_outcomes[site_id] = self.run_site_flow(site_id, query, session, index + 1)

            analysis = self.generate_final_analysis(query, session)  # Summary of the whole run
        except Exception as e:  # Defects in the flow itself are logged, never raised
            print(f"{BackgroundColors.RED}Autonomous flow error: {e}{Style.RESET_ALL}")
            self.channel.send_error(f"Flow encountered an issue: {e}")
            analysis = session.analysis or self.build_analysis(query, session.products)  # Degraded but valid result
            session.analysis = analysis
        finally:
            session.is_processing = False

        self.print_site_outcomes()  # Tell real failures apart from empty results in the log
        return analysis


    def run_site_flow(self, site_id: str, query: str, session: SessionState, phase_number: int = 1) -> str:
        """
        Runs the phase sequence of one site.

        :param site_id: The site identifier
        :param query: The search query
        :param session: The state receiving the extracted product
        :param phase_number: Position of the site in the flow (1-based)
        :return: The outcome of the site (COMPLETED, NAVIGATION_FAILED, ...)
        """

        try:  # Any failure abandons this site only
            profile = get_site_profile(site_id)
            site_name = profile.display_name

            self.channel.send_status(f"🛒 Phase {phase_number}: Opening {site_name}...")
            if phase_number == 1:  # Narration of the first site
                self.channel.send_voice_prompt(f"Starting with {site_name} - opening the website now.")
            else:  # Every following site reuses the same window
                self.channel.send_voice_prompt(f"Now moving to {site_name} in the same window.")

            if not self.navigate(profile):  # Site unreachable or too slow
                return NAVIGATION_FAILED

            self.human_delay(*SETTLE_DELAY)  # Let the page settle like a human would
            self.dismiss_popups()  # Consent and login banners block the search box

            if not self.perform_search(profile, query):  # No search box or submission failure
                return SEARCH_FAILED

            self.scroll_results(profile)  # Trigger lazy loaded result cards
            outcome = self.click_first_product(profile, query, session)  # Extract and click the first result

            self.channel.send_status(f"✅ {site_name} phase completed")
            return outcome
        except Exception as e:
            print(f"{BackgroundColors.RED}{site_id} flow error: {e}{Style.RESET_ALL}")
            self.channel.send_status(f"⚠️ {site_id.capitalize()} flow encountered issues, continuing...")
            return INTERACTION_FAILED


    def navigate(self, profile) -> bool:
        """
        Loads the home page of the site.

        :param profile: The SiteProfile of the site
        :return: True if the page loaded, False otherwise
        """

        verbose_output(f"{BackgroundColors.GREEN}Loading page: {BackgroundColors.CYAN}{profile.base_url}{Style.RESET_ALL}")
        try:  # Attempt page loading with error handling
            self.page.goto(profile.base_url, wait_until="domcontentloaded", timeout=PAGE_LOAD_TIMEOUT)  # Navigate and wait for DOM to load
            return True
        except PlaywrightTimeoutError:  # Handle timeout errors specifically
            print(f"{BackgroundColors.YELLOW}Page load timeout on {BackgroundColors.CYAN}{profile.base_url}{BackgroundColors.YELLOW}, skipping site.{Style.RESET_ALL}")
        except Exception as e:  # Catch any other exceptions during page loading
            print(f"{BackgroundColors.RED}Failed to load page {BackgroundColors.CYAN}{profile.base_url}{BackgroundColors.RED}: {e}{Style.RESET_ALL}")

        self.channel.send_status(f"⚠️ {profile.display_name} flow encountered issues, continuing...")
        return False


    def dismiss_popups(self) -> bool:
        """
        Clicks the first visible popup/banner button, then hides remaining overlays.

        :return: True if a popup was closed, False otherwise
        """

        closed = False  # No popup is not an error
        for selector in POPUP_SELECTORS:  # Iterate through prioritized popup selectors
            try:  # Each probe waits a short time only
                element = self.page.wait_for_selector(selector, timeout=POPUP_TIMEOUT)
                if element:  # Verify if a matching popup appeared
                    element.click()  # Dismiss it
                    self.human_delay(*POPUP_DELAY)
                    self.channel.send_status("✅ Closed popup/banner")
                    closed = True
                    break  # First dismissed popup short-circuits the rest
            except PlaywrightTimeoutError:  # Selector not present
                continue
            except Exception as e:  # Detached or not clickable element
                verbose_output(f"{BackgroundColors.YELLOW}Popup selector {BackgroundColors.CYAN}{selector}{BackgroundColors.YELLOW} failed: {e}{Style.RESET_ALL}")
                continue

        try:  # Also hide any overlay notifications left on the page
            self.page.evaluate(
                "(selector) => document.querySelectorAll(selector).forEach((overlay) => { if (overlay.style) overlay.style.display = 'none'; })",
                OVERLAY_SELECTOR,
            )
        except Exception as e:
            verbose_output(f"{BackgroundColors.YELLOW}Could not hide overlays: {e}{Style.RESET_ALL}")

        return closed


    def find_search_box(self, profile):
        """
        Locates the search input, trying the site selectors first and the generic ones after.

        :param profile: The SiteProfile of the site
        :return: The search input element, or None if not found
        """

        for selector in profile.search_box_selectors:  # Site specific selectors in priority order
            try:  # Wait a little for each selector
                self.page.wait_for_selector(selector, timeout=SEARCH_BOX_TIMEOUT)
                search_box = self.page.query_selector(selector)
                if search_box:  # Verify if the input was found
                    verbose_output(f"{BackgroundColors.GREEN}Found search box: {BackgroundColors.CYAN}{selector}{Style.RESET_ALL}")
                    return search_box
            except PlaywrightTimeoutError:
                verbose_output(f"{BackgroundColors.YELLOW}Selector {BackgroundColors.CYAN}{selector}{BackgroundColors.YELLOW} not found{Style.RESET_ALL}")
            except Exception as e:
                verbose_output(f"{BackgroundColors.YELLOW}Selector {BackgroundColors.CYAN}{selector}{BackgroundColors.YELLOW} failed: {e}{Style.RESET_ALL}")

        for selector in GENERIC_SEARCH_BOX_SELECTORS:  # Generic input-like selectors as fallback
            try:
                search_box = self.page.query_selector(selector)
                if search_box:
                    verbose_output(f"{BackgroundColors.GREEN}Found search box with fallback: {BackgroundColors.CYAN}{selector}{Style.RESET_ALL}")
                    return search_box
            except Exception as e:
                verbose_output(f"{BackgroundColors.YELLOW}Fallback selector {BackgroundColors.CYAN}{selector}{BackgroundColors.YELLOW} failed: {e}{Style.RESET_ALL}")

        return None  # No input-like element on the page


    def perform_search(self, profile, query: str) -> bool:
        """
        Types the exact query in the search box and submits it.

        :param profile: The SiteProfile of the site
        :param query: The search query
        :return: True if the search was submitted, False otherwise
        """

        site_name = profile.display_name.upper()
        self.channel.send_status(f'🔍 Searching {site_name} for: "{query}"')

        search_box = self.find_search_box(profile)
        if search_box is None:  # Exhausted every fallback
            print(f"{BackgroundColors.YELLOW}Could not find search box on {BackgroundColors.CYAN}{profile.site_id}{Style.RESET_ALL}")
            self.channel.send_status(f"⚠️ Could not find the search box on {site_name}, skipping...")
            return False

        try:  # Attempt typing and submitting with error handling
            search_box.click()  # Focus the input
            self.human_delay(*FOCUS_DELAY)
            search_box.evaluate("(element) => { element.value = ''; }")  # Clear suggestions or previous queries
            self.human_delay(*CLEAR_DELAY)

            self.channel.send_status(f'Typing exactly: "{query}"')
            search_box.type(query, delay=TYPE_DELAY)  # Character by character
            self.human_delay(*SUBMIT_DELAY)

            if not self.submit_search(profile, search_box):  # Neither Enter nor the button worked
                self.channel.send_status(f"⚠️ Could not submit the search on {site_name}, skipping...")
                return False

            self.wait_for_network_idle(NETWORK_IDLE_TIMEOUT)  # Results or timeout, whichever first
            self.human_delay(*SETTLE_DELAY)
            return True
        except Exception as e:
            print(f"{BackgroundColors.RED}Search on {profile.site_id} failed: {e}{Style.RESET_ALL}")
            self.channel.send_status(f"⚠️ Search on {site_name} failed, continuing...")
            return False


    def submit_search(self, profile, search_box) -> bool:
        """
        Submits the search with Enter, falling back to the site search button.

        :param profile: The SiteProfile of the site
        :param search_box: The search input element
        :return: True if the search was submitted, False otherwise
        """

        try:  # Enter works on both sites
            search_box.press("Enter")
            self.channel.send_status("✅ Search submitted")
            return True
        except Exception as e:
            verbose_output(f"{BackgroundColors.YELLOW}Enter submission failed: {e}{Style.RESET_ALL}")

        if not profile.search_button_selector:  # Site without a search button fallback
            return False

        try:  # Try clicking the search button instead
            search_button = self.page.query_selector(profile.search_button_selector)
            if search_button:
                search_button.click()
                self.channel.send_status("✅ Search button clicked")
                return True
        except Exception as e:
            print(f"{BackgroundColors.YELLOW}Search button click failed: {e}{Style.RESET_ALL}")

        return False


    def wait_for_network_idle(self, timeout: int) -> None:
        """
        Waits for the network to become idle, continuing anyway on timeout.

        :param timeout: Maximum time to wait in milliseconds
        :return: None
        """

        try:
            self.page.wait_for_load_state("networkidle", timeout=timeout)
        except PlaywrightTimeoutError:  # Sites keep polling; a timeout still means results are there
            verbose_output(f"{BackgroundColors.YELLOW}Network idle timeout, continuing anyway...{Style.RESET_ALL}")


    def scroll_results(self, profile) -> None:
        """
        Scrolls down the results a few times, then back to the first results.

        :param profile: The SiteProfile of the site
        :return: None
        """

        site_name = profile.display_name.upper()
        self.channel.send_status(f"📜 Scrolling {site_name} to load products...")
        try:  # Scrolling is cosmetic, failures are only logged
            for _ in range(SCROLL_STEPS):  # Incremental scroll-downs
                self.page.evaluate(f"() => window.scrollBy(0, window.innerHeight * {SCROLL_VIEWPORT_FRACTION})")
                self.human_delay(*SCROLL_DELAY)
            self.page.evaluate(f"() => window.scrollTo(0, {SCROLL_BACK_OFFSET})")  # First results visible again
            self.human_delay(*SCROLL_BACK_DELAY)
            self.channel.send_status(f"✅ Products loaded on {site_name}")
        except Exception as e:
            print(f"{BackgroundColors.YELLOW}Scrolling error on {profile.site_id}: {e}{Style.RESET_ALL}")


    def find_elements(self, selectors, root: Any = None) -> Tuple[Optional[str], List[Any]]:
        """
        Returns the elements of the first selector yielding one or more matches.

        :param selectors: Selectors in priority order
        :param root: Element to search in (defaults to the page)
        :return: Tuple of (matching selector, elements), or (None, []) if nothing matched
        """

        root = root if root is not None else self.page
        for selector in selectors:  # First structural success short-circuits the rest
            try:
                elements = root.query_selector_all(selector)
            except Exception as e:  # Invalid selector for this engine
                verbose_output(f"{BackgroundColors.YELLOW}Selector {BackgroundColors.CYAN}{selector}{BackgroundColors.YELLOW} failed: {e}{Style.RESET_ALL}")
                continue
            if elements:
                return selector, elements

        return None, []


    def find_product_containers(self, profile) -> List[Any]:
        """
        Locates the product cards, trying the site selectors first and the generic ones after.

        :param profile: The SiteProfile of the site
        :return: List of product card elements (empty if none found)
        """

        selector, containers = self.find_elements(profile.product_container_selectors)
        if containers:
            verbose_output(f"{BackgroundColors.GREEN}Found {len(containers)} products with: {BackgroundColors.CYAN}{selector}{Style.RESET_ALL}")
            return containers

        selector, containers = self.find_elements(GENERIC_PRODUCT_CONTAINER_SELECTORS)  # Attribute and link pattern based
        if containers:
            verbose_output(f"{BackgroundColors.GREEN}Found {len(containers)} products with fallback: {BackgroundColors.CYAN}{selector}{Style.RESET_ALL}")

        return containers


    def click_first_product(self, profile, query: str, session: SessionState) -> str:
        """
        Extracts the first product of the results and clicks through to its page.

        :param profile: The SiteProfile of the site
        :param query: The search query
        :param session: The state receiving the extracted product
        :return: The outcome of the site
        """

        site_name = profile.display_name.upper()
        self.channel.send_status(f"🎯 Finding and clicking first product on {site_name}...")

        try:  # Attempt extraction and click with error handling
            containers = self.find_product_containers(profile)
            if not containers:  # Last resort: any link of the page
                self.channel.send_status(f"⚠️ No products found on {profile.site_id}, trying alternative approach...")
                self.click_any_available_link(profile)
                return NO_PRODUCTS

            first_product = containers[0]
            self.channel.send_voice_prompt(f"Found {len(containers)} products on {profile.site_id}. Clicking the first one now.")

            product = self.extract_basic_product_data(first_product, profile, query)
            if product is not None:  # Missing title records nothing but continues
                session.products.append(product)

            product_link = self.find_product_link(first_product, profile)
            if product_link is None:  # Click the card itself
                product_link = first_product

            product_link.scroll_into_view_if_needed()
            self.human_delay(*PRE_CLICK_DELAY)

            self.channel.send_status(f"🔗 Clicking first product on {site_name}...")
            try:  # The click may open a new tab or be intercepted
                product_link.click()
                self.page.wait_for_load_state("domcontentloaded", timeout=CLICK_NAVIGATION_TIMEOUT)
                self.human_delay(*SETTLE_DELAY)

                self.page.evaluate(f"() => window.scrollBy(0, window.innerHeight * {PRODUCT_SCROLL_FRACTION})")  # Glance at the product page
                self.human_delay(*PRODUCT_PAGE_DELAY)

                self.channel.send_voice_prompt(f"Successfully clicked and analyzed the first product on {profile.site_id}.")
                return COMPLETED
            except Exception as e:
                print(f"{BackgroundColors.YELLOW}Click error on {profile.site_id}: {e}{Style.RESET_ALL}")
                self.channel.send_status(f"✅ Product interaction completed on {site_name}")
                return INTERACTION_FAILED
        except Exception as e:
            print(f"{BackgroundColors.RED}First product click error on {profile.site_id}: {e}{Style.RESET_ALL}")
            self.channel.send_status(f"⚠️ Adapting strategy on {site_name}...")
            return INTERACTION_FAILED


    def find_product_link(self, product_element, profile):
        """
        Locates the clickable link inside a product card.

        :param product_element: The product card element
        :param profile: The SiteProfile of the site
        :return: The link element, or None if no link selector matched
        """

        for selector in profile.product_link_selectors:  # Link selectors in priority order
            try:
                product_link = product_element.query_selector(selector)
                if product_link:
                    return product_link
            except Exception as e:
                verbose_output(f"{BackgroundColors.YELLOW}Link selector {BackgroundColors.CYAN}{selector}{BackgroundColors.YELLOW} failed: {e}{Style.RESET_ALL}")

        return None


    def iter_texts(self, element, selectors):
        """
        Lazily yields the text of the first match of every selector inside an element,
        so the selection stops querying the page as soon as a candidate is accepted.

        :param element: The element to search in
        :param selectors: Selectors in priority order
        :return: Generator of raw text contents
        """

        for selector in selectors:
            try:
                child = element.query_selector(selector)
                if child is None:  # Selector absent from this card
                    continue
                text = child.text_content()
            except Exception as e:
                verbose_output(f"{BackgroundColors.YELLOW}Could not read {BackgroundColors.CYAN}{selector}{BackgroundColors.YELLOW}: {e}{Style.RESET_ALL}")
                continue
            yield text


    def extract_basic_product_data(self, product_element, profile, query: str) -> Optional[ExtractedProduct]:
        """
        Extracts the title and price of a product card.

        :param product_element: The product card element
        :param profile: The SiteProfile of the site
        :param query: The search query
        :return: The ExtractedProduct, or None if no valid title was found
        """

        try:
            title = select_title(self.iter_texts(product_element, TITLE_SELECTORS))
            if not title:  # Sponsored banners and placeholders have no real title
                verbose_output(f"{BackgroundColors.YELLOW}No valid title on the first {profile.site_id} product.{Style.RESET_ALL}")
                return None

            price = select_price(self.iter_texts(product_element, PRICE_SELECTORS))
            product = ExtractedProduct(title=title, price=price, source=profile.site_id, original_query=query, position=1)
            verbose_output(f"{BackgroundColors.GREEN}Extracted: {BackgroundColors.CYAN}{title}{BackgroundColors.GREEN} - {BackgroundColors.CYAN}{price}{Style.RESET_ALL}")
            return product
        except Exception as e:
            print(f"{BackgroundColors.YELLOW}Product extraction error on {profile.site_id}: {e}{Style.RESET_ALL}")
            return None


    def click_any_available_link(self, profile) -> bool:
        """
        Clicks the first available hyperlink of the page as a last resort.

        :param profile: The SiteProfile of the site
        :return: True if a link was clicked, False otherwise
        """

        site_name = profile.display_name.upper()
        self.channel.send_status(f"🔍 Looking for any clickable items on {site_name}...")

        for selector in GENERIC_LINK_SELECTORS:  # Most product-like links first
            try:
                elements = self.page.query_selector_all(selector)
                if elements:
                    self.channel.send_status(f"✅ Found {len(elements)} clickable items, clicking first one...")
                    elements[0].click()
                    self.human_delay(*SETTLE_DELAY)
                    return True
            except Exception as e:
                verbose_output(f"{BackgroundColors.YELLOW}Generic link {BackgroundColors.CYAN}{selector}{BackgroundColors.YELLOW} failed: {e}{Style.RESET_ALL}")

        self.channel.send_status(f"✅ Navigation completed on {site_name}")
        return False


    def build_analysis(self, query: str, products: List[ExtractedProduct]) -> AnalysisResult:
        """
        Builds the analysis of a flow from the extracted products.

        :param query: The search query
        :param products: The extracted products
        :return: The AnalysisResult
        """

        products = list(products)
        sites_searched = get_site_display_names(self.site_ids)  # Every configured site, whatever happened on it

        if products:  # Count based recommendation with the products embedded
            recommendation = f"Found {len(products)} products across {' and '.join(sites_searched)}"
            return AnalysisResult(
                original_query=query,
                total_products_found=len(products),
                sites_searched=sites_searched,
                recommendation=recommendation,
                products=products,
            )

        return AnalysisResult(  # Neutral message, never mixed with products
            original_query=query,
            total_products_found=0,
            sites_searched=sites_searched,
            recommendation=NEUTRAL_RECOMMENDATION,
        )


    def generate_final_analysis(self, query: str, session: SessionState) -> AnalysisResult:
        """
        Builds the analysis, stores it in the session and pushes it with a narration.

        :param query: The search query
        :param session: The state of the flow
        :return: The AnalysisResult
        """

        self.channel.send_status("📊 Generating comprehensive analysis...")

        analysis = self.build_analysis(query, session.products)
        session.analysis = analysis

        if analysis.products:  # Product list first, then the analysis
            self.channel.send_products([product.to_dict() for product in analysis.products])
        self.channel.send_analysis(analysis.to_dict())
        self.channel.send_voice_prompt(self.build_final_summary(query, analysis))

        return analysis


    def build_final_summary(self, query: str, analysis: AnalysisResult) -> str:
        """
        Builds the narration read to the user at the end of a flow.

        :param query: The search query
        :param analysis: The analysis of the flow
        :return: The narration text
        """

        summary = "Fully autonomous shopping search completed! "
        summary += f'I searched for "{query}" on {self.get_sites_text()} automatically. '

        if analysis.total_products_found > 0:
            summary += f"Found and analyzed {analysis.total_products_found} products. "
            summary += "I clicked on the first product from each platform and gathered the information. "

        summary += "I opened the sites, typed your exact input, scrolled through results and clicked products without any human intervention."
        return summary


    def get_sites_text(self) -> str:
        """
        Joins the display names of the configured sites for messages.

        :return: Text such as "Amazon and Flipkart"
        """

        return " and ".join(get_site_display_names(self.site_ids))


    def human_delay(self, min_ms: int = 1000, max_ms: int = 2000) -> int:
        """
        Waits a random time drawn uniformly from the inclusive millisecond range.

        :param min_ms: Minimum delay in milliseconds
        :param max_ms: Maximum delay in milliseconds
        :return: The waited delay in milliseconds
        """

        delay = random_delay_ms(min_ms, max_ms)
        self.sleep(delay / 1000.0)
        return delay


    def print_site_outcomes(self) -> None:
        """
        Prints the outcome of every site of the last flow.

        :return: None
        """

        for site_id, outcome in self.site_outcomes.items():
            color = BackgroundColors.GREEN if outcome == COMPLETED else BackgroundColors.YELLOW  # Failures stand out in the log
            print(f"{color}Site {BackgroundColors.CYAN}{site_id}{color}: {outcome}{Style.RESET_ALL}")


# Functions Definitions:


def verbose_output(true_string="", false_string=""):
    """
    Outputs a message if the VERBOSE constant is set to True.

    :param true_string: The string to be outputted if the VERBOSE constant is set to True.
    :param false_string: The string to be outputted if the VERBOSE constant is set to False.
    :return: None
    """

    if VERBOSE and true_string != "":  # If VERBOSE is True and a true_string was provided
        print(true_string)  # Output the true statement string
    elif false_string != "":  # If a false_string was provided
        print(false_string)  # Output the false statement string
