"""
Tests for the AutonomousFlow phases, driven against an in-memory page.
"""

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from AutonomousFlow import (
    COMPLETED,
    INTERACTION_FAILED,
    NAVIGATION_FAILED,
    NEUTRAL_RECOMMENDATION,
    NO_PRODUCTS,
    SEARCH_FAILED,
    AutonomousFlow,
)
from fakes import FakeElement, FakePage
from product_utils import PRICE_NOT_AVAILABLE
from session_models import ExtractedProduct, SessionState
from site_profiles import get_site_profile


def build_results_page(amazon_title="Logitech M331 Silent Wireless Mouse", flipkart_title="HP X200 Wireless Optical Mouse"):
    """
    Builds a page where both search boxes exist and each site has one result card.

    :param amazon_title: Title text of the Amazon card
    :param flipkart_title: Title text of the Flipkart card
    :return: Tuple of (page, amazon search box, amazon link, flipkart link)
    """

    amazon_box = FakeElement()
    flipkart_box = FakeElement()
    amazon_link = FakeElement()
    flipkart_link = FakeElement()

    amazon_card = FakeElement(children={
        "h2 a span": FakeElement(amazon_title),
        ".a-price-whole": FakeElement("699"),  # No currency marker, skipped
        ".a-offscreen": FakeElement("₹699"),
        "h2 a": amazon_link,
    })
    flipkart_card = FakeElement(children={
        "._4rR01T": FakeElement(flipkart_title),
        "._30jeq3": FakeElement("₹649"),
        "a": flipkart_link,
    })

    page = FakePage(elements={
        "#twotabsearchtextbox": [amazon_box],
        'input[name="q"]': [flipkart_box],
        '[data-component-type="s-search-result"]': [amazon_card],
        "._1AtVbE": [flipkart_card],
    })
    return page, amazon_box, amazon_link, flipkart_link


def types_of(messages):
    """Returns the type of every message, in order."""
    return [message["type"] for message in messages]


class TestRunFlow:
    """End to end flows over both sites."""

    def test_unreachable_search_boxes_give_neutral_analysis(self, channel, messages, no_sleep):
        flow = AutonomousFlow(FakePage(), channel, sleep=no_sleep)

        analysis = flow.run_flow("wireless mouse")

        assert analysis.success is True
        assert analysis.total_products_found == 0
        assert analysis.recommendation == NEUTRAL_RECOMMENDATION
        assert analysis.sites_searched == ["Amazon", "Flipkart"]
        assert "products" not in analysis.to_dict()
        assert flow.site_outcomes == {"amazon": SEARCH_FAILED, "flipkart": SEARCH_FAILED}
        assert "products" not in types_of(messages)
        assert types_of(messages).count("analysis") == 1

    def test_products_of_both_sites(self, channel, messages, no_sleep):
        page, amazon_box, amazon_link, flipkart_link = build_results_page()
        flow = AutonomousFlow(page, channel, sleep=no_sleep)

        analysis = flow.run_flow("wireless mouse")

        assert page.visited == ["https://www.amazon.in", "https://www.flipkart.com"]
        assert amazon_box.typed == "wireless mouse"
        assert amazon_box.pressed == ["Enter"]
        assert amazon_link.clicks == 1
        assert flipkart_link.clicks == 1

        assert analysis.total_products_found == 2
        assert analysis.recommendation == "Found 2 products across Amazon and Flipkart"
        assert [product.source for product in analysis.products] == ["amazon", "flipkart"]
        assert analysis.products[0].price == "₹699"
        assert analysis.products[1].price == "₹649"
        assert flow.site_outcomes == {"amazon": COMPLETED, "flipkart": COMPLETED}

        kinds = types_of(messages)
        assert kinds.index("products") < kinds.index("analysis")  # Products are pushed before the analysis
        assert kinds[-1] == "voice_prompt"
        analysis_message = messages[kinds.index("analysis")]["analysis"]
        assert analysis_message["totalProductsFound"] == 2
        assert analysis_message["originalQuery"] == "wireless mouse"

    def test_navigation_failure_only_skips_that_site(self, channel, messages, no_sleep):
        page, _, amazon_link, flipkart_link = build_results_page()
        page.goto_errors["https://www.amazon.in"] = PlaywrightTimeoutError("Timeout 30000ms exceeded")
        flow = AutonomousFlow(page, channel, sleep=no_sleep)

        analysis = flow.run_flow("wireless mouse")

        assert flow.site_outcomes == {"amazon": NAVIGATION_FAILED, "flipkart": COMPLETED}
        assert amazon_link.clicks == 0
        assert flipkart_link.clicks == 1
        assert analysis.total_products_found == 1
        assert analysis.products[0].source == "flipkart"
        assert analysis.sites_searched == ["Amazon", "Flipkart"]  # Listed even when the site failed
        assert any("encountered issues" in message.get("message", "") for message in messages)

    def test_session_is_reset_and_released(self, channel, no_sleep):
        stale = ExtractedProduct(title="A stale product from before", price="₹1", source="amazon", original_query="old")
        session = SessionState(products=[stale], is_processing=True)
        flow = AutonomousFlow(FakePage(), channel, sleep=no_sleep)

        analysis = flow.run_flow("usb hub", session)

        assert session.products == []
        assert session.analysis is analysis
        assert session.is_processing is False

    def test_unexpected_error_still_returns_analysis(self, channel, messages, no_sleep, monkeypatch):
        flow = AutonomousFlow(FakePage(), channel, sleep=no_sleep)

        def broken_analysis(query, session):
            raise RuntimeError("broken")

        monkeypatch.setattr(flow, "generate_final_analysis", broken_analysis)
        analysis = flow.run_flow("usb hub")

        assert analysis.total_products_found == 0
        assert analysis.recommendation == NEUTRAL_RECOMMENDATION
        assert messages[-1] == {"type": "error", "message": "Flow encountered an issue: broken"}


class TestSearchPhase:
    """Search box lookup and submission."""

    def test_enter_failure_falls_back_to_button(self, channel, no_sleep):
        search_box = FakeElement(press_error=RuntimeError("Element is detached"))
        button = FakeElement()
        page = FakePage(elements={"#twotabsearchtextbox": [search_box], "#nav-search-submit-button": [button]})
        flow = AutonomousFlow(page, channel, sleep=no_sleep)

        assert flow.perform_search(get_site_profile("amazon"), "usb hub") is True
        assert button.clicks == 1
        assert search_box.typed == "usb hub"

    def test_enter_failure_without_button_fails(self, channel, no_sleep):
        search_box = FakeElement(press_error=RuntimeError("Element is detached"))
        page = FakePage(elements={'input[name="q"]': [search_box]})
        flow = AutonomousFlow(page, channel, sleep=no_sleep)

        assert flow.perform_search(get_site_profile("flipkart"), "usb hub") is False

    def test_network_idle_timeout_is_tolerated(self, channel, no_sleep):
        class SlowPage(FakePage):
            def wait_for_load_state(self, state, timeout=None):
                super().wait_for_load_state(state, timeout)
                raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded")

        search_box = FakeElement()
        page = SlowPage(elements={'input[name="q"]': [search_box]})
        flow = AutonomousFlow(page, channel, sleep=no_sleep)

        assert flow.perform_search(get_site_profile("flipkart"), "usb hub") is True
        assert page.load_states == ["networkidle"]
        assert search_box.pressed == ["Enter"]

    def test_results_are_scrolled_then_brought_back(self, channel, messages, no_sleep):
        page = FakePage()
        flow = AutonomousFlow(page, channel, sleep=no_sleep)

        flow.scroll_results(get_site_profile("amazon"))

        assert page.evaluated == ["() => window.scrollBy(0, window.innerHeight * 0.8)"] * 3 + ["() => window.scrollTo(0, 500)"]
        assert len(no_sleep.durations) == 4
        assert all(1.5 <= duration <= 2.5 for duration in no_sleep.durations[:3])
        assert messages[-1] == {"type": "status", "message": "✅ Products loaded on AMAZON"}

    def test_generic_search_box_fallback(self, channel, no_sleep):
        generic_box = FakeElement()
        page = FakePage(elements={'input[placeholder*="search"]': [generic_box]})
        flow = AutonomousFlow(page, channel, sleep=no_sleep)

        assert flow.find_search_box(get_site_profile("flipkart")) is generic_box

    def test_popup_is_dismissed(self, channel, messages, no_sleep):
        accept = FakeElement()
        page = FakePage(elements={'button:has-text("Accept")': [accept]})
        flow = AutonomousFlow(page, channel, sleep=no_sleep)

        assert flow.dismiss_popups() is True
        assert accept.clicks == 1
        assert {"type": "status", "message": "✅ Closed popup/banner"} in messages
        assert page.evaluated  # Overlays hidden afterwards


class TestProductPhase:
    """Product location, extraction and click."""

    def test_no_containers_clicks_any_link(self, channel, no_sleep):
        link = FakeElement()
        page = FakePage(elements={"a[href]": [link]})
        flow = AutonomousFlow(page, channel, sleep=no_sleep)
        session = SessionState()

        outcome = flow.click_first_product(get_site_profile("amazon"), "usb hub", session)

        assert outcome == NO_PRODUCTS
        assert link.clicks == 1
        assert session.products == []

    def test_short_title_records_nothing_but_clicks(self, channel, no_sleep):
        card = FakeElement(children={"h2": FakeElement("Sponsored"), ".a-offscreen": FakeElement("₹99")})
        page = FakePage(elements={'[data-component-type="s-search-result"]': [card]})
        flow = AutonomousFlow(page, channel, sleep=no_sleep)
        session = SessionState()

        outcome = flow.click_first_product(get_site_profile("amazon"), "usb hub", session)

        assert outcome == COMPLETED
        assert session.products == []
        assert card.clicks == 1  # No link inside, the card itself is clicked

    def test_missing_price_uses_sentinel(self, channel, no_sleep):
        card = FakeElement(children={"h2": FakeElement("Anker 4-Port USB 3.0 Hub"), ".a-price": FakeElement("Currently unavailable")})
        flow = AutonomousFlow(FakePage(), channel, sleep=no_sleep)

        product = flow.extract_basic_product_data(card, get_site_profile("amazon"), "usb hub")

        assert product.title == "Anker 4-Port USB 3.0 Hub"
        assert product.price == PRICE_NOT_AVAILABLE
        assert product.to_dict()["source"] == "amazon"
        assert "site" not in product.to_dict()
        assert product.to_dict()["originalQuery"] == "usb hub"

    def test_spread_out_short_title_is_rejected(self, channel, no_sleep):
        card = FakeElement(children={"h2": FakeElement("Buy\n\n\n\n\n\n\n\n Now"), ".a-offscreen": FakeElement("₹99")})
        flow = AutonomousFlow(FakePage(), channel, sleep=no_sleep)

        assert flow.extract_basic_product_data(card, get_site_profile("amazon"), "usb hub") is None

    def test_generic_containers_are_the_second_tier(self, channel, no_sleep):
        link = FakeElement()
        card = FakeElement(children={"h2": FakeElement("Anker 4-Port USB 3.0 Hub"), "h2 a": link})
        page = FakePage(elements={"[data-asin]": [card]})
        flow = AutonomousFlow(page, channel, sleep=no_sleep)
        session = SessionState()

        assert flow.find_product_containers(get_site_profile("amazon")) == [card]
        outcome = flow.click_first_product(get_site_profile("amazon"), "usb hub", session)

        assert outcome == COMPLETED
        assert session.products[0].title == "Anker 4-Port USB 3.0 Hub"
        assert link.clicks == 1
        assert page.load_states == ["domcontentloaded"]  # Waited for the product page

    def test_click_failure_is_interaction_failed(self, channel, no_sleep):
        link = FakeElement(click_error=RuntimeError("Element is not visible"))
        card = FakeElement(children={"h2 a span": FakeElement("Anker 4-Port USB 3.0 Hub"), "h2 a": link})
        page = FakePage(elements={'[data-component-type="s-search-result"]': [card]})
        flow = AutonomousFlow(page, channel, sleep=no_sleep)
        session = SessionState()

        outcome = flow.click_first_product(get_site_profile("amazon"), "usb hub", session)

        assert outcome == INTERACTION_FAILED
        assert len(session.products) == 1  # Extraction happens before the click


class TestHumanDelay:
    """Randomized waits."""

    def test_delay_within_bounds(self, channel, no_sleep):
        flow = AutonomousFlow(FakePage(), channel, sleep=no_sleep)

        delays = [flow.human_delay(2000, 3000) for _ in range(200)]

        assert all(2000 <= delay <= 3000 for delay in delays)
        assert no_sleep.durations == [delay / 1000.0 for delay in delays]
