"""
================================================================================
Browser Session
================================================================================
Author      : Breno Farias da Silva
Created     : 2026-10-02
Description :
    This script provides a Browser class that owns the single Chromium instance
    driven by the autonomous shopping flow: the Playwright runtime, the browser,
    one browser context and one page. The page is the only shared resource of
    the program and is handed by reference to the flow, never cloned.

    Key features include:
        - Chromium launch with configurable headless mode and executable
        - Browser context with desktop viewport, user agent and locale
        - Init script masking the navigator.webdriver flag
        - Safe, idempotent shutdown of page, context, browser and Playwright

Usage:
    1. Create an instance:
            browser = Browser()
    2. Launch it and use the page:
            page = browser.launch_browser()
    3. Close it when done:
            browser.close_browser()

Dependencies:
    - Python >= 3.8
    - playwright
    - colorama

Assumptions & Notes:
    - Playwright's sync API is bound to the thread that started it; launch, use
      and close the browser from the same thread
    - Environment variables are read when the instance is created, after .env was loaded
"""

import os  # For reading the browser environment variables
from colorama import Style  # For coloring the terminal
from playwright.sync_api import sync_playwright  # For browser automation
from typing import Any, Optional  # For type hints


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

# Browser Constants:
DEFAULT_LOCALE = "en-IN"  # Both sites are browsed in their Indian storefronts
VIEWPORT = {"width": 1920, "height": 1080}  # Standard Full HD resolution
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"  # Desktop Chrome user agent
LAUNCH_ARGS = [
    "--start-maximized",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
]  # Chromium command line flags
INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
"""  # Script evaluated before any page script runs


# Classes Definitions:


class Browser:
    """
    Owner of the Playwright runtime, browser, context and the single active page.

    :return: None
    """


    def __init__(self, headless: Optional[bool] = None, executable_path: Optional[str] = None, locale: Optional[str] = None) -> None:
        """
        Initializes the browser settings. Unset values are read from the environment.

        :param headless: Run without a visible window (env HEADLESS, default False)
        :param executable_path: Custom Chrome executable (env CHROME_EXECUTABLE_PATH)
        :param locale: Browser locale (env BROWSER_LOCALE, default "en-IN")
        :return: None
        """

        self.headless: bool = headless if headless is not None else os.getenv("HEADLESS", "False").lower() == "true"  # Headless mode flag
        self.executable_path: str = executable_path if executable_path is not None else os.getenv("CHROME_EXECUTABLE_PATH", "")  # Path to Chrome executable
        self.locale: str = locale or os.getenv("BROWSER_LOCALE", DEFAULT_LOCALE)  # Browser locale
        self.playwright: Optional[Any] = None  # Placeholder for Playwright instance
        self.browser: Optional[Any] = None  # Placeholder for browser instance
        self.context: Optional[Any] = None  # Placeholder for browser context
        self.page: Optional[Any] = None  # Placeholder for page object


    @property
    def is_launched(self) -> bool:
        """
        Whether the browser was launched and its page is still open.

        :return: True if the page is usable, False otherwise
        """

        return self.page is not None and not self.page.is_closed()


    def launch_browser(self):
        """
        Launches Chromium and opens the single page used by the flows.

        :return: The Playwright page
        :raises Exception: If the browser or page could not be created
        """

        if self.is_launched:  # Acquire the browser only once
            return self.page

        verbose_output(f"{BackgroundColors.GREEN}Launching Chromium browser...{Style.RESET_ALL}")
        try:  # Attempt to launch browser with error handling
            self.playwright = sync_playwright().start()  # Start Playwright synchronous runtime
            launch_options = {"headless": self.headless, "args": list(LAUNCH_ARGS)}  # Configure browser launch options
            if self.executable_path:  # Verify if custom Chrome executable path is provided
                launch_options["executable_path"] = self.executable_path  # Set custom executable path in launch options
                verbose_output(f"{BackgroundColors.GREEN}Using Chrome executable: {BackgroundColors.CYAN}{self.executable_path}{Style.RESET_ALL}")
            self.browser = self.playwright.chromium.launch(**launch_options)  # Launch Chromium browser with configured options
            if self.browser is None:  # Verify browser instance was created successfully
                raise Exception("Failed to initialize browser")
            self.context = self.browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT, locale=self.locale)  # Desktop context for Indian storefronts
            self.context.add_init_script(INIT_SCRIPT)  # Mask the automation flags on every page
            self.page = self.context.new_page()  # Create the single browser page/tab
            if self.page is None:  # Verify page instance was created successfully
                raise Exception("Failed to create page")
            verbose_output(f"{BackgroundColors.GREEN}Browser launched successfully.{Style.RESET_ALL}")
            return self.page
        except Exception as e:
            print(f"{BackgroundColors.RED}Failed to launch browser: {e}{Style.RESET_ALL}")
            self.close_browser()  # Release whatever was started before the failure
            raise


    def close_browser(self) -> None:
        """
        Safely closes the page, context, browser and Playwright instances.

        :return: None
        """

        verbose_output(f"{BackgroundColors.GREEN}Closing browser...{Style.RESET_ALL}")
        try:  # Attempt to close browser resources with error handling
            if self.page and not self.page.is_closed():  # Verify if page instance exists before closing
                self.page.close()  # Close the browser page to release resources
            if self.context:  # Verify if context instance exists before closing
                self.context.close()  # Close the context and its remaining pages
            if self.browser:  # Verify if browser instance exists before closing
                self.browser.close()  # Close the browser to release resources
            if self.playwright:  # Verify if Playwright instance exists before stopping
                self.playwright.stop()  # Stop the Playwright instance
            verbose_output(f"{BackgroundColors.GREEN}Browser closed successfully.{Style.RESET_ALL}")
        except Exception as e:
            print(f"{BackgroundColors.YELLOW}Warning during browser close: {e}{Style.RESET_ALL}")
        finally:
            self.page = None  # The handles are unusable after close
            self.context = None
            self.browser = None
            self.playwright = None


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
