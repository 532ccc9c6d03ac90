"""
product_utils.py — Product text normalization and candidate selection utilities

Author      : Breno Farias da Silva
Created     : 2026-02-16
Description :
    Small utility module that provides a single source-of-truth for turning the
    raw text read from search result cards into product fields, shared by the
    autonomous flow and its tests. The main exports are:

    - `normalize_product_text`, which normalizes non-breaking spaces to
      regular spaces and collapses consecutive whitespace.
    - `select_title`, which returns the first candidate whose trimmed text is
      strictly longer than MIN_TITLE_LENGTH characters.
    - `select_price`, which returns the first candidate containing the
      currency marker, or the PRICE_NOT_AVAILABLE sentinel.
    - `random_delay_ms`, the single uniform draw used for human-like pacing.

Usage:
    from product_utils import select_title, select_price
    title = select_title(["Buy", "A Great Wireless Headphone Set"])
    price = select_price(["Out of stock", "₹1,299"])

Dependencies:
    - Python standard library: `random`, `re`

Notes:
    - Candidates are evaluated strictly in the given order and the first
      accepted one short-circuits the rest.
"""


import random  # Used for the uniform human-like delay draw
import re  # Used for regex-based whitespace normalization


# Execution Constants:
VERBOSE = False  # Set to True to output verbose messages

# Extraction Constants:
MIN_TITLE_LENGTH = 10  # A title must be strictly longer than this after trimming
CURRENCY_MARKER = "₹"  # Both sites are browsed in their Indian storefronts
PRICE_NOT_AVAILABLE = "Price not available"  # Sentinel stored when no candidate has the currency marker


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


def normalize_product_text(raw_text) -> str:
    """
    Normalize the text content of a result card element.

    - Normalizes NBSP to a regular space.
    - Collapses consecutive whitespace (cards often split titles across lines).
    - Trims leading and trailing whitespace.

    :param raw_text: Raw text string (may be None, contain NBSP or extra spaces)
    :return: Normalized string, empty when the input is None
    """

    if raw_text is None:  # Handle None input gracefully by treating it as an empty string
        return ""  # Elements without text content return None from Playwright

    text = str(raw_text).replace("\u00A0", " ")  # Normalize NBSP (non-breaking space) to regular space
    text = re.sub(r"\s+", " ", text).strip()  # Collapse multiple spaces and trim leading/trailing whitespace

    return text  # Return the normalized text


def is_valid_title(candidate, min_length: int = MIN_TITLE_LENGTH) -> bool:
    """
    Verifies if a title candidate is long enough to be a real product title.

    :param candidate: Raw title text
    :param min_length: Length the normalized title must strictly exceed
    :return: True if the normalized candidate is longer than min_length, False otherwise
    """

    return candidate is not None and len(normalize_product_text(candidate)) > min_length  # Measured on the returned text, "Buy now!!!" is rejected


def is_valid_price(candidate, currency_marker: str = CURRENCY_MARKER) -> bool:
    """
    Verifies if a price candidate contains the currency marker.

    :param candidate: Raw price text
    :param currency_marker: Marker that must appear in the text
    :return: True if the candidate contains the marker, False otherwise
    """

    return candidate is not None and currency_marker in str(candidate)  # "Out of stock" and bare numbers are rejected


def select_title(candidates, min_length: int = MIN_TITLE_LENGTH):
    """
    Selects the first acceptable title from an ordered list of candidates.

    :param candidates: Iterable of raw title texts in selector priority order
    :param min_length: Length the normalized title must strictly exceed
    :return: The normalized title, or None if no candidate is acceptable
    """

    for candidate in candidates:  # Candidates are already in selector priority order
        if is_valid_title(candidate, min_length):  # First acceptable candidate wins
            title = normalize_product_text(candidate)  # Clean the card text
            verbose_output(f"Title accepted: {title}")  # Output the accepted title
            return title  # Short-circuit the remaining candidates

    return None  # No candidate long enough


def select_price(candidates, currency_marker: str = CURRENCY_MARKER) -> str:
    """
    Selects the first price candidate containing the currency marker.

    :param candidates: Iterable of raw price texts in selector priority order
    :param currency_marker: Marker that must appear in the text
    :return: The trimmed price, or PRICE_NOT_AVAILABLE if no candidate has the marker
    """

    for candidate in candidates:  # Candidates are already in selector priority order
        if is_valid_price(candidate, currency_marker):  # First candidate with the marker wins
            return str(candidate).strip()  # Keep the site formatting (e.g. "₹1,299")

    return PRICE_NOT_AVAILABLE  # Missing prices never abort the extraction


def random_delay_ms(min_ms: int, max_ms: int) -> int:
    """
    Draws a delay uniformly over the inclusive integer millisecond range.

    :param min_ms: Lower bound in milliseconds (inclusive)
    :param max_ms: Upper bound in milliseconds (inclusive)
    :return: The drawn delay in milliseconds
    """

    if min_ms > max_ms:  # Tolerate swapped bounds instead of raising inside a flow
        min_ms, max_ms = max_ms, min_ms  # Swap the bounds

    return random.randint(int(min_ms), int(max_ms))  # randint is inclusive on both ends
