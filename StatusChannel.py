"""
================================================================================
Status Channel
================================================================================
Author      : Breno Farias da Silva
Created     : 2026-10-02
Description :
    This script provides a StatusChannel class that pushes progress notifications
    of the autonomous shopping flow to the connected client. Every notification
    is a JSON-ready dictionary with a "type" key and is delivered in a
    fire-and-forget way: when no client is attached the notification is simply
    dropped, and failures of the underlying transport are ignored.

    Key features include:
        - At most one attached client; attaching a new one replaces the previous
        - Status, voice prompt, products, analysis and error notifications
        - Thread-safe attach/detach (notifications are raised from the browser worker)
        - Terminal echo of status, voice and error messages

Usage:
    1. Create the channel:
            channel = StatusChannel()
    2. Attach a client with a sender callable that accepts the message dictionary:
            channel.attach(websocket, sender)
    3. Push notifications:
            channel.send_status("Searching AMAZON...")

Dependencies:
    - Python >= 3.8
    - colorama

Assumptions & Notes:
    - Nothing is queued or retried
    - The sender must not block; the server schedules the real send on its event loop
"""

import threading  # For protecting the attached client reference
from colorama import Style  # For coloring the terminal
from typing import Any, Callable, Dict, Optional  # For type hints


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

# Notification Kinds:
STATUS = "status"  # Progress text
VOICE_PROMPT = "voice_prompt"  # Narration text read aloud by the client
PRODUCTS = "products"  # List of extracted products
ANALYSIS = "analysis"  # Final analysis of the flow
ERROR = "error"  # Error text

NOTIFICATION_KINDS = (STATUS, VOICE_PROMPT, PRODUCTS, ANALYSIS, ERROR)  # Every kind the client understands


# Classes Definitions:


class StatusChannel:
    """
    Push channel between the server and the single attached client.

    :return: None
    """


    def __init__(self) -> None:
        """
        Initializes the channel without any attached client.

        :return: None
        """

        self.client: Optional[Any] = None  # Identity of the attached client (e.g. the WebSocket)
        self.sender: Optional[Callable[[Dict[str, Any]], Any]] = None  # Callable delivering one message
        self.lock = threading.Lock()  # Attach/detach happen on the event loop, notify on the browser worker


    def attach(self, client: Any, sender: Callable[[Dict[str, Any]], Any]) -> None:
        """
        Attaches a client, replacing any previously attached one.

        :param client: The client identity (used by detach)
        :param sender: Callable receiving the message dictionary
        :return: None
        """

        with self.lock:
            self.client = client  # No handoff of in-flight state to the new client
            self.sender = sender
        verbose_output(f"{BackgroundColors.GREEN}Client attached to the status channel.{Style.RESET_ALL}")


    def detach(self, client: Any = None) -> bool:
        """
        Detaches the client. When a client is given, it is only detached if it is
        still the attached one, so a late disconnect can't drop its replacement.

        :param client: The client to detach, or None to detach whatever is attached
        :return: True if a client was detached, False otherwise
        """

        with self.lock:
            if self.client is None:  # Nothing attached
                return False
            if client is not None and client is not self.client:  # Already replaced by a newer client
                return False
            self.client = None
            self.sender = None
        verbose_output(f"{BackgroundColors.GREEN}Client detached from the status channel.{Style.RESET_ALL}")
        return True


    @property
    def is_attached(self) -> bool:
        """
        Whether a client is currently attached.

        :return: True if a client is attached, False otherwise
        """

        with self.lock:
            return self.sender is not None


    def notify(self, kind: str, payload: Dict[str, Any]) -> bool:
        """
        Delivers a notification to the attached client, if any.

        :param kind: Notification kind (one of NOTIFICATION_KINDS)
        :param payload: Remaining keys of the message (e.g. {"message": "..."})
        :return: True if the message was handed to the sender, False if it was dropped
        """

        if kind not in NOTIFICATION_KINDS:  # Programming error, never reaches the client
            raise ValueError(f"Unknown notification kind: {kind}")

        with self.lock:
            sender = self.sender  # Read once; the client may be replaced while sending

        if sender is None:  # No client attached, drop the notification
            verbose_output(f"{BackgroundColors.YELLOW}No client attached, dropping {BackgroundColors.CYAN}{kind}{BackgroundColors.YELLOW} notification.{Style.RESET_ALL}")
            return False

        message = {"type": kind}  # Every message starts with its type
        message.update(payload)  # Followed by the kind specific keys

        try:  # Delivery is best-effort
            sender(message)
            return True
        except Exception as e:  # The client may have gone away in the meantime
            verbose_output(f"{BackgroundColors.YELLOW}Failed to deliver {BackgroundColors.CYAN}{kind}{BackgroundColors.YELLOW} notification: {e}{Style.RESET_ALL}")
            return False


    def send_status(self, message: str) -> bool:
        """
        Sends a status message.

        :param message: The status text
        :return: True if delivered to the sender, False otherwise
        """

        print(f"{BackgroundColors.GREEN}Status: {BackgroundColors.CYAN}{message}{Style.RESET_ALL}")  # Echo on the terminal
        return self.notify(STATUS, {"message": message})


    def send_voice_prompt(self, message: str) -> bool:
        """
        Sends a narration text for the client to read aloud.

        :param message: The narration text
        :return: True if delivered to the sender, False otherwise
        """

        print(f"{BackgroundColors.GREEN}Voice: {BackgroundColors.CYAN}{message}{Style.RESET_ALL}")  # Echo on the terminal
        return self.notify(VOICE_PROMPT, {"message": message})


    def send_products(self, products) -> bool:
        """
        Sends the list of extracted products.

        :param products: List of product dictionaries
        :return: True if delivered to the sender, False otherwise
        """

        return self.notify(PRODUCTS, {"products": products})


    def send_analysis(self, analysis) -> bool:
        """
        Sends the final analysis of a flow.

        :param analysis: The analysis dictionary
        :return: True if delivered to the sender, False otherwise
        """

        return self.notify(ANALYSIS, {"analysis": analysis})


    def send_error(self, message: str) -> bool:
        """
        Sends an error message.

        :param message: The error text
        :return: True if delivered to the sender, False otherwise
        """

        print(f"{BackgroundColors.RED}Error: {message}{Style.RESET_ALL}")  # Echo on the terminal
        return self.notify(ERROR, {"message": message})


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
