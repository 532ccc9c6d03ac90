"""
================================================================================
Shopkeeper AI - Autonomous Shopping Navigator
================================================================================
Author      : Breno Farias da Silva
Created     : <2026-10-02>
Description :
    This script is the server of the Shopkeeper AI autonomous shopping
    navigator. It serves a small landing page, accepts one WebSocket client at a
    time and, when the client sends a search command, drives a real Chromium
    window through Amazon and then Flipkart, typing the exact query, scrolling
    the results and clicking the first product of each site while pushing
    status, narration and analysis messages back to the client.

    Key features include:
        - Landing page served over HTTP (GET /)
        - WebSocket push channel (/ws) with status, voice_prompt, products,
          analysis and error messages
        - Lazy browser launch on the first client connection
        - Single flow at a time; concurrent requests are rejected
        - Graceful shutdown releasing the browser on SIGINT/SIGTERM

Usage:
    1. Optionally configure the .env file (HOST, PORT, HEADLESS, VERBOSE, ...).
    2. Install the browser once:
            $ playwright install chromium
    3. Run the server:
            $ python main.py   or   $ shopkeeper
    4. Open http://localhost:3000 and start a search.

Outputs:
    - Messages pushed to the connected client
    - Logs in ./Logs/ for execution details

TODOs:
    - Cancel a running flow when its client disconnects
    - Stop a running flow on shutdown: the browser worker thread is joined at
      interpreter exit, so SIGINT only completes once the current flow ends

Dependencies:
    - Python >= 3.8
    - fastapi, uvicorn for the HTTP and WebSocket server
    - playwright for browser automation
    - colorama for terminal coloring
    - python-dotenv for environment variables

Assumptions & Notes:
    - Only one client is served at a time; a new connection replaces the previous one
    - Every browser call runs on one dedicated worker thread (Playwright sync API)
    - Nothing is persisted across restarts
"""

import asyncio  # For the event loop integration of the browser worker
import datetime  # For getting the current date and time
import json  # For parsing the client messages
import os  # For reading the environment variables
import sys  # For system-specific parameters and functions
import uvicorn  # ASGI server running the FastAPI application
from AutonomousFlow import AutonomousFlow  # Import the AutonomousFlow class
from Browser import Browser  # Import the Browser class
from colorama import Style  # For coloring the terminal
from concurrent.futures import ThreadPoolExecutor  # For the dedicated browser worker thread
from contextlib import asynccontextmanager  # For the application lifespan
from dotenv import load_dotenv  # For loading environment variables
from fastapi import FastAPI, WebSocket, WebSocketDisconnect  # HTTP and WebSocket server
from fastapi.middleware.cors import CORSMiddleware  # For accepting pages served elsewhere
from fastapi.responses import FileResponse  # For serving the landing page
from Logger import Logger  # For logging output to both terminal and file
from pathlib import Path  # For handling file paths
from session_models import SessionState  # Request-scoped flow state
from StatusChannel import StatusChannel  # Import the StatusChannel class


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
VERBOSE_MODULES = ("__main__", "main", "AutonomousFlow", "Browser", "StatusChannel", "product_utils")  # Modules following the VERBOSE environment variable

# File Path Constants:
ENV_PATH = "./.env"  # The path to the .env file
STATIC_DIRECTORY = Path(__file__).parent / "static"  # Directory holding the landing page
INDEX_FILE = STATIC_DIRECTORY / "index.html"  # The landing page
LOGS_DIRECTORY = "./Logs/"  # The path to the logs directory

# Server Constants:
DEFAULT_HOST = "0.0.0.0"  # Listen on every interface
DEFAULT_PORT = 3000  # HTTP and WebSocket port
SHUTDOWN_TIMEOUT = 30  # Seconds to wait for the browser worker when shutting down

# Message Constants:
START_SEARCH = "start_universal_search"  # The only inbound command
READY_MESSAGE = "🤖 Shopkeeper AI Ready - Amazon → Flipkart Flow Prepared"
ALREADY_RUNNING_MESSAGE = "Autonomous flow already in progress"
UNKNOWN_MESSAGE = "Unknown message type"
INVALID_MESSAGE = "Invalid message format"
INVALID_QUERY_MESSAGE = "Query must be a non-empty string"
BROWSER_FAILURE_MESSAGE = "Failed to initialize browser automation"


# Classes Definitions:


class ProcessHost:
    """
    Owns the browser and the status channel, and maps client commands to flows.

    :return: None
    """


    def __init__(self, browser_factory=Browser, flow_factory=AutonomousFlow) -> None:
        """
        Initializes the host without launching the browser.

        :param browser_factory: Callable creating the Browser (launched lazily)
        :param flow_factory: Callable creating the flow from (page, channel)
        :return: None
        """

        self.channel = StatusChannel()  # Push channel to the single client
        self.browser_factory = browser_factory  # Creates the browser on the first connection
        self.flow_factory = flow_factory  # Creates one flow per search
        self.browser = None  # Launched browser, None until the first client connects
        self.browser_launch = None  # Task of the launch in flight, shared by concurrent callers
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="browser")  # Every Playwright call runs here
        self.is_processing = False  # True while a flow is running
        self.session_data = SessionState()  # State of the last flow
        self.flow_future = None  # Future of the running flow
        self.is_shut_down = False  # Shutdown runs once


    async def attach_client(self, websocket: WebSocket) -> None:
        """
        Attaches a connected client and launches the browser on the first connection.

        :param websocket: The accepted WebSocket
        :return: None
        """

        print(f"{BackgroundColors.GREEN}📱 Client connected{Style.RESET_ALL}")
        self.channel.attach(websocket, make_websocket_sender(websocket, asyncio.get_running_loop()))

        if self.browser is None:  # Acquire the browser once, lazily
            if await self.initialize_browser():
                self.channel.send_status(READY_MESSAGE)
            else:
                self.channel.send_error(BROWSER_FAILURE_MESSAGE)


    def detach_client(self, websocket: WebSocket) -> None:
        """
        Detaches a disconnected client (a newer client stays attached).

        :param websocket: The disconnected WebSocket
        :return: None
        """

        if self.channel.detach(websocket):
            print(f"{BackgroundColors.YELLOW}📴 Client disconnected{Style.RESET_ALL}")


    async def initialize_browser(self) -> bool:
        """
        Acquires the browser. Callers arriving while a launch is in flight wait for
        that same launch, so at most one browser is ever started.

        :return: True if the browser is ready, False otherwise
        """

        if self.browser is not None:  # Already acquired
            return True

        if self.browser_launch is None:  # First caller starts the launch, later ones share it
            self.browser_launch = asyncio.get_running_loop().create_task(self.launch_browser())
        launch = self.browser_launch

        try:
            return await asyncio.shield(launch)  # A disconnecting client doesn't cancel the shared launch
        finally:
            if launch.done() and self.browser_launch is launch:  # A failed launch may be retried later
                self.browser_launch = None


    async def launch_browser(self) -> bool:
        """
        Launches the browser on the browser worker.

        :return: True if the browser is ready, False otherwise
        """

        browser = self.browser_factory()
        try:  # Launch failures are reported, not raised
            await asyncio.get_running_loop().run_in_executor(self.executor, browser.launch_browser)
        except Exception as e:
            print(f"{BackgroundColors.RED}❌ Browser initialization failed: {e}{Style.RESET_ALL}")
            return False

        self.browser = browser
        print(f"{BackgroundColors.GREEN}✅ Browser automation initialized successfully{Style.RESET_ALL}")
        return True


    async def handle_raw_message(self, raw_message: str) -> bool:
        """
        Parses a raw client message and handles it.

        :param raw_message: The text received from the client
        :return: True if a flow was started, False otherwise
        """

        try:
            data = json.loads(raw_message)
        except ValueError:  # Not JSON at all
            self.channel.send_error(INVALID_MESSAGE)
            return False

        if not isinstance(data, dict):  # JSON but not an object
            self.channel.send_error(INVALID_MESSAGE)
            return False

        return await self.handle_message(data)


    async def handle_message(self, data: dict) -> bool:
        """
        Maps a client command to its action.

        :param data: The parsed client message
        :return: True if a flow was started, False otherwise
        """

        try:  # Errors are reported to the client, the connection stays open
            message_type = data.get("type")
            if message_type != START_SEARCH:  # The only supported command
                self.channel.send_error(UNKNOWN_MESSAGE)
                return False

            if self.is_processing:  # Rejected, never queued
                self.channel.send_error(ALREADY_RUNNING_MESSAGE)
                return False

            query = data.get("query")
            if not isinstance(query, str) or not query.strip():  # Malformed payload, state untouched
                self.channel.send_error(INVALID_QUERY_MESSAGE)
                return False

            self.is_processing = True  # Claimed before any await so a second command is rejected
            if self.browser is None and not await self.initialize_browser():  # Launch failed on connection
                self.is_processing = False
                self.channel.send_error(BROWSER_FAILURE_MESSAGE)
                return False

            self.start_flow(query)
            return True
        except Exception as e:
            print(f"{BackgroundColors.RED}Message handling error: {e}{Style.RESET_ALL}")
            self.channel.send_error(f"Processing error: {e}")
            return False


    def start_flow(self, query: str):
        """
        Starts a flow on the browser worker without waiting for it.

        :param query: The search query
        :return: The asyncio future of the flow
        """

        self.is_processing = True
        session = SessionState(is_processing=True)  # Fresh state for this request
        self.session_data = session

        self.flow_future = asyncio.get_running_loop().run_in_executor(self.executor, self.run_flow, query, session)
        self.flow_future.add_done_callback(self.on_flow_done)
        return self.flow_future


    def run_flow(self, query: str, session: SessionState):
        """
        Runs a flow; called on the browser worker.

        :param query: The search query
        :param session: The state of this flow
        :return: The AnalysisResult of the flow
        """

        flow = self.flow_factory(self.browser.page, self.channel)  # The page is passed by reference
        return flow.run_flow(query, session)


    def on_flow_done(self, future) -> None:
        """
        Releases the processing flag when a flow ends.

        :param future: The finished flow future
        :return: None
        """

        self.is_processing = False
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:  # run_flow never raises; this is a defect
            print(f"{BackgroundColors.RED}Autonomous flow crashed: {error}{Style.RESET_ALL}")
            self.channel.send_error(f"Flow encountered an issue: {error}")


    async def shutdown(self) -> None:
        """
        Releases the browser, detaches the client and stops the browser worker.

        :return: None
        """

        if self.is_shut_down:  # Lifespan and main() may both call it
            return
        self.is_shut_down = True

        print(f"{BackgroundColors.YELLOW}🛑 Shutting down Shopkeeper AI server...{Style.RESET_ALL}")
        self.channel.detach()  # Nothing is sent during shutdown

        if self.browser_launch is not None:  # A launch still in flight would leave an unowned browser behind
            try:
                await asyncio.wait_for(asyncio.shield(self.browser_launch), timeout=SHUTDOWN_TIMEOUT)
            except Exception as e:
                print(f"{BackgroundColors.YELLOW}Browser launch did not finish before shutdown: {e}{Style.RESET_ALL}")

        if self.browser is not None:  # Close on the thread that launched it
            try:
                close_future = asyncio.get_running_loop().run_in_executor(self.executor, self.browser.close_browser)
                await asyncio.wait_for(close_future, timeout=SHUTDOWN_TIMEOUT)  # Queued behind a running flow
            except asyncio.TimeoutError:
                print(f"{BackgroundColors.YELLOW}Browser still busy after {SHUTDOWN_TIMEOUT}s, leaving it to the process exit.{Style.RESET_ALL}")
            except Exception as e:
                print(f"{BackgroundColors.RED}Cleanup error: {e}{Style.RESET_ALL}")
            self.browser = None

        self.executor.shutdown(wait=False)
        print(f"{BackgroundColors.GREEN}✅ Shopkeeper AI server shutdown complete{Style.RESET_ALL}")


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


def make_websocket_sender(websocket: WebSocket, loop):
    """
    Builds the StatusChannel sender of a WebSocket. The sender may be called from
    any thread; the send is scheduled on the event loop and not awaited.

    :param websocket: The accepted WebSocket
    :param loop: The event loop serving the WebSocket
    :return: Callable receiving the message dictionary
    """

    def report_failure(future):
        if not future.cancelled() and future.exception() is not None:  # Client gone while sending
            verbose_output(f"{BackgroundColors.YELLOW}WebSocket send failed: {future.exception()}{Style.RESET_ALL}")

    def sender(message):
        future = asyncio.run_coroutine_threadsafe(websocket.send_json(message), loop)
        future.add_done_callback(report_failure)

    return sender


def create_app(host: ProcessHost = None) -> FastAPI:
    """
    Creates the FastAPI application serving the landing page and the WebSocket.

    :param host: The ProcessHost (a new one is created when None)
    :return: The FastAPI application
    """

    host = host if host is not None else ProcessHost()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        print(f"{BackgroundColors.GREEN}🎯 WebSocket endpoint ready at {BackgroundColors.CYAN}/ws{Style.RESET_ALL}")
        try:
            yield
        finally:
            await host.shutdown()  # Also runs on SIGINT/SIGTERM handled by uvicorn

    app = FastAPI(title="Shopkeeper AI", description="Autonomous Amazon → Flipkart shopping navigator", lifespan=lifespan)
    app.state.host = host
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.get("/")
    async def index():
        return FileResponse(str(INDEX_FILE))

    @app.websocket("/ws")
    async def shopkeeper_websocket(websocket: WebSocket):
        await websocket.accept()
        await host.attach_client(websocket)
        try:
            while True:  # Keep connection alive and listen for client messages
                raw_message = await websocket.receive_text()
                verbose_output(f"{BackgroundColors.GREEN}Received from client: {BackgroundColors.CYAN}{raw_message}{Style.RESET_ALL}")
                await host.handle_raw_message(raw_message)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            print(f"{BackgroundColors.RED}WebSocket error: {e}{Style.RESET_ALL}")
        finally:
            host.detach_client(websocket)

    return app


app = create_app()  # Application served by uvicorn


def verify_dot_env_file():
    """
    Verifies if the .env file exists in the current directory.

    :return: True if the .env file exists, False otherwise
    """

    verbose_output(
        f"{BackgroundColors.GREEN}Verifying if the {BackgroundColors.CYAN}.env{BackgroundColors.GREEN} file exists...{Style.RESET_ALL}"
    )  # Output the verbose message

    if not os.path.exists(ENV_PATH):  # If the .env file does not exist
        print(f"{BackgroundColors.CYAN}.env{BackgroundColors.YELLOW} file not found at {BackgroundColors.CYAN}{ENV_PATH}{BackgroundColors.YELLOW}, using defaults.{Style.RESET_ALL}")
        return False  # Return False

    return True  # Return True if the .env file exists


def apply_verbose_setting():
    """
    Sets the VERBOSE constant of every module from the VERBOSE environment variable.

    :return: True if verbose output is enabled, False otherwise
    """

    verbose = os.getenv("VERBOSE", "False").lower() == "true"  # Verbose flag from the environment
    for module_name in VERBOSE_MODULES:  # Only the modules already imported
        module = sys.modules.get(module_name)
        if module is not None:
            module.VERBOSE = verbose

    return verbose


def calculate_execution_time(start_time, finish_time):
    """
    Calculates the execution time and returns a human-readable string.

    :param start_time: The start datetime
    :param finish_time: The finish datetime
    :return: A string like "1h 2m 3s"
    """

    total_seconds = abs(int((finish_time - start_time).total_seconds()))  # Whole seconds elapsed
    hours, remainder = divmod(total_seconds, 3600)  # Compute full hours
    minutes, seconds = divmod(remainder, 60)  # Compute remaining minutes and seconds

    if hours > 0:  # Include hours when present
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:  # Include minutes when present
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"  # Fallback: only seconds


def main():
    """
    Main function.

    :param: None
    :return: None
    """

    logger = Logger(f"{LOGS_DIRECTORY}{Path(__file__).stem}.log", clean=True)  # Create a Logger instance
    sys.stdout = logger  # Redirect stdout to the logger
    sys.stderr = logger  # Redirect stderr to the logger

    print(
        f"{BackgroundColors.CLEAR_TERMINAL}{BackgroundColors.BOLD}{BackgroundColors.GREEN}Welcome to the {BackgroundColors.CYAN}Shopkeeper AI{BackgroundColors.GREEN} program!{Style.RESET_ALL}",
        end="\n",
    )  # Output the welcome message
    start_time = datetime.datetime.now()  # Get the start time of the program

    if verify_dot_env_file():  # The .env file is optional
        load_dotenv(ENV_PATH)  # Load environment variables
    apply_verbose_setting()

    server_host = os.getenv("HOST", DEFAULT_HOST)  # Interface to listen on
    server_port = int(os.getenv("PORT", str(DEFAULT_PORT)))  # Port of the HTTP and WebSocket server

    print(f"{BackgroundColors.GREEN}🌐 Open {BackgroundColors.CYAN}http://localhost:{server_port}{BackgroundColors.GREEN} to start autonomous shopping{Style.RESET_ALL}")

    try:  # uvicorn handles SIGINT/SIGTERM and runs the lifespan shutdown
        uvicorn.run(app, host=server_host, port=server_port)
    except Exception as e:  # Uncaught top-level errors follow the same shutdown path
        print(f"{BackgroundColors.RED}❌ Server error: {e}{Style.RESET_ALL}")
        asyncio.run(app.state.host.shutdown())

    finish_time = datetime.datetime.now()  # Get the finish time of the program
    print(
        f"{BackgroundColors.GREEN}Execution time: {BackgroundColors.CYAN}{calculate_execution_time(start_time, finish_time)}{Style.RESET_ALL}"
    )  # Output the execution time
    print(
        f"{BackgroundColors.BOLD}{BackgroundColors.GREEN}Program finished.{Style.RESET_ALL}"
    )  # Output the end of the program message

    sys.stdout = sys.__stdout__  # Restore the terminal streams before closing the log
    sys.stderr = sys.__stderr__
    logger.close()


if __name__ == "__main__":
    """
    This is the standard boilerplate that calls the main() function.

    :return: None
    """

    main()  # Call the main function
