"""
================================================================================
Logger Utility
================================================================================
Author      : Breno Farias da Silva
Created     : 2026-10-02
Description :
    Small stream wrapper that duplicates everything written to the terminal into
    a log file. It is meant to replace sys.stdout and sys.stderr so that every
    print() of the program (status messages, warnings and errors) also ends up
    in ./Logs/{module}.log without changing the call sites.

    Key features include:
        - Tee of terminal output into a log file
        - ANSI color codes stripped from the file copy
        - Optional truncation of the log file on startup

Usage:
    logger = Logger("./Logs/main.log", clean=True)
    sys.stdout = logger
    sys.stderr = logger

Dependencies:
    - Python >= 3.8

Assumptions & Notes:
    - The log directory is created automatically
    - The original terminal stream is kept and written first
"""

import os  # For creating the log directory
import re  # For stripping ANSI color codes
import sys  # For accessing the original terminal stream


# Execution Constants:
ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")  # Matches ANSI color and cursor sequences


# Classes Definitions:


class Logger:
    """
    Writes every message both to the terminal and to a log file.

    :return: None
    """


    def __init__(self, logfile, clean=False, terminal=None):
        """
        Initializes the Logger, creating the log directory when needed.

        :param logfile: Path to the log file
        :param clean: If True, truncate the log file instead of appending
        :param terminal: Stream to mirror the output to (defaults to sys.__stdout__)
        :return: None
        """

        self.logfile = logfile  # Store the log file path
        self.terminal = terminal if terminal is not None else sys.__stdout__  # Original terminal stream

        log_directory = os.path.dirname(logfile)  # Directory holding the log file
        if log_directory:  # Only create when the path has a directory part
            os.makedirs(log_directory, exist_ok=True)  # Create the log directory if it doesn't exist

        self.logfile_handle = open(logfile, "w" if clean else "a", encoding="utf-8")  # Open the log file


    def write(self, message):
        """
        Writes a message to the terminal and, without colors, to the log file.

        :param message: The message to be written
        :return: None
        """

        if self.terminal is not None:  # The terminal may be missing (e.g. pythonw)
            self.terminal.write(message)  # Keep colors on the terminal
            self.terminal.flush()

        if self.logfile_handle and not self.logfile_handle.closed:  # Skip writes after close()
            self.logfile_handle.write(ANSI_ESCAPE_PATTERN.sub("", message))  # Strip colors for the file
            self.logfile_handle.flush()


    def flush(self):
        """
        Flushes both streams.

        :return: None
        """

        if self.terminal is not None:
            self.terminal.flush()
        if self.logfile_handle and not self.logfile_handle.closed:
            self.logfile_handle.flush()


    def isatty(self):
        """
        Reports whether the mirrored terminal is interactive (uvicorn checks it for colors).

        :return: True if the terminal stream is a TTY, False otherwise
        """

        return bool(self.terminal is not None and hasattr(self.terminal, "isatty") and self.terminal.isatty())


    def close(self):
        """
        Closes the log file handle.

        :return: None
        """

        if self.logfile_handle and not self.logfile_handle.closed:
            self.logfile_handle.close()
