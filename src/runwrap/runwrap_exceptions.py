"""
This file contains various exceptions raised by runwrap.
"""


class RunwrapException(Exception):
    """
    Base exception for all runwrap errors.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(RunwrapException):
    """
    Raised when package metadata or a wrapper configuration is missing or malformed.
    """


class UnsupportedPlatformError(RunwrapException):
    """
    Raised when no binary is published for the host platform.
    """

    def __init__(self, platform_key: str):
        super().__init__(f"No binaries are available for your platform: {platform_key}")
        self.platform_key = platform_key


class DownloadError(RunwrapException):
    """
    Raised when a binary archive cannot be downloaded, extracted or verified.
    """
