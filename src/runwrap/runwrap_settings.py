"""
Fixed settings shared by the runwrap components.
"""

import pathlib


class RunwrapSettings:
    """
    Provides the directory and file names used when installing wrapped binaries.
    """

    UNPACKED_DIRECTORY_NAME = "unpacked_bin"
    SOURCE_URL_MARKER = ".source-url"
    USER_AGENT = "runwrap"

    @staticmethod
    def get_default_install_directory(dirname: str) -> pathlib.Path:
        """
        Returns the directory binaries are unpacked into when no override is configured
        """
        return pathlib.Path(dirname) / RunwrapSettings.UNPACKED_DIRECTORY_NAME
