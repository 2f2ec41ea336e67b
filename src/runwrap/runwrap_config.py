"""
Configuration parameters for runwrap.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from runwrap.runwrap_exceptions import ConfigurationError

ENV_INSTALL_DIR = "RUNWRAP_INSTALL_DIR"
ENV_TIMEOUT = "RUNWRAP_TIMEOUT"

DEFAULT_TIMEOUT = 60.0


@dataclass
class RunwrapConfig:
    """
    Configuration parameters
    """

    install_dir: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    force_download: bool = False

    @classmethod
    def from_dict(cls, env: dict):
        """
        Create a RunwrapConfig instance from a dictionary
        """
        return cls(**{k: v for k, v in env.items() if k in cls.__dataclass_fields__})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RunwrapConfig":
        """
        Create a RunwrapConfig instance from RUNWRAP_* environment variables
        """
        environ = os.environ if environ is None else environ
        values = {}

        install_dir = environ.get(ENV_INSTALL_DIR)
        if install_dir:
            values["install_dir"] = install_dir

        timeout = environ.get(ENV_TIMEOUT)
        if timeout:
            try:
                values["timeout"] = float(timeout)
            except ValueError as e:
                raise ConfigurationError(
                    f"{ENV_TIMEOUT} must be a number of seconds, got {timeout!r}"
                ) from e

        return cls.from_dict(values)
