"""
Pydantic model for the package.json metadata shipped next to a wrapped binary.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


class PackageMetadata(BaseModel):
    """
    Package metadata. Only the version is required; other keys are kept but unused.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    name: Optional[str] = Field(None, description="Package name")
    version: str = Field(..., description="Semantic version of the wrapped release")

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not SEMVER_PATTERN.match(value):
            raise ValueError(f"not a semantic version: {value!r}")
        return value
