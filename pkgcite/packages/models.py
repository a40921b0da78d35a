"""Package identity model shared by the expander and resolver."""

import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

_REQUIREMENT_RE = re.compile(r"^\s*([^\s<>=!~]+)\s*(?:>=\s*(\S+))?\s*$")


class PackageRequest(BaseModel):
    """A package to cite, optionally with a minimum version."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    min_version: Optional[str] = None
    kind: Literal["package", "runtime", "group", "ide"] = "package"
    members: tuple[str, ...] = ()

    @classmethod
    def parse(cls, spec: str) -> "PackageRequest":
        """Build a request from "name" or "name>=version"."""
        match = _REQUIREMENT_RE.match(spec)
        if not match:
            raise ValueError(f"Cannot parse package requirement: {spec!r}")
        return cls(name=match.group(1), min_version=match.group(2))
