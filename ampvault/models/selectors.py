"""Version selectors: ``Latest`` or an explicit ``VersionNumber``.

A tagged union rather than an ``int | "latest"`` parameter, so resolvers
can match on ``kind`` and type checkers see both cases.
"""

from __future__ import annotations

import re
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class Latest(BaseModel):
    """Selects the highest committed version of an artifact."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["latest"] = "latest"

    def __str__(self) -> str:
        return "latest"


class VersionNumber(BaseModel):
    """Selects one specific version (1-based)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["number"] = "number"
    number: PositiveInt

    def __str__(self) -> str:
        return f"v{self.number}"


VersionSelector = Annotated[Union[Latest, VersionNumber], Field(discriminator="kind")]

LATEST = Latest()

_VERSION_TEXT = re.compile(r"^[vV]?(\d+)$")


def parse_version_selector(text: str) -> Latest | VersionNumber:
    """Parse ``"latest"``, ``"3"`` or ``"v3"`` into a selector.

    Raises ``ValueError`` for anything else, including ``"0"``.
    """
    value = text.strip()
    if value.lower() == "latest":
        return LATEST
    match = _VERSION_TEXT.match(value)
    if not match or int(match.group(1)) < 1:
        raise ValueError(f"Invalid version selector: {text!r} (use 'latest', N or vN)")
    return VersionNumber(number=int(match.group(1)))
