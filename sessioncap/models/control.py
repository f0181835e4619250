"""Request models for the session control surface."""

import re
from typing import List

from pydantic import BaseModel, Field, field_validator

SOURCE_NUMBER = re.compile(r"-?[0-9]+")


class StartSessionRequest(BaseModel):
    """Validated arguments of ``start_session``."""

    sources: str = "all"
    speakers: int = Field(default=1, ge=1)
    bot_id: str

    @field_validator("sources")
    @classmethod
    def _check_sources(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("sources must be 'all' or comma-separated monitor numbers")
        if value.lower() == "all":
            return "all"
        for part in value.split(","):
            part = part.strip()
            if not SOURCE_NUMBER.fullmatch(part):
                raise ValueError(f"invalid monitor number: {part!r}")
        return value

    @field_validator("bot_id")
    @classmethod
    def _check_bot_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("bot_id must not be empty")
        return value

    def resolve_sources(self, available: int) -> List[int]:
        """Translate the selection into zero-based source indices.

        Args:
            available: Number of sources currently enumerated

        Returns:
            Zero-based indices in input order without duplicates. Indices
            outside ``available`` are kept; they are validated per tick.
        """
        if self.sources == "all":
            return list(range(available))

        indices: List[int] = []
        for part in self.sources.split(","):
            index = int(part.strip()) - 1
            if index not in indices:
                indices.append(index)
        return indices
