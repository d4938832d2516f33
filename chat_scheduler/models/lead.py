"""CRM lead webhook payload."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Lead(BaseModel):
    """A contact pushed by the CRM (GoHighLevel and similar).

    Only the fields the assistant uses are modelled; anything else in the
    payload is ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        """First name if known, else the free-form name, else empty."""
        if self.first_name:
            return self.first_name.strip()
        if self.name:
            return self.name.strip()
        return ""
