"""User preference schemas."""

from pydantic import BaseModel, ConfigDict, Field


class ThemePreferences(BaseModel):
    """Theme choices kept across logouts."""

    dark_mode: bool | None = Field(default=None, alias="darkMode")
    accent_color: str | None = Field(default=None, alias="accentColor")

    model_config = ConfigDict(populate_by_name=True, extra="allow")
