"""Runtime settings for the persistence client, read from the environment."""

from __future__ import annotations

import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field


ENV_PREFIX = "TIMETABLER_"


class Settings(BaseModel):
    """Connection settings for the school backend."""
    model_config = ConfigDict(extra="forbid")

    api_url: str = Field(default="http://localhost:4000/graphql", description="GraphQL endpoint")
    rest_url: str = Field(default="http://localhost:3000", description="Base URL for REST routes")
    token: Optional[str] = Field(default=None, description="Bearer access token")
    subdomain: Optional[str] = Field(default=None, description="School (tenant) subdomain")
    timeout: float = Field(default=30.0, gt=0, le=600, description="Request timeout in seconds")

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """
        Build settings from TIMETABLER_* environment variables.

        A `.env` file in the working directory is loaded first unless
        `dotenv` is False. Unset variables keep their defaults.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        values: dict[str, str] = {}
        for field in ("api_url", "rest_url", "token", "subdomain", "timeout"):
            raw = os.environ.get(ENV_PREFIX + field.upper())
            if raw:
                values[field] = raw
        return cls.model_validate(values)

    @property
    def headers(self) -> dict[str, str]:
        """Headers sent with every request."""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.subdomain:
            headers["X-Tenant-Subdomain"] = self.subdomain
        return headers
