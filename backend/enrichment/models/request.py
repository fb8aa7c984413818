"""Generation request models - caller input for itinerary generation."""

from datetime import date
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationInfo, field_validator

from backend.enrichment.models.common import Coordinate


class GenerationRequest(BaseModel):
    """Trip parameters handed to the draft generator.

    Immutable; the pipeline only derives a cache fingerprint from it.
    """

    model_config = ConfigDict(frozen=True)

    destination: Annotated[str, Field(min_length=1)]
    start_date: date | None = None
    end_date: date | None = None
    days: Annotated[int, Field(gt=0)] | None = None
    budget: Annotated[float, Field(ge=0)] | None = None
    party_size: Annotated[int, Field(gt=0)] | None = None
    preferences: list[str] = Field(default_factory=list)
    origin: str | None = None
    origin_coords: Coordinate | None = None
    special_notes: str | None = None
    user_api_key: SecretStr | None = None

    @field_validator("destination")
    @classmethod
    def validate_destination_not_blank(cls, v: str) -> str:
        """Reject whitespace-only destinations."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("destination must not be blank")
        return stripped

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date | None, info: ValidationInfo) -> date | None:
        """Ensure end >= start."""
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date must be >= start_date")
        return v

    def prompt_payload(self) -> dict[str, object]:
        """Request fields forwarded to the draft generator prompt (no credentials)."""
        return self.model_dump(mode="json", exclude_none=True, exclude={"user_api_key"})
