from pydantic import BaseModel, ConfigDict, Field


class BookAppointmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slot_id: int = Field(alias="slotId")
    symptoms: str | None = Field(default=None, max_length=2000)
