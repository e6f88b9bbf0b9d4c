from pydantic import BaseModel, ConfigDict, Field

from clinic.models.specialization import DoctorSpecializationPublic


class DoctorSpecializationsReplace(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    specialization_ids: list[int] = Field(alias="specializationIds", min_length=1)


class DoctorSpecializationsSaved(BaseModel):
    assigned: int
    items: list[DoctorSpecializationPublic]
