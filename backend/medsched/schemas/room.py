from pydantic import BaseModel, Field


class RoomBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    building: str | None = Field(default=None, max_length=200)
    capacity: int = Field(ge=1, le=2000)


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    building: str | None = Field(default=None, max_length=200)
    capacity: int | None = Field(default=None, ge=1, le=2000)


class RoomOut(RoomBase):
    id: str

    model_config = {"from_attributes": True}
