from pydantic import BaseModel, Field

from routine.models.room import RoomType


class RoomBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    building: str = Field(min_length=1, max_length=200)
    capacity: int = Field(default=48, ge=1, le=1000)
    type: RoomType = RoomType.lecture


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    building: str | None = Field(default=None, min_length=1, max_length=200)
    capacity: int | None = Field(default=None, ge=1, le=1000)
    type: RoomType | None = None
    is_active: bool | None = None


class RoomOut(RoomBase):
    id: str
    is_active: bool

    model_config = {"from_attributes": True}
