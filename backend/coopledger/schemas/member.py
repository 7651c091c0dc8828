from pydantic import BaseModel, field_validator
from datetime import date


class MemberCreate(BaseModel):
    name: str
    phone: str = ""
    join_date: date | None = None

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str):
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("phone")
    @classmethod
    def phone_trim(cls, v: str):
        return (v or "").strip()


class MemberOut(BaseModel):
    id: int
    society_id: int
    name: str
    phone: str
    join_date: date | None
    status: str

    class Config:
        from_attributes = True
