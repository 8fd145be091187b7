import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class Holiday(BaseModel):
    date: dt.date
    name: str | None = Field(default=None, max_length=200)

    model_config = ConfigDict(frozen=True)
