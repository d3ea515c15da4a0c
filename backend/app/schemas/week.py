from datetime import date

from pydantic import BaseModel


class WeekResponse(BaseModel):
    year: int
    week: int
    dates: list[date]
    workdays: list[date]
