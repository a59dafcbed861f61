from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime

# Esquemas para Temporadas
class SeasonBase(BaseModel):
    year: int
    name: str
    is_active: bool = False

class SeasonCreate(SeasonBase):
    pass

class SeasonOut(SeasonBase):
    model_config = ConfigDict(from_attributes=True)

    id: int

# Esquemas para Carreras
class RaceCreate(BaseModel):
    name: str
    round_number: int = Field(ge=1)
    race_date: datetime
    qualy_date: datetime

    @model_validator(mode="after")
    def check_dates(self):
        if self.qualy_date > self.race_date:
            raise ValueError("La clasificación no puede ser posterior a la carrera")
        return self

class RaceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    season_id: int
    name: str
    round_number: int
    race_date: datetime
    qualy_date: datetime
    is_result_confirmed: bool

# Parrilla
class TeamCreate(BaseModel):
    season_id: int
    name: str
    color: str = "#000000"

class DriverCreate(BaseModel):
    name: str
    short_code: str = Field(min_length=3, max_length=3)
    number: int = Field(ge=0)
    country: str | None = None
    team_id: int | None = None

class TeamBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str

class DriverOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    short_code: str
    number: int
    country: str | None = None
    team: TeamBrief | None = None
