from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from app.schemas.scoring import ScoringRules

class ChampionshipCreate(BaseModel):
    name: str = Field(min_length=1)
    season_id: int

class ChampionshipUpdate(BaseModel):
    name: str = Field(min_length=1)

class ChampionshipJoin(BaseModel):
    invitation_code: str

class ChampionshipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str = Field(validation_alias=AliasChoices("invitation_code", "code"))
    season_id: int
    admin_id: int

class ChampionshipDetail(ChampionshipOut):
    scoring: ScoringRules

class MemberOut(BaseModel):
    id: int
    name: str
    email: str
    is_banned: bool
    total_points: int
    position: int | None = None

    @field_validator("is_banned", mode="before")
    @classmethod
    def normalize_ban(cls, value):
        # Hay orígenes que guardan el baneo como 0/1
        return bool(value)

class StandingOut(BaseModel):
    position: int
    user_id: int
    name: str
    total_points: int
