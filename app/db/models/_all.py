# Importa todos los modelos para que SQLAlchemy los registre antes de create_all
from app.db.models.user import User
from app.db.models.season import Season
from app.db.models.team import Team
from app.db.models.driver import Driver
from app.db.models.race import Race
from app.db.models.race_result import RaceResult
from app.db.models.championship import Championship
from app.db.models.championship_member import ChampionshipMember
from app.db.models.scoring_rule import ScoringRule
from app.db.models.prediction import Prediction
from app.db.models.race_point import RacePoint
