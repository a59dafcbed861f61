from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base

class Driver(Base):
    __tablename__ = "drivers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)  # Ej: Fernando Alonso
    short_code: Mapped[str] = mapped_column(String(3), nullable=False)  # Ej: ALO
    number: Mapped[int] = mapped_column(Integer, nullable=False)  # Dorsal
    country: Mapped[str | None] = mapped_column(String, nullable=True)
    team_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("teams.id"), nullable=True)

    # Relaciones
    team: Mapped["Team"] = relationship("Team", back_populates="drivers")
