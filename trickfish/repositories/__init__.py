from trickfish.repositories.base import TournamentRepository
from trickfish.repositories.sqlalchemy_repository import SqlAlchemyTournamentRepository

__all__ = ["TournamentRepository", "SqlAlchemyTournamentRepository"]
