"""
Team alias repository.
"""
from typing import Dict, Optional

from sqlalchemy.orm import Session

from parlay_settlement.models import TeamAlias
from parlay_settlement.repositories.base import BaseRepository


class TeamAliasRepository(BaseRepository[TeamAlias]):
    """Repository for TeamAlias model."""

    def __init__(self, db: Session):
        super().__init__(TeamAlias, db)

    def load_alias_map(self, sport: Optional[str] = None) -> Dict[str, Dict[str, str]]:
        """
        Load aliases grouped by sport.

        Args:
            sport: Restrict to one sport (default: all)

        Returns:
            {sport: {alias: team_key}}
        """
        query = self.db.query(TeamAlias.sport, TeamAlias.alias, TeamAlias.team_key)
        if sport:
            query = query.filter(TeamAlias.sport == sport)

        alias_map: Dict[str, Dict[str, str]] = {}
        for row_sport, alias, team_key in query.all():
            alias_map.setdefault(row_sport, {})[alias] = team_key
        return alias_map
