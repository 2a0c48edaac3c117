"""Team name matching across bet records and score feed data.

The same team is spelled differently by the odds provider, the score feed and
user-entered picks:
- Case and spacing: "Kansas City  Chiefs" vs "kansas city chiefs"
- Short forms: "Chiefs" vs "Kansas City Chiefs"
- Abbreviations: "KC" vs "Kansas City Chiefs" (needs the alias table)

Two layers:
1. teams_match(): the textual rule (normalized equality or substring)
2. TeamMatcher: compares stable team keys from the alias table first and falls
   back to teams_match() for spellings the table does not know
"""
import logging
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize a team name for comparison.

    Lowercases, trims and collapses internal whitespace.

    Examples:
        >>> normalize_name("  Kansas City   Chiefs ")
        'kansas city chiefs'
        >>> normalize_name(None)
        ''
    """
    if not name:
        return ""
    return " ".join(name.lower().split())


def teams_match(name_a: Optional[str], name_b: Optional[str]) -> bool:
    """
    Decide whether two team names denote the same team.

    Names match if their normalized forms are equal or one is a substring of
    the other. Empty names never match.

    Examples:
        >>> teams_match("Chiefs", "Kansas City Chiefs")
        True
        >>> teams_match("Chiefs", "Bills")
        False
        >>> teams_match("", "Bills")
        False
    """
    a = normalize_name(name_a)
    b = normalize_name(name_b)
    if not a or not b:
        return False
    return a == b or a in b or b in a


class TeamMatcher:
    """
    Team matcher backed by the alias table.

    When both names resolve to a team key the keys decide, so "KC" matches
    "Kansas City Chiefs" and "Kansas City Royals" does not match "Kansas City
    Chiefs" even though they share a prefix. Unmapped names use the textual
    rule and are logged for alias curation.

    An empty matcher behaves exactly like teams_match().
    """

    def __init__(self, aliases: Optional[Mapping[str, Mapping[str, str]]] = None):
        """
        Initialize the matcher.

        Args:
            aliases: {sport: {alias: team_key}}; aliases are normalized here
        """
        self._aliases: Dict[str, Dict[str, str]] = {}
        for sport, mapping in (aliases or {}).items():
            self._aliases[sport.upper()] = {
                normalize_name(alias): key for alias, key in mapping.items() if normalize_name(alias)
            }

    @classmethod
    def from_repository(cls, repository) -> "TeamMatcher":
        """Build a matcher from a TeamAliasRepository."""
        return cls(repository.load_alias_map())

    def team_key(self, name: Optional[str], sport: Optional[str] = None) -> Optional[str]:
        """Look up the team key for a spelling, or None if unknown."""
        normalized = normalize_name(name)
        if not normalized:
            return None

        if sport:
            return self._aliases.get(sport.upper(), {}).get(normalized)

        # Without a sport, a spelling is only usable if every sport agrees on it
        keys = {m[normalized] for m in self._aliases.values() if normalized in m}
        return keys.pop() if len(keys) == 1 else None

    def matches(self, name_a: Optional[str], name_b: Optional[str], sport: Optional[str] = None) -> bool:
        """
        Decide whether two names denote the same team.

        Args:
            name_a: First spelling
            name_b: Second spelling
            sport: Sport code used to scope the alias lookup

        Returns:
            True if the names denote the same team
        """
        if not normalize_name(name_a) or not normalize_name(name_b):
            return False

        key_a = self.team_key(name_a, sport)
        key_b = self.team_key(name_b, sport)
        if key_a and key_b:
            return key_a == key_b

        if self._aliases:
            logger.debug(
                "Team alias fallback to text match",
                extra={"sport": sport, "name_a": name_a, "name_b": name_b},
            )
        return teams_match(name_a, name_b)


_DEFAULT_MATCHER = TeamMatcher()


def default_matcher() -> TeamMatcher:
    """Matcher with no alias table (plain textual rule)."""
    return _DEFAULT_MATCHER
