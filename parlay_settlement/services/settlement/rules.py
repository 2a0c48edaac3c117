"""
Leg settlement rules.

Given a bet's recorded parameters and a game's final score, decide whether
the leg won, lost or pushed. Pure functions; all line arithmetic is done in
Decimal so that a push (exact equality) is never lost to float rounding.

Supported bet types:
- Moneyline: the picked side must score strictly more; a tie is a push
- Spread: picked side's margin plus the line; zero is a push
- Total: combined score against the line, Over or Under; equal is a push

Examples of pick text as stored by the bet builder:
    "Kansas City Chiefs"        moneyline
    "Chiefs (-3.5)"             spread, line in the pick
    "Philadelphia 76ers +4"     spread
    "Over (47.5)", "u41"        total
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from parlay_settlement.core.exceptions import MalformedLegError
from parlay_settlement.models import BetType, LegResult
from parlay_settlement.services.settlement.team_matcher import TeamMatcher, default_matcher
from parlay_settlement.services.settlement.types import LegSettlement

LineValue = Union[Decimal, float, int, str, None]

BET_TYPE_ALIASES = {
    "moneyline": BetType.MONEYLINE,
    "money line": BetType.MONEYLINE,
    "h2h": BetType.MONEYLINE,
    "ml": BetType.MONEYLINE,
    "moneyline/spread": BetType.MONEYLINE,
    "spread": BetType.SPREAD,
    "spreads": BetType.SPREAD,
    "point spread": BetType.SPREAD,
    "total": BetType.TOTAL,
    "totals": BetType.TOTAL,
    "over/under": BetType.TOTAL,
    "totals (o/u)": BetType.TOTAL,
    "o/u": BetType.TOTAL,
}

HOME = "home"
AWAY = "away"
OVER = "over"
UNDER = "under"

# A signed number standing on its own ("-3.5", "(+2)", "47"), not part of a
# name like "76ers"
_LINE_TOKEN = re.compile(r"(?<![\w.])([+-]?\d+(?:\.\d+)?)(?![\w.])")
# Trailing line decoration on a spread pick: "(-3.5)", "+2.5", "PK", "(EVEN)"
_TRAILING_LINE = re.compile(
    r"\s*\(?\s*(?:[+-]?\d+(?:\.\d+)?|(?<!\w)(?:pick'em|pick|pk|even))\s*\)?\s*$", re.IGNORECASE
)
_TRAILING_ML = re.compile(r"\s+(?:ml|moneyline)\s*$", re.IGNORECASE)
_PICKEM = re.compile(r"(?<![\w])(?:pk|pick|pick'em|even)\s*\)?\s*$", re.IGNORECASE)
_DIRECTION_WORD = re.compile(r"\b(over|under)\b", re.IGNORECASE)
_DIRECTION_SHORT = re.compile(r"^\s*([ou])\s*(\d+(?:\.\d+)?)\s*$", re.IGNORECASE)


def normalize_bet_type(bet_type: Optional[str]) -> str:
    """
    Map stored bet type text to a BetType value.

    Raises:
        MalformedLegError: For unknown bet types (player props included)
    """
    key = " ".join((bet_type or "").lower().split())
    try:
        return BET_TYPE_ALIASES[key]
    except KeyError:
        raise MalformedLegError(f"unsupported bet type {bet_type!r}") from None


def to_decimal(value: LineValue) -> Optional[Decimal]:
    """
    Convert a stored line to Decimal.

    Floats are converted through their shortest repr so 2.5 stays 2.5.

    Raises:
        MalformedLegError: If the value is not a finite number
    """
    if value is None:
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise MalformedLegError(f"line {value!r} is not a number") from None
    if not result.is_finite():
        raise MalformedLegError(f"line {value!r} is not a number")
    return result


def parse_line(pick: str) -> Decimal:
    """
    Extract the line from pick text.

    The last standalone number wins, so a team name with digits is skipped.

    Examples:
        >>> parse_line("Chiefs (-3.5)")
        Decimal('-3.5')
        >>> parse_line("Philadelphia 76ers +4")
        Decimal('4')
        >>> parse_line("o47.5")
        Decimal('47.5')

    Raises:
        MalformedLegError: If no line can be found
    """
    short = _DIRECTION_SHORT.match(pick or "")
    if short:
        return Decimal(short.group(2))

    if _PICKEM.search(pick or ""):
        return Decimal("0")

    tokens = _LINE_TOKEN.findall(pick or "")
    if not tokens:
        raise MalformedLegError(f"no line in pick {pick!r}")
    return Decimal(tokens[-1])


def parse_direction(pick: str) -> str:
    """
    Find Over or Under in a total pick.

    Raises:
        MalformedLegError: If the pick names neither or both
    """
    short = _DIRECTION_SHORT.match(pick or "")
    if short:
        return OVER if short.group(1).lower() == "o" else UNDER

    words = {w.lower() for w in _DIRECTION_WORD.findall(pick or "")}
    if len(words) != 1:
        raise MalformedLegError(f"cannot tell over/under from pick {pick!r}")
    return words.pop()


def pick_team_text(pick: str) -> str:
    """Strip line and 'ML' decoration, leaving the team part of a pick."""
    text = _TRAILING_LINE.sub("", pick or "")
    text = _TRAILING_ML.sub("", text)
    return text.strip()


def picked_side(
    pick: str,
    home_team: str,
    away_team: str,
    matcher: Optional[TeamMatcher] = None,
    sport: Optional[str] = None,
) -> str:
    """
    Decide which side of the game a pick names.

    Returns:
        HOME or AWAY

    Raises:
        MalformedLegError: If the pick matches neither side or both
    """
    matcher = matcher or default_matcher()
    team = pick_team_text(pick)

    is_home = matcher.matches(team, home_team, sport)
    is_away = matcher.matches(team, away_team, sport)

    if is_home and is_away:
        raise MalformedLegError(f"pick {pick!r} matches both {home_team!r} and {away_team!r}")
    if not is_home and not is_away:
        raise MalformedLegError(f"pick {pick!r} matches neither {home_team!r} nor {away_team!r}")
    return HOME if is_home else AWAY


def _compare(value: Decimal) -> str:
    if value > 0:
        return LegResult.WON
    if value < 0:
        return LegResult.LOST
    return LegResult.PUSH


def _picked_margin(side: str, home_score: int, away_score: int) -> Decimal:
    margin = Decimal(home_score) - Decimal(away_score)
    return margin if side == HOME else -margin


def settle_moneyline(
    pick: str, home_team: str, away_team: str, home_score: int, away_score: int,
    matcher: Optional[TeamMatcher] = None, sport: Optional[str] = None,
) -> LegSettlement:
    side = picked_side(pick, home_team, away_team, matcher, sport)
    margin = _picked_margin(side, home_score, away_score)
    return LegSettlement(outcome=_compare(margin), actual_value=margin, margin_of_victory=abs(margin))


def settle_spread(
    pick: str, line: LineValue, home_team: str, away_team: str, home_score: int, away_score: int,
    matcher: Optional[TeamMatcher] = None, sport: Optional[str] = None,
) -> LegSettlement:
    line_value = to_decimal(line)
    if line_value is None:
        line_value = parse_line(pick)

    side = picked_side(pick, home_team, away_team, matcher, sport)
    adjusted = _picked_margin(side, home_score, away_score) + line_value
    return LegSettlement(outcome=_compare(adjusted), actual_value=adjusted, margin_of_victory=abs(adjusted))


def settle_total(pick: str, line: LineValue, home_score: int, away_score: int) -> LegSettlement:
    line_value = to_decimal(line)
    if line_value is None:
        line_value = parse_line(pick)
    if line_value < 0:
        raise MalformedLegError(f"negative total line {line_value}")

    direction = parse_direction(pick)
    difference = Decimal(home_score) + Decimal(away_score) - line_value
    signed = difference if direction == OVER else -difference
    return LegSettlement(outcome=_compare(signed), actual_value=difference, margin_of_victory=abs(difference))


def settle(
    bet_type: str,
    pick: str,
    line: LineValue,
    home_team: str,
    away_team: str,
    home_score: int,
    away_score: int,
    matcher: Optional[TeamMatcher] = None,
    sport: Optional[str] = None,
) -> LegSettlement:
    """
    Settle one leg against a final score.

    Args:
        bet_type: Stored bet type text (see BET_TYPE_ALIASES)
        pick: Pick text
        line: Signed spread for the picked side, or the total threshold;
            parsed from the pick when missing
        home_team: Leg's home team
        away_team: Leg's away team
        home_score: Final home score
        away_score: Final away score
        matcher: Team matcher (default: textual rule)
        sport: Sport code for alias lookup

    Returns:
        LegSettlement with outcome, actual value and margin

    Raises:
        MalformedLegError: If the leg's data cannot be settled unambiguously
        ValueError: If scores are missing
    """
    if home_score is None or away_score is None:
        raise ValueError("final scores are required to settle a leg")

    kind = normalize_bet_type(bet_type)
    if kind == BetType.MONEYLINE:
        return settle_moneyline(pick, home_team, away_team, home_score, away_score, matcher, sport)
    if kind == BetType.SPREAD:
        return settle_spread(pick, line, home_team, away_team, home_score, away_score, matcher, sport)
    return settle_total(pick, line, home_score, away_score)
