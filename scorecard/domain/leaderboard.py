"""Ranked standings and aggregate statistics.

Everything here is a pure function of the roster and the current per-hole
scores; callers recompute on every read instead of caching.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from scorecard.db.models import HoleScore, TournamentPlayer
from scorecard.domain.handicap import round_tenth


@dataclass(frozen=True)
class ScoreTotals:
    holes_completed: int
    total_strokes: int
    total_par: int
    total_scratches: int
    total_penalties: int

    @property
    def relative_to_par(self) -> int:
        return self.total_strokes - self.total_par


@dataclass(frozen=True)
class LeaderboardEntry:
    player_id: int
    player_name: str
    group_name: str | None
    universal_player_id: int | None
    holes_completed: int
    total_strokes: int
    total_par: int
    relative_to_par: int
    total_scratches: int
    total_penalties: int


@dataclass(frozen=True)
class TournamentStats:
    player_count: int
    most_holes_completed: int
    least_holes_completed: int
    average_score: float | None
    average_relative_to_par: float | None
    players_with_scores: int


def summarize_scores(scores: Iterable[HoleScore]) -> ScoreTotals:
    """Total one player's card, counting each hole once (last record wins)."""
    by_hole: dict[int, HoleScore] = {}
    for score in scores:
        by_hole[score.hole] = score
    current = by_hole.values()
    return ScoreTotals(
        holes_completed=len(by_hole),
        total_strokes=sum(score.total for score in current),
        total_par=sum(score.par for score in current),
        total_scratches=sum(score.scratches for score in current),
        total_penalties=sum(score.penalties for score in current),
    )


def _ranking_key(entry: LeaderboardEntry) -> tuple[int, int, int]:
    return (entry.relative_to_par, entry.total_strokes, -entry.holes_completed)


def _scored_players(
    players: Sequence[TournamentPlayer],
    scores_by_player: Mapping[int, Sequence[HoleScore]],
) -> list[tuple[TournamentPlayer, ScoreTotals]]:
    scored = []
    for player in players:
        if player.is_dnf:
            continue
        totals = summarize_scores(scores_by_player.get(player.id, ()))
        if totals.holes_completed == 0:
            continue
        scored.append((player, totals))
    return scored


def compute_leaderboard(
    players: Sequence[TournamentPlayer],
    scores_by_player: Mapping[int, Sequence[HoleScore]],
) -> list[LeaderboardEntry]:
    """Rank non-DNF players with at least one scored hole.

    Order: relative to par ascending, then total strokes ascending, then
    holes completed descending. The sort is stable, so full ties keep the
    roster order.
    """
    entries = [
        LeaderboardEntry(
            player_id=player.id,
            player_name=player.player_name,
            group_name=player.group_name,
            universal_player_id=player.universal_player_id,
            holes_completed=totals.holes_completed,
            total_strokes=totals.total_strokes,
            total_par=totals.total_par,
            relative_to_par=totals.relative_to_par,
            total_scratches=totals.total_scratches,
            total_penalties=totals.total_penalties,
        )
        for player, totals in _scored_players(players, scores_by_player)
    ]
    entries.sort(key=_ranking_key)
    return entries


def compute_aggregate_stats(
    players: Sequence[TournamentPlayer],
    scores_by_player: Mapping[int, Sequence[HoleScore]],
) -> TournamentStats:
    player_count = sum(1 for player in players if not player.is_dnf)
    scored = [totals for _, totals in _scored_players(players, scores_by_player)]
    if not scored:
        return TournamentStats(
            player_count=player_count,
            most_holes_completed=0,
            least_holes_completed=0,
            average_score=None,
            average_relative_to_par=None,
            players_with_scores=0,
        )

    holes = [totals.holes_completed for totals in scored]
    total_strokes = sum(totals.total_strokes for totals in scored)
    total_par = sum(totals.total_par for totals in scored)
    return TournamentStats(
        player_count=player_count,
        most_holes_completed=max(holes),
        least_holes_completed=min(holes),
        average_score=round_tenth(total_strokes / len(scored)),
        average_relative_to_par=round_tenth((total_strokes - total_par) / len(scored)),
        players_with_scores=len(scored),
    )
