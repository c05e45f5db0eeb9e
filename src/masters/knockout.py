"""
Knockout rounds derived from the group rankings.

Cross round: for every finishing position, group I meets group III and
group II meets group IV. Finals: each pair of cross-round courts sends its
winners to an upper match and its losers to a consolation match.
"""
from typing import Dict, List, Sequence

from masters.models import Group, Match, Phase, Team, generate_id

# Courts whose winners (and losers) meet in the finals, in bracket order
SLOT_PAIRS = ((1, 2), (3, 4), (5, 6), (7, 8))

FINAL_COURT = 1
THIRD_PLACE_COURT = 2


def cross_round_matches(rankings: Dict[Group, Sequence[Team]]) -> List[Match]:
    g1 = rankings.get(Group.I, [])
    g2 = rankings.get(Group.II, [])
    g3 = rankings.get(Group.III, [])
    g4 = rankings.get(Group.IV, [])

    matches = []
    for position, (upper_court, lower_court) in enumerate(SLOT_PAIRS):
        for court, left, right in ((upper_court, g1, g3), (lower_court, g2, g4)):
            if position < len(left) and position < len(right):
                matches.append(Match(
                    id=generate_id(),
                    phase=Phase.CROSS_ROUND,
                    court_number=court,
                    team1_id=left[position].id,
                    team2_id=right[position].id,
                ))
    return matches


def ready_slot_pairs(cross_round: Sequence[Match]):
    """Slot pairs whose two cross-round matches are both decided."""
    by_court = {m.court_number: m for m in cross_round if m.phase == Phase.CROSS_ROUND}
    ready = []
    for first, second in SLOT_PAIRS:
        a, b = by_court.get(first), by_court.get(second)
        if a is not None and b is not None and a.is_decided and b.is_decided:
            ready.append((a, b))
    return ready


def finals_matches(cross_round: Sequence[Match]) -> List[Match]:
    """Each slot pair is evaluated on its own; undecided pairs yield nothing."""
    matches = []
    for a, b in ready_slot_pairs(cross_round):
        matches.append(Match(
            id=generate_id(), phase=Phase.FINALS, court_number=a.court_number,
            team1_id=a.winner_id, team2_id=b.winner_id,
        ))
        matches.append(Match(
            id=generate_id(), phase=Phase.FINALS, court_number=b.court_number,
            team1_id=a.loser_id, team2_id=b.loser_id,
        ))
    return matches
