"""Weekly matchup scheduler.

Pairs a league's active members for one week while minimizing repeat
pairings, which approximates a round robin over a season of any length and
absorbs members joining or leaving between weeks.

Algorithm:
1. Odd member count with a benchmark: the member with the fewest prior
   benchmark pairings (then fewest games) plays the benchmark. Remaining ties
   are broken by the week hash, so the choice rotates but is reproducible.
2. Odd member count without a benchmark: the member with the most games
   already played sits the week out.
3. Everyone else is paired greedily: the lexicographically first unpaired
   member takes the candidate they have faced least (ties lexicographic).
4. Home/away roles come from a stable hash of the week id and the pair.

Determinism matters: re-running the scheduler before lock with the same inputs
must produce the same pairs and roles.
"""

import hashlib
import logging
from collections import Counter
from collections.abc import Iterable, Sequence

from ..core.types import BenchmarkParticipant, MatchupPair, RealMember

logger = logging.getLogger(__name__)


def stable_hash(value: str) -> int:
    """Unsigned 64-bit hash of ``value`` that is stable across processes."""
    digest = hashlib.blake2b(value.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big")


def _pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


class PairingHistory:
    """Pair counts, games played and benchmark byes derived from past matchups."""

    def __init__(self, history: Iterable[MatchupPair] = ()):
        self.pair_counts: Counter[tuple[str, str]] = Counter()
        self.games: Counter[str] = Counter()
        self.benchmark_counts: Counter[str] = Counter()
        for pair in history:
            self.record(pair)

    def record(self, pair: MatchupPair) -> None:
        benchmark = pair.benchmark_side
        if benchmark is not None:
            opponent = pair.away if pair.home is benchmark else pair.home
            if opponent.is_benchmark:
                return
            self.benchmark_counts[opponent.participant_id] += 1
            self.games[opponent.participant_id] += 1
            return

        home_id = pair.home.participant_id
        away_id = pair.away.participant_id
        self.pair_counts[_pair_key(home_id, away_id)] += 1
        self.games[home_id] += 1
        self.games[away_id] += 1

    def times_paired(self, a: str, b: str) -> int:
        return self.pair_counts[_pair_key(a, b)]


def _assign_roles(first: RealMember, second: RealMember, week_id: str) -> MatchupPair:
    key = f"{week_id}:{first.participant_id}:{second.participant_id}"
    if stable_hash(key) % 2 == 0:
        return MatchupPair(home=first, away=second)
    return MatchupPair(home=second, away=first)


def _pick_benchmark_opponent(
    members: Sequence[RealMember], history: PairingHistory, week_hash: int
) -> RealMember:
    def rank(member: RealMember) -> tuple[int, int]:
        member_id = member.participant_id
        return history.benchmark_counts[member_id], history.games[member_id]

    ordered = sorted(members, key=lambda member: (*rank(member), member.participant_id))
    lowest = rank(ordered[0])
    tied = [member for member in ordered if rank(member) == lowest]
    return tied[week_hash % len(tied)]


def _pick_sit_out(members: Sequence[RealMember], history: PairingHistory) -> RealMember:
    return sorted(
        members, key=lambda member: (-history.games[member.participant_id], member.participant_id)
    )[0]


def build_matchups_for_week(
    members: Iterable[RealMember],
    history: Iterable[MatchupPair],
    week_id: str,
    benchmark: BenchmarkParticipant | None = None,
) -> list[MatchupPair]:
    """Build the week's home/away pairs.

    Args:
        members: Active league members (duplicates are ignored)
        history: Prior weeks' pairs, excluding the week being scheduled
        week_id: Identifier of the week; seeds roles and bye tie-breaks
        benchmark: The benchmark participant, if one exists

    Returns:
        Pairs covering every member exactly once, except the sit-out member
        when the count is odd and there is no benchmark
    """
    unique: dict[str, RealMember] = {}
    for member in members:
        unique.setdefault(member.participant_id, member)
    remaining = [unique[member_id] for member_id in sorted(unique)]

    past = PairingHistory(history)
    week_hash = stable_hash(week_id)
    pairs: list[MatchupPair] = []

    if len(remaining) % 2 == 1:
        if benchmark is not None:
            pick = _pick_benchmark_opponent(remaining, past, week_hash)
            remaining.remove(pick)
            pairs.append(MatchupPair(home=pick, away=benchmark))
        else:
            sit_out = _pick_sit_out(remaining, past)
            remaining.remove(sit_out)
            logger.warning(
                f"No benchmark available for week {week_id}; "
                f"{sit_out.participant_id} sits out without a matchup"
            )

    while len(remaining) >= 2:
        member = remaining.pop(0)
        opponent = min(
            remaining,
            key=lambda candidate: (
                past.times_paired(member.participant_id, candidate.participant_id),
                candidate.participant_id,
            ),
        )
        remaining.remove(opponent)
        pairs.append(_assign_roles(member, opponent, week_id))

    return pairs


def participant_ids(pairs: Iterable[MatchupPair]) -> list[str]:
    """Every participant id appearing in ``pairs``, in order, duplicates kept."""
    ids: list[str] = []
    for pair in pairs:
        ids.extend((pair.home.participant_id, pair.away.participant_id))
    return ids
