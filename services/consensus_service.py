"""
Consensus service: tally revealed votes

Pure computation, no side effects and no database access.
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional


@dataclass
class ConsensusResult:
    vote_counts: dict[str, int] = field(default_factory=dict)
    consensus: Optional[str] = None
    has_consensus: bool = False

    def to_dict(self) -> dict:
        return {
            "vote_counts": dict(self.vote_counts),
            "consensus": self.consensus,
            "has_consensus": self.has_consensus,
        }


def compute_consensus(votes: Iterable[str]) -> ConsensusResult:
    """
    Tally a list of votes into a consensus result

    Rules:
    - vote_counts: each distinct value -> number of occurrences
    - consensus: the single most frequent value; None when several values
      share the maximum count (ambiguous, never picked arbitrarily)
    - has_consensus: True only when every vote is the same value

    Examples:
        []              -> ({}, None, False)
        ["5", "5", "5"] -> ({"5": 3}, "5", True)
        ["5", "8"]      -> ({"5": 1, "8": 1}, None, False)
        ["5", "5", "8"] -> ({"5": 2, "8": 1}, "5", False)
    """
    votes = list(votes)
    counts = Counter(votes)

    if not counts:
        return ConsensusResult()

    max_count = max(counts.values())
    leaders = [value for value, count in counts.items() if count == max_count]
    consensus = leaders[0] if len(leaders) == 1 else None

    return ConsensusResult(
        vote_counts=dict(counts),
        consensus=consensus,
        has_consensus=len(counts) == 1,
    )
