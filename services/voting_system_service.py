"""
Voting system service: the fixed registry of decks

A voting system is a named, ordered list of permissible vote values.
Fixed at room creation; the registry itself never changes at runtime.
"""
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VotingSystem:
    name: str
    values: tuple[str, ...]

    def allows(self, value: str) -> bool:
        return value in self.values


FIBONACCI = VotingSystem(
    "Fibonacci",
    ("0", "1", "2", "3", "5", "8", "13", "21", "34", "55", "89", "?")
)

VOTING_SYSTEMS: tuple[VotingSystem, ...] = (
    FIBONACCI,
    VotingSystem(
        "Modified Fibonacci",
        ("0", "0.5", "1", "2", "3", "5", "8", "13", "20", "40", "100", "?")
    ),
    VotingSystem("T-Shirt Sizes", ("XS", "S", "M", "L", "XL", "XXL", "?")),
    VotingSystem("Powers of 2", ("1", "2", "4", "8", "16", "32", "64", "?")),
    VotingSystem("Linear", tuple(str(n) for n in range(1, 11)) + ("?",)),
)

DEFAULT_VOTING_SYSTEM = FIBONACCI

_BY_NAME = {system.name: system for system in VOTING_SYSTEMS}


def get_voting_system(name: Optional[str]) -> Optional[VotingSystem]:
    return _BY_NAME.get(name or "")


def resolve_voting_system(name: Optional[str]) -> VotingSystem:
    """
    Resolve a voting system name against the registry

    Unknown or missing names fall back to Fibonacci. The fallback is not an
    error for the caller, only a logged warning.
    """
    if not name:
        return DEFAULT_VOTING_SYSTEM

    system = get_voting_system(name)
    if system is None:
        logger.warning(f"Unknown voting system {name!r}, falling back to {DEFAULT_VOTING_SYSTEM.name}")
        return DEFAULT_VOTING_SYSTEM
    return system


def list_voting_systems() -> list[VotingSystem]:
    return list(VOTING_SYSTEMS)
