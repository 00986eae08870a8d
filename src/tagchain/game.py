"""Tag Chain game state.

A game moves NOT_STARTED -> ACTIVE -> ENDED and never goes back; restarting
means building a new TagChainGame. While ACTIVE the player proposes tags one
at a time. A proposal is checked against the whole chain so far (not just the
last tag) and is accepted only if AO3 reports at least `threshold` works that
carry every tag in the chain plus the candidate.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Union

from tagchain.ao3 import CooccurrenceCount
from tagchain.errors import (
    GameStateError,
    LookupFailure,
    MalformedQuery,
    RateLimited,
    UpstreamError,
)
from tagchain.scores import BestScores

logger = logging.getLogger(__name__)

# Minimum co-occurrence count -> label
DIFFICULTIES = {
    100: "Casual",
    500: "Normal",
    2000: "Hard",
    5000: "Unhinged",
}
DEFAULT_THRESHOLD = 500

MILESTONES = {
    5: "Getting started!",
    10: "On a roll!",
    15: "Tag master!",
    20: "ABSOLUTE LEGEND",
    25: "You ARE the Archive",
    30: "Touch grass? Never heard of it",
}

CooccurrenceLookup = Callable[[list[str]], Awaitable[Union[CooccurrenceCount, int]]]

# AO3 uses commas to separate tags in a query, so no tag can contain one
TAG_SEPARATOR = ","


class GamePhase(Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    ENDED = "ended"


class ProposalOutcome(Enum):
    """How a proposed tag was resolved."""
    ACCEPTED = "accepted"
    # Game-rule rejections
    INVALID_TAG = "invalid_tag"
    DUPLICATE_TAG = "duplicate_tag"
    NO_COOCCURRENCE = "no_cooccurrence"
    BELOW_THRESHOLD = "below_threshold"
    # Lookup failures
    RATE_LIMITED = "rate_limited"
    UPSTREAM_ERROR = "upstream_error"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class Proposal:
    """Result of one propose_tag() call."""
    tag: str
    outcome: ProposalOutcome
    message: str
    count: Optional[int] = None
    # False when AO3's page had no readable count and 0 was assumed
    count_parsed: bool = True

    @property
    def accepted(self) -> bool:
        return self.outcome is ProposalOutcome.ACCEPTED


def format_count(n: int) -> str:
    """Compact work count: 812, 1.5k, 12k.

    Display only; the game keeps the exact integer.
    """
    if n >= 10000:
        text = f"{n / 1000:.1f}"
        if text.endswith(".0"):
            text = text[:-2]
        return text + "k"
    if n >= 1000:
        return f"{n / 1000:.1f}k"
    return f"{n:,}"


def difficulty_label(threshold: int) -> str:
    return DIFFICULTIES.get(threshold, str(threshold))


def milestone_for(length: int) -> Optional[str]:
    """Celebration text when the chain hits a milestone length."""
    return MILESTONES.get(length)


def end_title(length: int) -> str:
    return "Legendary Chain!" if length >= 15 else "Chain Complete!"


def end_message(length: int) -> str:
    if length >= 25:
        return "You've transcended mortal tagging. The Archive bows to you."
    if length >= 20:
        return "You've seen things no tag should see."
    if length >= 15:
        return "That's a chain worthy of the front page."
    if length >= 10:
        return "Solid chain! You know your tags."
    if length >= 5:
        return "Not bad! Room to grow though."
    return "Short but sweet. Try again?"


def share_text(chain: Sequence[str], threshold: int) -> str:
    """Plain-text summary of a finished chain for pasting elsewhere."""
    header = f"Tag Chain ({difficulty_label(threshold)}) - {len(chain)} tags!"
    return f"{header}\n\n" + " -> ".join(chain)


class TagChainGame:
    """One game of Tag Chain.

    Example:
        game = TagChainGame(api.cooccurrence_async, scores=BestScores())
        game.start("Angst", threshold=500)
        proposal = await game.propose_tag("Slow Burn")
        if proposal and proposal.accepted:
            ...
        game.end()
    """

    def __init__(self, lookup: CooccurrenceLookup, scores: Optional[BestScores] = None) -> None:
        """Create a game that has not started yet.

        Args:
            lookup: Async callable returning the co-occurrence count for a tag list.
            scores: Best-score store updated when the game ends. None disables it.
        """
        self._lookup = lookup
        self._scores = scores

        self.phase = GamePhase.NOT_STARTED
        self.threshold = DEFAULT_THRESHOLD
        self._chain: list[str] = []
        self._link_counts: list[int] = []
        self._used: set[str] = set()
        self._validating = False

    # ----- transitions -----

    def start(self, starter: str, threshold: int = DEFAULT_THRESHOLD) -> None:
        """Begin the game with a starter tag.

        Raises:
            GameStateError: If the game was already started.
            ValueError: For a blank or comma-separated starter, or an unknown difficulty.
        """
        if self.phase is not GamePhase.NOT_STARTED:
            raise GameStateError(f"Cannot start a game that is {self.phase.value}")
        starter = starter.strip()
        if not starter:
            raise ValueError("Starter tag must not be blank")
        if TAG_SEPARATOR in starter:
            raise ValueError("Tags cannot contain commas")
        if threshold not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty threshold: {threshold}")

        self.threshold = threshold
        self._chain = [starter]
        self._link_counts = []
        self._used = {starter.lower()}
        self.phase = GamePhase.ACTIVE
        logger.info(f"Game started with {starter!r} at threshold {threshold}")

    async def propose_tag(self, candidate: str) -> Optional[Proposal]:
        """Try to add a tag to the chain.

        Only one proposal may be pending at a time; a call made while another
        is awaiting its lookup is ignored and returns None, as is a blank
        candidate. Rejections never change the chain.

        Raises:
            GameStateError: If the game is not active.
        """
        if self.phase is not GamePhase.ACTIVE:
            raise GameStateError(f"Cannot propose a tag in a game that is {self.phase.value}")

        candidate = candidate.strip()
        if not candidate or self._validating:
            return None

        if TAG_SEPARATOR in candidate:
            return Proposal(
                candidate,
                ProposalOutcome.INVALID_TAG,
                "Tags can't contain commas - enter one tag at a time.",
            )

        if candidate.lower() in self._used:
            return Proposal(
                candidate,
                ProposalOutcome.DUPLICATE_TAG,
                f'"{candidate}" is already in your chain!',
            )

        self._validating = True
        try:
            result = await self._lookup(self._chain + [candidate])
        except RateLimited:
            return Proposal(
                candidate,
                ProposalOutcome.RATE_LIMITED,
                "AO3 rate limit - wait a few seconds and try again.",
            )
        except UpstreamError as e:
            logger.warning(f"Co-occurrence lookup failed with HTTP {e.status}")
            return Proposal(
                candidate,
                ProposalOutcome.UPSTREAM_ERROR,
                f"AO3 returned an error (HTTP {e.status}). Try again.",
            )
        except MalformedQuery as e:
            logger.warning(f"Proxy rejected the co-occurrence query: {e}")
            return Proposal(
                candidate,
                ProposalOutcome.INVALID_TAG,
                f'"{candidate}" is not a tag AO3 can search for.',
            )
        except LookupFailure as e:
            logger.warning(f"Co-occurrence lookup failed: {e}")
            return Proposal(
                candidate,
                ProposalOutcome.TRANSPORT_ERROR,
                "Could not reach AO3. Check your connection.",
            )
        finally:
            self._validating = False

        if isinstance(result, int):
            result = CooccurrenceCount(result)

        if self.phase is not GamePhase.ACTIVE:
            logger.info(f"Game ended while checking {candidate!r}; result discarded")
            return None

        return self._resolve(candidate, result)

    def _resolve(self, candidate: str, result: CooccurrenceCount) -> Proposal:
        count = result.count

        if count <= 0:
            if not result.parsed:
                message = f'Couldn\'t read a work count for "{candidate}" from AO3, so it doesn\'t count.'
            else:
                message = f'"{candidate}" doesn\'t co-occur with all {len(self._chain)} tags in your chain.'
            return Proposal(
                candidate, ProposalOutcome.NO_COOCCURRENCE, message, 0, result.parsed
            )

        if count < self.threshold:
            return Proposal(
                candidate,
                ProposalOutcome.BELOW_THRESHOLD,
                f'"{candidate}" + your chain only has {format_count(count)} works '
                f"together (need {format_count(self.threshold)}+).",
                count,
            )

        self._chain.append(candidate)
        self._link_counts.append(count)
        self._used.add(candidate.lower())
        logger.debug(f"Accepted {candidate!r} with {count} works; chain length {len(self._chain)}")
        return Proposal(
            candidate,
            ProposalOutcome.ACCEPTED,
            f'Added "{candidate}" ({format_count(count)} works).',
            count,
        )

    def end(self) -> bool:
        """Finish the game and fold the chain into the best scores.

        Returns:
            True if the chain length is a new best for this difficulty.

        Raises:
            GameStateError: If the game is not active.
        """
        if self.phase is not GamePhase.ACTIVE:
            raise GameStateError(f"Cannot end a game that is {self.phase.value}")

        self.phase = GamePhase.ENDED
        logger.info(f"Game ended with chain length {len(self._chain)}")
        if self._scores is None:
            return False
        return self._scores.record(self.threshold, len(self._chain))

    # ----- queries -----

    @property
    def chain(self) -> list[str]:
        return list(self._chain)

    @property
    def link_counts(self) -> list[int]:
        return list(self._link_counts)

    @property
    def validating(self) -> bool:
        """True while a proposal is waiting on its lookup."""
        return self._validating

    @property
    def chain_length(self) -> int:
        return len(self._chain)

    @property
    def last_link_count(self) -> Optional[int]:
        return self._link_counts[-1] if self._link_counts else None

    @property
    def weakest_link(self) -> Optional[int]:
        return min(self._link_counts) if self._link_counts else None

    @property
    def strongest_link(self) -> Optional[int]:
        return max(self._link_counts) if self._link_counts else None

    def is_used(self, name: str) -> bool:
        """Whether a tag (case-insensitively) is already in the chain."""
        return name.strip().lower() in self._used

    def best_score(self) -> Optional[int]:
        """Stored best for this game's difficulty."""
        if self._scores is None:
            return None
        return self._scores.get(self.threshold)
