"""Tests for the Tag Chain game state machine."""

import asyncio
import random

import pytest

from tagchain.ao3 import CooccurrenceCount
from tagchain.errors import GameStateError, MalformedQuery, RateLimited, TransportError, UpstreamError
from tagchain.game import (
    GamePhase,
    ProposalOutcome,
    TagChainGame,
    end_message,
    end_title,
    format_count,
    milestone_for,
    share_text,
)
from tagchain.scores import BestScores
from tagchain.starters import STARTER_TAGS, random_starter, suggested_starters


class FakeLookup:
    """Async co-occurrence lookup answering from a {candidate: count} table.

    A value may be an int, a CooccurrenceCount, or an exception to raise.
    """

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    async def __call__(self, tags):
        self.calls.append(list(tags))
        answer = self.answers[tags[-1]]
        if isinstance(answer, Exception):
            raise answer
        return answer


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def scores(tmp_path):
    return BestScores(tmp_path / "best_scores.json")


def _game(answers, scores=None, starter="Angst", threshold=500):
    lookup = FakeLookup(answers)
    game = TagChainGame(lookup, scores=scores)
    game.start(starter, threshold)
    return game, lookup


class TestTransitions:
    def test_start(self):
        game = TagChainGame(FakeLookup({}))
        assert game.phase is GamePhase.NOT_STARTED

        game.start("  Angst ", 2000)

        assert game.phase is GamePhase.ACTIVE
        assert game.chain == ["Angst"]
        assert game.link_counts == []
        assert game.threshold == 2000
        assert game.is_used("ANGST")

    def test_second_start_is_rejected(self):
        game, _ = _game({})
        with pytest.raises(GameStateError):
            game.start("Fluff", 100)
        assert game.chain == ["Angst"]
        assert game.threshold == 500

    def test_start_validates_arguments(self):
        game = TagChainGame(FakeLookup({}))
        with pytest.raises(ValueError):
            game.start("   ")
        with pytest.raises(ValueError):
            game.start("Angst", 42)
        with pytest.raises(ValueError):
            game.start("Angst, Fluff")
        assert game.phase is GamePhase.NOT_STARTED

    def test_propose_before_start(self):
        game = TagChainGame(FakeLookup({}))
        with pytest.raises(GameStateError):
            run(game.propose_tag("Fluff"))

    def test_end_is_terminal(self):
        game, _ = _game({"Fluff": 900})
        game.end()

        assert game.phase is GamePhase.ENDED
        with pytest.raises(GameStateError):
            game.end()
        with pytest.raises(GameStateError):
            run(game.propose_tag("Fluff"))
        with pytest.raises(GameStateError):
            game.start("Angst")


class TestProposeTag:
    def test_worked_example(self, scores):
        game, lookup = _game(
            {"Slow Burn": 812, "Obscure Tag X": 0},
            scores=scores,
        )

        accepted = run(game.propose_tag("Slow Burn"))
        assert accepted.outcome is ProposalOutcome.ACCEPTED
        assert accepted.accepted
        assert game.chain == ["Angst", "Slow Burn"]
        assert game.link_counts == [812]

        duplicate = run(game.propose_tag("angst"))
        assert duplicate.outcome is ProposalOutcome.DUPLICATE_TAG
        assert game.chain == ["Angst", "Slow Burn"]

        none = run(game.propose_tag("Obscure Tag X"))
        assert none.outcome is ProposalOutcome.NO_COOCCURRENCE
        assert game.chain == ["Angst", "Slow Burn"]

        # Duplicates never reach the lookup
        assert lookup.calls == [["Angst", "Slow Burn"], ["Angst", "Slow Burn", "Obscure Tag X"]]

        assert game.end() is True
        assert scores.get(500) == 2

    def test_lookup_uses_whole_chain(self):
        game, lookup = _game({"Fluff": 600, "Humor": 700})
        run(game.propose_tag("Fluff"))
        run(game.propose_tag("Humor"))
        assert lookup.calls[-1] == ["Angst", "Fluff", "Humor"]

    def test_below_threshold(self):
        game, _ = _game({"Fluff": 499})
        proposal = run(game.propose_tag("Fluff"))

        assert proposal.outcome is ProposalOutcome.BELOW_THRESHOLD
        assert proposal.count == 499
        assert "499" in proposal.message
        assert game.chain == ["Angst"]

    def test_exactly_threshold_is_accepted(self):
        game, _ = _game({"Fluff": 500})
        assert run(game.propose_tag("Fluff")).accepted

    def test_unrounded_count_is_kept(self):
        game, _ = _game({"Fluff": 1549})
        run(game.propose_tag("Fluff"))
        assert game.link_counts == [1549]
        assert format_count(game.last_link_count) == "1.5k"

    def test_unparsed_count_is_flagged(self):
        game, _ = _game({"Fluff": CooccurrenceCount(0, parsed=False)})
        proposal = run(game.propose_tag("Fluff"))

        assert proposal.outcome is ProposalOutcome.NO_COOCCURRENCE
        assert proposal.count_parsed is False
        assert game.chain == ["Angst"]

    @pytest.mark.parametrize("error, outcome", [
        (RateLimited(), ProposalOutcome.RATE_LIMITED),
        (UpstreamError(500), ProposalOutcome.UPSTREAM_ERROR),
        (TransportError("timeout"), ProposalOutcome.TRANSPORT_ERROR),
    ])
    def test_lookup_failures_leave_state_alone(self, error, outcome):
        game, _ = _game({"Fluff": error})
        proposal = run(game.propose_tag("Fluff"))

        assert proposal.outcome is outcome
        assert game.chain == ["Angst"]
        assert game.link_counts == []
        assert not game.validating

    def test_retry_after_failure(self):
        game, lookup = _game({"Fluff": RateLimited()})
        run(game.propose_tag("Fluff"))

        lookup.answers["Fluff"] = 900
        assert run(game.propose_tag("Fluff")).accepted

    @pytest.mark.parametrize("candidate", [",", " , ", "Fluff, Humor"])
    def test_comma_candidate_is_rejected_before_lookup(self, candidate):
        game, lookup = _game({})
        proposal = run(game.propose_tag(candidate))

        assert proposal.outcome is ProposalOutcome.INVALID_TAG
        assert not proposal.accepted
        assert lookup.calls == []
        assert game.chain == ["Angst"]
        assert not game.validating

    def test_comma_cannot_sneak_in_a_duplicate(self):
        game, lookup = _game({})
        proposal = run(game.propose_tag("Fluff, angst"))

        assert proposal.outcome is ProposalOutcome.INVALID_TAG
        assert game.chain == ["Angst"]
        assert game.link_counts == []
        assert lookup.calls == []

    def test_rejected_query_is_a_proposal(self):
        game, _ = _game({"Fluff": MalformedQuery("need_at_least_2_tags")})
        proposal = run(game.propose_tag("Fluff"))

        assert proposal.outcome is ProposalOutcome.INVALID_TAG
        assert game.chain == ["Angst"]
        assert not game.validating

    def test_blank_candidate_is_ignored(self):
        game, lookup = _game({})
        assert run(game.propose_tag("   ")) is None
        assert lookup.calls == []

    def test_second_proposal_while_pending_is_ignored(self):
        release = None

        async def slow_lookup(tags):
            await release.wait()
            return 1000

        async def scenario():
            nonlocal release
            release = asyncio.Event()
            game = TagChainGame(slow_lookup)
            game.start("Angst")

            first = asyncio.ensure_future(game.propose_tag("Fluff"))
            await asyncio.sleep(0)
            assert game.validating

            second = await game.propose_tag("Humor")
            release.set()
            return game, await first, second

        game, first, second = run(scenario())

        assert second is None
        assert first.accepted
        assert game.chain == ["Angst", "Fluff"]
        assert game.link_counts == [1000]
        assert not game.validating

    def test_result_after_end_is_discarded(self):
        async def scenario():
            release = asyncio.Event()

            async def slow_lookup(tags):
                await release.wait()
                return 1000

            game = TagChainGame(slow_lookup)
            game.start("Angst")
            pending = asyncio.ensure_future(game.propose_tag("Fluff"))
            await asyncio.sleep(0)
            game.end()
            release.set()
            return game, await pending

        game, proposal = run(scenario())
        assert proposal is None
        assert game.chain == ["Angst"]


class TestStats:
    def test_no_links_yet(self):
        game, _ = _game({})
        assert game.chain_length == 1
        assert game.last_link_count is None
        assert game.weakest_link is None
        assert game.strongest_link is None

    def test_link_stats(self):
        game, _ = _game({"Fluff": 3000, "Humor": 800, "Banter": 1200})
        for tag in ("Fluff", "Humor", "Banter"):
            run(game.propose_tag(tag))

        assert game.chain_length == 4
        assert game.last_link_count == 1200
        assert game.weakest_link == 800
        assert game.strongest_link == 3000

    def test_best_score_only_grows(self, scores):
        game, _ = _game({"Fluff": 900, "Humor": 900}, scores=scores)
        run(game.propose_tag("Fluff"))
        run(game.propose_tag("Humor"))
        assert game.end() is True

        shorter, _ = _game({}, scores=scores)
        assert shorter.best_score() == 3
        assert shorter.end() is False
        assert scores.get(500) == 3

    def test_no_scores_store(self):
        game, _ = _game({})
        assert game.best_score() is None
        assert game.end() is False


class TestPresentation:
    @pytest.mark.parametrize("n, text", [
        (0, "0"),
        (812, "812"),
        (1000, "1.0k"),
        (1549, "1.5k"),
        (10000, "10k"),
        (12345, "12.3k"),
    ])
    def test_format_count(self, n, text):
        assert format_count(n) == text

    def test_milestones(self):
        assert milestone_for(5) == "Getting started!"
        assert milestone_for(6) is None

    def test_end_texts(self):
        assert end_title(15) == "Legendary Chain!"
        assert end_title(14) == "Chain Complete!"
        assert end_message(1) == "Short but sweet. Try again?"
        assert end_message(25).startswith("You've transcended")

    def test_starters(self):
        rng = random.Random(7)
        picks = suggested_starters(8, rng)
        assert len(picks) == len(set(picks)) == 8
        assert all(tag in STARTER_TAGS for tag in picks)
        assert random_starter(rng) in STARTER_TAGS

    def test_share_text(self):
        text = share_text(["Angst", "Slow Burn"], 2000)
        assert text == "Tag Chain (Hard) - 2 tags!\n\nAngst -> Slow Burn"
