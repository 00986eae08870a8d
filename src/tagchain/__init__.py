"""Tag Chain: chain AO3 freeform tags that all appear together."""

from tagchain.errors import (
    TagChainError,
    LookupFailure,
    RateLimited,
    UpstreamError,
    TransportError,
    MalformedQuery,
    GameStateError,
)
from tagchain.ao3 import AO3Client, CooccurrenceCount, parse_found_count
from tagchain.api_client import TagChainAPI
from tagchain.game import (
    DIFFICULTIES,
    GamePhase,
    Proposal,
    ProposalOutcome,
    TagChainGame,
    format_count,
)
from tagchain.autocomplete import AutocompleteController, AutocompleteView, Suggestion, ViewState
from tagchain.scores import BestScores
from tagchain.settings import Settings, get_settings

__version__ = "0.1.0"


__all__ = [
    "__version__",
    "TagChainError",
    "LookupFailure",
    "RateLimited",
    "UpstreamError",
    "TransportError",
    "MalformedQuery",
    "GameStateError",
    "AO3Client",
    "CooccurrenceCount",
    "parse_found_count",
    "TagChainAPI",
    "DIFFICULTIES",
    "GamePhase",
    "Proposal",
    "ProposalOutcome",
    "TagChainGame",
    "format_count",
    "AutocompleteController",
    "AutocompleteView",
    "Suggestion",
    "ViewState",
    "BestScores",
    "Settings",
    "get_settings",
]
