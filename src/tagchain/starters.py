"""Curated starter tags: popular, broad freeform tags that chain well."""

import random
from typing import Optional

STARTER_TAGS = [
    "Angst",
    "Fluff",
    "Hurt/Comfort",
    "Slow Burn",
    "Enemies to Lovers",
    "Friends to Lovers",
    "Found Family",
    "Alternate Universe - Coffee Shops & Cafés",
    "Alternate Universe - Modern Setting",
    "Alternate Universe - Soulmates",
    "Fake/Pretend Relationship",
    "Mutual Pining",
    "Idiots in Love",
    "Banter",
    "Humor",
    "Romance",
    "Happy Ending",
    "Established Relationship",
    "First Kiss",
    "Time Travel",
    "Canon Divergence",
    "Post-Canon",
    "Fix-It",
    "Whump",
    "Domestic Fluff",
    "Getting Together",
    "Pining",
    "Secret Identity",
    "Hospitals",
    "Magic",
]


def random_starter(rng: Optional[random.Random] = None) -> str:
    """Pick one starter tag at random."""
    return (rng or random).choice(STARTER_TAGS)


def suggested_starters(k: int = 8, rng: Optional[random.Random] = None) -> list[str]:
    """A shuffled handful of starter tags to offer as quick picks."""
    return (rng or random).sample(STARTER_TAGS, min(k, len(STARTER_TAGS)))
