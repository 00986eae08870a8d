"""Personal best chain length per difficulty.

Stored as a single JSON object in ~/.tagchain/best_scores.json, keyed
"d<threshold>" (e.g. {"d500": 7}). The file is re-read on every access so two
windows playing at once end up last-writer-wins rather than clobbering each
other with stale in-memory copies.
"""

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SCORES_FILE = Path.home() / ".tagchain" / "best_scores.json"


def _key(threshold: int) -> str:
    return f"d{threshold}"


class BestScores:
    """Best chain length per difficulty threshold."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or SCORES_FILE

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, int]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except Exception as e:
            logger.warning(f"Failed to read best scores: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed best scores file {self._path}")
            return {}
        return data

    def _save(self, data: dict[str, int]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except Exception as e:
            logger.warning(f"Failed to save best scores: {e}")

    def all(self) -> dict[int, int]:
        """All recorded bests as {threshold: length}."""
        result = {}
        for key, value in self._load().items():
            if key.startswith("d") and key[1:].isdigit() and isinstance(value, int):
                result[int(key[1:])] = value
        return result

    def get(self, threshold: int) -> Optional[int]:
        """Best chain length at a threshold, or None if never played."""
        value = self._load().get(_key(threshold))
        return value if isinstance(value, int) else None

    def record(self, threshold: int, length: int) -> bool:
        """Record a finished chain.

        Returns:
            True if this is a new best (strictly greater than the old one).
        """
        data = self._load()
        previous = data.get(_key(threshold))
        if isinstance(previous, int) and length <= previous:
            return False

        data[_key(threshold)] = length
        self._save(data)
        logger.info(f"New best at threshold {threshold}: {length}")
        return True
