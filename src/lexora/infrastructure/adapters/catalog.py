"""
Word catalog adapters.

The catalog stands in for the content service that supplies meanings. A YAML
file lists one entry per meaning; entries sharing a `word` are meanings of
the same lemma:

    words:
      - id: run_v1
        word: run
        pos: verb
        meaning: to move fast on foot
        sentence: She runs every morning.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml  # type: ignore
import yaml.error

from lexora.domain.models import WordEntry
from lexora.domain.ports import WordCatalog

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "word", "meaning")
OPTIONAL_FIELDS = ("pos", "pronunciation", "sentence")


class CatalogError(ValueError):
    """The catalog file cannot be parsed or has invalid entries."""

    def __init__(self, path: Path | str, problems: list[str]):
        self.path = path
        self.problems = problems
        super().__init__(f"{path}: " + "; ".join(problems))


class InMemoryWordCatalog(WordCatalog):
    def __init__(self, entries: Iterable[WordEntry] = ()):
        self._by_id: dict[str, WordEntry] = {}
        self._by_lemma: dict[str, list[str]] = defaultdict(list)
        for entry in entries:
            self.add(entry)

    def add(self, entry: WordEntry):
        if entry.id in self._by_id:
            self._by_lemma[self._lemma(self._by_id[entry.id])].remove(entry.id)
        self._by_id[entry.id] = entry
        self._by_lemma[self._lemma(entry)].append(entry.id)

    def get(self, word_id: str) -> WordEntry | None:
        return self._by_id.get(word_id)

    def siblings(self, word_id: str) -> list[WordEntry]:
        entry = self._by_id.get(word_id)
        if entry is None:
            return []
        return [self._by_id[i] for i in self._by_lemma[self._lemma(entry)] if i != word_id]

    def __len__(self) -> int:
        return len(self._by_id)

    @staticmethod
    def _lemma(entry: WordEntry) -> str:
        return entry.word.strip().lower()


def validate_entries(raw: Any) -> tuple[list[WordEntry], list[str]]:
    """
    Check the parsed YAML document.

    Returns:
        (entries, problems). Entries with problems are left out.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("words"), list):
        return [], ["top-level 'words' list is missing"]

    entries: list[WordEntry] = []
    problems: list[str] = []
    seen: set[str] = set()

    for i, item in enumerate(raw["words"]):
        if not isinstance(item, dict):
            problems.append(f"entry {i}: expected a mapping")
            continue

        missing = [f for f in REQUIRED_FIELDS if not item.get(f)]
        if missing:
            problems.append(f"entry {i}: missing {', '.join(missing)}")
            continue

        word_id = str(item["id"])
        if word_id in seen:
            problems.append(f"entry {i}: duplicate id {word_id!r}")
            continue
        seen.add(word_id)

        entries.append(
            WordEntry(
                id=word_id,
                word=str(item["word"]),
                meaning=str(item["meaning"]),
                **{f: str(item[f]) for f in OPTIONAL_FIELDS if item.get(f)},
            )
        )

    return entries, problems


def load_catalog(path: Path, strict: bool = True) -> InMemoryWordCatalog:
    """
    Load a YAML catalog.

    Args:
        strict: Raise CatalogError on any invalid entry; otherwise skip and log them.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.error.YAMLError) as e:
        raise CatalogError(path, [str(e)]) from e

    entries, problems = validate_entries(raw)
    if problems:
        if strict:
            raise CatalogError(path, problems)
        for problem in problems:
            logger.warning(f"[catalog] {path.name}: {problem}")

    logger.info(f"Loaded {len(entries)} words from {path}")
    return InMemoryWordCatalog(entries)
