import pytest

from lexora.domain.models import WordEntry
from lexora.infrastructure.adapters.catalog import (
    CatalogError,
    InMemoryWordCatalog,
    load_catalog,
    validate_entries,
)

CATALOG_YAML = """\
words:
  - id: run_v1
    word: run
    pos: verb
    meaning: to move fast on foot
    sentence: She runs every morning.
  - id: run_n1
    word: Run
    pos: noun
    meaning: a period of running
  - id: apple
    word: apple
    meaning: a round fruit
"""


def test_siblings_share_lemma(catalog):
    siblings = catalog.siblings("run_n1")
    assert [s.id for s in siblings] == ["run_v1"]


def test_siblings_unknown_word(catalog):
    assert catalog.siblings("nope") == []
    assert catalog.get("nope") is None


def test_add_replaces_entry():
    catalog = InMemoryWordCatalog([WordEntry("a1", "run", "first")])
    catalog.add(WordEntry("a1", "walk", "second"))
    catalog.add(WordEntry("a2", "run", "third"))

    assert catalog.get("a1").meaning == "second"
    assert catalog.siblings("a2") == []
    assert len(catalog) == 2


def test_load_catalog(tmp_path):
    path = tmp_path / "words.yaml"
    path.write_text(CATALOG_YAML, encoding="utf-8")

    catalog = load_catalog(path)

    assert len(catalog) == 3
    assert catalog.get("run_v1").sentence == "She runs every morning."
    assert catalog.get("apple").pos is None
    # Lemmas compare case-insensitively
    assert [s.id for s in catalog.siblings("run_v1")] == ["run_n1"]


class TestValidateEntries:
    def test_missing_words_list(self):
        entries, problems = validate_entries({"items": []})
        assert entries == []
        assert problems == ["top-level 'words' list is missing"]

    def test_reports_bad_entries(self):
        raw = {
            "words": [
                {"id": "a", "word": "a", "meaning": "ok"},
                {"id": "b", "word": "b"},
                "not a mapping",
                {"id": "a", "word": "again", "meaning": "dup"},
            ]
        }

        entries, problems = validate_entries(raw)

        assert [e.id for e in entries] == ["a"]
        assert problems == [
            "entry 1: missing meaning",
            "entry 2: expected a mapping",
            "entry 3: duplicate id 'a'",
        ]


class TestLoadErrors:
    def test_strict_raises(self, tmp_path):
        path = tmp_path / "words.yaml"
        path.write_text("words:\n  - id: a\n    word: a\n", encoding="utf-8")

        with pytest.raises(CatalogError) as exc:
            load_catalog(path)
        assert exc.value.problems == ["entry 0: missing meaning"]

    def test_lenient_skips(self, tmp_path, caplog):
        path = tmp_path / "words.yaml"
        path.write_text(CATALOG_YAML + "  - id: broken\n", encoding="utf-8")

        catalog = load_catalog(path, strict=False)

        assert len(catalog) == 3
        assert "entry 3: missing word, meaning" in caplog.text

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "words.yaml"
        path.write_text("words: [unclosed", encoding="utf-8")
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            load_catalog(tmp_path / "absent.yaml")
