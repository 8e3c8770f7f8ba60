"""Tests for signature loading and the corpus store."""
import threading

import pytest

from core.corpus_store import CorpusStore, get_corpus_store
from models.signature import DEFAULT_BASE_CONFIDENCE, SignatureCorpus
from rules.rules_loader import load_corpus, load_signatures, slugify


def test_bundled_corpus_loads_cleanly():
    corpus = load_corpus()

    assert len(corpus) > 40
    assert corpus.diagnostics == ()
    wordpress = corpus.get("WordPress")
    assert wordpress.cats == (1,)
    assert [implied.name for implied in wordpress.implies] == ["PHP", "MySQL"]


def test_slug_id_and_explicit_id():
    signatures, _ = load_signatures([
        {"name": "Google Analytics", "cats": [3]},
        {"name": "Node.js", "id": "nodejs", "cats": [13]},
    ])
    assert slugify("Let's Encrypt") == "let-s-encrypt"
    assert [sig.id for sig in signatures] == ["google-analytics", "nodejs"]


def test_invalid_pattern_is_reported_and_others_kept():
    signatures, diagnostics = load_signatures([
        {"name": "Broken", "cats": [7], "html": ["([unclosed", "fine"], "headers": {"server": "(?P<"}},
    ], "broken.yaml")

    assert len(signatures) == 1
    assert [p.expression for p in signatures[0].html] == ["fine"]
    assert signatures[0].headers == ()
    assert {d.slot for d in diagnostics} == {"html", "headers"}
    assert all(d.signature == "Broken" and d.source_file == "broken.yaml" for d in diagnostics)
    assert diagnostics[0].pattern == "([unclosed"


def test_entry_without_name_or_cats_is_skipped():
    signatures, diagnostics = load_signatures([
        {"cats": [7], "html": ["x"]},
        {"name": "NoCats", "html": ["x"]},
        "not a mapping",
        {"name": "Good", "cats": [7]},
    ])
    assert [sig.name for sig in signatures] == ["Good"]
    assert len(diagnostics) == 3


def test_keyed_slot_must_be_a_mapping():
    signatures, diagnostics = load_signatures([{"name": "X", "cats": [7], "headers": ["server"]}])
    assert signatures[0].headers == ()
    assert diagnostics[0].slot == "headers"


def test_scalar_values_are_wrapped_in_lists():
    signatures, _ = load_signatures([
        {"name": "X", "cats": 7, "html": "needle", "requires": "Y", "excludes": "Z"},
    ])
    sig = signatures[0]
    assert sig.cats == (7,)
    assert [p.expression for p in sig.html] == ["needle"]
    assert sig.requires == ("Y",)
    assert sig.excludes == ("Z",)


def test_implies_confidence_directive():
    signatures, diagnostics = load_signatures([
        {"name": "cdnjs", "cats": [17], "implies": ["Cloudflare\\;confidence:40", "Other\\;confidence:250"]},
    ])
    implies = signatures[0].implies
    assert [(i.name, i.confidence) for i in implies] == [("Cloudflare", 40), ("Other", 100)]
    assert diagnostics == []


def test_categories_by_label_and_unknown_labels():
    signatures, diagnostics = load_signatures([
        {"name": "Cart", "cats": ["Miscellaneous", 99], "requires_category": ["ecommerce", "Spaceships"]},
    ])
    sig = signatures[0]
    assert sig.cats == (7, 99)
    assert sig.requires_category == (16,)
    assert len(diagnostics) == 1
    assert "Spaceships" in diagnostics[0].message


def test_base_confidence_defaults_and_clamps():
    signatures, diagnostics = load_signatures([
        {"name": "A", "cats": [7]},
        {"name": "B", "cats": [7], "confidence": 1.5},
        {"name": "C", "cats": [7], "confidence": "sure"},
    ])
    assert [sig.base_confidence for sig in signatures] == [DEFAULT_BASE_CONFIDENCE, 1.0, DEFAULT_BASE_CONFIDENCE]
    assert len(diagnostics) == 1


def test_static_version_is_stringified():
    signatures, _ = load_signatures([{"name": "A", "cats": [7], "version": 2}])
    assert signatures[0].version == "2"


def test_load_corpus_from_directory(tmp_path):
    (tmp_path / "b.yaml").write_text("- name: Beta\n  cats: [7]\n  html: ['beta']\n")
    (tmp_path / "a.yml").write_text("- name: Alpha\n  cats: [7]\n  html: ['(']\n")
    (tmp_path / "empty.yaml").write_text("")
    (tmp_path / "notes.txt").write_text("- name: Ignored\n")

    corpus = load_corpus(str(tmp_path), version=5)

    assert corpus.names() == ("Alpha", "Beta")
    assert corpus.version == 5
    assert len(corpus.diagnostics) == 1
    assert corpus.diagnostics[0].source_file == "a.yml"


def test_corpus_snapshot_mutation_returns_new_versions(make_corpus):
    corpus = make_corpus([{"name": "A", "cats": [7]}])
    extra = make_corpus([{"name": "B", "cats": [7]}]).get("B")

    bigger = corpus.with_signature(extra)
    smaller = bigger.without_signature("A")

    assert corpus.names() == ("A",)
    assert bigger.names() == ("A", "B") and bigger.version == 2
    assert smaller.names() == ("B",) and smaller.version == 3
    assert smaller.without_signature("missing") is smaller


def test_store_loads_lazily_once():
    calls = []

    def loader():
        calls.append(1)
        return SignatureCorpus()

    store = CorpusStore(loader=loader)
    assert calls == []
    first = store.snapshot()
    assert store.snapshot() is first
    assert calls == [1]


def test_store_edits_do_not_affect_held_snapshot(make_corpus):
    store = CorpusStore(make_corpus([{"name": "A", "cats": [7]}]))
    held = store.snapshot()
    signature = make_corpus([{"name": "B", "cats": [7]}]).get("B")

    added = store.add_signature(signature)
    removed = store.remove_signature("A")

    assert held.names() == ("A",)
    assert added.names() == ("A", "B")
    assert removed.names() == ("B",)
    assert store.snapshot() is removed
    assert removed.version == held.version + 2


def test_store_remove_unknown_keeps_snapshot(make_corpus):
    store = CorpusStore(make_corpus([{"name": "A", "cats": [7]}]))
    before = store.snapshot()
    assert store.remove_signature("Nope") is before


def test_store_replace(make_corpus):
    store = CorpusStore(make_corpus([{"name": "A", "cats": [7]}]))
    replacement = make_corpus([{"name": "Z", "cats": [7]}], version=9)
    store.replace(replacement)
    assert store.snapshot() is replacement


def test_store_concurrent_adds_are_all_kept(make_corpus):
    store = CorpusStore(SignatureCorpus())
    signatures = [make_corpus([{"name": f"T{i}", "cats": [7]}]).get(f"T{i}") for i in range(20)]

    threads = [threading.Thread(target=store.add_signature, args=(sig,)) for sig in signatures]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = store.snapshot()
    assert len(snapshot) == 20
    assert snapshot.version == 21


def test_global_store_is_shared():
    assert get_corpus_store() is get_corpus_store()
    assert isinstance(get_corpus_store(), CorpusStore)


@pytest.mark.parametrize("name", ["Cart Functionality", "WooCommerce", "Underscore.js", "cdnjs"])
def test_bundled_relations_are_declared(name):
    sig = load_corpus().get(name)
    assert sig.requires or sig.requires_category or sig.excludes or sig.implies
