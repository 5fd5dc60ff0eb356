"""Tests for the per-project topic store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from memory_bank.errors import PersistenceError, TopicNotFoundError
from memory_bank.memory.ranking import score
from memory_bank.memory.topics import FIXED_TOPICS, TopicStore


@pytest.fixture
def store(tmp_path: Path) -> TopicStore:
    return TopicStore(tmp_path / "bank")


class TestTopicCrud:
    def test_creates_root(self, store: TopicStore):
        assert store.root.is_dir()

    def test_round_trip(self, store: TopicStore):
        store.store("shop", "architecture", "Hexagonal, ports and adapters", ["design"], 7)
        topic = store.get("shop", "architecture")
        assert topic.content == "Hexagonal, ports and adapters"
        assert topic.tags == ["design"]
        assert topic.importance == 7
        assert topic.last_modified >= topic.timestamp

    def test_on_disk_layout(self, store: TopicStore):
        store.store("shop", "todo", "ship it")
        data = json.loads((store.root / "shop.json").read_text(encoding="utf-8"))
        assert set(data["todo"]) == {"content", "tags", "importance", "timestamp", "lastModified"}

    @pytest.mark.parametrize("given, stored", [(0, 1), (15, 10), (-3, 1), (5, 5)])
    def test_importance_is_clamped(self, store: TopicStore, given, stored):
        assert store.store("shop", "t", "x", importance=given).importance == stored
        assert store.update("shop", "t", importance=given).importance == stored

    def test_store_keeps_creation_time(self, store: TopicStore):
        first = store.store("shop", "todo", "one")
        second = store.store("shop", "todo", "two")
        assert second.timestamp == first.timestamp
        assert store.get("shop", "todo").content == "two"

    def test_get_missing(self, store: TopicStore):
        assert store.get("shop", "nothing") is None
        assert store.get("no-such-project", "nothing") is None

    def test_update_merges_fields(self, store: TopicStore):
        created = store.store("shop", "bugs", "old", ["a"], 4)
        updated = store.update("shop", "bugs", content="new")
        assert updated.content == "new"
        assert updated.tags == ["a"]
        assert updated.importance == 4
        assert updated.timestamp == created.timestamp

    def test_update_missing_raises(self, store: TopicStore):
        with pytest.raises(TopicNotFoundError, match="nothing"):
            store.update("shop", "nothing", content="x")

    def test_delete(self, store: TopicStore):
        store.store("shop", "bugs", "x")
        assert store.delete("shop", "bugs") is True
        assert store.get("shop", "bugs") is None

    def test_delete_missing_is_noop(self, store: TopicStore):
        store.store("shop", "bugs", "x")
        path = store.root / "shop.json"
        before = path.read_text(encoding="utf-8")
        assert store.delete("shop", "nonexistent") is False
        assert path.read_text(encoding="utf-8") == before

    def test_list_keeps_insertion_order(self, store: TopicStore):
        for name in ("zeta", "alpha", "mid"):
            store.store("shop", name, name)
        assert store.list("shop") == ["zeta", "alpha", "mid"]
        assert store.list("empty") == []

    def test_list_all_sorting(self, store: TopicStore):
        store.store("shop", "low", "x", importance=2)
        store.store("shop", "high", "x", importance=9)
        assert list(store.list_all("shop", sort_by="importance")) == ["high", "low"]
        assert list(store.list_all("shop", limit=1)) == ["low"]
        with pytest.raises(ValueError):
            store.list_all("shop", sort_by="alphabetical")

    @pytest.mark.parametrize("project", ["", "..", "a/b", "a\\b"])
    def test_rejects_unsafe_project_names(self, store: TopicStore, project):
        with pytest.raises(ValueError):
            store.store(project, "t", "x")


class TestTopicSearch:
    def test_content_match_scenario(self, store: TopicStore):
        store.store("shop", "bugs", "CPF validation rejects accents", ["checkout"], 9)
        store.store("shop", "todo", "Unrelated work", ["cpf-followup"], 10)

        hits = store.search("shop", "CPF", 10)
        assert hits[0].topic == "bugs"
        assert hits[0].score >= 3
        assert [h.topic for h in hits if h.score >= 3] == ["bugs"]

    def test_scores_accumulate(self):
        assert score("cpf", "CPF check", []) == 3
        assert score("cpf", "CPF check", ["cpf"]) == 5
        assert score("cpf", "CPF check", ["cpf"], name="cpf-bugs") == 6
        assert score("cpf", "nothing", []) == 0

    def test_content_and_tag_outranks_content_only(self, store: TopicStore):
        store.store("shop", "plain", "uses redis", [], 5)
        store.store("shop", "tagged", "uses redis", ["redis"], 5)
        assert [h.topic for h in store.search("shop", "redis")] == ["tagged", "plain"]

    def test_importance_breaks_ties(self, store: TopicStore):
        store.store("shop", "a", "cache layer", [], 3)
        store.store("shop", "b", "cache layer", [], 8)
        assert [h.topic for h in store.search("shop", "cache layer")] == ["b", "a"]

    def test_zero_score_excluded_and_limit(self, store: TopicStore):
        for i in range(5):
            store.store("shop", f"t{i}", "match")
        store.store("shop", "other", "nope")
        assert len(store.search("shop", "match", 3)) == 3
        assert all(h.topic != "other" for h in store.search("shop", "match"))


class TestProjects:
    def test_reset_scenario(self, store: TopicStore):
        store.store("shop", "bugs", "x")
        store.reset("shop")
        assert store.get("shop", "bugs") is None
        assert "shop" not in store.list_projects()

    def test_reset_missing_project(self, store: TopicStore):
        store.reset("ghost")

    def test_list_projects(self, store: TopicStore):
        store.store("blog", "t", "x")
        store.store("shop", "t", "x")
        (store.root / "shop").mkdir()
        assert store.list_projects() == ["blog", "shop"]

    def test_info(self, store: TopicStore):
        store.store("shop", "a", "x", importance=3)
        store.store("shop", "b", "x", importance=4)
        info = store.info("shop")
        assert info.topic_count == 2
        assert info.memory_count == 2
        assert info.total_importance == 7
        assert info.created_at <= info.last_modified
        assert store.info("ghost") is None


class TestFixedTopics:
    def test_initialize_creates_placeholders(self, store: TopicStore):
        created = store.initialize_fixed_topics("shop")
        assert created == list(FIXED_TOPICS)
        summary = store.get("shop", "summary")
        assert summary.content.startswith("# Summary")
        assert summary.tags == ["fixed-topic", "summary"]
        assert summary.importance == 5

    def test_initialize_is_idempotent(self, store: TopicStore):
        store.store("shop", "todo", "my own list", ["mine"], 8)
        store.initialize_fixed_topics("shop")
        before = {name: (t.content, t.timestamp) for name, t in store.list_all("shop").items()}

        assert store.initialize_fixed_topics("shop") == []
        after = {name: (t.content, t.timestamp) for name, t in store.list_all("shop").items()}
        assert after == before
        assert store.get("shop", "todo").content == "my own list"


class TestCorruptDocument:
    def test_queries_treat_corrupt_document_as_empty(self, store: TopicStore):
        (store.root / "shop.json").write_text("{broken", encoding="utf-8")
        assert store.get("shop", "bugs") is None
        assert store.list("shop") == []
        assert store.search("shop", "x") == []

    def test_mutations_refuse_to_overwrite(self, store: TopicStore):
        path = store.root / "shop.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(PersistenceError):
            store.store("shop", "bugs", "x")
        assert path.read_text(encoding="utf-8") == "{broken"
