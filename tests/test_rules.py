"""Tests for rule-set loading and the rule store."""

import json
import logging
import threading
import time

import pytest

from tests.helpers import rule, write_rule_set
from threat_map.core import rules as rules_module
from threat_map.core.errors import RuleLoadError
from threat_map.core.rules import RuleStore, load_supplemental_rules, read_rule_set
from threat_map.models.schemas import EngineConfig


@pytest.fixture
def config(rules_dir):
    return EngineConfig(rules_dir=rules_dir)


class TestReadRuleSet:
    def test_reads_rules_in_document_order(self, rules_dir):
        path = write_rule_set(rules_dir, "a.json", [rule("one", "isActor"), rule("two", "isStore")])
        result = read_rule_set(path)
        assert result.ok
        assert [r.name for r in result.rules] == ["one", "two"]

    def test_invalid_json_is_reported_not_raised(self, rules_dir):
        rules_dir.mkdir()
        path = rules_dir / "broken.json"
        path.write_text("{ not json")
        result = read_rule_set(path)
        assert not result.ok
        assert result.rules == ()

    @pytest.mark.parametrize("document", [[], {"rules": "isActor"}, {"no_rules": []}, "rules"])
    def test_wrong_shape_is_reported(self, rules_dir, document):
        rules_dir.mkdir()
        path = rules_dir / "shape.json"
        path.write_text(json.dumps(document))
        assert not read_rule_set(path).ok

    def test_invalid_rule_entries_are_skipped_individually(self, rules_dir, caplog):
        path = write_rule_set(
            rules_dir,
            "mixed.json",
            [rule("good", "isActor"), "not a rule", {"rule": "bad", "matches": "isActor"}],
        )
        with caplog.at_level(logging.WARNING, logger="threat_map"):
            result = read_rule_set(path)
        assert result.ok
        assert [r.name for r in result.rules] == ["good"]
        assert result.skipped_rules == 2
        assert "Skipping invalid rule" in caplog.text

    def test_rule_without_matches_loads_but_is_inactive(self, rules_dir):
        path = write_rule_set(rules_dir, "a.json", [{"rule": "idle", "generates": {}}])
        (loaded,) = read_rule_set(path).rules
        assert loaded.matches == []
        assert not loaded.is_active


class TestSupplementalLoading:
    def test_missing_document_logs_warning(self, rules_dir, caplog):
        rules_dir.mkdir()
        with caplog.at_level(logging.WARNING, logger="threat_map"):
            result = load_supplemental_rules(rules_dir / "enhanced-generic.json")
        assert result.rules == ()
        assert "not found" in caplog.text

    def test_invalid_document_leaves_collection_empty(self, rules_dir, config):
        write_rule_set(rules_dir, "baseline.json", [rule("b", "isActor")])
        (rules_dir / "enhanced-generic.json").write_text(json.dumps({"rules": {"oops": 1}}))
        store = RuleStore(config)
        store.initialize()
        assert store.initialized
        assert len(store.baseline) == 1
        assert store.supplemental == ()


class TestRuleStore:
    def test_loads_baseline_in_file_name_order(self, rules_dir, config):
        write_rule_set(rules_dir, "b.json", [rule("from-b", "isStore")])
        write_rule_set(rules_dir, "a.json", [rule("from-a", "isActor")])
        store = RuleStore(config)
        store.initialize()
        assert [r.name for r in store.baseline] == ["from-a", "from-b"]

    def test_supplemental_documents_are_not_baseline(self, rules_dir, config):
        write_rule_set(rules_dir, "baseline.json", [rule("b", "isActor")])
        write_rule_set(rules_dir, "enhanced-generic.json", [rule("s1", "isActor"), rule("s2", "isFlow")])
        write_rule_set(rules_dir, "enhanced-extra.json", [rule("ignored", "isActor")])
        store = RuleStore(config)
        store.initialize()
        assert [r.name for r in store.baseline] == ["b"]
        assert [r.name for r in store.supplemental] == ["s1", "s2"]

    def test_non_json_files_are_ignored(self, rules_dir, config):
        write_rule_set(rules_dir, "baseline.json", [rule("b", "isActor")])
        (rules_dir / "README.md").write_text("# rules")
        store = RuleStore(config)
        store.initialize()
        assert len(store.baseline) == 1

    def test_one_malformed_document_among_three(self, rules_dir, config):
        write_rule_set(rules_dir, "a.json", [rule("a1", "isActor")])
        (rules_dir / "b.json").write_text('{"rules": [')
        write_rule_set(rules_dir, "c.json", [rule("c1", "isStore"), rule("c2", "isFlow")])
        store = RuleStore(config)
        store.initialize()
        assert store.initialized
        assert [r.name for r in store.baseline] == ["a1", "c1", "c2"]
        failed = [result.path.name for result in store.load_results if not result.ok]
        assert "b.json" in failed

    def test_missing_directory_is_created(self, rules_dir, config, caplog):
        with caplog.at_level(logging.WARNING, logger="threat_map"):
            RuleStore(config).initialize()
        assert rules_dir.is_dir()
        assert "Creating it" in caplog.text

    def test_unreadable_directory_fails_initialization(self, tmp_path):
        not_a_dir = tmp_path / "rules"
        not_a_dir.write_text("")
        store = RuleStore(EngineConfig(rules_dir=not_a_dir))
        with pytest.raises(RuleLoadError):
            store.initialize()
        assert not store.initialized

    def test_failed_initialization_can_be_retried(self, tmp_path):
        path = tmp_path / "rules"
        path.write_text("")
        store = RuleStore(EngineConfig(rules_dir=path))
        with pytest.raises(RuleLoadError):
            store.initialize()

        path.unlink()
        write_rule_set(path, "baseline.json", [rule("b", "isActor")])
        store.initialize()
        assert store.initialized
        assert len(store.baseline) == 1

    def test_initialize_is_idempotent(self, rules_dir, config):
        write_rule_set(rules_dir, "a.json", [rule("a", "isActor")])
        store = RuleStore(config)
        store.initialize()
        write_rule_set(rules_dir, "b.json", [rule("b", "isActor")])
        store.initialize()
        assert len(store.baseline) == 1

    def test_catalog_is_immutable(self, rules_dir, config):
        write_rule_set(rules_dir, "a.json", [rule("a", "isActor")])
        store = RuleStore(config)
        store.initialize()
        assert isinstance(store.baseline, tuple)
        assert isinstance(store.supplemental, tuple)

    def test_concurrent_initialization_loads_once(self, rules_dir, config, monkeypatch):
        write_rule_set(rules_dir, "a.json", [rule("a", "isActor")])
        calls = []
        original = rules_module.load_baseline_rules

        def slow_load(*args, **kwargs):
            calls.append(1)
            time.sleep(0.05)
            return original(*args, **kwargs)

        monkeypatch.setattr(rules_module, "load_baseline_rules", slow_load)
        store = RuleStore(config)
        observed = []

        def worker():
            store.initialize()
            observed.append(len(store.baseline))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert observed == [1] * 8
