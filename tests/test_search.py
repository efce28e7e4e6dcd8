"""Tests for global search."""

from gh_rivet.models import Config, Group
from gh_rivet.search import (
    SearchEngine,
    build_corpus,
    format_group_path,
    fuzzy_match,
    query,
)


class TestFuzzyMatch:
    """Tests for subsequence matching."""

    def test_subsequence(self):
        assert fuzzy_match("dpl", "deploy.yml")

    def test_case_insensitive(self):
        assert fuzzy_match("DEP", "deploy.yml")

    def test_order_matters(self):
        assert not fuzzy_match("ldp", "deploy.yml")

    def test_empty_query_matches(self):
        assert fuzzy_match("", "anything")


class TestCorpus:
    """Tests for corpus construction."""

    def test_depth_first_order(self, config):
        names = [e.result.name for e in build_corpus(config)]
        assert names[:3] == ["Services", "ci.yml", "Backend"]
        assert names[-2:] == ["Infra", "terraform.yml"]

    def test_group_breadcrumb_is_parent_chain(self, config):
        backend = next(e.result for e in build_corpus(config) if e.result.name == "Backend")
        assert backend.is_group
        assert backend.group_path == ["Services"]
        assert backend.group_id == "backend"

    def test_workflow_breadcrumb_includes_owner(self, config):
        deploy = next(e.result for e in build_corpus(config) if e.result.workflow_name == "deploy.yml")
        assert not deploy.is_group
        assert deploy.group_path == ["Services", "Backend"]
        assert deploy.group_id == "backend"

    def test_friendly_name_is_searchable(self, config):
        entry = next(e for e in build_corpus(config) if e.result.workflow_name == "integration.yml")
        assert entry.result.name == "Integration Tests"
        assert "integration.yml" in entry.text


class TestQuery:
    """Tests for ranking."""

    def test_empty_query(self, config):
        assert query(build_corpus(config), "") == []

    def test_only_subsequence_matches(self, config):
        results = query(build_corpus(config), "dpl")
        assert results
        assert all(fuzzy_match("dpl", f"{r.name} {r.description}") for r in results)
        assert "deploy.yml" in [r.workflow_name for r in results]
        assert "terraform.yml" not in [r.workflow_name for r in results]

    def test_best_match_first(self, config):
        results = query(build_corpus(config), "terraform")
        assert results[0].workflow_name == "terraform.yml"
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_ties_keep_corpus_order(self):
        config = Config(groups=[
            Group("a", "Alpha", workflows=["ci.yml"]),
            Group("b", "Beta", workflows=["ci.yml"]),
        ])
        results = [r for r in query(build_corpus(config), "ci.yml") if not r.is_group]
        assert [r.group_id for r in results] == ["a", "b"]

    def test_results_are_copies(self, config):
        corpus = build_corpus(config)
        results = query(corpus, "deploy")
        results[0].group_path.append("mutated")
        assert all("mutated" not in e.result.group_path for e in corpus)
        assert all(e.result.score == 0.0 for e in corpus)


class TestSearchEngine:
    """Tests for corpus caching."""

    def test_pin_toggle_does_not_rebuild(self, config):
        engine = SearchEngine(config)
        engine.search("ci")
        config.groups[0].toggle_pin("ci.yml")
        engine.search("ci")
        assert engine.rebuilds == 1

    def test_catalog_change_rebuilds(self, config):
        engine = SearchEngine(config)
        engine.search("ci")
        config.groups[1].workflows.append("plan.yml")
        results = engine.search("plan")
        assert engine.rebuilds == 2
        assert "plan.yml" in [r.workflow_name for r in results]

    def test_empty_search_skips_corpus(self, config):
        engine = SearchEngine(config)
        assert engine.search("") == []
        assert engine.rebuilds == 0


def test_format_group_path():
    assert format_group_path([]) == "/"
    assert format_group_path(["Services", "Backend"]) == "Services > Backend"
