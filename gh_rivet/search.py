"""Fuzzy search across all groups and workflows."""

from dataclasses import dataclass
from typing import Optional

from rapidfuzz import fuzz

from .models import Config, Group, SearchResult


def fuzzy_match(query: str, target: str) -> bool:
    """True if every character of `query` appears in `target` in order (case-insensitive)."""
    if not query:
        return True
    query = query.lower()
    idx = 0
    for ch in target.lower():
        if ch == query[idx]:
            idx += 1
            if idx == len(query):
                return True
    return False


@dataclass
class SearchEntry:
    """One indexed item: the result template plus the text it is matched against."""

    result: SearchResult
    text: str


def build_corpus(config: Config) -> list[SearchEntry]:
    """Index every group and workflow depth-first.

    A group's breadcrumb is its parent chain; a workflow's breadcrumb
    includes the group that owns it.
    """
    entries: list[SearchEntry] = []
    for group in config.groups:
        _collect(group, [], entries)
    return entries


def _collect(group: Group, parent_path: list[str], entries: list[SearchEntry]) -> None:
    current_path = parent_path + [group.name]

    text = group.name
    if group.description:
        text += " " + group.description
    entries.append(SearchEntry(
        result=SearchResult(
            kind="group",
            name=group.name,
            description=group.description,
            group_path=list(parent_path),
            group_id=group.id,
        ),
        text=text,
    ))

    for wf in group.all_workflows():
        display = group.display_name_for(wf)
        entries.append(SearchEntry(
            result=SearchResult(
                kind="workflow",
                name=display,
                description=wf,
                group_path=list(current_path),
                group_id=group.id,
                workflow_name=wf,
            ),
            text=f"{display} {wf}",
        ))

    for child in group.groups:
        _collect(child, current_path, entries)


def query(corpus: list[SearchEntry], text: str) -> list[SearchResult]:
    """Rank corpus entries matching `text`, best first.

    Only entries containing the query as a subsequence are returned. Ties keep
    corpus order.
    """
    if not text:
        return []

    scored = []
    for position, entry in enumerate(corpus):
        if not fuzzy_match(text, entry.text):
            continue
        score = fuzz.WRatio(text, entry.text)
        scored.append((score, position, entry))

    scored.sort(key=lambda item: (-item[0], item[1]))

    results = []
    for score, _, entry in scored:
        r = entry.result
        results.append(SearchResult(
            kind=r.kind,
            name=r.name,
            description=r.description,
            group_path=list(r.group_path),
            group_id=r.group_id,
            workflow_name=r.workflow_name,
            score=score,
        ))
    return results


def catalog_signature(config: Config) -> tuple:
    """Shape of the searchable catalog; pins are not part of it."""

    def sig(group: Group) -> tuple:
        return (
            group.id,
            group.name,
            group.description,
            tuple((wf, group.display_name_for(wf)) for wf in group.all_workflows()),
            tuple(sig(child) for child in group.groups),
        )

    return tuple(sig(g) for g in config.groups)


class SearchEngine:
    """Search over a configuration with a cached corpus."""

    def __init__(self, config: Config):
        self.config = config
        self._corpus: Optional[list[SearchEntry]] = None
        self._signature: Optional[tuple] = None
        self.rebuilds = 0

    @property
    def corpus(self) -> list[SearchEntry]:
        signature = catalog_signature(self.config)
        if self._corpus is None or signature != self._signature:
            self._corpus = build_corpus(self.config)
            self._signature = signature
            self.rebuilds += 1
        return self._corpus

    def search(self, text: str) -> list[SearchResult]:
        if not text:
            return []
        return query(self.corpus, text)


def format_group_path(path: list[str]) -> str:
    if not path:
        return "/"
    return " > ".join(path)
