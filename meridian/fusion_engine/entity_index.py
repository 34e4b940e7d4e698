"""Meridian — Entity index & news entity extraction.

Country entities are derived from the curated country table (entity id is
the ISO2 code). Organisations and companies link to the countries they
operate in via ``related``, which is how focal point detection finds map
signals for non-country entities.
"""

import re
from functools import lru_cache
from typing import Optional

from meridian.backend.models import ClusteredEvent, EntityEntry, EntityMatch, NewsEntityContext
from meridian.fusion_engine.countries import CURATED_COUNTRIES

TITLE_CONFIDENCE = 0.9
BODY_CONFIDENCE = 0.6

NON_COUNTRY_ENTITIES: list[dict] = [
    {"id": "hamas", "type": "organization", "name": "Hamas", "aliases": [], "related": ["IL"]},
    {"id": "hezbollah", "type": "organization", "name": "Hezbollah", "aliases": [], "related": ["LB", "IL"]},
    {"id": "houthis", "type": "organization", "name": "Houthis", "aliases": ["houthi", "ansar allah"], "related": ["YE", "SA"]},
    {"id": "nato", "type": "organization", "name": "NATO", "aliases": ["north atlantic treaty"], "related": ["US", "PL", "DE"]},
    {"id": "wagner", "type": "organization", "name": "Wagner Group", "aliases": ["wagner", "africa corps"], "related": ["RU"]},
    {"id": "taliban", "type": "organization", "name": "Taliban", "aliases": [], "related": ["AF"]},
    {"id": "tsmc", "type": "company", "name": "TSMC", "aliases": ["taiwan semiconductor"], "related": ["TW"]},
    {"id": "huawei", "type": "company", "name": "Huawei", "aliases": [], "related": ["CN"]},
    {"id": "gazprom", "type": "company", "name": "Gazprom", "aliases": [], "related": ["RU"]},
    {"id": "aramco", "type": "company", "name": "Saudi Aramco", "aliases": ["aramco"], "related": ["SA"]},
    {"id": "nvidia", "type": "company", "name": "Nvidia", "aliases": [], "related": ["US", "TW"]},
    {"id": "putin", "type": "leader", "name": "Vladimir Putin", "aliases": ["putin"], "related": ["RU"]},
    {"id": "khamenei", "type": "leader", "name": "Ali Khamenei", "aliases": ["khamenei"], "related": ["IR"]},
]


class EntityIndex:

    def __init__(self, entries: list[EntityEntry]):
        self.by_id: dict[str, EntityEntry] = {e.id: e for e in entries}
        self._patterns: list[tuple[str, re.Pattern]] = []
        for entry in entries:
            terms = {entry.name.lower(), *(a.lower().strip() for a in entry.aliases)}
            terms.discard("")
            alternation = "|".join(re.escape(t) for t in sorted(terms, key=len, reverse=True))
            self._patterns.append((entry.id, re.compile(r"\b(" + alternation + r")\b")))

    def get(self, entity_id: str) -> Optional[EntityEntry]:
        return self.by_id.get(entity_id)

    def find(self, text: str) -> list[tuple[str, str]]:
        """(entity_id, matched text) for every entity named in ``text``."""
        lower = text.lower()
        hits = []
        for entity_id, pattern in self._patterns:
            match = pattern.search(lower)
            if match:
                hits.append((entity_id, match.group(1)))
        return hits

    def appears_in_title(self, entity_id: str, title: str) -> bool:
        """Verbatim (case-insensitive substring) name or alias hit in a title."""
        entity = self.by_id.get(entity_id)
        if entity is None:
            return False
        title_lower = title.lower()
        if entity.name.lower() in title_lower:
            return True
        return any(alias.lower() in title_lower for alias in entity.aliases if alias.strip())


def build_default_entries() -> list[EntityEntry]:
    entries = [
        EntityEntry(
            id=code,
            type="country",
            name=cfg["name"],
            aliases=cfg["search_aliases"],
        )
        for code, cfg in CURATED_COUNTRIES.items()
    ]
    entries.extend(EntityEntry(**e) for e in NON_COUNTRY_ENTITIES)
    return entries


@lru_cache(maxsize=1)
def get_entity_index() -> EntityIndex:
    return EntityIndex(build_default_entries())


def extract_entities_from_clusters(
    clusters: list[ClusteredEvent],
    index: Optional[EntityIndex] = None,
) -> dict[str, NewsEntityContext]:
    """Entity mentions per cluster id.

    Title hits score ``TITLE_CONFIDENCE``; entities found only in the summary
    or in secondary item titles score ``BODY_CONFIDENCE``.
    """
    index = index or get_entity_index()
    contexts: dict[str, NewsEntityContext] = {}

    for cluster in clusters:
        matches: dict[str, EntityMatch] = {}
        for entity_id, text in index.find(cluster.primary_title):
            matches[entity_id] = EntityMatch(entity_id=entity_id, confidence=TITLE_CONFIDENCE, matched_text=text)

        body = " ".join([cluster.summary, *(item.title for item in cluster.all_items)])
        for entity_id, text in index.find(body):
            if entity_id not in matches:
                matches[entity_id] = EntityMatch(entity_id=entity_id, confidence=BODY_CONFIDENCE, matched_text=text)

        if matches:
            contexts[cluster.id] = NewsEntityContext(
                cluster_id=cluster.id,
                title=cluster.primary_title,
                entities=list(matches.values()),
            )

    return contexts
