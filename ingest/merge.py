# Description: Combine curated / override / legacy / PDF-derived indices into the
# single list a page displays. Lists are passed highest priority first; the
# first entry seen for an identity wins and keeps its position.

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from ingest.index_io import Entry, Index, footer_html, item_html, read_index_if_exists

MISSING_PDF_NOTICE = "PDF missing locally"

# display priority for one topic, highest first
INDEX_ORDER = ("content", "overrides", "legacy", "pdf")

INDEX_FILES = {
    "content": "{key}.content.json",
    "overrides": "{key}.overrides.json",
    "legacy": "{key}.legacy.generated.json",
    "pdf": "{key}.pdf.generated.json",
}


def item_primary_href(item: Mapping) -> str | None:
    links = item.get("pdfLinks") or []
    if not links:
        return None
    first = links[0]
    return first.get("localHref") or first.get("originalHref") or None


def item_key(item: Mapping) -> str:
    return item_primary_href(item) or item.get("id") or item_html(item) or item.get("text") or ""


def merge_items(lists: Iterable[Iterable[Entry]]) -> List[Entry]:
    seen = set()
    out: List[Entry] = []
    for items in lists:
        for item in items or []:
            key = item_key(item)
            if key in seen:
                continue
            seen.add(key)
            out.append(item)
    return out


def merge_footer(indices: Sequence[Mapping | None]) -> str | None:
    for index in indices:
        html = footer_html(index)
        if html:
            return html
    return None


def display_text(item: Mapping) -> str:
    # legacy captions end with the anchor text "PDF"; the page renders its own link
    text = re.sub(r"\s+", " ", str(item.get("text") or "")).strip()
    return re.sub(r"\s+PDF\.?$", "", text, flags=re.I).strip()


def load_topic_indices(app_dir: Path, topic_key: str, title: str = "") -> Dict[str, Index | None]:
    topic_dir = app_dir / topic_key
    return {
        name: read_index_if_exists(topic_dir / INDEX_FILES[name].format(key=topic_key), default_title=title)
        for name in INDEX_ORDER
    }


def topic_order(topic: Mapping, field: str = "order") -> Tuple[str, ...]:
    """Priority order a topic's page uses, from its ``order`` / ``footer_order`` config.

    Unknown names raise; a missing value falls back to :data:`INDEX_ORDER`.
    """
    order = topic.get(field)
    if not order:
        return INDEX_ORDER
    unknown = [name for name in order if name not in INDEX_FILES]
    if unknown:
        raise ValueError(f"{topic.get('key')}: unknown index names in {field}: {unknown}")
    return tuple(order)


def merged_topic_items(indices: Mapping[str, Index | None], order: Sequence[str] = INDEX_ORDER) -> List[Entry]:
    return merge_items((indices.get(name) or {}).get("items") or [] for name in order)


def merged_topic_footer(indices: Mapping[str, Index | None], order: Sequence[str] = INDEX_ORDER) -> str | None:
    return merge_footer([indices.get(name) for name in order])
