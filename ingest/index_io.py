# Description: Shared index schema (Entry / PdfLink / Index), validation at the
# JSON boundary, and atomic read/write of the generated index files.

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Mapping, TypedDict

from bs4 import BeautifulSoup

INDEX_SCHEMA_VERSION = 1


class PdfLink(TypedDict):
    fileName: str
    localFileName: str | None
    originalHref: str
    localHref: str | None
    localExists: bool


class Entry(TypedDict, total=False):
    """One publication / presentation / report record.

    ``id`` is optional in hand-edited files; everything else is filled in by
    :func:`coerce_entry` when missing.
    """

    id: str
    text: str
    htmlLines: List[str]
    pdfLinks: List[PdfLink]
    missingLocalPdf: bool


class Index(TypedDict):
    schemaVersion: int
    generatedAt: str
    source: str
    title: str
    items: List[Entry]
    footerHtmlLines: List[str]


def normalize_whitespace(value: str | None) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def normalize_html_for_json(html: str | None) -> str:
    if not html or not isinstance(html, str):
        return ""
    html = re.sub(r"[\r\n\t]+", " ", html)
    html = re.sub(r"\s{2,}", " ", html)
    return html.strip()


# Generated HTML is already one normalized line; keep it as a single entry so
# hand edits can split it later without changing the rendered output.
def html_to_lines(html: str | None) -> List[str]:
    trimmed = (html or "").strip()
    return [trimmed] if trimmed else []


def item_html(item: Mapping | None) -> str:
    if not item:
        return ""
    lines = item.get("htmlLines")
    if isinstance(lines, list) and lines:
        return "\n".join(str(line) for line in lines)
    html = item.get("html")
    return html if isinstance(html, str) else ""


def footer_html(index: Mapping | None) -> str | None:
    if not index:
        return None
    lines = index.get("footerHtmlLines")
    if isinstance(lines, list) and lines:
        return "\n".join(str(line) for line in lines)
    html = index.get("footerHtml")
    return html if isinstance(html, str) and html else None


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def missing_local_pdf(links: List[PdfLink]) -> bool:
    return bool(links) and not any(link["localExists"] for link in links)


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def coerce_pdf_link(raw: Any) -> PdfLink | None:
    if not isinstance(raw, Mapping):
        return None
    local_file_name = _opt_str(raw.get("localFileName"))
    original_href = _opt_str(raw.get("originalHref")) or _opt_str(raw.get("localHref"))
    # any one name/href field is enough to identify the file
    file_name = _opt_str(raw.get("fileName")) or local_file_name
    if not file_name and not original_href:
        return None
    return {
        "fileName": file_name or original_href.rsplit("/", 1)[-1],
        "localFileName": local_file_name,
        "originalHref": original_href or file_name,
        "localHref": _opt_str(raw.get("localHref")),
        "localExists": local_file_name is not None,
    }


def coerce_entry(raw: Any) -> Entry | None:
    if not isinstance(raw, Mapping):
        return None

    html = item_html(raw)
    text = raw.get("text")
    if not isinstance(text, str):
        text = BeautifulSoup(html, "lxml").get_text(" ") if html else ""
    text = normalize_whitespace(text)

    raw_links = raw.get("pdfLinks")
    links = [link for link in map(coerce_pdf_link, raw_links if isinstance(raw_links, list) else []) if link]
    # a bare link list still claims its PDFs
    if not text and not html and not links:
        return None

    entry: Entry = {}
    if _opt_str(raw.get("id")):
        entry["id"] = raw["id"]
    entry["text"] = text
    lines = raw.get("htmlLines")
    entry["htmlLines"] = [str(line) for line in lines] if isinstance(lines, list) and lines else html_to_lines(html)
    entry["pdfLinks"] = links
    entry["missingLocalPdf"] = missing_local_pdf(links)
    return entry


def coerce_index(raw: Any, default_title: str = "", default_source: str = "") -> Index:
    if not isinstance(raw, Mapping):
        raw = {}
    items = raw.get("items")
    if not isinstance(items, list):
        items = []

    entries: List[Entry] = []
    for i, item in enumerate(items, 1):
        entry = coerce_entry(item)
        if entry is None:
            logging.warning("Dropping malformed entry #%d in %s", i, raw.get("source") or default_source or "index")
            continue
        entries.append(entry)

    footer = raw.get("footerHtmlLines")
    if isinstance(footer, list):
        footer_lines = [str(line) for line in footer if str(line).strip()]
    else:
        footer_lines = html_to_lines(footer_html(raw))

    version = raw.get("schemaVersion")
    return {
        "schemaVersion": version if isinstance(version, int) else INDEX_SCHEMA_VERSION,
        "generatedAt": _opt_str(raw.get("generatedAt")) or "manual",
        "source": _opt_str(raw.get("source")) or default_source,
        "title": _opt_str(raw.get("title")) or default_title,
        "items": entries,
        "footerHtmlLines": footer_lines,
    }


def empty_index(title: str, source: str) -> Index:
    return {
        "schemaVersion": INDEX_SCHEMA_VERSION,
        "generatedAt": utc_now(),
        "source": source,
        "title": title,
        "items": [],
        "footerHtmlLines": [],
    }


def read_index_if_exists(path: Path, default_title: str = "") -> Index | None:
    """Load a curated/generated index, or ``None`` when it is absent or unreadable.

    Hand-edited files may be transiently invalid, so decode errors are logged
    and treated like a missing file rather than raised.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        logging.debug("No index at %s", path)
        return None
    except (OSError, ValueError) as e:
        logging.warning("Unreadable index %s: %s", path, e)
        return None
    return coerce_index(raw, default_title=default_title, default_source=str(path))


def write_index_file(out_file: Path, index: Mapping) -> None:
    # temp file + rename so a concurrent reader never sees a half-written index.
    # OSError propagates: a failed write aborts this topic.
    out_file.parent.mkdir(parents=True, exist_ok=True)
    tmp_file = out_file.with_name(f"{out_file.name}.tmp-{os.getpid()}")
    try:
        with open(tmp_file, "w", encoding="utf-8") as f:
            f.write(json.dumps(index, ensure_ascii=False, indent=2) + "\n")
        os.replace(tmp_file, out_file)
    finally:
        if tmp_file.exists():
            tmp_file.unlink()
