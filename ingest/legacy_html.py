# Description: Mine the legacy index.html for one collapsible section
# (Publications / Presentations / Reports) and turn each <li> into an Entry.
# PDF links are matched against the files actually present under public/<folder>
# and rewritten to the local path when a match is found.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag

from ingest.index_io import (
    INDEX_SCHEMA_VERSION,
    Entry,
    Index,
    PdfLink,
    empty_index,
    html_to_lines,
    missing_local_pdf,
    normalize_html_for_json,
    normalize_whitespace,
    utc_now,
)
from ingest.pdf_keys import build_existing_pdf_key_map, find_existing_local_pdf, pdf_file_name_from_href


# same characters encodeURIComponent leaves alone
URI_SAFE = "!~*'()"


def local_href(folder_key: str, file_name: str) -> str:
    return f"/{folder_key}/{quote(file_name, safe=URI_SAFE)}"


def find_section_li(soup: BeautifulSoup, section_title: str) -> Tag | None:
    for header in soup.select(".collapsible-header"):
        if normalize_whitespace(header.get_text()) == section_title:
            li = header.find_parent("li")
            if li is not None:
                return li
    return None


def find_section_list(section_li: Tag) -> Tag | None:
    body = section_li.find(class_="collapsible-body", recursive=False)
    if body is None:
        return None
    container = body.select_one(".left-align") or body
    return container.find("ul")


def extract_entry(
    li: Tag,
    entry_id: str,
    folder_key: str,
    key_map: Mapping[str, str],
    aliases: Mapping[str, Iterable[str]] | None = None,
) -> Entry:
    # Work on a private copy of the item so rewriting hrefs never touches the
    # document we are iterating over.
    wrapper = BeautifulSoup(f'<li id="root">{li.decode_contents()}</li>', "lxml")
    root = wrapper.find(id="root")

    links: List[PdfLink] = []
    for a in root.find_all("a", href=True):
        href = a["href"]
        file_name = pdf_file_name_from_href(href)
        if not file_name:
            continue

        local_name = find_existing_local_pdf(key_map, file_name, aliases)
        new_href = local_href(folder_key, local_name) if local_name else None
        links.append({
            "fileName": file_name,
            "localFileName": local_name,
            "originalHref": href,
            "localHref": new_href,
            "localExists": local_name is not None,
        })
        if new_href and href != new_href:
            a["href"] = new_href

    if links and not any(link["localExists"] for link in links):
        logging.debug("%s: no local PDF for %s", entry_id, [link["fileName"] for link in links])

    return {
        "id": entry_id,
        "text": normalize_whitespace(root.get_text()),
        "htmlLines": html_to_lines(normalize_html_for_json(root.decode_contents())),
        "pdfLinks": links,
        "missingLocalPdf": missing_local_pdf(links),
    }


def extract_legacy_index(
    legacy_html: str,
    title: str,
    folder_key: str,
    public_dir: Path,
    aliases: Mapping[str, Iterable[str]] | None = None,
    source: str = "legacy/index.html",
) -> Index:
    soup = BeautifulSoup(legacy_html, "lxml")
    section_li = find_section_li(soup, title)
    if section_li is None:
        logging.info("No legacy section titled %r; empty index", title)
        return empty_index(title, source)

    ul = find_section_list(section_li)
    key_map: Dict[str, str] = build_existing_pdf_key_map(public_dir / folder_key)

    items: List[Entry] = []
    footer_lines: List[str] = []
    if ul is not None:
        for i, li in enumerate(ul.find_all("li", recursive=False), 1):
            items.append(extract_entry(li, f"{folder_key}-{i}", folder_key, key_map, aliases))

        footer_raw = " ".join(str(node) for node in ul.find_next_siblings())
        footer_lines = html_to_lines(normalize_html_for_json(footer_raw))

    missing = sum(1 for item in items if item["missingLocalPdf"])
    logging.info("Legacy %s: %d entries (%d missing local PDFs)", title, len(items), missing)

    return {
        "schemaVersion": INDEX_SCHEMA_VERSION,
        "generatedAt": utc_now(),
        "source": source,
        "title": title,
        "items": items,
        "footerHtmlLines": footer_lines,
    }


def generate_legacy_index(
    legacy_path: Path,
    title: str,
    folder_key: str,
    public_dir: Path,
    aliases: Mapping[str, Iterable[str]] | None = None,
    source: str | None = None,
) -> Index:
    source = source or str(legacy_path)
    try:
        legacy_html = legacy_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logging.warning("Legacy source missing: %s (%s)", legacy_path, e)
        return empty_index(title, source)
    return extract_legacy_index(legacy_html, title, folder_key, public_dir, aliases, source)
