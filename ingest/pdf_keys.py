# Description: Canonical keys for PDF filenames and hrefs.
# Both sides of every comparison (on-disk files vs. referenced links) go through
# normalize_key so renamed/encoded/odd-dash filenames still line up.

from __future__ import annotations

import logging
import re
import unicodedata
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Set
from urllib.parse import unquote

from ingest.index_io import item_html

DASH_RE = re.compile("[\u2010-\u2015\u2212]")
WS_RE = re.compile(r"\s+")
PDF_HREF_RE = re.compile(r'href\s*=\s*"([^"]+\.pdf[^"]*)"', re.I)
INJECTION_RE = re.compile(r"\binjection\s+application\b", re.I)
BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _decode(value: str) -> str:
    # All-or-nothing: a malformed escape ("%ZZ", a lone "%") or escapes that do
    # not form valid UTF-8 leave the whole string raw.
    if BAD_ESCAPE_RE.search(value):
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


# "/papers/My%20Paper.pdf?x=1" -> "My Paper.pdf"
def pdf_file_name_from_href(href: str | None) -> str | None:
    if not href or not isinstance(href, str):
        return None
    idx = href.lower().rfind(".pdf")
    if idx == -1:
        return None
    truncated = href[: idx + 4]
    raw_name = truncated.rsplit("/", 1)[-1]
    return _decode(raw_name)


def normalize_key(value: str | None) -> str | None:
    if not value or not isinstance(value, str):
        return None

    raw = pdf_file_name_from_href(value) or value
    decoded = _decode(raw)

    normalized = unicodedata.normalize("NFKC", decoded)
    normalized = normalized.replace("\u00a0", " ")
    normalized = DASH_RE.sub("-", normalized)
    normalized = normalized.replace("\\", "/")

    base = normalized.rsplit("/", 1)[-1]
    collapsed = WS_RE.sub(" ", base).strip()
    if not collapsed:
        return None
    return collapsed.lower()


def candidate_file_names(file_name: str, aliases: Mapping[str, Iterable[str]] | None = None) -> List[str]:
    # Small, ordered set of spellings the exported files are known to use.
    seen: Set[str] = set()
    out: List[str] = []

    def push(s: str | None):
        if s and s not in seen:
            seen.add(s)
            out.append(s)

    push(file_name)
    push(re.sub(r"%3A", ":", file_name, flags=re.I))
    push(file_name.replace(":", "_"))
    push(re.sub(r"%3A", "_", file_name, flags=re.I).replace(":", "_"))

    # Legacy links dropped the ':' while the file on disk kept a Windows-safe '_'.
    if INJECTION_RE.search(file_name):
        push(INJECTION_RE.sub("injection_ Application", file_name, count=1))

    if aliases:
        key = normalize_key(file_name)
        for alias in aliases.get(key, []) if key else []:
            push(alias)

    return out


def normalize_aliases(raw: Mapping[str, Iterable[str]] | None) -> Dict[str, List[str]]:
    # filename_aliases from sources.yaml; keys are normalized once so lookups match.
    out: Dict[str, List[str]] = {}
    for name, variants in (raw or {}).items():
        key = normalize_key(name)
        if not key:
            continue
        if isinstance(variants, str):
            variants = [variants]
        out.setdefault(key, []).extend(v for v in variants if isinstance(v, str) and v)
    return out


def list_pdf_files(folder: Path) -> List[str]:
    # Raises OSError when the folder is missing; callers decide how to degrade.
    return sorted(p.name for p in folder.iterdir() if p.is_file() and p.suffix.lower() == ".pdf")


def build_existing_pdf_key_map(folder: Path) -> Dict[str, str]:
    key_map: Dict[str, str] = {}
    try:
        names = list_pdf_files(folder)
    except OSError as e:
        logging.warning("PDF folder unavailable: %s (%s)", folder, e)
        return key_map

    for name in names:
        key = normalize_key(name)
        if key and key not in key_map:
            key_map[key] = name
    logging.debug("Indexed %d PDFs under %s", len(key_map), folder)
    return key_map


def find_existing_local_pdf(
    key_map: Mapping[str, str],
    file_name: str | None,
    aliases: Mapping[str, Iterable[str]] | None = None,
) -> str | None:
    if not file_name:
        return None
    for candidate in candidate_file_names(file_name, aliases):
        key = normalize_key(candidate)
        match = key_map.get(key) if key else None
        if match:
            return match
    return None


def pdf_keys_from_index(index: Mapping | None) -> Set[str]:
    # Every key an index "claims": all PdfLink fields plus any .pdf href in its HTML.
    keys: Set[str] = set()
    for item in (index or {}).get("items") or []:
        if not isinstance(item, Mapping):
            continue
        for link in item.get("pdfLinks") or []:
            if not isinstance(link, Mapping):
                continue
            for field in ("localFileName", "fileName", "originalHref", "localHref"):
                k = normalize_key(link.get(field))
                if k:
                    keys.add(k)

        html = item_html(item)
        for href in PDF_HREF_RE.findall(html):
            k = normalize_key(href)
            if k:
                keys.add(k)
    return keys
