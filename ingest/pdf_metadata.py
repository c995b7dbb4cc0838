# Description: Build the PDF-derived index for one topic folder.
# Only "orphan" PDFs (not referenced by the legacy page, curated or override
# indices) become entries. With parsing enabled, title/author come from the PDF
# info dictionary / XMP packet / first-page text; otherwise from the filename.

from __future__ import annotations

import html
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List, Set, Tuple

from lxml import etree

from ingest.index_io import INDEX_SCHEMA_VERSION, Entry, Index, empty_index, html_to_lines, normalize_whitespace, utc_now
from ingest.pdf_keys import list_pdf_files, normalize_key
from ingest.sanitize import (
    clean_string,
    guess_authors_from_text,
    sanitize_authors,
    sanitize_title,
    title_from_filename,
    year_from_filename,
)
from ingest.legacy_html import local_href

XMP_NS = {
    "dc": "http://purl.org/dc/elements/1.1/",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
}


class PdfMetadataReader:
    """Handle around the pdfminer backend.

    Construct one per run and pass it to :func:`generate_pdf_index`; passing
    ``None`` instead means "do not parse PDFs". The backend modules are
    imported on first use, under a lock, so worker threads never race on it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._backend = None

    def backend(self) -> SimpleNamespace:
        with self._lock:
            if self._backend is None:
                from pdfminer.high_level import extract_text
                from pdfminer.pdfdocument import PDFDocument
                from pdfminer.pdfparser import PDFParser
                from pdfminer.pdftypes import resolve1
                from pdfminer.psparser import PSLiteral
                from pdfminer.utils import decode_text

                self._backend = SimpleNamespace(
                    extract_text=extract_text,
                    PDFDocument=PDFDocument,
                    PDFParser=PDFParser,
                    resolve1=resolve1,
                    PSLiteral=PSLiteral,
                    decode_text=decode_text,
                )
                logging.debug("pdfminer backend loaded")
            return self._backend

    def _decode_value(self, value) -> str | None:
        b = self.backend()
        value = b.resolve1(value)
        if isinstance(value, bytes):
            return clean_string(b.decode_text(value))
        if isinstance(value, str):
            return clean_string(value)
        if isinstance(value, b.PSLiteral):
            return clean_string(str(value.name))
        return None

    def _xmp_fields(self, doc) -> Dict[str, str | None]:
        b = self.backend()
        stream = b.resolve1(doc.catalog.get("Metadata"))
        if stream is None or not hasattr(stream, "get_data"):
            return {}
        # XMP is the secondary source; a broken packet must not cost the Info fields
        try:
            root = etree.fromstring(stream.get_data(), parser=etree.XMLParser(recover=True))
        except (etree.XMLSyntaxError, ValueError) as e:
            logging.debug("Unreadable XMP packet: %s", e)
            return {}
        if root is None:
            return {}

        def values(path: str) -> List[str]:
            found = [normalize_whitespace(el.text) for el in root.iterfind(path, XMP_NS) if el.text]
            return [v for v in found if v]

        # dc:title is an rdf:Alt (language alternatives), dc:creator an rdf:Seq
        titles = values(".//dc:title//rdf:li")
        return {
            "title": clean_string(titles[0]) if titles else None,
            "author": clean_string(", ".join(values(".//dc:creator//rdf:li"))),
        }

    def read(self, path: Path, max_pages: int = 1) -> Tuple[List[str], List[str], str]:
        """Return ``(title_candidates, author_candidates, first_pages_text)``.

        Candidates are ordered: info dictionary first, XMP second.
        """
        b = self.backend()
        titles: List[str] = []
        authors: List[str] = []

        with open(path, "rb") as fp:
            doc = b.PDFDocument(b.PDFParser(fp))
            info = b.resolve1(doc.info[0]) if doc.info else {}
            for key, bucket in (("Title", titles), ("Author", authors)):
                value = self._decode_value(info.get(key)) if isinstance(info, dict) else None
                if value:
                    bucket.append(value)
            xmp = self._xmp_fields(doc)
            if xmp.get("title"):
                titles.append(xmp["title"])
            if xmp.get("author"):
                authors.append(xmp["author"])

        text = b.extract_text(str(path), maxpages=max_pages) or ""
        return titles, authors, text

    def extract_metadata(self, path: Path, max_pages: int = 1) -> Dict[str, str | None]:
        titles, authors, text = self.read(path, max_pages=max_pages)

        title = next((t for t in map(sanitize_title, titles) if t), None)
        author = next((a for a in map(sanitize_authors, authors) if a), None)
        if author is None:
            author = sanitize_authors(guess_authors_from_text(text))
        return {"title": title, "authors": author}


def safe_metadata(reader: PdfMetadataReader, path: Path, max_pages: int) -> Dict[str, str | None]:
    # One bad PDF only costs its own metadata.
    try:
        return reader.extract_metadata(path, max_pages=max_pages)
    except Exception as e:  # pdfminer raises a wide range of errors on broken files
        logging.warning("PDF parse failed, using filename: %s (%s: %s)", path.name, type(e).__name__, e)
        return {"title": None, "authors": None}


def escape_html(value: str) -> str:
    # numeric &#39; for quotes, same bytes the site's other generated HTML uses
    return html.escape(value).replace("&#x27;", "&#39;")


def render_pdf_html(title: str, authors: str | None, year: int | None, href: str) -> str:
    parts = []
    if authors:
        parts.append(f"{escape_html(authors)}.")
    parts.append(escape_html(title) + (f" ({year})" if year else ""))
    parts.append(f'<a href="{escape_html(href)}" target="_blank" rel="noreferrer">PDF</a>')
    return " ".join(parts)


def pdf_entry(folder_key: str, file_name: str, meta: Dict[str, str | None], year: int | None) -> Entry:
    href = local_href(folder_key, file_name)
    title = meta.get("title") or title_from_filename(file_name)
    authors = meta.get("authors")

    text = normalize_whitespace(f"{authors + '. ' if authors else ''}{title}{f' ({year})' if year else ''}")
    return {
        "id": f"{folder_key}-pdf-{file_name}",
        "text": text,
        "htmlLines": html_to_lines(render_pdf_html(title, authors, year, href)),
        "pdfLinks": [{
            "fileName": file_name,
            "localFileName": file_name,
            "originalHref": href,
            "localHref": href,
            "localExists": True,
        }],
        "missingLocalPdf": False,
    }


def generate_pdf_index(
    title: str,
    folder_key: str,
    public_dir: Path,
    claimed_keys: Set[str] | None = None,
    reader: PdfMetadataReader | None = None,
    max_pages: int = 1,
    year_from_name: bool | None = None,
    max_workers: int = 4,
    source: str | None = None,
) -> Index:
    folder = public_dir / folder_key
    source = source or f"public/{folder_key}"
    try:
        names = list_pdf_files(folder)
    except OSError as e:
        logging.warning("PDF folder missing: %s (%s)", folder, e)
        return empty_index(title, source)

    claimed = claimed_keys or set()
    orphans = []
    for name in names:
        key = normalize_key(name)
        if key is None or key not in claimed:
            orphans.append(name)
    logging.info("%s: %d PDFs on disk, %d unreferenced", title, len(names), len(orphans))

    if year_from_name is None:
        year_from_name = folder_key == "presentations"

    if reader is not None and orphans:
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            metas = list(pool.map(lambda n: safe_metadata(reader, folder / n, max_pages), orphans))
    else:
        metas = [{"title": None, "authors": None} for _ in orphans]

    items = [
        pdf_entry(folder_key, name, meta, year_from_filename(name) if year_from_name else None)
        for name, meta in zip(orphans, metas)
    ]
    # filesystem order and worker completion order must not leak into the output
    items.sort(key=lambda item: (item["text"].lower(), item["id"]))

    return {
        "schemaVersion": INDEX_SCHEMA_VERSION,
        "generatedAt": utc_now(),
        "source": source,
        "title": title,
        "items": items,
        "footerHtmlLines": [],
    }
