# Description: Clean raw PDF metadata and first-page text into presentable
# titles / author lines. Everything here is best-effort: anything that looks
# like extraction noise becomes None and the caller falls back to the filename.

from __future__ import annotations

import re
from typing import List

PPT_PREFIX_RE = re.compile(r"^microsoft\s+powerpoint\s*-\s*", re.I)
EXT_SUFFIX_RE = re.compile(r"\.(pptx?|pdf)$", re.I)
PX_RE = re.compile(r"\b\d{1,3}px\b", re.I)
NOISE_RE = re.compile(r"`{2,}|%{2,}|_{2,}|~{2,}")
DATE_RE = re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b")
AMPM_RE = re.compile(r"\bAM\b|\bPM\b")
EMAIL_PAREN_RE = re.compile(r"\([^)]*@[A-Za-z0-9_.-]+[^)]*\)")
ROMAN_RE = re.compile(r"^[IVXLCDM]{2,7}$")
REPORT_NO_RE = re.compile(r"^LA-UR-\d+", re.I)
LEADING_PUNCT_RE = re.compile(r"^[(\"'\[]+")
TRAILING_PUNCT_RE = re.compile(r"[)\"'\].,;:!?]+$")
AUTHOR_LABEL_RE = re.compile(r"^author\(s\):?$", re.I)
YEAR_RE = re.compile(r"(?:^|[^0-9])((?:19|20)\d{2})(?:[^0-9]|$)")

ACRONYMS = {
    "LA", "LANL", "NNSA", "DOE", "US", "USA", "U.S", "EPA", "USGS",
    "RLWTF", "RCRA", "CERCLA", "NMED", "NPDES", "QA", "QC",
}
STOP_WORDS = {
    "a", "an", "and", "as", "at", "by", "for", "from", "in", "of", "on", "or", "the", "to", "with",
}

# Cover-page lines that are never author names.
BOILERPLATE = [
    ("los alamos national laboratory",),
    ("affirmative action",),
    ("equal opportunity",),
    ("department of energy",),
    ("contract", "eng"),
    ("approved for public release",),
    ("distribution is unlimited",),
    ("nonexclusive", "royalty"),
    ("academic freedom", "researcher"),
]

AUTHOR_SCAN_LINES = 30
AUTHOR_LABEL_LOOKAHEAD = 5


def clean_string(value) -> str | None:
    if not value or not isinstance(value, str):
        return None
    trimmed = value.replace("\0", "").strip()
    if not trimmed or trimmed.lower() == "untitled":
        return None
    return trimmed


def _count(pattern: str, s: str) -> int:
    return len(re.findall(pattern, s))


def is_shouting(s: str) -> bool:
    letters = _count(r"[A-Za-z]", s)
    if letters < 8:
        return False
    if _count(r"[a-z]", s) > 0:
        return False
    return _count(r"[A-Z]", s) / letters >= 0.9


def title_case_word(word: str, is_first: bool, is_last: bool) -> str:
    if not word:
        return word
    if re.search(r"\d", word) or ROMAN_RE.match(word):
        return word
    if re.fullmatch(r"[A-Z.]{2,10}", word) and word in ACRONYMS:
        return word

    lower = word.lower()
    if not is_first and not is_last and lower in STOP_WORDS:
        return lower
    return lower[:1].upper() + lower[1:]


def prettify_shouting_title(s: str) -> str:
    # Conservative Title Case; whitespace runs and -/ delimiters are kept verbatim.
    parts = re.split(r"(\s+)", s)
    last_word = sum(1 for p in parts if p.strip()) - 1
    word_index = 0
    out: List[str] = []

    for part in parts:
        if not part.strip():
            out.append(part)
            continue

        # report numbers (LA-UR-12-345) would otherwise be split on their hyphens
        if REPORT_NO_RE.match(LEADING_PUNCT_RE.sub("", part)):
            word_index += 1
            out.append(part.upper())
            continue

        segments = []
        for seg in re.split(r"([/-])", part):
            if seg in ("-", "/"):
                segments.append(seg)
                continue
            stripped = TRAILING_PUNCT_RE.sub("", LEADING_PUNCT_RE.sub("", seg))
            if not stripped or re.search(r"[a-z]", seg):
                segments.append(seg)
                continue
            cased = title_case_word(stripped, word_index == 0, word_index == last_word)
            leading = LEADING_PUNCT_RE.match(seg)
            trailing = TRAILING_PUNCT_RE.search(seg)
            segments.append(
                (leading.group(0) if leading else "") + cased + (trailing.group(0) if trailing else "")
            )

        word_index += 1
        out.append("".join(segments))

    return "".join(out)


def sanitize_title(raw) -> str | None:
    t = clean_string(raw)
    if not t:
        return None

    title = PPT_PREFIX_RE.sub("", t)
    title = EXT_SUFFIX_RE.sub("", title)
    title = re.sub(r"\s+", " ", title).strip()
    if not title:
        return None

    if PX_RE.search(t) or NOISE_RE.search(t):
        return None
    if _count(r"[A-Za-z]", t) < 4:
        return None

    if is_shouting(title):
        return prettify_shouting_title(title)
    return title


def sanitize_authors(raw) -> str | None:
    a = clean_string(raw)
    if not a:
        return None

    cleaned = EMAIL_PAREN_RE.sub("", a)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    cleaned = re.sub(r"\s+,", ",", cleaned)
    cleaned = re.sub(r",\s+", ", ", cleaned)

    # timestamps / slide chrome misread as the Author field
    if DATE_RE.search(cleaned) or AMPM_RE.search(cleaned):
        return None
    if PX_RE.search(cleaned) or NOISE_RE.search(cleaned):
        return None

    if not re.search(r"[A-Za-z]", cleaned):
        return None
    if len(cleaned.split(" ")) < 2:
        return None
    return cleaned


def looks_like_boilerplate(line: str) -> bool:
    low = line.lower()
    return any(all(term in low for term in terms) for terms in BOILERPLATE)


def guess_authors_from_text(text) -> str | None:
    if not text or not isinstance(text, str):
        return None

    lines = [ln.strip() for ln in text.splitlines()]
    lines = [ln for ln in lines if ln][:AUTHOR_SCAN_LINES]

    # LA-UR style cover pages: "Author(s):" on its own line, names below it.
    for i, line in enumerate(lines):
        if not AUTHOR_LABEL_RE.match(line):
            continue
        for candidate in lines[i + 1 : i + 1 + AUTHOR_LABEL_LOOKAHEAD]:
            candidate = re.sub(r"\s+", " ", candidate).strip()
            if not candidate or looks_like_boilerplate(candidate):
                continue
            cleaned = sanitize_authors(candidate)
            if cleaned:
                return cleaned

    for line in lines:
        clean = re.sub(r"\s+", " ", line).strip()
        if len(clean) < 6 or len(clean) > 140:
            continue
        if looks_like_boilerplate(clean):
            continue
        looks_like_authors = (
            "," in clean
            or re.search(r"\band\b", clean, re.I)
            or re.search(r"\bet\s+al\b", clean, re.I)
        )
        if looks_like_authors and re.search(r"[A-Za-z]", clean) and len(clean.split(" ")) >= 2:
            return clean

    return None


def title_from_filename(file_name: str) -> str:
    stem = re.sub(r"\.[^.]+$", "", file_name)
    return re.sub(r"\s+", " ", re.sub(r"[_-]+", " ", stem)).strip()


def year_from_filename(file_name) -> int | None:
    if not file_name or not isinstance(file_name, str):
        return None
    m = YEAR_RE.search(file_name)
    return int(m.group(1)) if m else None
