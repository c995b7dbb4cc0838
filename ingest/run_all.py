# Description: Loads config sources.yaml and regenerates, for every topic:
#   app/<topic>/<topic>.legacy.generated.json  (entries mined from legacy/index.html)
#   app/<topic>/<topic>.pdf.generated.json     (PDFs in public/<folder> nobody references)
# Curated (<topic>.content.json) and override (<topic>.overrides.json) files are
# read-only inputs here; they only decide which PDFs count as already listed.

from __future__ import annotations

import argparse
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Set

import yaml

from ingest.index_io import write_index_file
from ingest.legacy_html import generate_legacy_index
from ingest.merge import INDEX_FILES, load_topic_indices, topic_order
from ingest.pdf_keys import normalize_aliases, pdf_keys_from_index
from ingest.pdf_metadata import PdfMetadataReader, generate_pdf_index

TRUTHY = {"1", "true", "yes", "on"}

DEFAULT_TOPICS = [
    {"key": "publications", "title": "Publications", "pdf_folder": "papers"},
    {"key": "presentations", "title": "Presentations", "pdf_folder": "presentations", "year_from_filename": True,
     "order": ["overrides", "legacy", "pdf"], "footer_order": ["legacy", "overrides"]},
    {"key": "reports", "title": "Reports", "pdf_folder": "reports", "max_pages": 3},
]

# outputs of older generator versions; removed so they can't be picked up by mistake
DEPRECATED_OUTPUTS = [
    "{key}.generated.json",
    "{key}.curated.generated.json",
    "{key}.section.generated.json",
]


def setup_logger(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
        force=True
    )
    # hush pdfminer internals
    for name in (
        "pdfminer", "pdfminer.high_level", "pdfminer.layout",
        "pdfminer.pdfinterp", "pdfminer.pdfpage", "pdfminer.psparser",
        "pdfminer.pdfdocument", "pdfminer.pdfparser", "pdfminer.cmapdb",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


# open sources.yaml and fill in defaults; relative paths resolve against the
# directory holding the config file
def load_cfg(path="sources.yaml") -> dict:
    cfg_path = Path(path)
    try:
        with open(cfg_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logging.warning("No config at %s; using defaults", cfg_path)
        cfg = {}

    topics = cfg.get("topics") or DEFAULT_TOPICS
    # unknown index names in order / footer_order are a config error
    for t in topics:
        topic_order(t)
        topic_order(t, "footer_order")

    root = cfg_path.resolve().parent
    paths = cfg.get("paths") or {}
    return {
        "root": root,
        "legacy_html": root / paths.get("legacy_html", "legacy/index.html"),
        "public_dir": root / paths.get("public_dir", "public"),
        "app_dir": root / paths.get("app_dir", "app"),
        "topics": topics,
        "parse_pdfs": bool(cfg.get("parse_pdfs", False)),
        "max_parse_workers": int(cfg.get("max_parse_workers", 4)),
        "topic_workers": int(cfg.get("topic_workers", 1)),
        "filename_aliases": normalize_aliases(cfg.get("filename_aliases")),
        "config_path": cfg_path.resolve(),
    }


def parse_pdfs_requested(flag: bool, cfg: dict) -> bool:
    return flag or cfg["parse_pdfs"] or os.environ.get("PARSE_PDFS", "").lower() in TRUTHY


def _rel(cfg: dict, path: Path) -> str:
    try:
        return str(path.relative_to(cfg["root"]))
    except ValueError:
        return str(path)


def remove_deprecated_outputs(out_dir: Path, key: str):
    for pattern in DEPRECATED_OUTPUTS:
        p = out_dir / pattern.format(key=key)
        try:
            p.unlink()
            logging.info("Removed deprecated %s", p)
        except FileNotFoundError:
            pass
        except OSError as e:
            logging.warning("Could not remove %s: %s", p, e)


def claimed_pdf_keys(indices) -> Set[str]:
    keys: Set[str] = set()
    for index in indices:
        keys |= pdf_keys_from_index(index)
    return keys


def run_topic(topic: dict, cfg: dict, reader: PdfMetadataReader | None = None) -> Dict[str, int]:
    key, title, folder = topic["key"], topic["title"], topic.get("pdf_folder", topic["key"])
    out_dir = cfg["app_dir"] / key
    legacy_out = out_dir / INDEX_FILES["legacy"].format(key=key)
    pdf_out = out_dir / INDEX_FILES["pdf"].format(key=key)

    remove_deprecated_outputs(out_dir, key)

    legacy_index = generate_legacy_index(
        cfg["legacy_html"], title, folder, cfg["public_dir"],
        aliases=cfg["filename_aliases"],
        source=_rel(cfg, cfg["legacy_html"]),
    )
    write_index_file(legacy_out, legacy_index)
    logging.info(f"Generated legacy {title} entries ({len(legacy_index['items'])}) -> {_rel(cfg, legacy_out)}")

    existing = load_topic_indices(cfg["app_dir"], key, title)
    claimed = claimed_pdf_keys([legacy_index, existing["content"], existing["overrides"]])

    pdf_index = generate_pdf_index(
        title, folder, cfg["public_dir"],
        claimed_keys=claimed,
        reader=reader,
        max_pages=int(topic.get("max_pages", 1)),
        year_from_name=topic.get("year_from_filename"),
        max_workers=cfg["max_parse_workers"],
        source=_rel(cfg, cfg["public_dir"] / folder),
    )
    write_index_file(pdf_out, pdf_index)
    hint = "" if reader else " (filename-only; set PARSE_PDFS=1 or --parse-pdfs for metadata)"
    logging.info(f"Generated PDF-extracted {title} entries ({len(pdf_index['items'])}) -> {_rel(cfg, pdf_out)}{hint}")

    return {"legacy": len(legacy_index["items"]), "pdf": len(pdf_index["items"])}


def run(cfg: dict, parse_pdfs: bool = False, only: List[str] | None = None) -> Dict[str, Dict[str, int]]:
    topics = [t for t in cfg["topics"] if not only or t["key"] in only]
    reader = PdfMetadataReader() if parse_pdfs else None

    results: Dict[str, Dict[str, int]] = {}
    failed = []
    # topics write disjoint files, so they can run side by side
    with ThreadPoolExecutor(max_workers=max(1, cfg["topic_workers"])) as pool:
        futures = {t["key"]: pool.submit(run_topic, t, cfg, reader) for t in topics}
        for key, fut in futures.items():
            try:
                results[key] = fut.result()
            except OSError as e:
                logging.error("Topic %s aborted, could not write output: %s", key, e)
                failed.append(key)

    if failed:
        raise SystemExit(f"Failed topics: {', '.join(failed)}")
    return results


def watched_paths(cfg: dict) -> List[Path]:
    paths = [cfg["config_path"], cfg["legacy_html"]]
    for t in cfg["topics"]:
        paths.append(cfg["public_dir"] / t.get("pdf_folder", t["key"]))
        for name in ("content", "overrides"):
            paths.append(cfg["app_dir"] / t["key"] / INDEX_FILES[name].format(key=t["key"]))
    return paths


def snapshot(paths: List[Path]) -> Dict[str, float]:
    # mtime of every watched file plus every PDF inside watched folders
    state: Dict[str, float] = {}
    for p in paths:
        try:
            state[str(p)] = p.stat().st_mtime
            if p.is_dir():
                for child in p.iterdir():
                    if child.suffix.lower() == ".pdf":
                        state[str(child)] = child.stat().st_mtime
        except OSError:
            continue
    return state


def watch(cfg: dict, parse_pdfs: bool, only: List[str] | None, interval: float):
    paths = watched_paths(cfg)
    last = snapshot(paths)
    logging.info("Watching %d paths (every %.1fs); Ctrl-C to stop", len(paths), interval)
    try:
        while True:
            time.sleep(interval)
            current = snapshot(paths)
            if current != last:
                logging.info("Change detected, regenerating")
                try:
                    run(cfg, parse_pdfs, only)
                except SystemExit as e:
                    logging.error("Regeneration incomplete: %s", e)
                last = snapshot(paths)
    except KeyboardInterrupt:
        logging.info("Watch stopped")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate legacy and PDF-derived content indices")
    parser.add_argument("--config", default="sources.yaml", help="Path to sources.yaml")
    parser.add_argument("--parse-pdfs", action="store_true", help="Read title/author from PDF metadata and text")
    parser.add_argument("--topic", action="append", help="Only regenerate this topic key (repeatable)")
    parser.add_argument("--watch", action="store_true", help="Regenerate whenever inputs change")
    parser.add_argument("--interval", type=float, default=2.0, help="Watch polling interval in seconds")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    setup_logger(args.verbose)
    cfg = load_cfg(args.config)
    parse_pdfs = parse_pdfs_requested(args.parse_pdfs, cfg)

    results = run(cfg, parse_pdfs, args.topic)
    logging.info("Done. %s", ", ".join(f"{k}: legacy={v['legacy']} pdf={v['pdf']}" for k, v in results.items()))

    if args.watch:
        watch(cfg, parse_pdfs, args.topic, args.interval)


if __name__ == "__main__":
    main()
