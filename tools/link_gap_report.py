# Description: which legacy entries point at PDFs we don't have locally.
# Writes data/missing_pdfs.csv and prints the most common missing filenames.

import argparse
import csv
import os
from collections import Counter

from ingest.index_io import read_index_if_exists
from ingest.merge import INDEX_FILES, MISSING_PDF_NOTICE, display_text
from ingest.run_all import load_cfg


def missing_rows(cfg) -> list:
    rows = []
    for topic in cfg["topics"]:
        key = topic["key"]
        index = read_index_if_exists(cfg["app_dir"] / key / INDEX_FILES["legacy"].format(key=key))
        for item in (index or {}).get("items") or []:
            if not item.get("missingLocalPdf"):
                continue
            for link in item["pdfLinks"]:
                rows.append([key, item.get("id", ""), link["fileName"], link["originalHref"], display_text(item)])
    return rows


def main(argv=None):
    parser = argparse.ArgumentParser(description="Report legacy entries whose PDFs are missing locally")
    parser.add_argument("--config", default="sources.yaml")
    parser.add_argument("--out", default="data/missing_pdfs.csv")
    args = parser.parse_args(argv)

    rows = missing_rows(load_cfg(args.config))

    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    with open(args.out, "w", encoding="utf-8", newline="") as f:
        w = csv.writer(f)
        w.writerow(["topic", "id", "fileName", "originalHref", "caption"])
        w.writerows(rows)

    top = Counter(r[2] for r in rows).most_common(15)
    print(f"{MISSING_PDF_NOTICE}: {len(rows)} links  -> {args.out}\n")
    print("Top missing files:")
    for name, n in top:
        print(f"  {name:<60} {n}")


if __name__ == "__main__":
    main()
