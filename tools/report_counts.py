# Quick per-topic counts of every index and of the merged list a page would show.

import argparse

from ingest.merge import INDEX_ORDER, load_topic_indices, merged_topic_items, topic_order
from ingest.run_all import load_cfg


def topic_counts(app_dir, topic_key: str, order=INDEX_ORDER) -> dict:
    indices = load_topic_indices(app_dir, topic_key)
    counts = {name: len((indices[name] or {}).get("items") or []) for name in INDEX_ORDER}
    merged = merged_topic_items(indices, order)
    counts["merged"] = len(merged)
    counts["missing_pdf"] = sum(1 for item in merged if item.get("missingLocalPdf"))
    return counts


def main(argv=None):
    parser = argparse.ArgumentParser(description="Entry counts per topic")
    parser.add_argument("--config", default="sources.yaml")
    args = parser.parse_args(argv)

    cfg = load_cfg(args.config)
    for topic in cfg["topics"]:
        c = topic_counts(cfg["app_dir"], topic["key"], topic_order(topic))
        print(f"{topic['title']:<14} " + "  ".join(f"{k}={v}" for k, v in c.items()))


if __name__ == "__main__":
    main()
