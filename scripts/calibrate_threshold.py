#!/usr/bin/env python3
"""
Report precision / recall of the scorer over labeled pairs at several thresholds.

Each input line is a JSON object:
    {"source": {...}, "candidate": {...}, "match": true}

Usage:
    python scripts/calibrate_threshold.py --pairs data/labeled_pairs.jsonl
    python scripts/calibrate_threshold.py --pairs pairs.jsonl --config config.json --thresholds 0.4,0.6,0.8
"""

import argparse
import json
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pricematch.config import MatchConfig, load_config
from pricematch.errors import InvalidInput
from pricematch.schema import SourceProductDescriptor
from pricematch.scoring import SimilarityScorer
from pricematch.service import candidate_for_comparison


def load_pairs(path: Path):
    pairs = []
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                row = json.loads(line)
                source = SourceProductDescriptor.from_dict(row["source"])
                candidate = candidate_for_comparison(row["candidate"])
                pairs.append((source, candidate, bool(row["match"])))
            except (json.JSONDecodeError, KeyError, InvalidInput) as e:
                print(f"  skipping line {lineno}: {e}")
    return pairs


def evaluate(scores, thresholds):
    rows = []
    for t in thresholds:
        tp = sum(1 for s, label in scores if s >= t and label)
        fp = sum(1 for s, label in scores if s >= t and not label)
        fn = sum(1 for s, label in scores if s < t and label)
        precision = tp / (tp + fp) if tp + fp else 0.0
        recall = tp / (tp + fn) if tp + fn else 0.0
        rows.append((t, tp, fp, fn, precision, recall))
    return rows


def main():
    parser = argparse.ArgumentParser(description="Calibrate the availability threshold")
    parser.add_argument("--pairs", type=Path, required=True, help="JSONL file of labeled pairs")
    parser.add_argument("--config", type=Path, help="JSON engine config to evaluate")
    parser.add_argument("--thresholds", default="0.4,0.5,0.6,0.7,0.8,0.9", help="Comma-separated thresholds")
    args = parser.parse_args()

    if not args.pairs.exists():
        print(f"Pairs file not found: {args.pairs}")
        sys.exit(1)

    config = load_config(args.config) if args.config else MatchConfig()
    thresholds = [float(t) for t in args.thresholds.split(",") if t.strip()]

    print(f"Loading pairs from {args.pairs}...")
    pairs = load_pairs(args.pairs)
    if not pairs:
        print("No usable pairs.")
        sys.exit(1)
    positives = sum(1 for _, _, label in pairs if label)
    print(f"  {len(pairs)} pairs ({positives} matches, {len(pairs) - positives} non-matches)\n")

    scorer = SimilarityScorer.from_config(config)
    scores = [(scorer.score(s, c).score, label) for s, c, label in pairs]

    print(f"{'threshold':>9}  {'tp':>4}  {'fp':>4}  {'fn':>4}  {'precision':>9}  {'recall':>6}")
    for t, tp, fp, fn, precision, recall in evaluate(scores, thresholds):
        print(f"{t:>9.2f}  {tp:>4}  {fp:>4}  {fn:>4}  {precision:>9.3f}  {recall:>6.3f}")


if __name__ == "__main__":
    main()
