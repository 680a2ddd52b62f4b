"""CLI job running one location-ranked selection and printing it as JSON."""

import argparse
import json
import logging
from typing import List, Optional

from georank.core.variants import VARIANTS, select_for_variant

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rank listings or banners for a postal code")
    parser.add_argument("--variant", dest="variant", choices=sorted(VARIANTS), default="listings", help="Candidate pool to rank")
    parser.add_argument("--pincode", dest="pincode", help="Requester postal code")
    parser.add_argument("--limit", dest="limit", type=int, help="Maximum number of results")
    parser.add_argument("--category", dest="category", help="Category name (category banners only)")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    results = select_for_variant(args.variant, args.pincode, args.limit, category=args.category)
    logger.info("Selected %d %s", len(results), args.variant)
    print(json.dumps(results, indent=2, default=str))


if __name__ == "__main__":
    main()
