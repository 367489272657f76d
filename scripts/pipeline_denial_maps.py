"""
Pipeline: HMDA denial rates by county for Latino and non-Latino applicants.

Inputs (paths from src/configs/sources_hmda.py, overridable below):
- loans: HMDA LAR extract with county_code, derived_ethnicity, action_taken
- counties: Natural Earth admin-2 counties (CODE_LOCAL, REGION, geometry)

Steps: project + recode loans, count all/denied applications per county and
ethnicity, compute percent denied, merge ethnicities (pct_diff = Latino - NotLatino),
left-join onto county polygons, render one map per ethnicity (AK and HI excluded).

Output (under data_revealed/denial_maps/):
- latino_per_county.csv, not_latino_per_county.csv, county_comparison.csv
- denied_latino.png, denied_not_latino.png
"""

import argparse
import logging
import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from src.configs.sources_hmda import DEFAULT_OUTPUT_DIR, SOURCES_HMDA
from src.denial_maps.errors import SchemaError, UnrecognizedCategory
from src.denial_maps.joiner import JoinDirection, summarize
from src.denial_maps.pipeline import build_comparison, build_enriched, write_tables
from src.denial_maps.renderer import render_denial_maps

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Percent of denied home loans per county for Latino and non-Latino applicants."
    )
    parser.add_argument("--loans", type=str, default=None, help="Loan CSV (default: SOURCES_HMDA['loans']['path'])")
    parser.add_argument("--counties", type=str, default=None, help="County boundary file (default: SOURCES_HMDA['counties']['path'])")
    parser.add_argument("--out-dir", type=str, default=DEFAULT_OUTPUT_DIR, help=f"Output directory (default: {DEFAULT_OUTPUT_DIR})")
    parser.add_argument("--base-path", type=str, default=None, help="Project root (default: script parent)")
    parser.add_argument(
        "--join",
        choices=[d.value for d in JoinDirection],
        default=JoinDirection.NOT_LATINO.value,
        help="Which ethnicity drives the county merge (default: not_latino)",
    )
    parser.add_argument("--chunksize", type=int, default=None, help="Aggregate the loan CSV in chunks of this many rows")
    parser.add_argument("--no-maps", action="store_true", help="Write tables only")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    args = parser.parse_args()

    if args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    base = Path(args.base_path) if args.base_path else project_root
    out_dir = base / args.out_dir
    loans_spec = dict(SOURCES_HMDA["loans"])
    counties_spec = dict(SOURCES_HMDA["counties"])
    if args.loans:
        loans_spec["path"] = args.loans
    if args.counties:
        counties_spec["path"] = args.counties
    if args.chunksize:
        loans_spec["chunksize"] = args.chunksize

    try:
        comparison, per_ethnicity = build_comparison(loans_spec, base, how=args.join)
        write_tables(comparison, per_ethnicity, out_dir)
        logger.info(f"Summary:\n{summarize(comparison)}")
        if not args.no_maps:
            enriched = build_enriched(comparison, counties_spec, base)
            render_denial_maps(enriched, out_dir, region_column=counties_spec.get("region_column", "REGION"))
    except (FileNotFoundError, SchemaError, UnrecognizedCategory) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Saved {len(comparison)} counties to {out_dir}")


if __name__ == "__main__":
    main()
    sys.exit(0)
