# scripts/run_impact_factor_pipeline.py
"""
Impact Factor Pipeline Runner
"""
import argparse
import logging
import sys
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from src.config import PipelineConfig
from src.errors import ImpactFactorPipelineError
from src.pipelines.impact_factor_pipeline import PipelineInputs, run_impact_factor_pipeline

logger = logging.getLogger('pipeline')


def configure_logging(log_dir: Path) -> Path:
    """Log to the console and to a timestamped file under log_dir"""
    log_dir.mkdir(parents=True, exist_ok=True)
    current_time = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f'impact_factor_pipeline_{current_time}.log'

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_file)
        ]
    )
    return log_file


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Waste impact factor pipeline")
    parser.add_argument("--variant-a", required=True, help="Raw LCA export for biogenic variant A")
    parser.add_argument("--variant-b", required=True, help="Raw LCA export for biogenic variant B")
    parser.add_argument("--date-file", required=True, help="One-row export date stamp")
    parser.add_argument("--mapping", required=True, help="Category mapping table (CSV or xlsx)")
    parser.add_argument("--mass-profile", required=True, help="Material tonnage table (CSV or xlsx)")
    parser.add_argument("--output-dir", help="Directory for output files")
    parser.add_argument("--tag-a", help="Variant tag substituted into biogenic categories for variant A")
    parser.add_argument("--tag-b", help="Variant tag substituted into biogenic categories for variant B")
    parser.add_argument("--header-rows", type=int, help="Non-data rows above the export column header")
    parser.add_argument("--processing-date", type=date.fromisoformat,
                        help="Processing date stamp (YYYY-MM-DD), defaults to today")
    parser.add_argument("--save-db", action="store_true", help="Also load impact factors into the database")
    parser.add_argument("--no-csv", action="store_true", help="Skip writing output files")
    parser.add_argument("--log-dir", default="logs", help="Directory for log files")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the pipeline from command-line arguments, returning the exit status"""
    args = parse_args(argv)
    log_file = configure_logging(Path(args.log_dir))

    try:
        config = PipelineConfig.from_env(header_rows=args.header_rows, output_dir=args.output_dir)
        if args.tag_a or args.tag_b:
            config = replace(config, variant_tags=(args.tag_a or config.variant_tags[0],
                                                   args.tag_b or config.variant_tags[1]))

        inputs = PipelineInputs(
            variant_a=args.variant_a,
            variant_b=args.variant_b,
            date_file=args.date_file,
            mapping=args.mapping,
            mass_profile=args.mass_profile,
        )
        result = run_impact_factor_pipeline(
            inputs,
            config=config,
            processing_date=args.processing_date,
            save_csv=not args.no_csv,
            save_db=args.save_db,
        )

    except ImpactFactorPipelineError as e:
        logger.error(f"Pipeline stopped: {type(e).__name__}: {e}")
        return 1
    except Exception as e:
        logger.error(f"Pipeline failed with error: {str(e)}", exc_info=True)
        return 1

    logger.info("=" * 50)
    logger.info("PIPELINE SUMMARY")
    logger.info("=" * 50)
    for stage, stats in result.stages.items():
        logger.info(f"{stage}: {stats['rows']} rows in {stats['seconds']}s")
    for name, path in result.outputs.items():
        logger.info(f"{name}: {path}")
    logger.info(f"Log written to: {log_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
