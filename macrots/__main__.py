"""
Run a study from the command line.

    python -m macrots unemployment
    python -m macrots gnp_growth --sample --output outputs/
"""
import argparse
import sys
from dataclasses import replace

from macrots.pipeline import SeriesStudy
from macrots.utils.config import STUDIES, get_study_config
from macrots.utils.exceptions import MacroTSError
from macrots.utils.export import export_forecast_csv, export_report_json
from macrots.utils.logging_config import get_logger


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="macrots", description=__doc__.strip().splitlines()[0])
    parser.add_argument("study", choices=sorted(STUDIES), help="Study to run")
    parser.add_argument("--sample", action="store_true", help="Use synthetic data instead of FRED")
    parser.add_argument("--horizon", type=_positive_int, default=None, help="Forecast horizon (observations)")
    parser.add_argument("--output", default=None, help="Directory for report.json and forecast.csv")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logger = get_logger("macrots")

    config = get_study_config(args.study)
    if args.horizon is not None:
        config = replace(config, arima=replace(config.arima, forecast_horizon=args.horizon))
    study = SeriesStudy(config)

    try:
        report = study.run(sample=args.sample)
    except MacroTSError as e:
        logger.error(f"{e.error_code}: {e.message}", extra={"details": e.details})
        print(e.user_message, file=sys.stderr)
        return 1

    print(report.format_text())

    if args.output:
        export_report_json(report.to_dict(), args.output, f"{args.study}_report.json")
        export_forecast_csv(report.forecast, args.output, f"{args.study}_forecast.csv")

    return 0


if __name__ == "__main__":
    sys.exit(main())
