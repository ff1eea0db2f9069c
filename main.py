# --- START OF FULL FILE: main.py ---

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

import config as cfg
from era_converter import parse_date
from errors import ReportError
from export_sink import export_monthly_report, export_report
from records import load_records
from template_builder import build_templates

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'


def _read_json(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must hold a JSON object at the top level.")
    return data


def run_build_templates(args: argparse.Namespace) -> int:
    written = build_templates(args.output_dir)
    for path in written.values():
        print(path)
    return 0


def run_export(args: argparse.Namespace) -> int:
    """Range report from a JSON file holding subject, period {start, end}, daily and weekly."""
    payload = _read_json(args.input)
    subject, daily, weekly = load_records(payload)
    period = payload.get("period") or {}
    created_on = parse_date(payload.get("createdOn") or payload.get("created_on"))

    result = export_report(
        subject, daily, weekly,
        period.get("start"), period.get("end"),
        template_dir=args.templates,
        created_on=created_on,
    )
    path = result.write_to(args.output_dir)
    if result.warnings:
        logging.warning(f"[main.run_export] {len(result.warnings)} cell operation(s) were skipped; see log above.")
    print(path)
    return 0


def run_export_monthly(args: argparse.Namespace) -> int:
    """Monthly sheet from a JSON file holding subject, year, month and record."""
    payload = _read_json(args.input)
    result = export_monthly_report(
        payload.get("subject") or payload.get("user"),
        payload.get("record") or payload.get("monthly"),
        payload.get("year"),
        payload.get("month"),
        template_dir=args.templates,
    )
    print(result.write_to(args.output_dir))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compose in-home work support records into print-ready Excel reports.")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Defaults to INFO."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build-templates", help="Write the template workbooks.")
    build.add_argument(
        "--output-dir",
        type=str,
        default=cfg.TEMPLATE_DIR,
        help=f"Directory receiving the templates. Defaults to '{cfg.TEMPLATE_DIR}'."
    )
    build.set_defaults(handler=run_build_templates)

    for name, handler, help_text in (
        ("export", run_export, "Export the range report (title, daily and weekly blocks)."),
        ("export-monthly", run_export_monthly, "Export the single-record monthly evaluation."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--input", type=str, required=True, help="Path to the JSON input file.")
        sub.add_argument(
            "--templates",
            type=str,
            default=None,
            help=f"Template directory. Overrides '{cfg.TEMPLATE_DIR}' from config.py if provided."
        )
        sub.add_argument(
            "--output-dir",
            type=str,
            default=os.getcwd(),
            help="Directory to save the report. Defaults to the current working directory."
        )
        sub.set_defaults(handler=handler)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    try:
        return args.handler(args)
    except ReportError as e:
        logging.error(f"[main] Export failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        logging.error(f"[main] Could not read input: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

# --- END OF FULL FILE: main.py ---
