#!/usr/bin/env python3
# Copyright 2026 TIER IV, inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""CLI entry point for validating panels against the plugin schemas."""

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List

from .config import SchemasConfig
from .exceptions import ConfigurationError, PanelValidationError
from .registry import SchemaRegistry
from .report import ValidationReport
from .utils.logging_utils import collect_records
from .validator import PanelValidator


def load_panels(file_path: Path) -> Dict[str, bytes]:
    """Read the panels held by a JSON file.

    A dashboard (an object with a ``spec.panels`` mapping) yields one entry
    per panel. Anything else is a single panel named after the file.
    """
    raw = file_path.read_bytes()
    try:
        data = json.loads(raw)
    except ValueError:
        return {file_path.stem: raw}

    dashboard_spec = data.get('spec') if isinstance(data, dict) else None
    panels = dashboard_spec.get('panels') if isinstance(dashboard_spec, dict) else None
    if isinstance(panels, dict):
        return {str(name): json.dumps(panel).encode('utf-8') for name, panel in panels.items()}
    return {file_path.stem: raw}


def _build_config(args: argparse.Namespace) -> SchemasConfig:
    if args.config:
        config = SchemasConfig.from_yaml(args.config)
    else:
        config = SchemasConfig.from_env()
    if args.schemas_path:
        config.path = args.schemas_path
    if args.charts_folder:
        config.charts_folder = args.charts_folder
    if args.queries_folder:
        config.queries_folder = args.queries_folder
    if args.log_level:
        config.log_level = args.log_level
        config.print_level = args.log_level
    return config


def main(argv: List[str] | None = None) -> None:
    """Main entry point for the validation CLI."""
    parser = argparse.ArgumentParser(
        description='Validate dashboard panels against the chart plugin schemas',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        'files',
        nargs='*',
        help='JSON files holding a dashboard or a single panel',
    )
    parser.add_argument('--config', help='YAML file with the schema settings')
    parser.add_argument('--schemas-path', help='Schema root directory')
    parser.add_argument('--charts-folder', help='Chart plugins folder, relative to the schema root')
    parser.add_argument('--queries-folder', help='Shared query sub-types folder, relative to the schema root')
    parser.add_argument(
        '--all',
        action='store_true',
        help='Report every invalid panel instead of stopping at the first one of each file',
    )
    parser.add_argument(
        '--list-kinds',
        action='store_true',
        help='Print the kinds loaded from the schema root',
    )
    parser.add_argument(
        '--format',
        choices=['human', 'json', 'github-actions'],
        default='human',
        help='Output format (default: human)',
    )
    parser.add_argument('--log-level', help='Logging level (default: from configuration)')

    args = parser.parse_args(argv)

    try:
        config = _build_config(args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    if args.format != 'human' and not args.log_level:
        # keep stdout machine-readable
        config.log_level = 'WARNING'
        config.print_level = 'WARNING'
    config.set_logging()

    registry = SchemaRegistry(config)
    with collect_records() as reload_issues:
        registry.reload()

    if args.list_kinds:
        for kind in registry.kinds():
            print(kind)
        if not args.files:
            sys.exit(0)

    if not args.files:
        print("No panel files given.", file=sys.stderr)
        sys.exit(2)

    validator = PanelValidator(registry)
    reports = []
    for file_name in args.files:
        file_path = Path(file_name)
        report = ValidationReport(file_path)
        reports.append(report)
        try:
            panels = load_panels(file_path)
        except OSError as exc:
            report.add_error(f"Failed to read {file_path}: {exc}")
            continue
        report.panels = list(panels)

        if args.all:
            for error in validator.collect_errors(panels):
                report.add_panel_error(error)
        else:
            try:
                validator.validate(panels)
            except PanelValidationError as exc:
                report.add_panel_error(exc)

    if args.format == 'json':
        output = {
            'kinds': registry.kinds(),
            'reload_issues': reload_issues.messages,
            'files': len(reports),
            'errors': sum(len(r.errors) for r in reports),
            'results': [r.to_dict() for r in reports],
        }
        print(json.dumps(output, indent=2))
    elif args.format == 'github-actions':
        for message in reload_issues.messages:
            print(f"::warning::{message}")
        for report in reports:
            for error in report.errors:
                print(f"::error file={report.file_path}::{error['message']}")
    else:  # human-readable
        for report in reports:
            if report.has_errors():
                print(f"\n{report.file_path}:")
                for error in report.errors:
                    print(f"  ERROR: {error['message']}")

    total_errors = sum(len(r.errors) for r in reports)
    if total_errors > 0:
        sys.exit(1)
    if args.format == 'human':
        print("Validation succeeded with no errors.")
    sys.exit(0)


if __name__ == '__main__':
    main()
