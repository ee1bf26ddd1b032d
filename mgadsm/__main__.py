"""
Command-line interface for mgadsm.

Usage:
    # Evaluate the design vector stored in (or defaulted by) an itinerary
    python -m mgadsm evaluate mission.itn

    # Evaluate many design vectors, one per CSV row
    python -m mgadsm batch mission.itn vectors.csv --output dvs.csv

    # Show the design-vector layout of an itinerary
    python -m mgadsm layout mission.itn
"""

import argparse
import csv
import logging
import sys
from pathlib import Path

import numpy as np
from tqdm import tqdm

from mgadsm.exceptions import MGADSMError
from mgadsm.itinerary import Itinerary

logger = logging.getLogger(__name__)


def _setup_evaluate_parser(subparsers):
    """
    Set up the evaluate subcommand parser.

    Parameters
    ----------
    subparsers : argparse._SubParsersAction
        The subparsers object from the main parser

    Returns
    -------
    argparse.ArgumentParser
        The configured evaluate parser
    """
    evaluate_parser = subparsers.add_parser(
        'evaluate',
        help='Evaluate a single design vector',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Use the design vector stored in the itinerary
  python -m mgadsm evaluate mission.itn

  # Override the design vector and write a report and a plot
  python -m mgadsm evaluate mission.itn --x 7000 12960000 500 0 0.4 17280000 --report out.json --plot out.html
"""
    )
    evaluate_parser.add_argument('itinerary', type=Path, help='Itinerary file (.itn)')
    evaluate_parser.add_argument(
        '--x',
        type=float,
        nargs='+',
        metavar='VALUE',
        default=None,
        help='Design vector (space-separated floats); defaults to the itinerary values'
    )
    evaluate_parser.add_argument(
        '--report', '-r',
        type=Path,
        default=None,
        help='Write the detailed evaluation report as JSON to this file'
    )
    evaluate_parser.add_argument(
        '--plot', '-p',
        type=Path,
        default=None,
        help='Write an interactive HTML plot of the trajectory to this file'
    )
    return evaluate_parser


def _setup_batch_parser(subparsers):
    """
    Set up the batch subcommand parser.

    Parameters
    ----------
    subparsers : argparse._SubParsersAction
        The subparsers object from the main parser

    Returns
    -------
    argparse.ArgumentParser
        The configured batch parser
    """
    batch_parser = subparsers.add_parser(
        'batch',
        help='Evaluate design vectors read from a CSV file',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m mgadsm batch mission.itn vectors.csv --output dvs.csv
"""
    )
    batch_parser.add_argument('itinerary', type=Path, help='Itinerary file (.itn)')
    batch_parser.add_argument('vectors', type=Path, help='CSV file with one design vector per row')
    batch_parser.add_argument(
        '--output', '-o',
        type=Path,
        default=None,
        help='CSV file for the results (default: print to stdout)'
    )
    return batch_parser


def _setup_layout_parser(subparsers):
    layout_parser = subparsers.add_parser(
        'layout',
        help='Print the design-vector layout of an itinerary'
    )
    layout_parser.add_argument('itinerary', type=Path, help='Itinerary file (.itn)')
    return layout_parser


def evaluate(args) -> int:
    itinerary = Itinerary.load(args.itinerary)
    trajectory = itinerary.to_trajectory()
    x = args.x if args.x is not None else itinerary.get_design_vector()

    report = trajectory.evaluate_detailed(x)
    for leg in report.legs:
        print(f"leg {leg.index}: {leg.initial_body} -> {leg.final_body} "
              f"(MJD2000 {leg.departure_epoch:.3f} -> {leg.arrival_epoch:.3f})")
        for dv in leg.delta_vs:
            print(f"    {dv:12.6f} km/s")
    print(f"total {report.total_delta_v:12.6f} km/s")

    if args.report is not None:
        report.save(args.report)
        logger.info("Wrote report to %s", args.report)
    if args.plot is not None:
        from mgadsm.plot import plot_trajectory
        plot_trajectory(report, mu=itinerary.mu_central, title=itinerary.name, show=False,
                        filename=args.plot)
        logger.info("Wrote plot to %s", args.plot)
    return 0


def batch(args) -> int:
    itinerary = Itinerary.load(args.itinerary)
    trajectory = itinerary.to_trajectory()
    vectors = np.loadtxt(args.vectors, delimiter=',', ndmin=2, comments='#')

    rows = []
    for x in tqdm(vectors, desc=itinerary.name, unit='vector'):
        try:
            dvs = trajectory.evaluate(x)
        except (MGADSMError, ValueError) as e:
            logger.warning("Skipping design vector: %s", e)
            rows.append([float('nan')])
            continue
        rows.append([sum(dvs), *dvs])

    out = open(args.output, 'w', newline='') if args.output is not None else sys.stdout
    try:
        writer = csv.writer(out)
        writer.writerow(['total_delta_v', 'delta_vs...'])
        writer.writerows(rows)
    finally:
        if out is not sys.stdout:
            out.close()
    return 0


def layout(args) -> int:
    itinerary = Itinerary.load(args.itinerary)
    trajectory = itinerary.to_trajectory()
    for i, (label, value) in enumerate(zip(trajectory.design_vector_labels,
                                           itinerary.get_design_vector())):
        print(f"{i:3d}  {label:<48s} {value:.6g}")
    return 0


def main(argv=None) -> int:
    """Main entry point for the mgadsm CLI."""
    parser = argparse.ArgumentParser(
        prog='mgadsm',
        description="MGA-DSM trajectory evaluation",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--log-level',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: WARNING)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    subparsers.required = True

    _setup_evaluate_parser(subparsers)
    _setup_batch_parser(subparsers)
    _setup_layout_parser(subparsers)

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    if args.command == 'evaluate':
        return evaluate(args)
    elif args.command == 'batch':
        return batch(args)
    elif args.command == 'layout':
        return layout(args)
    return 1


if __name__ == '__main__':
    sys.exit(main())
