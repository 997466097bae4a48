#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Schedule a workload file with HEFT or CPOP and print the schedule.

Usage: simulate.py A /path-to-config [-o REPORT] [--info] [-v]
    A: 1 or heft - HEFT; 2 or cpop - CPOP.
See Workload.py for the config format.
"""

import argparse
import logging
import sys
from Heuristics import HEURISTICS
from Workload import WorkloadError, load_workload

logger = logging.getLogger("simulate")

ALGORITHMS = {"1" : "HEFT", "2" : "CPOP", "heft" : "HEFT", "cpop" : "CPOP"}

def algorithm_name(value):
    try:
        return ALGORITHMS[value.lower()]
    except KeyError:
        raise argparse.ArgumentTypeError('unknown algorithm "{}" (use 1/heft or 2/cpop)'.format(value)) from None

def build_parser():
    parser = argparse.ArgumentParser(description="Static scheduling of task DAGs on heterogeneous processors (HEFT/CPOP).")
    parser.add_argument('algorithm', type=algorithm_name, help="1 or heft - HEFT; 2 or cpop - CPOP")
    parser.add_argument('config', help="path to the workload configuration file")
    parser.add_argument('-o', '--output', help="write the schedule here instead of stdout")
    parser.add_argument('--info', action='store_true', help="print DAG and platform information before the schedule")
    parser.add_argument('-v', '--verbose', action='store_true', help="log every scheduling decision")
    return parser

def run_and_report(dag, platform, heuristic, dest, info=False):
    if info:
        dag.print_info(filepath=dest)
        platform.print_info(filepath=dest)
    return HEURISTICS[heuristic](dag, platform, schedule_dest=dest)

def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        dag, platform = load_workload(args.config)
    except WorkloadError as err:
        logger.error(err)
        return 1

    if args.output is None:
        run_and_report(dag, platform, args.algorithm, sys.stdout, info=args.info)
        return 0
    try:
        with open(args.output, "w") as dest:
            run_and_report(dag, platform, args.algorithm, dest, info=args.info)
    except OSError as err:
        logger.error("Could not write schedule to {}: {}".format(args.output, err))
        return 2
    return 0

if __name__ == "__main__":
    sys.exit(main())
