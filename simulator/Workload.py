#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""

This module reads workloads - a task DAG together with the platform it is to be scheduled on - from
plain text configuration files.

File format (whitespace separated, task and processor IDs are 1-based):
    - V E P: the number of tasks, edges and processors.
    - E lines "<from> <to> <bytes>": the edges of the DAG and the data sent along them.
    - V lines "<c_1> ... <c_P>": the execution cost of each task on each processor.
    - (P^2 - P) / 2 lines "<p> <q> <rate>": the transfer rate (bytes per time unit) between processors p and q.

"""

import logging
import os
import numpy as np
import networkx as nx
from Graph import convert_from_nx_graph
from Environment import Node

logger = logging.getLogger(__name__)

class WorkloadError(ValueError):
    """Raised when a workload file is missing, truncated or structurally inconsistent."""

class _Tokens:
    """Reads numbers one at a time from the tokens of a workload file."""
    def __init__(self, tokens, source):
        self.tokens = tokens
        self.source = source
        self.pos = 0

    def number(self, what):
        if self.pos >= len(self.tokens):
            raise WorkloadError('{}: file ended while reading {}!'.format(self.source, what))
        token = self.tokens[self.pos]
        self.pos += 1
        try:
            value = float(token)
        except ValueError:
            raise WorkloadError('{}: expected a number for {}, got "{}"!'.format(self.source, what, token)) from None
        if not np.isfinite(value):
            raise WorkloadError('{}: {} must be finite, got "{}"!'.format(self.source, what, token))
        return value

    def integer(self, what, low=None, high=None):
        value = self.number(what)
        if not value.is_integer():
            raise WorkloadError('{}: {} must be an integer, got {}!'.format(self.source, what, value))
        value = int(value)
        if (low is not None and value < low) or (high is not None and value > high):
            raise WorkloadError('{}: {} = {} is outside [{}, {}]!'.format(self.source, what, value, low, high))
        return value

    def remaining(self):
        return len(self.tokens) - self.pos

def parse_workload(text, source="<string>", app=None):
    """
    Create a DAG and a Node from the contents of a workload file.

    Parameters
    ------------------------
    text - string
    The contents of the workload file.

    source - string
    Name of the file, used in error messages.

    app - None/string
    The application that the DAG represents. Defaults to source.

    Returns
    ------------------------
    dag - DAG object (see Graph.py module)
    platform - Node object (see Environment.py module)

    Raises
    ------------------------
    WorkloadError if the text does not describe a valid workload.
    """
    tokens = _Tokens(text.split(), source)
    n_tasks = tokens.integer("task count", low=1)
    n_edges = tokens.integer("edge count", low=0)
    n_workers = tokens.integer("processor count", low=1)
    logger.debug("{}: {} tasks, {} edges, {} processors.".format(source, n_tasks, n_edges, n_workers))

    graph = nx.DiGraph()
    graph.add_nodes_from(range(n_tasks))
    for e in range(n_edges):
        what = "edge {}".format(e + 1)
        u = tokens.integer("source of " + what, low=1, high=n_tasks) - 1
        v = tokens.integer("target of " + what, low=1, high=n_tasks) - 1
        w = tokens.number("data volume of " + what)
        if graph.has_edge(u, v):
            raise WorkloadError('{}: duplicate edge ({}, {})!'.format(source, u + 1, v + 1))
        graph.add_edge(u, v, weight=w)

    execution_costs = np.zeros((n_tasks, n_workers))
    for i in range(n_tasks):
        for p in range(n_workers):
            execution_costs[i, p] = tokens.number("execution cost of task {} on processor {}".format(i + 1, p + 1))

    transfer_rates = np.zeros((n_workers, n_workers))
    seen = set()
    for k in range((n_workers * n_workers - n_workers) // 2):
        what = "processor pair {}".format(k + 1)
        p = tokens.integer("first processor of " + what, low=1, high=n_workers) - 1
        q = tokens.integer("second processor of " + what, low=1, high=n_workers) - 1
        rate = tokens.number("transfer rate of " + what)
        pair = (min(p, q), max(p, q))
        if p == q:
            raise WorkloadError('{}: transfer rate given from processor {} to itself!'.format(source, p + 1))
        if pair in seen:
            raise WorkloadError('{}: duplicate transfer rate for processors ({}, {})!'.format(source, p + 1, q + 1))
        seen.add(pair)
        transfer_rates[p, q] = rate
        transfer_rates[q, p] = rate

    if tokens.remaining():
        logger.warning("{}: ignoring {} trailing tokens.".format(source, tokens.remaining()))

    try:
        dag = convert_from_nx_graph(graph, execution_costs, app=app if app else source)
        platform = Node(transfer_rates, name=app if app else source)
    except ValueError as err:
        raise WorkloadError('{}: {}'.format(source, err)) from err
    return dag, platform

def load_workload(path, app=None):
    """
    Load a workload file. See parse_workload for details.

    Parameters
    ------------------------
    path - string
    Where the workload file is located.

    app - None/string
    The application that the DAG represents. Defaults to the file name without extension.
    """
    try:
        with open(path) as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as err:
        raise WorkloadError('Could not read workload file {}: {}'.format(path, err)) from err
    if not app:
        app = os.path.splitext(os.path.basename(path))[0]
    return parse_workload(text, source=path, app=app)
