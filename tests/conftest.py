import networkx as nx
import numpy as np
import pytest

from Environment import Node
from Graph import convert_from_nx_graph

# The 10 task example of Topcuoglu, Hariri and Wu (2002), 0-based, with unit transfer rates
# so that communication costs equal the data volumes.
TOPCUOGLU_EDGES = [(0, 1, 18), (0, 2, 12), (0, 3, 9), (0, 4, 11), (0, 5, 14),
                   (1, 7, 19), (1, 8, 16), (2, 6, 23), (3, 7, 27), (3, 8, 23),
                   (4, 8, 13), (5, 7, 15), (6, 9, 17), (7, 9, 11), (8, 9, 13)]
TOPCUOGLU_COSTS = [[14, 16, 9], [13, 19, 18], [11, 13, 19], [13, 8, 17], [12, 13, 10],
                   [13, 16, 9], [7, 15, 11], [5, 11, 14], [18, 12, 20], [21, 7, 16]]


def make_workload(n_tasks, edges, costs, rates, app="Test"):
    graph = nx.DiGraph()
    graph.add_nodes_from(range(n_tasks))
    for u, v, w in edges:
        graph.add_edge(u, v, weight=w)
    return convert_from_nx_graph(graph, costs, app=app), Node(rates, name=app)


def random_workload(n_tasks, n_workers, seed, zero_costs=False):
    rng = np.random.default_rng(seed)
    edges = []
    has_child = set()
    for v in range(1, n_tasks - 1):
        n_parents = min(v, int(rng.integers(1, 4)))
        for u in sorted(rng.choice(v, size=n_parents, replace=False)):
            edges.append((int(u), v, float(rng.integers(0, 50))))
            has_child.add(int(u))
    for u in range(n_tasks - 1):
        if u not in has_child:
            edges.append((u, n_tasks - 1, float(rng.integers(0, 50))))
    costs = rng.integers(1, 20, size=(n_tasks, n_workers))
    if zero_costs:
        # Zero out most entries but leave each task one positive cost.
        keep = rng.integers(0, n_workers, size=n_tasks)
        mask = rng.random((n_tasks, n_workers)) < 0.7
        mask[np.arange(n_tasks), keep] = False
        costs[mask] = 0
    rates = rng.integers(1, 5, size=(n_workers, n_workers))
    rates = np.triu(rates, 1) + np.triu(rates, 1).T
    return make_workload(n_tasks, edges, costs, rates, app="Random")


@pytest.fixture
def topcuoglu():
    return make_workload(10, TOPCUOGLU_EDGES, TOPCUOGLU_COSTS, np.ones((3, 3)), app="Topcuoglu")


@pytest.fixture
def chain():
    """Two task chain 0 -> 1 on two processors with no data transferred."""
    return make_workload(2, [(0, 1, 0)], [[1, 2], [2, 1]], [[0, 1], [1, 0]], app="Chain")


@pytest.fixture
def topcuoglu_text():
    lines = ["10 15 3"]
    lines += ["{} {} {}".format(u + 1, v + 1, w) for u, v, w in TOPCUOGLU_EDGES]
    lines += [" ".join(str(c) for c in row) for row in TOPCUOGLU_COSTS]
    lines += ["1 2 1", "1 3 1", "2 3 1"]
    return "\n".join(lines) + "\n"
