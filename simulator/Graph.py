#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""

This module contains classes which create a framework for describing task DAGs with heterogeneous execution costs.

"""

import logging
import numpy as np
import networkx as nx

logger = logging.getLogger(__name__)

class Task:
    """
    Represents static tasks.
    """
    def __init__(self, ID, execution_costs, data):
        """
        Create Task object.

        Parameters
        ------------------------
        ID - int
        Identification number of the Task in its DAG, i.e., its row in the cost tables.

        execution_costs - 1D numpy array
        The Task's execution cost on each Worker, indexed by Worker ID.

        data - 1D numpy array
        The number of bytes exchanged with every other Task, indexed by Task ID.
        Zero where there is no edge.

        Attributes
        ------------------------
        entry - bool
        True if Task has no predecessors, False otherwise.

        exit - bool
        True if Task has no successors, False otherwise.

        Comments
        ------------------------
        1. Tasks never hold scheduling state (start and finish times etc); that lives in a
           Schedule object (see Environment.py) so the same DAG can be scheduled many times.
        """
        self.ID = ID
        self.entry = False
        self.exit = False
        self.execution_costs = execution_costs
        self.data = data

    def __repr__(self):
        return "Task({})".format(self.ID)

    def approximate_execution_cost(self):
        """
        Compute the "approximate" computation time of the Task, i.e., its mean execution cost
        over all Workers. Used for setting priorities in HEFT and CPOP.

        Returns
        ------------------------
        float
        The approximate computation cost of the Task.
        """
        return float(np.mean(self.execution_costs))

    def ready_to_schedule(self, dag, schedule):
        """
        Determine if Task is ready to schedule - i.e., all precedence constraints have been
        satisfied or it is an entry task.

        Parameters
        ------------------------
        dag - DAG object
        The DAG to which the task belongs.

        schedule - Schedule object (see Environment.py module)
        The (partial) schedule being built.

        Returns
        ------------------------
        bool
        True if Task can be scheduled, False otherwise.

        Notes
        ------------------------
        1. Returns False if Task has already been scheduled.
        """
        if schedule.scheduled(self):
            return False
        if self.entry:
            return True
        for p in dag.DAG.predecessors(self):
            if not schedule.scheduled(p):
                return False
        return True

class DAG:
    """
    Represents an application task DAG.
    """
    def __init__(self, app="Random"):
        """
        The DAG is a collection of Tasks with a topology defined by a Networkx DiGraph object.
        Usually built by convert_from_nx_graph (or load_workload in Workload.py) rather than directly.

        Parameters
        ------------------------
        app - string
        The name of application the DAG represents, e.g., "Cholesky".

        Attributes
        ------------------------
        DAG - DiGraph from Networkx module
        Represents the topology of the DAG. Nodes are Task objects.

        tasks - list
        All Task objects, indexed by ID.

        num_tasks - int
        The number of tasks in the DAG.

        num_workers - int
        The number of Workers the execution cost table describes.

        execution_costs - 2D numpy array (num_tasks x num_workers)
        Read-only execution cost table.

        data_volume - 2D numpy array (num_tasks x num_tasks)
        Read-only, symmetric table of bytes transferred along each edge.

        The following attributes summarize topological information and are usually set
        by compute_topological_info when necessary.

        max_task_predecessors - None/int
        avg_task_predecessors - None/float
        num_edges - None/int
        edge_density - None/float
        """
        self.app = app
        self.DAG = nx.DiGraph()
        self.tasks = []
        self.num_tasks = 0
        self.num_workers = 0
        self.execution_costs = None
        self.data_volume = None
        self.max_task_predecessors = None
        self.avg_task_predecessors = None
        self.num_edges = None
        self.edge_density = None

    def task(self, ID):
        """Returns the Task with the given ID. Raises IndexError if there is no such Task."""
        if not 0 <= ID < self.num_tasks:
            raise IndexError('Task ID {} out of range for DAG with {} tasks!'.format(ID, self.num_tasks))
        return self.tasks[ID]

    @property
    def entry_task(self):
        return self.tasks[0]

    @property
    def exit_task(self):
        return self.tasks[self.num_tasks - 1]

    def compute_topological_info(self):
        """
        Compute information about the DAG's topology and set the corresponding attributes.

        Notes
        ------------------------
        1. The maximum number of edges for a DAG with n tasks is 1/2 * n * (n - 1).
        """
        if self.max_task_predecessors is None or self.avg_task_predecessors is None:
            num_predecessors = list(len(list(self.DAG.predecessors(t))) for t in self.DAG)
            self.max_task_predecessors = max(num_predecessors)
            self.avg_task_predecessors = float(np.mean(num_predecessors))
        if self.num_edges is None:
            self.num_edges = self.DAG.number_of_edges()
        if self.edge_density is None:
            max_edges = (self.num_tasks * (self.num_tasks - 1)) / 2
            self.edge_density = self.num_edges / max_edges if max_edges else 0.0

    def print_info(self, detailed=False, filepath=None):
        """
        Print basic information about the DAG, either to screen or as txt file.

        Parameters
        ------------------------
        detailed - bool
        If True, print information about individual Tasks.

        filepath - None/file object
        Destination for the information, stdout if None.
        """
        print("--------------------------------------------------------", file=filepath)
        print("DAG INFO", file=filepath)
        print("--------------------------------------------------------", file=filepath)
        print("Application: {}".format(self.app), file=filepath)
        print("Number of tasks: {}".format(self.num_tasks), file=filepath)
        self.compute_topological_info()
        print("Maximum number of task predecessors: {}".format(self.max_task_predecessors), file=filepath)
        print("Average number of task predecessors: {}".format(self.avg_task_predecessors), file=filepath)
        print("Number of edges: {}".format(self.num_edges), file=filepath)
        print("Edge density: {}".format(self.edge_density), file=filepath)

        mean_costs = list(t.approximate_execution_cost() for t in self.tasks)
        mu, sigma = np.mean(mean_costs), np.std(mean_costs)
        print("Mean task execution cost: {}, standard deviation: {}".format(mu, sigma), file=filepath)
        print("Minimal serial time: {}".format(self.minimal_serial_time()), file=filepath)

        if detailed:
            print("\nTASK INFO:", file=filepath)
            for task in self.tasks:
                print("\nTask ID: {}".format(task.ID + 1), file=filepath)
                if task.entry:
                    print("Entry task.", file=filepath)
                if task.exit:
                    print("Exit task.", file=filepath)
                print("Execution costs: {}".format(task.execution_costs.tolist()), file=filepath)
                children = list(s.ID + 1 for s in self.DAG.successors(task))
                if children:
                    print("Children: {}".format(children), file=filepath)
        print("--------------------------------------------------------", file=filepath)

    def sort_by_upward_rank(self, platform, return_rank_values=False, verbose=False):
        """
        Sorts all tasks in the DAG by decreasing/non-increasing order of upward rank.

        Parameters
        ------------------------
        platform - Node object (see Environment.py module)
        The target platform.

        return_rank_values - bool
        If True, method also returns the upward rank values for all tasks.

        verbose - bool
        If True, log the ordering of all tasks. Useful for debugging.

        Returns
        ------------------------
        priority_list - list
        Scheduling list of all Task objects prioritized by upward rank.

        If return_rank_values == True:
        task_ranks - dict
        Gives the actual upward ranks of all tasks in the form {task : rank_u}.

        Notes
        ------------------------
        1. "Upward rank" is also called "bottom-level".
        2. Ties are broken by task ID (Python's sort is stable, even with reverse=True).
        """
        # Traverse the DAG starting from the exit task.
        backward_traversal = list(reversed(list(nx.topological_sort(self.DAG))))
        # Every successor of t is already ranked when t is reached.
        task_ranks = {}
        for t in backward_traversal:
            task_ranks[t] = t.approximate_execution_cost()
            if not t.exit:
                task_ranks[t] += max(platform.approximate_comm_cost(parent=t, child=s) + task_ranks[s] for s in self.DAG.successors(t))
        priority_list = sorted(self.tasks, key=task_ranks.get, reverse=True)

        if verbose:
            priority_list_ids = list(t.ID for t in priority_list)
            logger.debug("The priority list is: {}".format(priority_list_ids))

        if return_rank_values:
            return priority_list, task_ranks
        return priority_list

    def sort_by_downward_rank(self, platform, return_rank_values=False, verbose=False):
        """
        Sorts all tasks in the DAG by increasing/non-decreasing order of downward rank.

        Parameters
        ------------------------
        platform - Node object (see Environment.py module)
        The target platform.

        return_rank_values - bool
        If True, method also returns the downward rank values for all tasks.

        verbose - bool
        If True, log the ordering of all tasks. Useful for debugging.

        Returns
        ------------------------
        priority_list - list
        Scheduling list of all Task objects prioritized by downward rank.

        If return_rank_values == True:
        task_ranks - dict
        Gives the actual downward ranks of all tasks in the form {task : rank_d}.

        Notes
        ------------------------
        1. "Downward rank" is also called "top-level".
        """
        forward_traversal = list(nx.topological_sort(self.DAG))
        task_ranks = {}
        for t in forward_traversal:
            task_ranks[t] = 0.0
            if not t.entry:
                task_ranks[t] += max(p.approximate_execution_cost() + platform.approximate_comm_cost(parent=p, child=t) +
                          task_ranks[p] for p in self.DAG.predecessors(t))
        priority_list = sorted(self.tasks, key=task_ranks.get)

        if verbose:
            priority_list_ids = list(t.ID for t in priority_list)
            logger.debug("The priority list is: {}".format(priority_list_ids))

        if return_rank_values:
            return priority_list, task_ranks
        return priority_list

    def task_priorities(self, platform):
        """
        Computes the CPOP priority of every task, i.e., the sum of its upward and downward ranks.

        Parameters
        ------------------------
        platform - Node object (see Environment.py module)
        The target platform.

        Returns
        ------------------------
        dict
        Priorities in the form {task : rank_u + rank_d}.
        """
        _, upward = self.sort_by_upward_rank(platform, return_rank_values=True)
        _, downward = self.sort_by_downward_rank(platform, return_rank_values=True)
        return {t : upward[t] + downward[t] for t in self.tasks}

    def critical_path(self, platform, priorities=None, tolerance=0.005):
        """
        Identifies the critical path tasks as in CPOP: starting from the entry task, repeatedly move
        to the first successor whose priority equals that of the entry task.

        Parameters
        ------------------------
        platform - Node object (see Environment.py module)
        The target platform.

        priorities - None/dict
        Task priorities in the form {task : priority}. Computed with task_priorities if None.

        tolerance - float
        Two priorities are considered equal if they differ by less than this.

        Returns
        ------------------------
        cp - float
        The length of the critical path, i.e., the priority of the entry task.

        path - list
        The critical path tasks in order from entry to exit.

        Notes
        ------------------------
        1. Successors are considered in the order their edges were added to the DAG, so the
           first matching successor is not necessarily the "best" one.
        """
        if priorities is None:
            priorities = self.task_priorities(platform)
        cp = priorities[self.entry_task]
        path = [self.entry_task]
        current = self.entry_task
        while not current.exit:
            for s in self.DAG.successors(current):
                if abs(priorities[s] - cp) < tolerance:
                    current = s
                    break
            else:
                raise ValueError('No successor of task {} lies on the critical path (cp = {})!'.format(current.ID, cp))
            path.append(current)
        return cp, path

    def minimal_serial_time(self):
        """
        Computes the minimum makespan of the DAG on a single Worker.

        Returns
        ------------------------
        float
        The minimal serial time.
        """
        return float(np.min(self.execution_costs.sum(axis=0)))


####################################################################################################
# Functions to create DAG objects from Networkx DiGraphs.
####################################################################################################

def convert_from_nx_graph(graph, execution_costs, app="Random"):
    """
    Create a DAG object from a Networkx DiGraph and an execution cost table.

    Parameters
    ------------------------
    graph - Networkx DiGraph
    Nodes must be the integers 0, ..., n - 1. The "weight" edge attribute (if present) is the
    number of bytes the parent sends to the child; missing weights are taken to be zero.

    execution_costs - array_like (n x P)
    Entry [i][p] is the execution cost of task i on Worker p.

    app - string
    The application that the graph represents.

    Returns
    ------------------------
    dag - DAG object
    Converted version of the graph.

    Notes
    ------------------------
    1. Task 0 must be the only entry task and task n - 1 the only exit task.
       Anything else raises ValueError.
    2. Successors keep the order in which edges were added to graph.
    3. Individual execution costs may be zero but every task must cost something on at least
       one processor.
    """
    if not graph.is_directed():
        raise ValueError('Input graph in convert_from_nx_graph is not directed!')
    n = graph.number_of_nodes()
    if n == 0 or set(graph.nodes()) != set(range(n)):
        raise ValueError('Task IDs must be exactly 0, ..., n - 1 (got {} nodes)!'.format(n))

    costs = np.array(execution_costs, dtype=float)
    if costs.ndim != 2 or costs.shape[0] != n or costs.shape[1] < 1:
        raise ValueError('Execution cost table has shape {} but the DAG has {} tasks!'.format(costs.shape, n))
    if not np.all(np.isfinite(costs)) or np.any(costs < 0):
        raise ValueError('Execution costs must be finite and non-negative!')
    # A positive mean cost makes every parent outrank its children, so upward rank order is topological.
    idle = list(int(i) for i in np.flatnonzero(costs.mean(axis=1) <= 0))
    if idle:
        raise ValueError('Tasks {} have zero execution cost on every processor!'.format(idle))

    # Look for cycles.
    if not nx.is_directed_acyclic_graph(graph):
        raise ValueError('Input graph in convert_from_nx_graph has at least one cycle so is not a DAG!')
    entries = sorted(nd for nd in graph if graph.in_degree(nd) == 0)
    exits = sorted(nd for nd in graph if graph.out_degree(nd) == 0)
    if entries != [0]:
        raise ValueError('Task 0 must be the single entry task, found entry tasks {}!'.format(entries))
    if exits != [n - 1]:
        raise ValueError('Task {} must be the single exit task, found exit tasks {}!'.format(n - 1, exits))

    data = np.zeros((n, n))
    for u, v, w in graph.edges(data="weight", default=0):
        w = float(w)
        if not np.isfinite(w) or w < 0:
            raise ValueError('Data volume on edge ({}, {}) must be finite and non-negative!'.format(u, v))
        data[u, v] = w
        data[v, u] = w
    costs.flags.writeable = False
    data.flags.writeable = False

    # Create the DAG object.
    dag = DAG(app=app)
    dag.num_tasks = n
    dag.num_workers = costs.shape[1]
    dag.execution_costs = costs
    dag.data_volume = data
    dag.tasks = list(Task(i, costs[i], data[i]) for i in range(n))
    dag.tasks[0].entry = True
    dag.tasks[n - 1].exit = True
    dag.DAG.add_nodes_from(dag.tasks)
    for u in range(n):
        for v in graph.successors(u):
            dag.DAG.add_edge(dag.tasks[u], dag.tasks[v])
    logger.debug("Converted graph with {} tasks and {} edges.".format(n, dag.DAG.number_of_edges()))

    return dag
