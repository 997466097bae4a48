#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""

This module contains classes which create a framework for describing heterogeneous computing environments
and the (partial) schedules built on them.

Notes:
    1. Workers are defined entirely by the execution costs of the tasks on them and the transfer rates
       between them, so any number of different processor types can be described.
    2. Scheduling is non-insertion based: a task always starts after everything already scheduled on its Worker.

"""

import logging
import numpy as np
from collections import defaultdict

logger = logging.getLogger(__name__)

class Worker:
    """
    Represents any processing resource.
    """
    def __init__(self, ID=None):
        """
        Create the Worker object.

        Parameters
        --------------------
        ID - Int
        Assigns an integer ID to the Worker, i.e., its column in the execution cost table.
        """
        self.ID = ID

    def __repr__(self):
        return "Worker({})".format(self.ID)

    def earliest_start_time(self, task, dag, platform, schedule):
        """
        Returns the estimated earliest start time for a task on the Worker.

        Parameters
        ------------------------
        task - Task object (see Graph.py module)
        Represents a (static) task.

        dag - DAG object (see Graph.py module)
        The DAG to which the task belongs.

        platform - Node object
        The Node object to which the Worker belongs.
        Needed for calculating communication costs.

        schedule - Schedule object
        The current (partial) schedule.

        Returns
        ------------------------
        float
        The earliest start time for task on Worker.

        Notes
        ------------------------
        1. Predecessors which have not been scheduled yet are ignored, so the estimate can be too
           optimistic if the task is considered before all of them are scheduled.
        """
        if task.entry:
            return 0.0
        est = schedule.worker_ready[self.ID]
        for p in dag.DAG.predecessors(task):
            if not schedule.scheduled(p):
                continue
            arrival = schedule.AFT[p.ID] + platform.comm_cost(p, task, schedule.where_scheduled[p.ID], self.ID)
            if arrival > est:
                est = arrival
        return float(est)

    def earliest_finish_time(self, task, dag, platform, schedule):
        """
        Returns the estimated earliest finish time for a task on the Worker.
        Parameters are as for earliest_start_time.
        """
        return task.execution_costs[self.ID] + self.earliest_start_time(task, dag, platform, schedule)

class Schedule:
    """
    The assignment of tasks to Workers, with start and finish times, built up by a heuristic.
    """
    def __init__(self, dag, platform):
        """
        Create an empty Schedule for the DAG on the platform.

        Parameters
        ------------------------
        dag - DAG object (see Graph.py module)
        The DAG to be scheduled.

        platform - Node object
        The target platform.

        Attributes
        ------------------------
        where_scheduled - list
        ID of the Worker each task is scheduled on, None if it has not been scheduled yet.

        AST - 1D numpy array
        The actual start time of each task.

        AFT - 1D numpy array
        The actual finish time of each task.

        worker_ready - 1D numpy array
        The time at which each Worker becomes free. Never decreases.

        load - list of lists
        The tasks scheduled on each Worker, in the order they were scheduled.
        """
        if dag.num_workers != platform.n_workers:
            raise ValueError('DAG has execution costs for {} Workers but the platform has {}!'.format(dag.num_workers, platform.n_workers))
        self.n_tasks = dag.num_tasks
        self.n_workers = platform.n_workers
        self.where_scheduled = [None] * self.n_tasks
        self.AST = np.zeros(self.n_tasks)
        self.AFT = np.zeros(self.n_tasks)
        self.worker_ready = np.zeros(self.n_workers)
        self.load = [[] for _ in range(self.n_workers)]

    def scheduled(self, task):
        """Returns True if task has been scheduled, False if not."""
        return self.where_scheduled[task.ID] is not None

    def all_tasks_scheduled(self):
        """Returns True all the tasks have been scheduled, False if not."""
        return all(w is not None for w in self.where_scheduled)

    def schedule_task(self, task, worker, finish_time):
        """
        Schedules the task on the Worker.

        Parameters
        ------------------------
        task - Task object (see Graph.py module)
        Represents a (static) task.

        worker - Worker object
        Where the task is to be scheduled.

        finish_time - float
        The task's finish time, usually computed by worker.earliest_finish_time.
        The start time is this less the task's execution cost on the Worker.
        """
        if self.scheduled(task):
            raise ValueError('Task {} is already scheduled on Worker {}!'.format(task.ID, self.where_scheduled[task.ID]))
        self.where_scheduled[task.ID] = worker.ID
        self.AFT[task.ID] = finish_time
        self.AST[task.ID] = finish_time - task.execution_costs[worker.ID]
        self.worker_ready[worker.ID] = finish_time
        self.load[worker.ID].append(task)

    def makespan(self, partial=False):
        """
        Compute the makespan of the schedule, i.e., the latest finish time of any task.

        Parameters
        ------------------------
        partial - bool
        If True, only considers the tasks that have been scheduled so far.

        Returns
        ------------------------
        float
        The makespan of the (possibly incomplete) schedule.
        """
        if not partial and not self.all_tasks_scheduled():
            raise ValueError('Error! There are tasks in the DAG which are not scheduled yet!')
        if not any(self.load):
            return 0.0
        return float(max(self.AFT[t.ID] for w in self.load for t in w))

    def processor_counts(self):
        """Returns a list giving the number of tasks scheduled on each Worker."""
        return list(len(w) for w in self.load)

    def print_schedule(self, heuristic_name="", filepath=None):
        """
        Print the schedule, either to screen or as txt file.
        Task and Worker IDs are printed 1-based.

        Parameters
        ------------------------
        heuristic_name - string
        Name of the heuristic which produced the schedule. Often helpful.

        filepath - None/file object
        Destination for the schedule, stdout if None.
        """
        print("--------------------------------------------------------", file=filepath)
        print("{} SCHEDULE".format(heuristic_name), file=filepath)
        print("--------------------------------------------------------", file=filepath)
        for i in range(self.n_tasks):
            p = self.where_scheduled[i]
            print("Task {}: start = {}, finish = {}, processor = {}".format(i + 1, float(self.AST[i]), float(self.AFT[i]),
                                                                         p + 1 if p is not None else "-"), file=filepath)
        print("", file=filepath)
        for p, count in enumerate(self.processor_counts()):
            print("PROCESSOR {}: {} tasks".format(p + 1, count), file=filepath)
        print("\n{} MAKESPAN: {}".format(heuristic_name, self.makespan(partial=True)), file=filepath)
        print("--------------------------------------------------------\n", file=filepath)

class Node:
    """
    A Node is basically just a collection of Worker objects and the transfer rates between them.
    """
    def __init__(self, transfer_rates, name="generic", communication=True):
        """
        Initialize the Node from its transfer rate table.

        Parameters
        ------------------------
        transfer_rates - array_like (P x P)
        Entry [p][q] is the rate (bytes per time unit) at which data moves between Workers p and q.
        Must be symmetric with positive off-diagonal entries. The diagonal is never used.

        name - string
        An identifying name for the Node. Often useful.

        communication - bool
        If False, disregard all communication - all costs are taken to be zero.
        """
        rates = np.array(transfer_rates, dtype=float)
        if rates.ndim != 2 or rates.shape[0] != rates.shape[1] or rates.shape[0] < 1:
            raise ValueError('Transfer rate table must be square and non-empty, got shape {}!'.format(rates.shape))
        off_diagonal = ~np.eye(rates.shape[0], dtype=bool)
        if not np.all(np.isfinite(rates[off_diagonal])) or np.any(rates[off_diagonal] <= 0):
            raise ValueError('Transfer rates between distinct Workers must be finite and positive!')
        if not np.array_equal(rates, rates.T):
            raise ValueError('Transfer rate table must be symmetric!')
        rates.flags.writeable = False

        self.name = name
        self.communication = communication
        self.transfer_rates = rates
        self.n_workers = rates.shape[0]
        self.workers = list(Worker(ID=p) for p in range(self.n_workers))
        # Chain of adjacent pairs (0, 1), (1, 2), ..., not all pairs.
        self.avg_transfer_rate = float(np.mean(np.diagonal(rates, offset=1))) if self.n_workers > 1 else None

    def print_info(self, filepath=None):
        """
        Print basic information about the Node, either to screen or as txt file.

        Parameters
        ------------------------
        filepath - None/file object
        Destination for the information, stdout if None.
        """
        print("--------------------------------------------------------", file=filepath)
        print("NODE INFO", file=filepath)
        print("--------------------------------------------------------", file=filepath)
        print("Name: {}".format(self.name), file=filepath)
        print("{} Workers".format(self.n_workers), file=filepath)
        print("Communication: {}".format(self.communication), file=filepath)
        print("Average transfer rate: {}".format(self.avg_transfer_rate if self.avg_transfer_rate is not None else "n/a"), file=filepath)
        print("--------------------------------------------------------\n", file=filepath)

    def comm_cost(self, parent, child, source_id, target_id):
        """
        Compute the communication time from a parent task to a child.

        Parameters
        ------------------------
        parent - Task object (see Graph.py module)
        The parent task that is sending its data.

        child - Task object (see Graph.py module)
        The child task that is receiving data.

        source_id - int
        The ID of the Worker on which parent is scheduled.

        target_id - int
        The ID of the Worker on which child may be scheduled.

        Returns
        ------------------------
        float
        The communication time between parent and child.
        """
        if source_id == target_id:
            return 0.0
        if not self.communication:
            return 0.0
        return parent.data[child.ID] / self.transfer_rates[source_id, target_id]

    def approximate_comm_cost(self, parent, child):
        """
        Compute the "approximate" communication time from parent to child tasks, i.e., the data volume
        divided by the average transfer rate. Used for setting priorities in HEFT and CPOP.

        Parameters
        ------------------------
        parent - Task object (see Graph.py module)
        The parent task that is sending its data.

        child - Task object (see Graph.py module)
        The child task that is receiving data.

        Returns
        ------------------------
        float
        The approximate communication cost between parent and child.

        Notes
        ------------------------
        1. The average transfer rate is taken over adjacent Worker pairs only (see __init__).
        2. Always zero on a single Worker Node since there is nowhere to communicate with.
        """
        if not self.communication or self.avg_transfer_rate is None:
            return 0.0
        return parent.data[child.ID] / self.avg_transfer_rate

    def fastest_worker(self, tasks):
        """
        Finds the Worker which minimizes the total execution cost of a collection of tasks.

        Parameters
        ------------------------
        tasks - iterable of Task objects (see Graph.py module)
        E.g., the critical path tasks in CPOP.

        Returns
        ------------------------
        Worker object
        The fastest Worker, ties broken by lowest ID.
        """
        totals = np.zeros(self.n_workers)
        for t in tasks:
            totals += t.execution_costs
        return self.workers[int(np.argmin(totals))]

    def valid_schedule(self, schedule, dag):
        """
        Check if a schedule is valid.

        Parameters
        ------------------------
        schedule - Schedule object
        The schedule to be checked.

        dag - DAG object (see Graph.py module)
        The DAG that was scheduled.

        Returns
        ------------------------
        bool
        True if the schedule is complete, every finish time equals start time plus execution cost,
        no task dependencies are violated and no Worker runs two tasks at once, False otherwise.
        """
        if not schedule.all_tasks_scheduled():
            return False
        for t in dag.tasks:
            p = schedule.where_scheduled[t.ID]
            if not np.isclose(schedule.AFT[t.ID], schedule.AST[t.ID] + t.execution_costs[p]):
                return False

        # Check all dependencies are satisfied.
        for u, v in dag.DAG.edges():
            arrival = schedule.AFT[u.ID] + self.comm_cost(u, v, schedule.where_scheduled[u.ID], schedule.where_scheduled[v.ID])
            if schedule.AST[v.ID] < arrival and not np.isclose(schedule.AST[v.ID], arrival):
                return False

        # Sort the loads of each Worker and check that there's no overlap.
        loads = defaultdict(list)
        for t in dag.tasks:
            loads[schedule.where_scheduled[t.ID]].append(t.ID)
        for p in loads:
            ordered = sorted(loads[p], key=lambda i: schedule.AST[i])
            for i, j in zip(ordered[:-1], ordered[1:]):
                if schedule.AFT[i] > schedule.AST[j] and not np.isclose(schedule.AFT[i], schedule.AST[j]):
                    return False
        return True
