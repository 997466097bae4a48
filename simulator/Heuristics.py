#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""

This module contains implementations of two common static list scheduling heuristics for heterogeneous
platforms, HEFT and CPOP, both from:
'Performance-effective and low-complexity task scheduling for heterogeneous computing',
Topcuoglu, Hariri and Wu, 2002.

"""

import heapq
import logging
import numpy as np
from Environment import Schedule

logger = logging.getLogger(__name__)

def HEFT(dag, platform, priority_list=None, return_schedule=False, schedule_dest=None):
    """
    Heterogeneous Earliest Finish Time.

    Parameters
    ------------------------
    dag - DAG object (see Graph.py module)
    Represents the task DAG to be scheduled.

    platform - Node object (see Environment.py module)
    Represents the target platform.

    priority_list - None/list
    If not None, an ordered list which gives the order in which tasks are to be scheduled.

    return_schedule - bool
    If True, return the schedule computed by the heuristic.

    schedule_dest - None/file object
    Where to write the schedule.

    Returns
    ------------------------
    mkspan - float
    The makespan of the schedule produced by the heuristic.

    If return_schedule == True:
    schedule - Schedule object (see Environment.py module)
    The schedule computed by the heuristic.
    """

    schedule = Schedule(dag, platform)

    # List all tasks by upward rank unless alternative is specified.
    if priority_list is None:
        priority_list = dag.sort_by_upward_rank(platform)

    # Schedule the tasks.
    for t in priority_list:

        # Compute the finish time on all processors, identify the processor which minimizes the finish time (with ties broken consistently by np.argmin).
        finish_times = list([p.earliest_finish_time(t, dag, platform, schedule) for p in platform.workers])
        min_processor = int(np.argmin(finish_times))

        # Schedule the task on the chosen processor.
        schedule.schedule_task(t, platform.workers[min_processor], finish_time=finish_times[min_processor])
        logger.debug("HEFT: task {} -> worker {}, finish time {}.".format(t.ID, min_processor, finish_times[min_processor]))

    if schedule_dest:
        schedule.print_schedule(heuristic_name="HEFT", filepath=schedule_dest)

    mkspan = schedule.makespan()
    logger.info("HEFT makespan: {}".format(mkspan))

    if return_schedule:
        return mkspan, schedule
    return mkspan

def CPOP(dag, platform, return_schedule=False, schedule_dest=None):
    """
    Critical-Path-on-a-Processor.

    Parameters
    ------------------------
    dag - DAG object (see Graph.py module)
    Represents the task DAG to be scheduled.

    platform - Node object (see Environment.py module)
    Represents the target platform.

    return_schedule - bool
    If True, return the schedule computed by the heuristic.

    schedule_dest - None/file object
    Where to write the schedule.

    Returns
    ------------------------
    mkspan - float
    The makespan of the schedule produced by the heuristic.

    If return_schedule == True:
    schedule - Schedule object (see Environment.py module)
    The schedule computed by the heuristic.

    Notes
    ------------------------
    1. Assumes single entry and exit tasks.
    2. Equal priorities in the ready queue are popped in order of task ID.
    """

    schedule = Schedule(dag, platform)

    # Identify the critical path and the processor that executes all of it fastest.
    priorities = dag.task_priorities(platform)
    cp, path = dag.critical_path(platform, priorities=priorities)
    critical_tasks = set(path)
    cp_processor = platform.fastest_worker(path)
    logger.debug("CPOP: critical path {} (length {}) on worker {}.".format(list(t.ID for t in path), cp, cp_processor.ID))

    ready = [(-priorities[dag.entry_task], dag.entry_task.ID)]
    while ready:
        _, ID = heapq.heappop(ready)
        t = dag.task(ID)
        if schedule.scheduled(t):
            continue

        if t in critical_tasks:
            chosen = cp_processor
            finish_time = chosen.earliest_finish_time(t, dag, platform, schedule)
        else:
            finish_times = list([p.earliest_finish_time(t, dag, platform, schedule) for p in platform.workers])
            chosen = platform.workers[int(np.argmin(finish_times))]
            finish_time = finish_times[chosen.ID]
        schedule.schedule_task(t, chosen, finish_time=finish_time)
        logger.debug("CPOP: task {} -> worker {}, finish time {}.".format(t.ID, chosen.ID, finish_time))

        # Children become ready once all their parents have been scheduled.
        for s in dag.DAG.successors(t):
            if s.ready_to_schedule(dag, schedule):
                heapq.heappush(ready, (-priorities[s], s.ID))

    if not schedule.all_tasks_scheduled():
        raise ValueError('CPOP finished with unscheduled tasks; is every task reachable from the entry task?')

    if schedule_dest:
        schedule.print_schedule(heuristic_name="CPOP", filepath=schedule_dest)

    mkspan = schedule.makespan()
    logger.info("CPOP makespan: {}".format(mkspan))

    if return_schedule:
        return mkspan, schedule
    return mkspan

HEURISTICS = {"HEFT" : HEFT, "CPOP" : CPOP}
