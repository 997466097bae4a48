import io

import numpy as np
import pytest

from Heuristics import CPOP, HEFT, HEURISTICS
from conftest import make_workload, random_workload


def test_heft_chain_without_communication(chain):
    dag, platform = chain
    mkspan, schedule = HEFT(dag, platform, return_schedule=True)
    assert mkspan == pytest.approx(2.0)
    assert schedule.where_scheduled == [0, 1]
    assert list(schedule.AST) == [0, 1]
    assert list(schedule.AFT) == [1, 2]


def test_heft_chain_keeps_tasks_together_when_communication_is_slow():
    dag, platform = make_workload(2, [(0, 1, 10)], [[1, 2], [2, 1]], [[0, 1], [1, 0]])
    mkspan, schedule = HEFT(dag, platform, return_schedule=True)
    assert schedule.where_scheduled == [0, 0]
    assert mkspan == pytest.approx(3.0)


@pytest.mark.parametrize("heuristic", [HEFT, CPOP])
def test_single_task(heuristic):
    dag, platform = make_workload(1, [], [[3, 2]], [[0, 1], [1, 0]])
    mkspan, schedule = heuristic(dag, platform, return_schedule=True)
    assert schedule.where_scheduled == [1]
    assert mkspan == pytest.approx(2.0)


def test_heft_reference_workload(topcuoglu):
    dag, platform = topcuoglu
    mkspan, schedule = HEFT(dag, platform, return_schedule=True)
    assert mkspan == pytest.approx(80.0)
    assert schedule.where_scheduled == [2, 0, 2, 1, 2, 1, 2, 0, 1, 1]
    assert schedule.processor_counts() == [2, 4, 4]
    assert platform.valid_schedule(schedule, dag)


def test_cpop_reference_workload(topcuoglu):
    dag, platform = topcuoglu
    mkspan, schedule = CPOP(dag, platform, return_schedule=True)
    assert mkspan == pytest.approx(86.0)
    assert schedule.where_scheduled == [1, 1, 0, 2, 1, 2, 0, 2, 1, 1]
    assert platform.valid_schedule(schedule, dag)


def test_cpop_puts_critical_path_on_one_processor(topcuoglu):
    dag, platform = topcuoglu
    _, schedule = CPOP(dag, platform, return_schedule=True)
    _, path = dag.critical_path(platform)
    cp_processor = platform.fastest_worker(path)
    assert {schedule.where_scheduled[t.ID] for t in path} == {cp_processor.ID}


def test_heft_accepts_priority_list(topcuoglu):
    dag, platform = topcuoglu
    order = dag.sort_by_upward_rank(platform)
    assert HEFT(dag, platform, priority_list=order) == pytest.approx(HEFT(dag, platform))


@pytest.mark.parametrize("heuristic", [HEFT, CPOP])
def test_rerunning_gives_identical_schedules(topcuoglu, heuristic):
    dag, platform = topcuoglu
    _, first = heuristic(dag, platform, return_schedule=True)
    _, second = heuristic(dag, platform, return_schedule=True)
    assert first.where_scheduled == second.where_scheduled
    assert np.array_equal(first.AST, second.AST)
    assert np.array_equal(first.AFT, second.AFT)


@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize("heuristic", [HEFT, CPOP])
def test_random_workloads_give_valid_schedules(seed, heuristic):
    dag, platform = random_workload(30, 4, seed)
    mkspan, schedule = heuristic(dag, platform, return_schedule=True)
    assert platform.valid_schedule(schedule, dag)
    for t in dag.tasks:
        p = schedule.where_scheduled[t.ID]
        assert schedule.AFT[t.ID] == pytest.approx(schedule.AST[t.ID] + t.execution_costs[p])
        for s in dag.DAG.successors(t):
            q = schedule.where_scheduled[s.ID]
            arrival = schedule.AFT[t.ID] + platform.comm_cost(t, s, p, q)
            assert schedule.AST[s.ID] >= arrival - 1e-9
    busy = np.zeros(platform.n_workers)
    for t in dag.tasks:
        busy[schedule.where_scheduled[t.ID]] += t.execution_costs[schedule.where_scheduled[t.ID]]
    assert mkspan >= busy.max() - 1e-9


@pytest.mark.parametrize("seed", range(5))
def test_random_workloads_cpop_critical_path(seed):
    dag, platform = random_workload(30, 4, seed)
    _, schedule = CPOP(dag, platform, return_schedule=True)
    priorities = dag.task_priorities(platform)
    assert priorities[dag.entry_task] == pytest.approx(priorities[dag.exit_task])
    _, path = dag.critical_path(platform, priorities=priorities)
    assert len({schedule.where_scheduled[t.ID] for t in path}) == 1


def test_schedule_dest(topcuoglu):
    dag, platform = topcuoglu
    dest = io.StringIO()
    CPOP(dag, platform, schedule_dest=dest)
    text = dest.getvalue()
    assert "CPOP SCHEDULE" in text
    assert "CPOP MAKESPAN: 86.0" in text


def test_registry():
    assert HEURISTICS == {"HEFT": HEFT, "CPOP": CPOP}


@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize("heuristic", [HEFT, CPOP])
def test_zero_cost_entries_keep_precedence(seed, heuristic):
    dag, platform = random_workload(30, 3, seed, zero_costs=True)
    assert (dag.execution_costs == 0).any()
    _, schedule = heuristic(dag, platform, return_schedule=True)
    assert platform.valid_schedule(schedule, dag)
    for u, v in dag.DAG.edges():
        assert schedule.AST[v.ID] >= schedule.AFT[u.ID] - 1e-9


def test_heft_parent_with_higher_id_runs_first():
    # Task 2 is the parent of task 1; it must still be scheduled and finish first.
    dag, platform = make_workload(4, [(0, 2, 0), (2, 1, 0), (1, 3, 0)],
                                  [[1, 1], [1, 1], [0, 1], [1, 1]], [[0, 1], [1, 0]])
    assert [t.ID for t in dag.sort_by_upward_rank(platform)] == [0, 2, 1, 3]
    _, schedule = HEFT(dag, platform, return_schedule=True)
    assert schedule.AST[1] >= schedule.AFT[2]
    assert platform.valid_schedule(schedule, dag)
