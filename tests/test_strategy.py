import pytest

from geometry import Point
from strategy import (
    TASK_HORIZON_TURNS,
    BasicActivityObserver,
    BasicCommander,
    BasicZoneEvaluator,
    EnemyIntel,
    FlatZoneEvaluator,
    FocusedAllocator,
    Level,
    MultiTaskPerZoneOrganizer,
    OneTaskPerZoneOrganizer,
    PhaseRunner,
    PriorityAllocator,
    PriorityWeights,
    Task,
    TaskType,
    simulate_attack,
    simulate_defense,
    task_importance,
    turns_to_reach,
)
from world import Drone, Zone


# ---------- ETA & wave simulation ----------


def test_turns_to_reach():
    zone = Zone(id=0, center=Point(1000, 1000))
    assert turns_to_reach(Point(1000, 1000), zone) == 0
    assert turns_to_reach(Point(1100, 1000), zone) == 0
    assert turns_to_reach(Point(1150, 1000), zone) == 1
    assert turns_to_reach(Point(1250, 1000), zone) == 2
    assert turns_to_reach(Point(1300, 1000), zone) == 2


@pytest.mark.parametrize(
    "allies,enemies,expected",
    [
        ([0], [], (1, 0)),
        ([], [0], (0, TASK_HORIZON_TURNS)),
        ([3, 3, 3], [1, 1], (3, 3)),
        ([20], [], (0, TASK_HORIZON_TURNS)),
        ([0, 0], [0], (2, 0)),
    ],
)
def test_simulate_attack(allies, enemies, expected):
    assert simulate_attack(allies, enemies) == expected


@pytest.mark.parametrize(
    "allies,enemies,expected",
    [
        ([0], [2, 2], (1, 2)),
        ([0, 0], [2], (0, TASK_HORIZON_TURNS)),
        ([], [4], (0, 4)),
        ([1], [30], (0, TASK_HORIZON_TURNS)),
    ],
)
def test_simulate_defense(allies, enemies, expected):
    assert simulate_defense(allies, enemies) == expected


# ---------- zone evaluation ----------


def _zones(*centers):
    return [Zone(id=i, center=Point(*c)) for i, c in enumerate(centers)]


def test_clustered_zones_beat_the_outlier():
    zones = _zones((100, 500), (400, 500), (700, 500), (3000, 500))
    values = BasicZoneEvaluator().evaluate(zones)
    assert values[0] == Level.HIGH
    assert values[1] == Level.HIGH
    assert values[2] == Level.HIGH
    assert values[3] == Level.LOW


def test_zones_on_one_column_use_baseline_edge_ratio():
    zones = _zones((2000, 200), (2000, 600), (2000, 1000))
    values = BasicZoneEvaluator().evaluate(zones)
    assert set(values.values()) == {Level.MEDIUM}


def test_two_zones_prefer_the_crowded_side():
    values = BasicZoneEvaluator().evaluate(_zones((500, 500), (3000, 500)))
    assert values == {0: Level.LOW, 1: Level.HIGH}


def test_single_zone_and_empty_input():
    assert BasicZoneEvaluator().evaluate(_zones((500, 500))) == {0: Level.LOW}
    assert BasicZoneEvaluator().evaluate([]) == {}


def test_flat_evaluator():
    zones = _zones((100, 500), (400, 500), (3000, 500))
    assert FlatZoneEvaluator().evaluate(zones) == {0: Level.LOW, 1: Level.LOW, 2: Level.LOW}


def test_evaluation_on_thread_pool_matches_sequential():
    zones = _zones((100, 500), (400, 800), (700, 200), (3000, 500), (2500, 1500))
    runner = PhaseRunner(3)
    try:
        assert BasicZoneEvaluator().evaluate(zones, runner) == BasicZoneEvaluator().evaluate(zones)
    finally:
        runner.close()


# ---------- enemy activity ----------


def _enemy(pos, prev, team_id=1, drone_id=0):
    return Drone(team_id=team_id, id=drone_id, position=Point(*pos), previous_position=Point(*prev))


def test_stationary_drone_targets_zone_it_sits_in():
    zones = _zones((1000, 1000), (2000, 1000))
    observer = BasicActivityObserver()
    assert observer.target_zone(_enemy((1000, 1000), (1001, 1000)), zones) is zones[0]
    assert observer.target_zone(_enemy((1500, 1000), (1500, 1000)), zones) is None


def test_moving_drone_targets_zone_ahead():
    zones = _zones((1000, 500), (100, 500))
    observer = BasicActivityObserver()
    drone = _enemy((600, 500), (500, 500))
    assert observer.target_zone(drone, zones) is zones[0]
    assert observer.infer(drone, zones) == EnemyIntel(TaskType.ATTACK, 0)

    zones[0].owner = 1
    assert observer.infer(drone, zones) == EnemyIntel(TaskType.DEFEND, 0)


def test_zone_behind_or_off_course_is_ignored():
    zones = _zones((100, 500), (1000, 800))
    observer = BasicActivityObserver()
    drone = _enemy((600, 500), (500, 500))
    assert observer.target_zone(drone, zones) is None
    assert observer.infer(drone, zones) == EnemyIntel()


def test_nearest_candidate_wins():
    zones = _zones((2000, 520), (1000, 500), (1000, 800))
    drone = _enemy((600, 500), (500, 500))
    assert BasicActivityObserver().target_zone(drone, zones) is zones[1]


def test_observe_covers_every_enemy_drone(make_state):
    state = make_state(
        [(1000, 500), (3000, 1500)],
        [
            [(100, 100), (200, 200)],
            [((600, 500), (500, 500)), (3000, 1500)],
            [(50, 50), ((2900, 1400), (2800, 1300))],
        ],
    )
    intel = BasicActivityObserver().observe(state, 0)
    assert set(intel) == {(1, 0), (1, 1), (2, 0), (2, 1)}
    assert intel[(1, 0)] == EnemyIntel(TaskType.ATTACK, 0)
    assert intel[(1, 1)] == EnemyIntel(TaskType.ATTACK, 1)
    assert intel[(2, 0)] == EnemyIntel()
    assert intel[(2, 1)] == EnemyIntel(TaskType.ATTACK, 1)


# ---------- task organisation ----------


def test_single_drone_on_free_zone_is_an_immediate_attack(make_state):
    state = make_state([(2000, 900)], [[(2000, 900)], [(100, 100)]])
    (task,) = OneTaskPerZoneOrganizer().define_tasks(state, 0, {0: Level.LOW}, {})
    assert task.type == TaskType.ATTACK
    assert (task.required_drones, task.turn) == (1, 0)
    assert task.payoff == 1.0
    assert task.importance == Level.HIGH
    # 4 * 1.0 + 2 * HIGH + 0.5 * LOW - 1 * 1
    assert task.priority == pytest.approx(7.0)


def test_defend_task_counts_allies_before_the_failing_wave(make_state):
    state = make_state(
        [(2000, 900)],
        [[(2000, 900), (100, 100)], [(2250, 900), (1750, 900)]],
        owners={0: 0},
    )
    (task,) = OneTaskPerZoneOrganizer().define_tasks(state, 0, {}, {})
    assert task.type == TaskType.DEFEND
    assert (task.required_drones, task.turn) == (1, 2)
    assert task.payoff == pytest.approx(2 / TASK_HORIZON_TURNS)
    assert task.importance == Level.HIGH


def test_unreachable_attack_runs_out_the_horizon(make_state):
    state = make_state(
        [(2000, 900)],
        [[(2000, 900), (100, 100)], [(2000, 900), (2010, 900)]],
        owners={0: 1},
    )
    (task,) = OneTaskPerZoneOrganizer().define_tasks(state, 0, {}, {})
    assert task.type == TaskType.ATTACK
    assert (task.required_drones, task.turn) == (0, TASK_HORIZON_TURNS)
    assert task.payoff == 0.0


def test_attack_also_sized_against_rival_attackers(make_state):
    state = make_state(
        [(2000, 900)],
        [
            [(2250, 900), (1750, 900), (2000, 1150)],
            [(2150, 900), (100, 100), (150, 100)],
            [(2000, 650), (2250, 900), (3900, 1700)],
        ],
        owners={0: 1},
    )
    (task,) = OneTaskPerZoneOrganizer().define_tasks(state, 0, {}, {})
    # the owner alone needs 2 drones by turn 2; team 2 arriving at turn 2 needs 3
    assert (task.required_drones, task.turn) == (3, 2)


def test_enemy_heading_elsewhere_is_not_counted(make_state):
    state = make_state(
        [(2000, 900), (3500, 900)],
        [[(2000, 900), (100, 100)], [(1500, 900), (2500, 900)]],
        owners={0: 0},
    )
    organizer = OneTaskPerZoneOrganizer()
    towards_zone0 = {(1, 0): EnemyIntel(TaskType.ATTACK, 0), (1, 1): EnemyIntel(TaskType.ATTACK, 0)}
    towards_zone1 = {(1, 0): EnemyIntel(TaskType.ATTACK, 1), (1, 1): EnemyIntel(TaskType.ATTACK, 1)}
    threatened = organizer.define_tasks(state, 0, {}, towards_zone0)[0]
    safe = organizer.define_tasks(state, 0, {}, towards_zone1)[0]
    assert (threatened.required_drones, threatened.turn) == (1, 4)
    assert (safe.required_drones, safe.turn) == (0, TASK_HORIZON_TURNS)


@pytest.mark.parametrize(
    "owned,expected",
    [
        (0, {TaskType.ATTACK: Level.HIGH, TaskType.DEFEND: Level.LOW}),
        (1, {TaskType.ATTACK: Level.MEDIUM, TaskType.DEFEND: Level.MEDIUM}),
        (2, {TaskType.ATTACK: Level.MEDIUM, TaskType.DEFEND: Level.MEDIUM}),
        (3, {TaskType.ATTACK: Level.LOW, TaskType.DEFEND: Level.HIGH}),
    ],
)
def test_task_importance(make_state, owned, expected):
    centers = [(500 * (i + 1), 500) for i in range(5)]
    state = make_state(centers, [[(0, 0)], [(0, 0)]], owners={i: 0 for i in range(owned)})
    assert task_importance(state, 0) == expected


def test_payoff_only_weights(make_state):
    state = make_state([(2000, 900), (500, 500)], [[(2000, 900), (450, 500)], [(100, 100), (3900, 1700)]])
    organizer = OneTaskPerZoneOrganizer(weights=PriorityWeights(1.0, 0.0, 0.0, 0.0))
    for task in organizer.define_tasks(state, 0, {0: Level.HIGH, 1: Level.LOW}, {}):
        assert task.priority == pytest.approx(task.payoff)


def test_multi_task_organizer_only_emits_useful_counts(make_state):
    state = make_state([(2000, 900)], [[(2000, 900)], [(100, 100)]])
    tasks = MultiTaskPerZoneOrganizer().define_tasks(state, 0, {}, {})
    assert len(tasks) == 1
    assert tasks[0].type == TaskType.ATTACK
    assert tasks[0].required_drones == 1
    assert tasks[0].payoff == 1.0


def test_multi_task_organizer_needs_more_drones_against_defenders(make_state):
    state = make_state(
        [(2000, 900)],
        [[(2000, 900), (2050, 900), (100, 100)], [(2000, 900), (3900, 1700), (3800, 1700)]],
        owners={0: 1},
    )
    tasks = MultiTaskPerZoneOrganizer().define_tasks(state, 0, {}, {})
    assert [t.required_drones for t in tasks] == [2]
    assert tasks[0].payoff == 1.0


# ---------- allocation ----------


def _task(zone_id, required, priority, kind=TaskType.ATTACK):
    return Task(zone_id=zone_id, type=kind, required_drones=required, priority=priority)


def test_allocator_skips_unstaffable_task_when_next_fits(make_state):
    state = make_state([(500, 500), (3000, 500)], [[(600, 500), (2900, 500)], [(0, 0), (0, 0)]])
    big, small = _task(0, 3, 10.0), _task(1, 1, 5.0)
    assignments = PriorityAllocator().allocate(state, 0, [small, big])
    assert assignments[1] is small
    # leftover drone goes to the highest-priority task
    assert assignments[0] is big


def test_allocator_partially_staffs_when_next_does_not_fit(make_state):
    state = make_state([(500, 500), (3000, 500)], [[(600, 500), (2900, 500)], [(0, 0), (0, 0)]])
    first, second = _task(0, 3, 10.0), _task(1, 3, 5.0)
    assignments = PriorityAllocator().allocate(state, 0, [first, second])
    assert assignments == {0: first, 1: first}


def test_allocator_equidistant_drones_lowest_id_first(make_state):
    state = make_state([(500, 500), (3000, 500)], [[(400, 500), (600, 500)], [(0, 0), (0, 0)]])
    near, far = _task(0, 1, 10.0), _task(1, 1, 5.0)
    assignments = PriorityAllocator().allocate(state, 0, [near, far])
    assert assignments == {0: near, 1: far}


def test_allocator_without_tasks(make_state):
    state = make_state([(500, 500)], [[(400, 500), (600, 500)], [(0, 0), (0, 0)]])
    assert PriorityAllocator().allocate(state, 0, []) == {0: None, 1: None}


def test_allocator_assigns_every_drone(make_state):
    positions = [(100 * i + 50, 300) for i in range(5)]
    state = make_state([(500, 500), (3000, 500)], [positions, positions])
    tasks = [_task(0, 1, 3.0), _task(1, 1, 2.0)]
    assignments = PriorityAllocator().allocate(state, 0, tasks)
    assert all(t is not None for t in assignments.values())
    assert sum(1 for t in assignments.values() if t is tasks[1]) == 2


def test_focused_allocator_only_takes_fully_staffed_tasks(make_state):
    state = make_state([(500, 500), (3000, 500)], [[(600, 500), (2900, 500)], [(0, 0), (0, 0)]])
    big, small = _task(0, 5, 10.0), _task(1, 1, 5.0)
    assignments = FocusedAllocator().allocate(state, 0, [big, small])
    assert assignments == {0: None, 1: small}


def test_focused_allocator_stays_near_owned_zones(make_state):
    centers = [(500 * (i + 1), 500) for i in range(6)]
    state = make_state(centers, [[(900, 500), (3100, 500)], [(0, 0), (0, 0)]], owners={0: 0})
    remote, close = _task(5, 1, 10.0), _task(1, 1, 3.0)
    assignments = FocusedAllocator().allocate(state, 0, [remote, close])
    assert assignments == {0: close, 1: None}


@pytest.mark.parametrize(
    "owned,expected",
    [
        (4, {TaskType.ATTACK: Level.LOW, TaskType.DEFEND: Level.HIGH}),
        (3, {TaskType.ATTACK: Level.MEDIUM, TaskType.DEFEND: Level.HIGH}),
        (1, {TaskType.ATTACK: Level.HIGH, TaskType.DEFEND: Level.MEDIUM}),
    ],
)
def test_focused_importance(owned, expected):
    assert FocusedAllocator.importance(owned, 3) == expected


def test_focused_allocator_ranks_tasks_its_own_way(make_state):
    state = make_state(
        [(500, 500), (3000, 500), (2000, 1500)],
        [[(600, 500), (2900, 500)], [(0, 0), (0, 0)], [(0, 0), (0, 0)]],
    )
    costly = Task(zone_id=0, type=TaskType.ATTACK, required_drones=2, payoff=1.0, priority=10.0)
    cheap = Task(zone_id=1, type=TaskType.ATTACK, required_drones=1, payoff=0.5, priority=5.0)

    # organizer priority puts the costly task first
    assert PriorityAllocator().allocate(state, 0, [costly, cheap]) == {0: costly, 1: costly}

    # 2*1.0 + 4*HIGH - 50*sqrt(2/2) = -40  <  2*0.5 + 4*HIGH - 50*sqrt(1/2) ~ -26.4
    focused = FocusedAllocator()
    assert focused.priority(costly, Level.HIGH, 2) == pytest.approx(-40.0)
    assert focused.priority(cheap, Level.HIGH, 2) > focused.priority(costly, Level.HIGH, 2)
    assert focused.allocate(state, 0, [costly, cheap]) == {0: None, 1: cheap}


def test_focused_priority_uses_strategic_value_and_weights():
    task = Task(zone_id=0, type=TaskType.DEFEND, required_drones=0, payoff=0.5, strategic_value=Level.HIGH)
    allocator = FocusedAllocator(weights=PriorityWeights(1.0, 1.0, 1.0, 1.0))
    assert allocator.priority(task, Level.MEDIUM, 4) == pytest.approx(0.5 + 1 + 2)


def test_organizer_records_strategic_value(make_state):
    state = make_state([(2000, 900), (500, 500)], [[(2000, 900)], [(100, 100)]])
    tasks = OneTaskPerZoneOrganizer().define_tasks(state, 0, {0: Level.HIGH, 1: Level.MEDIUM}, {})
    assert [t.strategic_value for t in tasks] == [Level.HIGH, Level.MEDIUM]


# ---------- commanding ----------


def test_commander_destinations(make_state):
    state = make_state(
        [(1000, 900), (3000, 900)],
        [[(1000, 500), (3020, 900), (200, 200)], [(0, 0), (0, 0), (0, 0)]],
        owners={1: 0},
    )
    attack = _task(0, 1, 1.0)
    defend = _task(1, 1, 1.0, kind=TaskType.DEFEND)
    destinations = BasicCommander().command(state, 0, {0: attack, 1: defend, 2: None})
    assert destinations[0] == Point(1000, 805)
    assert destinations[1] == Point(3020, 900)
    assert destinations[2] == Point(200, 200)


def test_commander_attackers_inside_still_move_to_rim(make_state):
    state = make_state([(1000, 900)], [[(1000, 880)], [(0, 0)]])
    destinations = BasicCommander().command(state, 0, {0: _task(0, 1, 1.0)})
    assert destinations[0] == Point(1000, 805)
