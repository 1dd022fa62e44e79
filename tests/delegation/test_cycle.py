import sys
import os
import itertools
import datetime

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
import liquidvote.delegation.cycle
from liquidvote.delegation.core import Delegation, CircularDelegationError
from liquidvote.delegation.cycle import CycleGuard, would_create_cycle
from liquidvote.delegation.graph import DelegationGraph


NOW = datetime.datetime(2024, 6, 1, 12, 0)

CHAIN = [Delegation('A', 'B'), Delegation('B', 'C'), Delegation('C', 'D')]


@pytest.mark.parametrize('delegator, delegatee, expected', [
    ('B', 'A', True),
    ('D', 'A', True),
    ('C', 'A', True),
    ('D', 'B', True),
    ('A', 'A', True),
    ('A', 'D', False),
    ('E', 'A', False),
    ('D', 'E', False),
    ('A', 'E', False),
])
def test_chain_cycles(delegator, delegatee, expected):
    assert would_create_cycle(delegator, delegatee, CHAIN, at=NOW) == expected


def test_reverse_of_existing():
    delegs = [Delegation('A', 'B')]
    assert would_create_cycle('B', 'A', delegs, at=NOW)


def test_topic_cycle_only_in_topic():
    delegs = [Delegation('A', 'B', topic_id='T1')]
    assert would_create_cycle('B', 'A', delegs, topic_id='T1', at=NOW)
    assert not would_create_cycle('B', 'A', delegs, topic_id='T2', at=NOW)


def test_general_edge_checked_in_topics():
    # B's general delegation to A is the fallback in T1, where A delegates to B
    delegs = [Delegation('A', 'B', topic_id='T1')]
    assert would_create_cycle('B', 'A', delegs, at=NOW)


def test_general_edge_overridden_in_topic():
    delegs = [
        Delegation('A', 'B', topic_id='T1'),
        Delegation('B', 'C', topic_id='T1'),
    ]
    assert not would_create_cycle('B', 'A', delegs, at=NOW)


def test_topic_edge_through_general_fallback():
    delegs = [Delegation('A', 'B'), Delegation('B', 'C')]
    assert would_create_cycle('C', 'A', delegs, topic_id='T1', at=NOW)


def test_mixed_topics_not_a_cycle():
    delegs = [
        Delegation('A', 'B', topic_id='T1'),
        Delegation('B', 'C', topic_id='T2'),
    ]
    assert not would_create_cycle('C', 'A', delegs, topic_id='T1', at=NOW)


def test_expired_edges_ignored():
    delegs = [
        Delegation('A', 'B', valid_until=NOW - datetime.timedelta(days=1)),
    ]
    assert not would_create_cycle('B', 'A', delegs, at=NOW)


def test_affected_scopes():
    delegs = [
        Delegation('A', 'B', topic_id='T1'),
        Delegation('C', 'B', topic_id='T2'),
        Delegation('C', 'D', topic_id='T3'),
    ]
    assert liquidvote.delegation.cycle.affected_scopes(
        'A', delegs, None, NOW
    ) == [None, 'T2', 'T3']
    assert liquidvote.delegation.cycle.affected_scopes(
        'A', delegs, 'T9', NOW
    ) == ['T9']


def test_guard_check_raises():
    guard = CycleGuard(DelegationGraph.build(CHAIN, at=NOW))
    guard.check('A', 'D')
    with pytest.raises(CircularDelegationError) as excinfo:
        guard.check('D', 'A')
    assert excinfo.value.delegator_id == 'D'
    assert excinfo.value.delegatee_id == 'A'
    assert excinfo.value.topic_id is None


def test_guard_corrupt_graph_bounded():
    corrupt = DelegationGraph({
        'A': Delegation('A', 'B'),
        'B': Delegation('B', 'C'),
        'C': Delegation('C', 'A'),
    })
    assert CycleGuard(corrupt).would_create_cycle('X', 'A')


def _reaches(edges, start, target):
    current = start
    for _ in range(len(edges) + 1):
        if current == target:
            return True
        current = edges.get(current)
        if current is None:
            return False
    return True


def test_iff_property_exhaustive():
    users = 'ABCD'
    edges = {'A': 'B', 'C': 'B'}
    delegs = [Delegation(src, dst) for src, dst in edges.items()]
    guard = CycleGuard(DelegationGraph.build(delegs, at=NOW))
    for delegator, delegatee in itertools.product(users, repeat=2):
        new_edges = dict(edges)
        new_edges[delegator] = delegatee
        closes = _reaches(new_edges, delegatee, delegator)
        assert guard.would_create_cycle(delegator, delegatee) == closes
