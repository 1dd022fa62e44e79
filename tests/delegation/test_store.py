import sys
import os
import datetime
import threading

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
from liquidvote.delegation.core import Delegation, CircularDelegationError, \
    DuplicateDelegationError, UnknownDelegationError, \
    DelegationPermissionError
from liquidvote.delegation.store import MemoryDelegationStore, \
    MemoryBallotStore
from liquidvote.vote import Ballot, SimpleChoice, ValidationError


def test_initial_ids():
    store = MemoryDelegationStore([
        Delegation('A', 'B'),
        Delegation('B', 'C', id='mine'),
        Delegation('C', 'D'),
    ])
    assert len(store) == 3
    assert store.get_delegation('d1').delegator_id == 'A'
    assert store.get_delegation('mine').delegator_id == 'B'
    assert store.get_delegation('d2').delegator_id == 'C'


def test_create_returns_id():
    store = MemoryDelegationStore()
    first = store.create_delegation(Delegation('A', 'B'))
    second = store.create_delegation(Delegation('C', 'B', topic_id='T1'))
    assert first != second
    assert store.get_delegation(second).topic_id == 'T1'


def test_reverse_rejected_unchanged():
    store = MemoryDelegationStore([Delegation('A', 'B')])
    before = store.get_delegations()
    with pytest.raises(CircularDelegationError):
        store.create_delegation(Delegation('B', 'A'))
    assert len(store) == 1
    assert store.get_delegations() == before


def test_long_cycle_rejected():
    store = MemoryDelegationStore([Delegation('A', 'B'), Delegation('B', 'C')])
    with pytest.raises(CircularDelegationError):
        store.create_delegation(Delegation('C', 'A'))
    store.create_delegation(Delegation('D', 'A'))
    assert len(store) == 3


def test_general_rejected_by_topic_cycle():
    store = MemoryDelegationStore([Delegation('A', 'B', topic_id='T1')])
    with pytest.raises(CircularDelegationError) as excinfo:
        store.create_delegation(Delegation('B', 'A'))
    assert excinfo.value.topic_id == 'T1'
    assert len(store) == 1


def test_duplicate_rejected():
    store = MemoryDelegationStore([Delegation('A', 'B')])
    with pytest.raises(DuplicateDelegationError):
        store.create_delegation(Delegation('A', 'C'))
    store.create_delegation(Delegation('A', 'C', topic_id='T1'))
    assert len(store) == 2


@pytest.mark.parametrize('run', range(5))
def test_concurrent_writes_cannot_close_cycle(run):
    store = MemoryDelegationStore()
    barrier = threading.Barrier(2)
    outcomes = {}

    def create(delegator, delegatee):
        barrier.wait()
        try:
            outcomes[delegator] = store.create_delegation(
                Delegation(delegator, delegatee)
            )
        except CircularDelegationError as err:
            outcomes[delegator] = err

    threads = [
        threading.Thread(target=create, args=('A', 'B')),
        threading.Thread(target=create, args=('B', 'A')),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    errors = [
        outcome for outcome in outcomes.values()
        if isinstance(outcome, CircularDelegationError)
    ]
    assert len(outcomes) == 2
    assert len(errors) == 1
    assert len(store) == 1


def test_revoke():
    store = MemoryDelegationStore()
    deleg_id = store.create_delegation(Delegation('A', 'B'))
    with pytest.raises(DelegationPermissionError):
        store.revoke_delegation(deleg_id, 'B')
    revoked = store.revoke_delegation(deleg_id, 'A')
    assert not revoked.active
    assert store.get_delegations() == []
    # revoked edge no longer blocks the reverse one
    store.create_delegation(Delegation('B', 'A'))
    store.create_delegation(Delegation('A', 'C'))


def test_revoke_unknown():
    store = MemoryDelegationStore()
    with pytest.raises(UnknownDelegationError):
        store.revoke_delegation('d42', 'A')
    with pytest.raises(LookupError):
        store.get_delegation('d42')


def test_active_by_scope():
    store = MemoryDelegationStore([
        Delegation('A', 'B'),
        Delegation('C', 'B', topic_id='T1'),
        Delegation('D', 'B', topic_id='T2'),
        Delegation('E', 'B', valid_until=datetime.datetime(2000, 1, 1)),
    ])
    general = store.get_active_delegations()
    assert [d.delegator_id for d in general] == ['A']
    topical = store.get_active_delegations('T1')
    assert sorted(d.delegator_id for d in topical) == ['A', 'C']


def test_ballot_store():
    store = MemoryBallotStore([
        Ballot('s1', 'A', SimpleChoice('Yes')),
        Ballot('s2', 'A', SimpleChoice('No')),
        Ballot('s1', 'B', SimpleChoice('No')),
    ])
    assert [b.voter_id for b in store.get_ballots_for_session('s1')] == [
        'A', 'B'
    ]
    assert store.get_ballots_for_session('s3') == []
    with pytest.raises(ValidationError):
        store.cast_ballot(
            Ballot('s1', 'C', SimpleChoice('Yes'), is_delegated=True)
        )
