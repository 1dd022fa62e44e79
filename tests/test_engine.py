import sys
import os
import datetime

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from liquidvote.engine import LiquidDemocracyEngine
from liquidvote.delegation.core import Delegation, CircularDelegationError
from liquidvote.delegation.store import MemoryDelegationStore, \
    MemoryBallotStore
from liquidvote.member import Member, MemoryMemberDirectory, \
    UnknownMemberError
from liquidvote.system import VoteSession
from liquidvote.vote import Ballot, SimpleChoice, RankedChoice


NOW = datetime.datetime(2024, 6, 1, 12, 0)


def make_engine(delegations=(), ballots=(), members=None):
    return LiquidDemocracyEngine(
        MemoryDelegationStore(delegations),
        MemoryBallotStore(ballots),
        member_directory=members,
    )


def test_tally_chain():
    session = VoteSession('s1', 'p1', 'firstPastThePost', ['Yes', 'No'],
                          ends_at=NOW)
    engine = make_engine(
        [Delegation('A', 'B'), Delegation('B', 'C')],
        [
            Ballot('s1', 'C', SimpleChoice('Yes')),
            Ballot('s1', 'D', SimpleChoice('No')),
            Ballot('s1', 'E', SimpleChoice('No')),
        ],
    )
    result = engine.tally_session(session)
    assert result.winner == 'Yes'
    assert result.counts == {'Yes': 3.0, 'No': 2.0}
    assert result.total_votes == 5.0


def test_tally_topic_override():
    session = VoteSession('s1', 'p1', 'firstPastThePost', ['Yes', 'No'],
                          topic_id='T1', ends_at=NOW)
    engine = make_engine(
        [Delegation('A', 'B'), Delegation('A', 'C', topic_id='T1')],
        [
            Ballot('s1', 'B', SimpleChoice('Yes')),
            Ballot('s1', 'C', SimpleChoice('No')),
        ],
    )
    result = engine.tally_session(session)
    assert result.winner == 'No'
    assert result.counts == {'Yes': 1.0, 'No': 2.0}


def test_tally_direct_override():
    session = VoteSession('s1', 'p1', 'firstPastThePost', ['Yes', 'No'],
                          ends_at=NOW)
    engine = make_engine(
        [Delegation('A', 'B'), Delegation('C', 'B')],
        [
            Ballot('s1', 'A', SimpleChoice('No')),
            Ballot('s1', 'B', SimpleChoice('Yes')),
        ],
    )
    result = engine.tally_session(session)
    assert result.counts == {'Yes': 2.0, 'No': 1.0}


def test_tally_expiry_at_session_end():
    session = VoteSession('s1', 'p1', 'firstPastThePost', ['Yes', 'No'],
                          ends_at=NOW)
    engine = make_engine(
        [Delegation('A', 'B', valid_until=NOW - datetime.timedelta(hours=1))],
        [Ballot('s1', 'B', SimpleChoice('Yes'))],
    )
    assert engine.tally_session(session).total_votes == 1.0


def test_tally_ranked():
    session = VoteSession('s1', 'p1', 'instantRunoff', ['A', 'B', 'C'],
                          ends_at=NOW)
    engine = make_engine(
        [Delegation('x1', 'v1')],
        [
            Ballot('s1', 'v1', RankedChoice({'A': 1, 'B': 2})),
            Ballot('s1', 'v2', RankedChoice({'B': 1})),
            Ballot('s1', 'v3', RankedChoice({'C': 1, 'B': 2})),
            Ballot('s1', 'v4', RankedChoice({'B': 1, 'A': 2})),
        ],
    )
    # first preferences A 2, B 2, C 1; C out, its vote goes to B
    result = engine.tally_session(session)
    assert result.total_votes == 5.0
    assert result.winner == 'B'


def test_tally_no_ballots():
    session = VoteSession('s1', 'p1', 'approvalVoting', ['A', 'B'],
                          ends_at=NOW)
    result = make_engine([Delegation('A', 'B')]).tally_session(session)
    assert result.winner is None
    assert result.total_votes == 0


def test_tally_without_ballot_store():
    engine = LiquidDemocracyEngine(MemoryDelegationStore())
    session = VoteSession('s1', 'p1', 'approvalVoting', ['A', 'B'])
    with pytest.raises(ValueError):
        engine.tally_session(session)


def test_create_rejects_cycle():
    engine = make_engine([Delegation('A', 'B'), Delegation('B', 'C')])
    with pytest.raises(CircularDelegationError):
        engine.create_delegation(Delegation('C', 'A'))
    assert len(engine.delegation_store) == 2
    new_id = engine.create_delegation(Delegation('C', 'D'))
    assert engine.delegation_store.get_delegation(new_id).delegatee_id == 'D'
    assert engine.represented_weight('D') == 4.0


def test_create_checks_members():
    members = MemoryMemberDirectory([Member('A', 'Alice')])
    engine = make_engine(members=members)
    with pytest.raises(UnknownMemberError):
        engine.create_delegation(Delegation('A', 'Z'))
    assert len(engine.delegation_store) == 0


def test_would_create_cycle_across_topics():
    engine = make_engine([Delegation('A', 'B', topic_id='T1')])
    assert engine.would_create_cycle('B', 'A')
    assert engine.would_create_cycle('B', 'A', 'T1')
    assert not engine.would_create_cycle('B', 'A', 'T2')


def test_delegation_graph_with_members():
    members = MemoryMemberDirectory([
        Member('A', 'Alice'), Member('B', 'Bob'), Member('C', 'Carol'),
    ])
    engine = make_engine(
        [Delegation('A', 'B'), Delegation('B', 'C')], members=members
    )
    nodes = engine.get_delegation_graph('B')
    assert {uid: node.depth for uid, node in nodes.items()} == {
        'B': 0, 'C': 1, 'A': 1,
    }
    assert nodes['C'].member.name == 'Carol'


def test_revoke_restores_weight():
    engine = make_engine([Delegation('A', 'B', id='x')])
    assert engine.represented_weight('B') == 2.0
    engine.revoke_delegation('x', 'A')
    assert engine.represented_weight('B') == 1.0
