import sys
import os
import datetime

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))
import liquidvote.system
from liquidvote.delegation.core import Delegation
from liquidvote.delegation.graph import DelegationGraph
from liquidvote.delegation.expand import BallotExpander, expand_ballots, \
    latest_ballots
from liquidvote.vote import Ballot, SimpleChoice, ValidationError


NOW = datetime.datetime(2024, 6, 1, 12, 0)


def graph_of(*pairs, **kwargs):
    return DelegationGraph.build(
        [Delegation(src, dst, **kwargs) for src, dst in pairs], at=NOW
    )


def ballot(voter, option='Yes', cast_at=None, session='s1'):
    return Ballot(session, voter, SimpleChoice(option), cast_at=cast_at)


def by_voter(weighted):
    return {wb.voter_id: wb for wb in weighted}


def test_chain_effective_weight():
    graph = graph_of(('A', 'B'), ('B', 'C'))
    weighted = expand_ballots([ballot('C')], graph)
    assert len(weighted) == 1
    assert weighted[0].weight == 3.0
    assert weighted[0].represented == frozenset(['A', 'B'])
    assert weighted[0].is_delegated


def test_override_excludes_delegator():
    graph = graph_of(('A', 'B'))
    weighted = by_voter(expand_ballots(
        [ballot('A', 'No'), ballot('B', 'Yes')], graph
    ))
    assert weighted['A'].weight == 1.0
    assert weighted['B'].weight == 1.0
    assert 'A' not in weighted['B'].represented
    assert not weighted['B'].is_delegated


def test_nested_override_chain():
    # A -> B -> C -> D; B and D vote, so A goes to B and C to D
    graph = graph_of(('A', 'B'), ('B', 'C'), ('C', 'D'))
    weighted = by_voter(expand_ballots([ballot('B'), ballot('D')], graph))
    assert weighted['B'].weight == 2.0
    assert weighted['B'].represented == frozenset(['A'])
    assert weighted['D'].weight == 2.0
    assert weighted['D'].represented == frozenset(['C'])


def test_chain_without_voter_abstains():
    graph = graph_of(('A', 'B'), ('B', 'C'), ('X', 'Y'))
    weighted = expand_ballots([ballot('Y')], graph)
    assert [wb.voter_id for wb in weighted] == ['Y']
    assert weighted[0].weight == 2.0


def test_nominal_weights_summed():
    graph = DelegationGraph.build([
        Delegation('A', 'B', weight=0.5),
        Delegation('C', 'A', weight=2.0),
    ], at=NOW)
    weighted = expand_ballots([ballot('B')], graph)
    assert weighted[0].weight == 3.5


def test_no_double_counting():
    graph = graph_of(('A', 'B'), ('B', 'C'), ('D', 'C'), ('E', 'D'), ('F', 'E'))
    voters = ['C', 'D', 'F']
    weighted = expand_ballots([ballot(v) for v in voters], graph)
    all_represented = [
        uid for wb in weighted for uid in wb.represented
    ]
    assert len(all_represented) == len(set(all_represented))
    assert not set(all_represented) & set(voters)
    assert sum(wb.weight for wb in weighted) == 6.0
    assert by_voter(weighted)['D'].weight == 2.0


def test_last_write_wins():
    early = NOW - datetime.timedelta(hours=2)
    late = NOW - datetime.timedelta(hours=1)
    weighted = expand_ballots([
        ballot('A', 'Yes', cast_at=late),
        ballot('B', 'No'),
        ballot('A', 'No', cast_at=early),
    ], graph_of())
    assert [wb.voter_id for wb in weighted] == ['A', 'B']
    assert weighted[0].choice == SimpleChoice('Yes')


def test_last_write_wins_by_position():
    latest = latest_ballots([ballot('A', 'Yes'), ballot('A', 'No')])
    assert latest['A'].choice == SimpleChoice('No')


def test_mixed_sessions_rejected():
    with pytest.raises(ValidationError):
        expand_ballots([ballot('A'), ballot('B', session='s2')], graph_of())


def test_delegated_input_rejected():
    flagged = Ballot('s1', 'A', SimpleChoice('Yes'), is_delegated=True)
    with pytest.raises(ValidationError):
        BallotExpander(graph_of()).expand([flagged])


def test_empty():
    assert expand_ballots([], graph_of(('A', 'B'))) == []


def test_expand_then_tabulate():
    graph = graph_of(('A', 'B'), ('B', 'C'), ('E', 'D'))
    weighted = expand_ballots(
        [ballot('C', 'Yes'), ballot('D', 'No'), ballot('F', 'No')], graph
    )
    result = liquidvote.system.calculate_results(
        'firstPastThePost', weighted, ['Yes', 'No']
    )
    assert result.counts == {'Yes': 3.0, 'No': 3.0}
    assert result.total_votes == 6.0
    assert result.winner is None
