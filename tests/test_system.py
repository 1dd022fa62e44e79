import sys
import os

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import liquidvote.system
import liquidvote.evaluate.cardinal
import liquidvote.vote
from liquidvote.system import calculate_results, VotingSystem, VoteSession
from liquidvote.evaluate.core import VotingMethod, UnknownMethodError
from liquidvote.vote import SimpleChoice, ApprovalChoice, RankedChoice, \
    ScoreChoice, GradeChoice, CreditChoice, AllocationChoice, FractionChoice, \
    Ballot, WeightedBallot, VoteTypeError, VoteMagnitudeError, \
    OptionListError, ValidationError


def weighted(choices, session_id='s1'):
    '''Build weighted ballots from (choice, weight) pairs.'''
    return [
        WeightedBallot(Ballot(session_id, f'u{i}', choice), weight)
        for i, (choice, weight) in enumerate(choices)
    ]


RANKED_CW = weighted([
    (RankedChoice({'A': 1, 'B': 2, 'C': 3}), 4),
    (RankedChoice({'B': 1, 'C': 2, 'A': 3}), 2),
    (RankedChoice({'C': 1, 'A': 2, 'B': 3}), 1),
])
RANKED_CYCLE = weighted([
    (RankedChoice({'A': 1, 'B': 2, 'C': 3}), 1),
    (RankedChoice({'B': 1, 'C': 2, 'A': 3}), 1),
    (RankedChoice({'C': 1, 'A': 2, 'B': 3}), 1),
])


def test_registry_complete():
    assert set(liquidvote.system.SYSTEMS.keys()) == set(VotingMethod)
    for system in liquidvote.system.SYSTEMS.values():
        assert isinstance(system, VotingSystem)


def test_fptp():
    ballots = weighted([
        (SimpleChoice('Yes'), 1),
        (SimpleChoice('Yes'), 1),
        (SimpleChoice('No'), 1),
    ])
    result = calculate_results('firstPastThePost', ballots, ['Yes', 'No'])
    assert result.winner == 'Yes'
    assert result.counts == {'Yes': 2, 'No': 1}
    assert result.total_votes == 3
    assert result.majority_achieved
    assert sum(result.counts.values()) == result.total_votes


def test_ballot_generator():
    ballots = weighted([
        (SimpleChoice('Yes'), 1),
        (SimpleChoice('Yes'), 2),
        (SimpleChoice('No'), 1),
    ])
    result = calculate_results(
        'firstPastThePost', (ballot for ballot in ballots), ['Yes', 'No']
    )
    assert result.winner == 'Yes'
    assert result.counts == {'Yes': 3, 'No': 1}
    assert result.total_votes == 4


def test_kemeny_no_ballots_many_options():
    result = calculate_results('kemenyYoung', [], list('ABCDEFGHI'))
    assert result.winner is None
    assert result.total_votes == 0


def test_fptp_tie():
    ballots = weighted([(SimpleChoice('A'), 1), (SimpleChoice('B'), 1)])
    result = calculate_results(VotingMethod.FIRST_PAST_THE_POST, ballots,
                               ['A', 'B', 'C'])
    assert result.winner is None
    assert result.tied() == ['A', 'B']
    assert result.counts == {'A': 1, 'B': 1, 'C': 0}


def test_approval():
    ballots = weighted([
        (ApprovalChoice(['A', 'B']), 1),
        (ApprovalChoice(['B']), 1),
    ])
    result = calculate_results('approvalVoting', ballots, ['A', 'B'])
    assert result.counts == {'A': 1, 'B': 2}
    assert result.winner == 'B'
    assert result.total_votes == 2
    assert result.majority_achieved
    assert result.details['approvalShares'] == {'A': 0.5, 'B': 1.0}


def test_majority_runoff():
    ballots = weighted([
        (SimpleChoice('A'), 40),
        (SimpleChoice('B'), 35),
        (SimpleChoice('C'), 25),
    ])
    result = calculate_results('majorityRunoff', ballots, ['A', 'B', 'C'])
    assert result.runoff_needed
    assert result.runoff_candidates == ['A', 'B']
    assert result.winner == 'A'
    assert not result.majority_achieved
    assert result.counts == {'A': 40, 'B': 35, 'C': 25}
    assert result.details['runoffCounts'] == {'A': 40, 'B': 35}
    assert result.details['totalVotesRunoff'] == 75


def test_majority_runoff_first_round():
    ballots = weighted([(SimpleChoice('A'), 60), (SimpleChoice('B'), 40)])
    result = calculate_results('majorityRunoff', ballots, ['A', 'B'])
    assert result.winner == 'A'
    assert result.majority_achieved
    assert not result.runoff_needed
    assert result.runoff_candidates is None


def test_majority_runoff_tied_second():
    ballots = weighted([
        (SimpleChoice('A'), 40),
        (SimpleChoice('B'), 30),
        (SimpleChoice('C'), 30),
    ])
    result = calculate_results('majorityRunoff', ballots, ['A', 'B', 'C'])
    assert result.winner is None
    assert result.runoff_needed
    assert result.runoff_candidates is None


def test_dual_choice_always_two_rounds():
    ballots = weighted([
        (SimpleChoice('A'), 60),
        (SimpleChoice('B'), 30),
        (SimpleChoice('C'), 10),
    ])
    result = calculate_results('dualChoice', ballots, ['A', 'B', 'C'])
    assert result.winner == 'A'
    assert result.runoff_needed
    assert result.runoff_candidates == ['A', 'B']
    assert result.details['runoffCounts'] == {'A': 60, 'B': 30}


@pytest.mark.parametrize('method', ['schulze', 'condorcet', 'kemenyYoung'])
def test_condorcet_winner_agreement(method):
    result = calculate_results(method, RANKED_CW, ['A', 'B', 'C'])
    assert result.winner == 'A'
    assert result.total_votes == 7


@pytest.mark.parametrize('method', ['schulze', 'condorcet', 'kemenyYoung'])
def test_condorcet_cycle_no_winner(method):
    result = calculate_results(method, RANKED_CYCLE, ['A', 'B', 'C'])
    assert result.winner is None


def test_schulze_matches_condorcet():
    schulze = calculate_results('schulze', RANKED_CW, ['A', 'B', 'C'])
    condorcet = calculate_results('condorcet', RANKED_CW, ['A', 'B', 'C'])
    assert schulze.winner == condorcet.winner
    assert condorcet.rankings == {'A': 2, 'B': 1, 'C': 0}
    assert condorcet.details['pairwise']['A'] == {'B': 5, 'C': 4}


def test_kemeny_ordering():
    result = calculate_results('kemenyYoung', RANKED_CW, ['A', 'B', 'C'])
    assert result.rankings == {'A': 1, 'B': 2, 'C': 3}
    assert result.details['ordering'] == ['A', 'B', 'C']
    assert result.details['disagreement'] == 6


def test_kemeny_too_many_options():
    options = [f'O{i}' for i in range(9)]
    ballots = weighted([(RankedChoice({'O1': 1}), 1)])
    with pytest.raises(VoteMagnitudeError):
        calculate_results('kemenyYoung', ballots, options)


def test_instant_runoff():
    ballots = weighted([
        (RankedChoice({'A': 1, 'B': 2}), 4),
        (RankedChoice({'B': 1, 'A': 2}), 3),
        (RankedChoice({'C': 1, 'B': 2}), 2),
    ])
    result = calculate_results('instantRunoff', ballots, ['A', 'B', 'C'])
    assert result.winner == 'B'
    assert result.majority_achieved
    assert result.runoff_needed
    assert result.counts == {'A': 4, 'B': 3, 'C': 2}
    assert result.details['eliminated'] == [['C']]
    assert result.details['finalCounts'] == {'A': 4, 'B': 5}


def test_borda():
    ballots = weighted([
        (RankedChoice({'A': 1, 'B': 2, 'C': 3}), 2),
        (RankedChoice({'B': 1, 'A': 2, 'C': 3}), 1),
    ])
    result = calculate_results('bordaCount', ballots, ['A', 'B', 'C'])
    assert result.scores == {'A': 8, 'B': 7, 'C': 3}
    assert result.winner == 'A'
    assert result.total_votes == 3


def test_star():
    ballots = weighted([
        (ScoreChoice({'A': 5, 'B': 4, 'C': 0}), 2),
        (ScoreChoice({'A': 0, 'B': 5, 'C': 5}), 1),
    ])
    result = calculate_results('starVoting', ballots, ['A', 'B', 'C'])
    assert result.scores == {'A': 10, 'B': 13, 'C': 5}
    assert result.runoff_candidates == ['B', 'A']
    assert result.details['runoffCounts'] == {'B': 1, 'A': 2}
    assert result.winner == 'A'


def test_star_score_range():
    ballots = weighted([(ScoreChoice({'A': 6}), 1)])
    with pytest.raises(VoteMagnitudeError):
        calculate_results('starVoting', ballots, ['A', 'B'])


def test_range():
    ballots = weighted([
        (ScoreChoice({'A': 10, 'B': 5}), 1),
        (ScoreChoice({'A': 0, 'B': 6}), 1),
    ])
    result = calculate_results('rangeVoting', ballots, ['A', 'B'])
    assert result.scores == {'A': 5, 'B': 5.5}
    assert result.winner == 'B'


def test_majority_judgment_tiebreak():
    ballots = weighted([
        (GradeChoice({'A': 'Excellent', 'B': 'Good'}), 2),
        (GradeChoice({'A': 'Reject', 'B': 'Good'}), 1),
        (GradeChoice({'A': 'Good', 'B': 'Poor'}), 1),
    ])
    result = calculate_results('majorityJudgment', ballots, ['A', 'B'])
    assert result.details['medianGrades'] == {'A': 'Good', 'B': 'Good'}
    assert result.scores == {'A': 4, 'B': 4}
    assert result.details['tiebreakShares'] == {'A': 0.5, 'B': 0}
    assert result.winner == 'A'


def test_majority_judgment_best_median():
    ballots = weighted([
        (GradeChoice({'A': 'Very Good', 'B': 'Excellent'}), 1),
        (GradeChoice({'A': 'Very Good', 'B': 'Poor'}), 2),
    ])
    result = calculate_results('majorityJudgment', ballots, ['A', 'B'])
    assert result.winner == 'A'
    assert result.details['medianGrades'] == {'A': 'Very Good', 'B': 'Poor'}


def test_quadratic():
    ballots = weighted([
        (CreditChoice({'A': 9, 'B': 16}), 1),
        (CreditChoice({'A': 25}), 2),
    ])
    result = calculate_results('quadraticVoting', ballots, ['A', 'B'])
    assert result.counts == {'A': 13, 'B': 4}
    assert result.winner == 'A'


def test_quadratic_budget():
    ballots = weighted([(CreditChoice({'A': 81, 'B': 36}), 1)])
    with pytest.raises(VoteMagnitudeError):
        calculate_results('quadraticVoting', ballots, ['A', 'B'])


def test_cumulative():
    ballots = weighted([
        (AllocationChoice({'A': 3}), 1),
        (AllocationChoice({'B': 2, 'C': 1}), 2),
    ])
    result = calculate_results('cumulativeVoting', ballots, ['A', 'B', 'C'])
    assert result.counts == {'A': 3, 'B': 4, 'C': 2}
    assert result.winner == 'B'


def test_cumulative_budget():
    ballots = weighted([(AllocationChoice({'A': 3, 'B': 1}), 1)])
    with pytest.raises(VoteMagnitudeError):
        calculate_results('cumulativeVoting', ballots, ['A', 'B', 'C'])


def test_weight_voting():
    ballots = weighted([
        (FractionChoice('A', 0.5), 4),
        (FractionChoice('B', 1.0), 1),
    ])
    result = calculate_results('weightVoting', ballots, ['A', 'B'])
    assert result.counts == {'A': 2, 'B': 1}
    assert result.total_votes == 5
    assert result.winner == 'A'


@pytest.mark.parametrize('method', list(VotingMethod))
def test_empty_ballots(method):
    result = calculate_results(method, [], ['A', 'B', 'C'])
    assert result.winner is None
    assert result.total_votes == 0
    assert not result.majority_achieved
    assert not result.runoff_needed


@pytest.mark.parametrize('method', list(VotingMethod))
def test_shape_mismatch(method):
    system = liquidvote.system.SYSTEMS[method]
    if system.choice_type is SimpleChoice:
        wrong = ApprovalChoice(['A'])
    else:
        wrong = SimpleChoice('A')
    with pytest.raises(VoteTypeError):
        calculate_results(method, weighted([(wrong, 1)]), ['A', 'B'])


def test_unknown_option():
    ballots = weighted([(SimpleChoice('D'), 1)])
    with pytest.raises(ValidationError):
        calculate_results('firstPastThePost', ballots, ['A', 'B'])


def test_malformed_options():
    with pytest.raises(OptionListError):
        calculate_results('firstPastThePost', [], ['A', 'A'])


def test_unknown_method():
    with pytest.raises(UnknownMethodError):
        calculate_results('plurality', [], ['A'])


def test_method_by_name():
    ballots = weighted([(SimpleChoice('A'), 1)])
    result = calculate_results('FIRST_PAST_THE_POST', ballots, ['A', 'B'])
    assert result.winner == 'A'


@pytest.mark.parametrize('method, ballots', [
    ('schulze', RANKED_CW),
    ('kemenyYoung', RANKED_CYCLE),
    ('instantRunoff', RANKED_CW),
    ('bordaCount', RANKED_CW),
])
def test_deterministic(method, ballots):
    first = calculate_results(method, ballots, ['A', 'B', 'C'])
    second = calculate_results(method, list(reversed(ballots)), ['A', 'B', 'C'])
    assert first == calculate_results(method, ballots, ['A', 'B', 'C'])
    assert first.winner == second.winner


def test_custom_registry():
    systems = liquidvote.system.load_systems({
        'rangeVoting': VotingSystem(
            'Summed range',
            liquidvote.evaluate.cardinal.ScoreVoting(function='sum'),
            liquidvote.vote.ScoreChoiceValidator((0, 10)),
        ).to_dict(),
    })
    ballots = weighted([
        (ScoreChoice({'A': 10}), 1),
        (ScoreChoice({'A': 0, 'B': 6}), 2),
    ])
    result = calculate_results('rangeVoting', ballots, ['A', 'B'],
                               systems=systems)
    assert result.scores == {'A': 10, 'B': 12}
    assert result.winner == 'B'
    assert systems[VotingMethod.SCHULZE] is liquidvote.system.SYSTEMS[
        VotingMethod.SCHULZE
    ]


def test_registry_missing_method():
    with pytest.raises(UnknownMethodError):
        calculate_results('schulze', [], ['A'], systems={})


def test_session():
    session = VoteSession('s1', 'p1', 'bordaCount', ['A', 'B'])
    assert session.method is VotingMethod.BORDA_COUNT
    assert session.options == ('A', 'B')
    result = session.calculate_results(
        weighted([(RankedChoice({'B': 1}), 1)])
    )
    assert result.winner == 'B'


def test_session_invalid():
    with pytest.raises(OptionListError):
        VoteSession('s1', 'p1', 'bordaCount', [])
    with pytest.raises(UnknownMethodError):
        VoteSession('s1', 'p1', 'borda', ['A'])
