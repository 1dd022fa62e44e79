'''General voting method evaluator machinery.'''

from __future__ import annotations

import abc
import enum
import dataclasses
from typing import Any, List, Dict, Union, Optional, Collection
from numbers import Number

import liquidvote.util
from liquidvote.persist import simple_serialization, serialize_value


class UnknownMethodError(LookupError):
    '''A voting method that no voting system is registered for.

    :param method: The unknown method or its name.
    '''
    def __init__(self, method: Any):
        self.method = method
        super().__init__(f'unknown voting method: {method!r}')


class VotingMethod(enum.Enum):
    '''Voting methods a vote session can be decided by.'''
    FIRST_PAST_THE_POST = 'firstPastThePost'
    APPROVAL_VOTING = 'approvalVoting'
    MAJORITY_RUNOFF = 'majorityRunoff'
    SCHULZE = 'schulze'
    INSTANT_RUNOFF = 'instantRunoff'
    STAR_VOTING = 'starVoting'
    RANGE_VOTING = 'rangeVoting'
    MAJORITY_JUDGMENT = 'majorityJudgment'
    QUADRATIC_VOTING = 'quadraticVoting'
    CONDORCET = 'condorcet'
    BORDA_COUNT = 'bordaCount'
    CUMULATIVE_VOTING = 'cumulativeVoting'
    KEMENY_YOUNG = 'kemenyYoung'
    DUAL_CHOICE = 'dualChoice'
    WEIGHT_VOTING = 'weightVoting'

    @classmethod
    def get(cls, method: Union[VotingMethod, str]) -> VotingMethod:
        '''Resolve a method given by itself, its value or its name.

        :raises UnknownMethodError: If there is no such method.
        '''
        if isinstance(method, cls):
            return method
        if isinstance(method, str):
            for member in cls:
                if method in (member.value, member.name):
                    return member
        raise UnknownMethodError(method)


@dataclasses.dataclass
class Result:
    '''The result of a vote session under a voting method.

    :param winner: The winning option; None if there is none, which is the
        case for ties and empty sessions.
    :param counts: Weighted vote counts per option, for methods that count
        votes.
    :param scores: Aggregate scores per option, for methods that score.
    :param rankings: Ranking numbers per option, such as numbers of pairwise
        wins or positions in an optimal ordering.
    :param total_votes: Sum of the effective weights of all ballots.
    :param majority_achieved: Whether the winner got more than half of the
        weight in play.
    :param runoff_needed: Whether a runoff round was held.
    :param runoff_candidates: The options that went to the runoff.
    :param details: Method-specific extras (rounds, pairwise matrices...).
    '''
    winner: Optional[str] = None
    counts: Dict[str, Number] = dataclasses.field(default_factory=dict)
    scores: Dict[str, Number] = dataclasses.field(default_factory=dict)
    rankings: Dict[str, Number] = dataclasses.field(default_factory=dict)
    total_votes: Number = 0
    majority_achieved: bool = False
    runoff_needed: bool = False
    runoff_candidates: Optional[List[str]] = None
    details: Dict[str, Any] = dataclasses.field(default_factory=dict)

    KEYS = {
        'winner': 'winner',
        'counts': 'counts',
        'scores': 'scores',
        'rankings': 'rankings',
        'total_votes': 'totalVotes',
        'majority_achieved': 'majorityAchieved',
        'runoff_needed': 'runoffNeeded',
        'runoff_candidates': 'runoffCandidates',
        'details': 'details',
    }

    def tied(self) -> List[str]:
        '''Return the options sharing the top value of the main result map.

        The main map is the first non-empty of counts, scores and rankings.
        Gives a single option when there is a clear leader.
        '''
        for values in (self.counts, self.scores, self.rankings):
            if values:
                top = max(values.values())
                return [opt for opt, val in values.items() if val == top]
        return []

    def to_dict(self) -> Dict[str, Any]:
        '''Serialize the result to a JSON-ready dictionary.'''
        return {
            key: serialize_value(getattr(self, attr))
            for attr, key in self.KEYS.items()
        }


class Tie(frozenset):
    '''Options tied for a place.

    This object, a subclass of ``frozenset``, is produced by
    :func:`get_n_best` when two or more options have an equal number of votes
    and only some of them fit into the number of places to fill.
    '''
    @staticmethod
    def any(result: List[Union[str, Tie]]) -> bool:
        '''Return True if there is any tie in the list, False otherwise.'''
        return any(isinstance(item, Tie) for item in result)


def get_n_best(votes: Dict[str, Number],
               n_seats: int,
               ) -> List[Union[str, Tie]]:
    '''Return n_seats options with the highest number of votes.

    Produces ties correctly so is useful as a component in many other methods
    that use selection by maximum somewhere in their process.

    :param votes: Mapping of options to the number of votes obtained.
    :param n_seats: Number of places to be filled.
    :returns: A list of top n_seats options. If there is a tie, the last
        items will refer to a single Tie object containing the tied options.
    '''
    sorted_items = liquidvote.util.sorted_votes(votes)
    if len(sorted_items) > n_seats:
        # find if there is a tie between the last selected and first unselected
        threshold_votes = sorted_items[n_seats-1][1]
        if sorted_items[n_seats][1] == threshold_votes:
            tied = []
            n_untied = None
            for i, item in enumerate(sorted_items):
                option, n_votes = item
                if n_votes == threshold_votes:
                    tied.append(option)
                    if n_untied is None:
                        n_untied = i
            n_tie_places = n_seats - n_untied
            return (
                [item[0] for item in sorted_items[:n_untied]]
                + [Tie(tied)] * n_tie_places
            )
        else:
            return [option for option, n_votes in sorted_items[:n_seats]]
    else:
        return [option for option, n_votes in sorted_items]


def select_winner(votes: Dict[str, Number]) -> Optional[str]:
    '''Return the option with the strictly highest positive value, if any.'''
    best = get_n_best(votes, 1)
    if not best or isinstance(best[0], Tie) or not votes[best[0]] > 0:
        return None
    return best[0]


class Evaluator(metaclass=abc.ABCMeta):
    '''Evaluate votes for options and decide the result.

    A root abstract base class for all evaluators.
    '''
    @abc.abstractmethod
    def evaluate(self,
                 votes: Dict[Any, Number],
                 options: Collection[str],
                 ) -> Result:
        '''Evaluate the votes.

        :param votes: Votes of the type the evaluator accepts, mapped to the
            total weight cast for them.
        :param options: Option labels of the session in their order.
        '''
        raise NotImplementedError


@simple_serialization
class PreConverted(Evaluator):
    '''An evaluator whose votes are first run through a converter.

    Useful when the evaluator accepts a different type of votes than the
    actual ballots, where the converter adapts them - e.g. when approval
    choices are counted as separate votes for each approved option.
    The total votes of the result are still those of the original ballots.

    :param converter: A converter to apply on the votes before passing them to
        the evaluator.
    :param evaluator: An evaluator to run.
    '''
    def __init__(self, converter, evaluator: Evaluator):
        self.converter = converter
        self.evaluator = evaluator

    def evaluate(self,
                 votes: Dict[Any, Number],
                 options: Collection[str],
                 ) -> Result:
        '''Convert the votes and evaluate them through the evaluator.

        :param votes: Votes to be passed to the converter.
        :param options: Option labels of the session.
        '''
        conv_votes = self.converter.convert(votes, options)
        result = self.evaluator.evaluate(conv_votes, options)
        return dataclasses.replace(result, total_votes=sum(votes.values()))


@simple_serialization
class Plurality(Evaluator):
    '''Plurality voting / maximum score evaluator.

    Selects the option with the highest number of votes. This encompasses the
    following voting methods:

    -   *First-past-the-post* with one vote per voter.
    -   *Approval voting* with approval choices converted by
        :class:`liquidvote.convert.ApprovalToSimpleVotes`.
    -   *Weight voting* with fraction choices converted by
        :class:`liquidvote.convert.FractionToSimpleVotes`.
    -   *Borda count* with ranked choices converted by
        :class:`liquidvote.convert.RankedToPositionalVotes`.
    -   *Score voting* variants after the votes are aggregated by
        :class:`liquidvote.convert.ScoreToSimpleVotes`
        (:class:`liquidvote.evaluate.cardinal.ScoreVoting` wraps that).

    A tie for the highest number yields no winner, and so does an option list
    where nobody got any votes.

    :param result_key: Which map of the result the votes go to;
        ``'counts'`` or ``'scores'``.
    :param report_majority: Whether to report if the winner got more than
        half of the votes. Only meaningful when every voter casts exactly one
        vote.
    '''
    def __init__(self,
                 result_key: str = 'counts',
                 report_majority: bool = False,
                 ):
        if result_key not in ('counts', 'scores'):
            raise ValueError(f'invalid result key: {result_key!r}')
        self.result_key = result_key
        self.report_majority = report_majority

    def evaluate(self,
                 votes: Dict[str, Number],
                 options: Collection[str] = (),
                 ) -> Result:
        '''Select the option with the most votes.

        :param votes: Simple votes.
        :param options: Option labels of the session; options without votes
            are reported with zero.
        '''
        values = liquidvote.util.zero_votes(options)
        liquidvote.util.add_dict_to_dict(values, votes)
        winner = select_winner(values)
        total = sum(votes.values())
        return Result(
            winner=winner,
            total_votes=total,
            majority_achieved=(
                self.report_majority
                and winner is not None
                and values[winner] > total / 2
            ),
            **{self.result_key: values},
        )
