'''Voting systems and the tabulation entry point.

A :class:`VotingSystem` binds a voting method to the evaluator that decides
it and the validator that checks its ballot choices. :data:`SYSTEMS` holds
one system for every :class:`VotingMethod` and :func:`calculate_results`
dispatches weighted ballots to them.
'''

from __future__ import annotations

import datetime
import dataclasses
import logging
from typing import Dict, Any, Optional, Union, List, Iterable

import liquidvote.convert
import liquidvote.persist
import liquidvote.vote
import liquidvote.component.rankscore
import liquidvote.evaluate.approval
import liquidvote.evaluate.cardinal
import liquidvote.evaluate.condorcet
import liquidvote.evaluate.core
import liquidvote.evaluate.sequential
from liquidvote.evaluate.core import Evaluator, Result, VotingMethod, \
    UnknownMethodError
from liquidvote.vote import WeightedBallot, ChoiceValidator
from liquidvote.persist import simple_serialization

logger = logging.getLogger(__name__)


@simple_serialization
class VotingSystem:
    """A named voting system. Wraps an evaluator and a choice validator.

    :param name: Name of the system.
    :param evaluator: Evaluator deciding the results. It receives the choices
        of the ballots mapped to their summed effective weights.
    :param validator: Validator of the ballot choices. Determines the choice
        type the system accepts.
    """
    def __init__(self,
                 name: str,
                 evaluator: Evaluator,
                 validator: ChoiceValidator,
                 ):
        self.name = name
        self.evaluator = evaluator
        self.validator = validator

    @property
    def choice_type(self) -> type:
        return self.validator.choice_type

    def validate(self,
                 weighted_ballots: Iterable[WeightedBallot],
                 options: Iterable[str],
                 ) -> List[str]:
        """Validate the option list and the choices of all ballots.

        :returns: The option list.
        :raises ValidationError: On the first invalid ballot or a malformed
            option list.
        """
        options = liquidvote.vote.validate_options(options)
        for ballot in weighted_ballots:
            self.validator.validate(ballot.choice, options)
        return options

    def evaluate(self,
                 weighted_ballots: Iterable[WeightedBallot],
                 options: Iterable[str],
                 ) -> Result:
        """Validate the ballots and evaluate them by the system.

        :param weighted_ballots: Ballots with their effective weights.
        :param options: Option labels of the session in their order.
        """
        weighted_ballots = list(weighted_ballots)
        options = self.validate(weighted_ballots, options)
        votes = liquidvote.convert.WeightedBallotsToVotes().convert(
            weighted_ballots
        )
        result = self.evaluator.evaluate(votes, options)
        if not votes:
            # no ballots, no winner
            result = dataclasses.replace(
                result,
                winner=None,
                total_votes=0,
                majority_achieved=False,
                runoff_needed=False,
                runoff_candidates=None,
            )
        logger.debug('%s result: %s', self.name, result)
        return result


def _ranked_condorcet(condorcet_evaluator: Evaluator) -> Evaluator:
    return liquidvote.evaluate.core.PreConverted(
        converter=liquidvote.convert.RankedToCondorcetVotes(),
        evaluator=condorcet_evaluator,
    )


SYSTEMS: Dict[VotingMethod, VotingSystem] = {
    VotingMethod.FIRST_PAST_THE_POST: VotingSystem(
        'First Past the Post',
        liquidvote.evaluate.core.PreConverted(
            converter=liquidvote.convert.SimpleToOptionVotes(),
            evaluator=liquidvote.evaluate.core.Plurality(
                report_majority=True
            ),
        ),
        liquidvote.vote.SimpleChoiceValidator(),
    ),
    VotingMethod.APPROVAL_VOTING: VotingSystem(
        'Approval Voting',
        liquidvote.evaluate.approval.ApprovalVoting(),
        liquidvote.vote.ApprovalChoiceValidator(),
    ),
    VotingMethod.MAJORITY_RUNOFF: VotingSystem(
        'Majority Runoff',
        liquidvote.evaluate.sequential.MajorityRunoff(),
        liquidvote.vote.SimpleChoiceValidator(),
    ),
    VotingMethod.SCHULZE: VotingSystem(
        'Schulze Method',
        _ranked_condorcet(liquidvote.evaluate.condorcet.Schulze()),
        liquidvote.vote.RankedChoiceValidator(),
    ),
    VotingMethod.INSTANT_RUNOFF: VotingSystem(
        'Instant Runoff',
        liquidvote.evaluate.sequential.InstantRunoff(),
        liquidvote.vote.RankedChoiceValidator(),
    ),
    VotingMethod.STAR_VOTING: VotingSystem(
        'STAR Voting',
        liquidvote.evaluate.cardinal.STAR(),
        liquidvote.vote.ScoreChoiceValidator(score_bounds=(0, 5)),
    ),
    VotingMethod.RANGE_VOTING: VotingSystem(
        'Range Voting',
        liquidvote.evaluate.cardinal.ScoreVoting(function='mean'),
        liquidvote.vote.ScoreChoiceValidator(score_bounds=(0, 10)),
    ),
    VotingMethod.MAJORITY_JUDGMENT: VotingSystem(
        'Majority Judgment',
        liquidvote.evaluate.cardinal.MajorityJudgment(),
        liquidvote.vote.GradeChoiceValidator(),
    ),
    VotingMethod.QUADRATIC_VOTING: VotingSystem(
        'Quadratic Voting',
        liquidvote.evaluate.cardinal.ScoreVoting(
            function='sum', transform='sqrt', result_key='counts',
        ),
        liquidvote.vote.CreditChoiceValidator(budget=100),
    ),
    VotingMethod.CONDORCET: VotingSystem(
        'Condorcet Method',
        _ranked_condorcet(liquidvote.evaluate.condorcet.Condorcet()),
        liquidvote.vote.RankedChoiceValidator(),
    ),
    VotingMethod.BORDA_COUNT: VotingSystem(
        'Borda Count',
        liquidvote.evaluate.core.PreConverted(
            converter=liquidvote.convert.RankedToPositionalVotes(
                liquidvote.component.rankscore.Borda()
            ),
            evaluator=liquidvote.evaluate.core.Plurality(result_key='scores'),
        ),
        liquidvote.vote.RankedChoiceValidator(),
    ),
    VotingMethod.CUMULATIVE_VOTING: VotingSystem(
        'Cumulative Voting',
        liquidvote.evaluate.cardinal.ScoreVoting(
            function='sum', result_key='counts',
        ),
        liquidvote.vote.AllocationChoiceValidator(),
    ),
    VotingMethod.KEMENY_YOUNG: VotingSystem(
        'Kemeny-Young Method',
        _ranked_condorcet(liquidvote.evaluate.condorcet.KemenyYoung()),
        liquidvote.vote.RankedChoiceValidator(),
    ),
    VotingMethod.DUAL_CHOICE: VotingSystem(
        'Dual Choice',
        liquidvote.evaluate.sequential.DualChoice(),
        liquidvote.vote.SimpleChoiceValidator(),
    ),
    VotingMethod.WEIGHT_VOTING: VotingSystem(
        'Weight Voting',
        liquidvote.evaluate.core.PreConverted(
            converter=liquidvote.convert.FractionToSimpleVotes(),
            evaluator=liquidvote.evaluate.core.Plurality(),
        ),
        liquidvote.vote.FractionChoiceValidator(),
    ),
}


def get_system(method: Union[VotingMethod, str],
               systems: Optional[Dict[VotingMethod, VotingSystem]] = None,
               ) -> VotingSystem:
    '''Return the voting system registered for the method.

    :param method: The voting method, or its value or name.
    :param systems: Registry to look in; the default registry by default.
    :raises UnknownMethodError: If the method is unknown or has no system.
    '''
    if systems is None:
        systems = SYSTEMS
    method = VotingMethod.get(method)
    try:
        return systems[method]
    except KeyError as err:
        raise UnknownMethodError(method) from err


def calculate_results(method: Union[VotingMethod, str],
                      weighted_ballots: Iterable[WeightedBallot],
                      options: Iterable[str],
                      systems: Optional[Dict[VotingMethod, VotingSystem]] = None,
                      ) -> Result:
    '''Tabulate weighted ballots by a voting method.

    A pure function of its inputs: the same method, ballots and options
    always give the same result.

    :param method: The voting method, or its value or name.
    :param weighted_ballots: Ballots with their effective weights, as
        produced by :func:`liquidvote.delegation.expand.expand_ballots`.
    :param options: Option labels of the session in their order.
    :param systems: Registry of voting systems to use instead of the default.
    :raises UnknownMethodError: If the method is unknown.
    :raises ValidationError: If the options or any ballot choice is invalid
        for the method.
    '''
    return get_system(method, systems).evaluate(weighted_ballots, options)


def load_systems(config: Dict[str, Any]) -> Dict[VotingMethod, VotingSystem]:
    '''Build a registry of voting systems from a configuration dictionary.

    Methods not named in the configuration keep their default systems.

    :param config: Method values mapped to serialized voting systems as
        produced by :func:`liquidvote.persist.to_dict`.
    '''
    systems = SYSTEMS.copy()
    for method, sysdef in config.items():
        system = liquidvote.persist.from_dict(sysdef)
        if not isinstance(system, VotingSystem):
            raise ValueError(f'not a voting system definition: {sysdef!r}')
        systems[VotingMethod.get(method)] = system
    return systems


@dataclasses.dataclass(frozen=True)
class VoteSession:
    '''A vote on a proposal.

    :param id: Unique identifier of the session.
    :param proposal_id: Identifier of the proposal being decided.
    :param method: The voting method.
    :param options: Option labels; their order is used for reporting and
        Borda scoring.
    :param topic_id: Topic of the proposal, which selects the delegations that
        apply; None for the general scope.
    :param starts_at: Opening time.
    :param ends_at: Closing time.
    '''
    id: str
    proposal_id: str
    method: VotingMethod
    options: List[str]
    topic_id: Optional[str] = None
    starts_at: Optional[datetime.datetime] = None
    ends_at: Optional[datetime.datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'method', VotingMethod.get(self.method))
        object.__setattr__(
            self, 'options', tuple(liquidvote.vote.validate_options(self.options))
        )

    def calculate_results(self,
                          weighted_ballots: Iterable[WeightedBallot],
                          systems: Optional[Dict[VotingMethod, VotingSystem]] = None,
                          ) -> Result:
        '''Tabulate weighted ballots by the method of the session.'''
        return calculate_results(
            self.method, weighted_ballots, self.options, systems
        )
