'''Ballot choices, ballots and their validators.

The shape of the choice a voter makes depends on the voting method of the
session. The following choice types are recognized by Liquidvote:

-   **Simple** choices (:class:`SimpleChoice`) - a vote for a single option.
-   **Approval** choices (:class:`ApprovalChoice`) - a set of options that the
    voter approves of equally.
-   **Ranked** choices (:class:`RankedChoice`) - a mapping of options to
    integer ranks, 1 being the best. Several options may share a rank;
    options left out are ranked below all ranked options.
-   **Score** choices (:class:`ScoreChoice`) - a mapping of options to
    numeric scores from a fixed range, higher being better.
-   **Grade** choices (:class:`GradeChoice`) - a mapping of options to
    qualitative grades from an ordered scale, as in majority judgment.
-   **Credit** choices (:class:`CreditChoice`) - a mapping of options to
    voice credits spent on them, as in quadratic voting.
-   **Allocation** choices (:class:`AllocationChoice`) - a mapping of options
    to the number of votes allocated to them, as in cumulative voting.
-   **Fraction** choices (:class:`FractionChoice`) - a vote for a single
    option cast with a fraction of the voter's weight.

All choices are immutable and hashable so that identical choices of many
voters can be aggregated into a single dictionary key, with their weights
summed (see :class:`liquidvote.convert.WeightedBallotsToVotes`).

Choice validators check a single choice against the option list of the
session and the rules of the voting method. If a choice is invalid, they
raise a subclass of :class:`ValidationError`; invalid ballots are never
silently corrected or dropped.
'''

from __future__ import annotations

import abc
import datetime
import dataclasses
from typing import Any, Tuple, FrozenSet, Dict, Union, Optional, \
    Collection, Iterable, List, Mapping
from numbers import Number

from liquidvote.persist import simple_serialization


class ValidationError(Exception):
    '''Input is invalid given the rules of the session or the delegation.'''
    pass


class VoteTypeError(ValidationError):
    '''A choice is of an invalid type.

    E.g. ranked choices in place of simple choices.

    :param vtype: Choice type detected as invalid.
    :param expected: Choice type that was expected.
    '''
    def __init__(self, vtype: type, expected: type = None):
        self.vtype = vtype
        self.expected = expected
        message = f'invalid choice type: {vtype.__name__}'
        if expected:
            message += f', must be {expected.__name__}'
        super().__init__(message)


class VoteMagnitudeError(ValidationError):
    '''A choice value or count is too small or too large.

    :param value: The value that was found to be invalid.
    :param min_value: Minimum value permissible in the context.
    :param max_value: Maximum value permissible in the context.
    :param value_name: Role of the value (e.g. number of approved options,
        credits spent...)
    '''
    def __init__(self,
                 value: Number,
                 min_value: Optional[Number] = None,
                 max_value: Optional[Number] = None,
                 value_name: str = 'count',
                 ):
        self.value = value
        self.min_value = min_value
        self.max_value = max_value
        message = f'invalid vote {value_name}: {value}'
        parts = []
        if min_value is not None:
            parts.append(f'>={min_value}')
        if max_value is not None:
            parts.append(f'<={max_value}')
        if parts:
            message += ', must be ' + ' and '.join(parts)
        super().__init__(message)


class VoteValueError(ValidationError):
    '''An explicitly given choice value is invalid.

    :param value: The invalid value.
    :param option: The option that the value was given for. If None, a
        specific option could not be pinpointed.
    :param allowed: A spectrum of values that is allowed at the given point.
    '''
    def __init__(self,
                 value: Any,
                 option: Optional[str] = None,
                 allowed: Any = None,
                 ):
        self.value = value
        self.option = option
        self.allowed = allowed
        message = f'invalid vote: {value!r}'
        if option is not None:
            message += f' for option {option}'
        if allowed is not None:
            message += f', allowed: {allowed}'
        super().__init__(message)


class OptionListError(ValidationError):
    '''The option list of a session is malformed.'''
    pass


class Choice:
    '''A choice made by a voter on a ballot. Base class.'''
    def labels(self) -> FrozenSet[str]:
        '''Return the option labels this choice refers to.'''
        raise NotImplementedError


@dataclasses.dataclass(frozen=True)
class SimpleChoice(Choice):
    '''A vote for a single option.'''
    option: str

    def labels(self) -> FrozenSet[str]:
        return frozenset([self.option])


@dataclasses.dataclass(frozen=True)
class ApprovalChoice(Choice):
    '''A set of approved options.

    Any iterable of option labels is accepted and frozen into a set.
    '''
    approved: FrozenSet[str]

    def __post_init__(self):
        if isinstance(self.approved, str):
            raise VoteTypeError(str, frozenset)
        object.__setattr__(self, 'approved', frozenset(self.approved))

    def labels(self) -> FrozenSet[str]:
        return self.approved


@dataclasses.dataclass(frozen=True)
class MappingChoice(Choice):
    '''A choice assigning a value to each of a number of options.

    Base class for ranked, score, grade, credit and allocation choices.
    Accepts a mapping of option labels to values and stores it as a frozen set
    of (label, value) pairs.
    '''
    marks: FrozenSet[Tuple[str, Any]]

    value_name = 'value'

    def __post_init__(self):
        if isinstance(self.marks, Mapping):
            marks = frozenset(self.marks.items())
        elif isinstance(self.marks, (str, bytes)):
            raise VoteTypeError(type(self.marks), dict)
        else:
            marks = frozenset(tuple(item) for item in self.marks)
        object.__setattr__(self, 'marks', marks)

    def labels(self) -> FrozenSet[str]:
        return frozenset(label for label, value in self.marks)

    def as_dict(self) -> Dict[str, Any]:
        '''Return the marks as a dictionary ordered by option label.'''
        return dict(sorted(self.marks, key=lambda item: item[0]))

    def get(self, label: str, default: Any = None) -> Any:
        for marked, value in self.marks:
            if marked == label:
                return value
        return default


class RankedChoice(MappingChoice):
    '''A ranking of options: a mapping of options to ranks, 1 being best.'''
    value_name = 'rank'

    def ranking(self) -> Tuple[Union[str, FrozenSet[str]], ...]:
        '''Return the options ordered by their ranks.

        Options sharing a rank are grouped into a frozen set. Skipped rank
        numbers are ignored, so ranks 1, 3, 4 give the same ordering as
        ranks 1, 2, 3.
        '''
        by_rank = {}
        for label, rank in self.marks:
            by_rank.setdefault(rank, []).append(label)
        return tuple(
            labels[0] if len(labels) == 1 else frozenset(labels)
            for rank, labels in sorted(by_rank.items())
        )

    def top(self, among: Optional[Collection[str]] = None) -> FrozenSet[str]:
        '''Return the best ranked options, optionally among some only.

        :param among: Options to consider. Others are skipped as if they had
            been left unranked.
        :returns: The options at the best rank; empty if none is ranked.
        '''
        for item in self.ranking():
            group = item if isinstance(item, frozenset) else frozenset([item])
            if among is not None:
                group = group.intersection(among)
            if group:
                return group
        return frozenset()


class ScoreChoice(MappingChoice):
    '''A mapping of options to numeric scores, higher being better.'''
    value_name = 'score'


class GradeChoice(MappingChoice):
    '''A mapping of options to qualitative grades.'''
    value_name = 'grade'


class CreditChoice(MappingChoice):
    '''A mapping of options to voice credits spent on them.'''
    value_name = 'credits'


class AllocationChoice(MappingChoice):
    '''A mapping of options to the number of votes allocated to them.'''
    value_name = 'votes'


@dataclasses.dataclass(frozen=True)
class FractionChoice(Choice):
    '''A vote for a single option carrying a fraction of the voter's weight.

    :param option: The option voted for.
    :param fraction: Share of the voter's effective weight given to the
        option, between 0 and 1.
    '''
    option: str
    fraction: Number = 1.0

    def labels(self) -> FrozenSet[str]:
        return frozenset([self.option])


@dataclasses.dataclass(frozen=True)
class Ballot:
    '''A ballot cast by a voter in a vote session.

    :param session_id: Identifier of the session.
    :param voter_id: Identifier of the voter.
    :param choice: The choice made; its type depends on the voting method.
    :param cast_at: Time of casting. Used to decide which ballot of a voter
        counts when they voted more than once; the last one does.
    :param is_delegated: Whether the ballot carries weight delegated by other
        voters. Only ever set by the ballot expander.
    '''
    session_id: str
    voter_id: str
    choice: Choice
    cast_at: Optional[datetime.datetime] = None
    is_delegated: bool = False


@dataclasses.dataclass(frozen=True)
class WeightedBallot:
    '''A direct ballot together with its resolved effective weight.

    :param ballot: The direct ballot.
    :param weight: Effective weight: 1 for the voter plus the nominal weights
        of all delegators it represents.
    :param represented: Identifiers of the delegators whose weight the ballot
        carries.
    '''
    ballot: Ballot
    weight: float = 1.0
    represented: FrozenSet[str] = frozenset()

    @property
    def choice(self) -> Choice:
        return self.ballot.choice

    @property
    def voter_id(self) -> str:
        return self.ballot.voter_id

    @property
    def session_id(self) -> str:
        return self.ballot.session_id

    @property
    def is_delegated(self) -> bool:
        return self.ballot.is_delegated


IntBoundsTupleType = Tuple[Optional[int], Optional[int]]
NumBoundsTupleType = Tuple[Optional[Number], Optional[Number]]

MAJORITY_JUDGMENT_GRADES: Tuple[str, ...] = (
    'Excellent', 'Very Good', 'Good', 'Acceptable', 'Poor', 'Reject',
)


def is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def validate_options(options: Iterable[str]) -> List[str]:
    '''Check that a session option list is well formed.

    The options must be a non-empty sequence of unique non-empty strings.

    :param options: Option labels in their display order.
    :returns: The options as a list.
    :raises OptionListError: If the option list is malformed.
    '''
    if isinstance(options, (str, bytes)) or not hasattr(options, '__iter__'):
        raise OptionListError(f'options must be a sequence, got {options!r}')
    options = list(options)
    if not options:
        raise OptionListError('empty option list')
    for option in options:
        if not isinstance(option, str) or not option.strip():
            raise OptionListError(f'invalid option label: {option!r}')
    if len(set(options)) < len(options):
        duplicated = sorted({opt for opt in options if options.count(opt) > 1})
        raise OptionListError(f'duplicated options: {duplicated}')
    return options


class VoteMagnitudeChecker:
    '''A helper class to check if a value is in a specified range.

    :param bounds: A tuple with lower and upper bounds (inclusive) for the
        value to be checked. None means the respective bound is not checked.
    :param value_name: Name of the value to be checked (included in the error
        message).
    '''
    def __init__(self,
                 bounds: NumBoundsTupleType = (None, None),
                 value_name: str = 'count',
                 ):
        self.min_value, self.max_value = bounds
        self.value_name = value_name

    def __bool__(self) -> bool:
        '''Return True if the checker contains any constraints to check.'''
        return self.min_value is not None or self.max_value is not None

    def is_valid(self, value: Number) -> bool:
        '''Return True if the value is within the given range.'''
        return (
            (self.min_value is None or value >= self.min_value)
            and (self.max_value is None or value <= self.max_value)
        )

    def check(self, value: Number) -> None:
        '''Check if the value is within the given range.

        :raises VoteMagnitudeError: If the value is outside the given
            range.
        '''
        if not self.is_valid(value):
            raise VoteMagnitudeError(
                value, self.min_value, self.max_value, self.value_name
            )


class ChoiceValidator(metaclass=abc.ABCMeta):
    '''Validate that a single choice is valid under the session rules.

    Checks the choice type and that all options it refers to are on the
    option list of the session, then hands over to the method-specific
    :meth:`validate_content`.
    '''
    choice_type: type = Choice

    def validate(self, choice: Choice, options: Collection[str]) -> None:
        '''Check if the choice satisfies the rules of the voting method.

        :param choice: The choice to be checked.
        :param options: Option labels of the session.
        :raises VoteTypeError: If the choice is of a different type than the
            method requires.
        :raises VoteValueError: If the choice refers to an unknown option or
            contains an invalid value.
        :raises VoteMagnitudeError: If a value or count in the choice is out
            of the allowed range.
        '''
        if not isinstance(choice, self.choice_type):
            raise VoteTypeError(type(choice), self.choice_type)
        for label in sorted(choice.labels()):
            if label not in options:
                raise VoteValueError(label, allowed=list(options))
        self.validate_content(choice, options)

    @abc.abstractmethod
    def validate_content(self, choice: Choice, options: Collection[str]
                         ) -> None:
        raise NotImplementedError


@simple_serialization
class SimpleChoiceValidator(ChoiceValidator):
    '''Validate a simple choice (a vote for a single option).'''
    choice_type = SimpleChoice

    def validate_content(self, choice: SimpleChoice, options: Collection[str]
                         ) -> None:
        pass


@simple_serialization
class ApprovalChoiceValidator(ChoiceValidator):
    '''Validate an approval choice.

    :param count_bounds: A tuple with lower and upper bounds (inclusive) for
        the number of options a choice can approve. None means the respective
        bound is not checked.
    '''
    choice_type = ApprovalChoice

    def __init__(self, count_bounds: IntBoundsTupleType = (None, None)):
        self.count_bounds = tuple(count_bounds)
        self._count_checker = VoteMagnitudeChecker(
            self.count_bounds, 'number of approved options'
        )

    def validate_content(self, choice: ApprovalChoice,
                         options: Collection[str],
                         ) -> None:
        self._count_checker.check(len(choice.approved))


class MappingChoiceValidator(ChoiceValidator):
    # parent class for validators of label-to-value choices
    choice_type = MappingChoice

    def validate_content(self, choice: MappingChoice,
                         options: Collection[str],
                         ) -> None:
        if len(choice.labels()) < len(choice.marks):
            raise VoteValueError(
                [label for label, value in choice.marks],
                allowed='one value per option',
            )
        for label, value in sorted(choice.marks, key=lambda item: item[0]):
            self.validate_value(label, value)

    def validate_value(self, label: str, value: Any) -> None:
        pass


@simple_serialization
class RankedChoiceValidator(MappingChoiceValidator):
    '''Validate a ranked choice.

    Ranks must be positive integers. Shared ranks are allowed unless
    disabled.

    :param count_bounds: A tuple with lower and upper bounds (inclusive) for
        the number of options a choice can rank.
    :param shared_ranks: Whether two options may share a rank.
    '''
    choice_type = RankedChoice

    def __init__(self,
                 count_bounds: IntBoundsTupleType = (1, None),
                 shared_ranks: bool = True,
                 ):
        self.count_bounds = tuple(count_bounds)
        self.shared_ranks = shared_ranks
        self._count_checker = VoteMagnitudeChecker(
            self.count_bounds, 'number of ranked options'
        )

    def validate_content(self, choice: RankedChoice,
                         options: Collection[str],
                         ) -> None:
        super().validate_content(choice, options)
        self._count_checker.check(len(choice.marks))
        if not self.shared_ranks:
            ranks = [rank for label, rank in choice.marks]
            if len(set(ranks)) < len(ranks):
                raise VoteValueError(
                    choice.as_dict(), allowed='distinct ranks'
                )

    def validate_value(self, label: str, value: Any) -> None:
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise VoteValueError(value, label, 'positive integers')


@simple_serialization
class ScoreChoiceValidator(MappingChoiceValidator):
    '''Validate a score choice against a score range.

    :param score_bounds: A tuple with lower and upper bounds (inclusive) for
        any single score.
    '''
    choice_type = ScoreChoice

    def __init__(self, score_bounds: NumBoundsTupleType = (0, 5)):
        self.score_bounds = tuple(score_bounds)
        self._score_checker = VoteMagnitudeChecker(self.score_bounds, 'score')

    def validate_value(self, label: str, value: Any) -> None:
        if not is_number(value):
            raise VoteValueError(value, label, 'numbers')
        self._score_checker.check(value)


@simple_serialization
class GradeChoiceValidator(MappingChoiceValidator):
    '''Validate a grade choice against an ordered grade scale.

    :param grades: Allowed grades, best first.
    '''
    choice_type = GradeChoice

    def __init__(self, grades: Collection[str] = MAJORITY_JUDGMENT_GRADES):
        self.grades = tuple(grades)

    def validate_value(self, label: str, value: Any) -> None:
        if value not in self.grades:
            raise VoteValueError(value, label, list(self.grades))


class BudgetChoiceValidator(MappingChoiceValidator):
    '''Validate a choice that spends a limited per-ballot budget.

    Each value must be a non-negative number and the values must not sum to
    more than the budget.

    :param budget: Maximum total per ballot. None means the budget equals the
        number of options of the session.
    '''
    def __init__(self, budget: Optional[Number] = None):
        self.budget = budget

    def validate_content(self, choice: MappingChoice,
                         options: Collection[str],
                         ) -> None:
        super().validate_content(choice, options)
        budget = len(options) if self.budget is None else self.budget
        VoteMagnitudeChecker(
            (None, budget), f'total {choice.value_name}'
        ).check(sum(value for label, value in choice.marks))

    def validate_value(self, label: str, value: Any) -> None:
        if not is_number(value):
            raise VoteValueError(value, label, 'numbers')
        VoteMagnitudeChecker((0, None), self.choice_type.value_name).check(
            value
        )


@simple_serialization
class CreditChoiceValidator(BudgetChoiceValidator):
    '''Validate a quadratic voting choice against a voice credit budget.'''
    choice_type = CreditChoice

    def __init__(self, budget: Optional[Number] = 100):
        super().__init__(budget)


@simple_serialization
class AllocationChoiceValidator(BudgetChoiceValidator):
    '''Validate a cumulative voting choice against a vote budget.'''
    choice_type = AllocationChoice


@simple_serialization
class FractionChoiceValidator(ChoiceValidator):
    '''Validate a weight voting choice; the fraction must be within [0, 1].'''
    choice_type = FractionChoice

    def validate_content(self, choice: FractionChoice,
                         options: Collection[str],
                         ) -> None:
        if not is_number(choice.fraction):
            raise VoteValueError(choice.fraction, choice.option, 'numbers')
        VoteMagnitudeChecker((0, 1), 'fraction').check(choice.fraction)


class VoteSubsetter(metaclass=abc.ABCMeta):
    '''An abstract base class for vote subsetters.

    Vote subsetters restrict a choice to a subset of options, as if the other
    options were not standing. Used in runoffs and elimination rounds.
    '''
    @abc.abstractmethod
    def subset(self, choice: Choice, subset: Collection[str]
               ) -> Optional[Choice]:
        '''Restrict the choice to the given options.

        :returns: The restricted choice, or None if nothing remains of it.
        '''
        raise NotImplementedError


@simple_serialization
class SimpleSubsetter(VoteSubsetter):
    '''Subset simple choices, dropping those for other options.'''
    def subset(self, choice: SimpleChoice, subset: Collection[str]
               ) -> Optional[SimpleChoice]:
        return choice if choice.option in subset else None


@simple_serialization
class RankedSubsetter(VoteSubsetter):
    '''Subset ranked choices, keeping the ranks of the remaining options.'''
    def subset(self, choice: RankedChoice, subset: Collection[str]
               ) -> Optional[RankedChoice]:
        kept = {
            label: rank for label, rank in choice.marks if label in subset
        }
        return RankedChoice(kept) if kept else None
