'''Cardinal voting evaluators: scores, grades and budgets.

The evaluators here take mapping choices (score, grade, credit or allocation
choices) that give a value to each of a number of options.
'''

import logging
import dataclasses
from typing import Dict, Union, Callable, Collection, Optional, Sequence
from numbers import Number

import liquidvote.convert
import liquidvote.evaluate.core
import liquidvote.vote
from liquidvote.evaluate.core import Result, Tie
from liquidvote.vote import MappingChoice, ScoreChoice, GradeChoice
from liquidvote.persist import simple_serialization

logger = logging.getLogger(__name__)


@simple_serialization
class ScoreVoting(liquidvote.evaluate.core.Evaluator):
    """Evaluate score-based methods by the highest aggregate score.

    With the mean aggregation, this is range voting. With the sum aggregation,
    it evaluates cumulative voting, and with the square root transform added,
    quadratic voting.

    This is essentially just a :class:`liquidvote.convert.ScoreToSimpleVotes`
    (to which the aggregation parameters are passed to) followed by a
    :class:`liquidvote.evaluate.core.Plurality` evaluator that selects the
    highest aggregate score.

    :param function: Aggregation of the weighted scores of an option,
        ``'mean'`` or ``'sum'``.
    :param transform: Function to apply to every score before aggregating,
        such as ``'sqrt'``.
    :param unscored_value: Score to give to options that a voter did not
        score. None means such ballots do not count for the option.
    :param result_key: Which map of the result the aggregates go to;
        ``'scores'`` or ``'counts'``.
    """
    def __init__(self,
                 function: Union[str, Callable] = 'mean',
                 transform: Union[str, Callable, None] = None,
                 unscored_value: Optional[Number] = None,
                 result_key: str = 'scores',
                 ):
        self.function = function
        self.transform = transform
        self.unscored_value = unscored_value
        self.result_key = result_key
        self._agg = liquidvote.convert.ScoreToSimpleVotes(
            function=function,
            transform=transform,
            unscored_value=unscored_value,
        )
        self._selector = liquidvote.evaluate.core.Plurality(
            result_key=result_key
        )

    def evaluate(self,
                 votes: Dict[MappingChoice, Number],
                 options: Collection[str],
                 ) -> Result:
        """Select the option with the highest aggregate score.

        :param votes: Score, credit or allocation votes.
        :param options: Option labels of the session.
        """
        result = self._selector.evaluate(
            self._agg.convert(votes, options), options
        )
        return dataclasses.replace(result, total_votes=sum(votes.values()))


@simple_serialization
class STAR(liquidvote.evaluate.core.Evaluator):
    """Score Then Automatic Run-off (STAR) voting.

    The weighted scores of every option are summed; the two options with the
    highest sums proceed to an automatic runoff, which the option preferred
    (scored higher) by more weight wins. In the runoff, options the voter did
    not score count as scored zero and equal scores express no preference.

    A tie for the second place in the scoring round or a tie in the runoff
    yields no winner.
    """
    def __init__(self):
        self._agg = liquidvote.convert.ScoreToSimpleVotes(function='sum')
        self._runoff_conv = liquidvote.convert.ScoreToCondorcetVotes(
            unscored_value=0
        )

    def evaluate(self,
                 votes: Dict[ScoreChoice, Number],
                 options: Collection[str],
                 ) -> Result:
        """Select the winner by STAR voting.

        :param votes: Score votes.
        :param options: Option labels of the session.
        """
        scores = self._agg.convert(votes, options)
        total = sum(votes.values())
        if len(scores) < 2:
            return Result(
                winner=liquidvote.evaluate.core.select_winner(scores),
                scores=scores,
                total_votes=total,
            )
        finalists = liquidvote.evaluate.core.get_n_best(scores, 2)
        if Tie.any(finalists):
            logger.info('runoff cannot be formed, finalists: %s', finalists)
            return Result(scores=scores, total_votes=total)
        pairwise = self._runoff_conv.convert(votes, finalists)
        first, second = finalists
        runoff_counts = {
            first: pairwise.get((first, second), 0),
            second: pairwise.get((second, first), 0),
        }
        logger.info('runoff between %s: %s', finalists, runoff_counts)
        return Result(
            winner=liquidvote.evaluate.core.select_winner(runoff_counts),
            scores=scores,
            total_votes=total,
            runoff_needed=True,
            runoff_candidates=finalists,
            details={
                'runoffCounts': runoff_counts,
                'noPreference': total - sum(runoff_counts.values()),
            },
        )


@simple_serialization
class MajorityJudgment(liquidvote.evaluate.core.Evaluator):
    """Majority Judgment, a median-based grading system.

    Every voter grades the options on a common qualitative scale. The
    majority grade of an option is its weighted lower median grade: the best
    grade that more than half of the weight grading the option considers the
    option at least worth. The option with the best majority grade wins.
    Options with equal majority grades are separated by the share of their
    weight that graded them strictly above the majority grade; if that is
    equal too, there is no winner. Options nobody graded cannot win.

    The scores of the result rank the majority grades, the best grade of the
    scale scoring the highest; the grades themselves are in the details.

    :param grades: The grade scale, best grade first.
    """
    def __init__(self,
                 grades: Sequence[str] = liquidvote.vote.MAJORITY_JUDGMENT_GRADES,
                 ):
        self.grades = tuple(grades)
        self._agg = liquidvote.convert.ScoreToSimpleVotes()

    def evaluate(self,
                 votes: Dict[GradeChoice, Number],
                 options: Collection[str],
                 ) -> Result:
        """Select the option with the best majority grade.

        :param votes: Grade votes.
        :param options: Option labels of the session.
        """
        dists = self._agg.distributions(votes, options)
        medians = {
            option: self.majority_grade(dist) for option, dist in dists.items()
        }
        scores = {
            option: (0 if index is None else len(self.grades) - index)
            for option, index in medians.items()
        }
        details = {
            'medianGrades': {
                option: (None if index is None else self.grades[index])
                for option, index in medians.items()
            },
            'gradeCounts': dists,
        }
        best = max(scores.values()) if scores else 0
        leaders = [opt for opt, score in scores.items() if score == best]
        if best == 0:
            winner = None
        elif len(leaders) == 1:
            winner = leaders[0]
        else:
            shares = {
                option: self._share_above(dists[option], medians[option])
                for option in leaders
            }
            logger.info('majority grade tied among %s, shares above: %s',
                        leaders, shares)
            details['tiebreakShares'] = shares
            winner = liquidvote.evaluate.core.select_winner(shares)
        return Result(
            winner=winner,
            scores=scores,
            total_votes=sum(votes.values()),
            details=details,
        )

    def majority_grade(self, dist: Dict[str, Number]) -> Optional[int]:
        '''Return the index of the majority grade in the scale.

        :param dist: Grades given to an option mapped to their weights.
        :returns: None if the option was not graded.
        '''
        total = sum(dist.values())
        if not total:
            return None
        at_least = 0
        for index, grade in enumerate(self.grades):
            at_least += dist.get(grade, 0)
            if at_least > total / 2:
                return index
        return None

    def _share_above(self, dist: Dict[str, Number], index: int) -> Number:
        above = sum(dist.get(grade, 0) for grade in self.grades[:index])
        return above / sum(dist.values())
