'''Condorcet evaluators.

These evaluators work by examining pairwise orderings between options
(the total weight of voters preferring one option to another), which is also
the form of votes they take in; for ranked choices, use
:class:`liquidvote.convert.RankedToCondorcetVotes` to convert them first and
account for shared ranks and unranked options.

All of the methods in this module select the Condorcet winner when there is
one in the input.
'''

import logging
import itertools
from typing import List, Tuple, Dict, Collection, Sequence
from numbers import Number

import liquidvote.util
import liquidvote.evaluate.core
from liquidvote.evaluate.core import Result
from liquidvote.vote import VoteMagnitudeError
from liquidvote.persist import simple_serialization

PairwiseVotes = Dict[Tuple[str, str], Number]

logger = logging.getLogger(__name__)


def pairwise_wins(votes: PairwiseVotes,
                  include_ties: bool = False,
                  ) -> List[Tuple[str, str]]:
    """Select pairs of options where the first is preferred to the second.

    :param votes: Condorcet votes (weights of option pairs as they appear
        in the voter rankings); use
        :class:`liquidvote.convert.RankedToCondorcetVotes`
        to produce them from ranked votes.
    :param include_ties: Whether to include pairs of options that are tied.
        Such a pair will be included in both directions.
    :returns: Ordered pairs from the input that are generally preferred to the
        opposite ranking (i.e. listed in this order by more weight).
    """
    wins = []
    for pair, count in votes.items():
        upper, lower = pair
        anti_count = votes.get((lower, upper), 0)
        if anti_count < count or include_ties and anti_count == count:
            wins.append(pair)
    return wins


def beat_counts(votes: PairwiseVotes,
                options: Collection[str] = (),
                ) -> Dict[str, int]:
    """Count the number of options a given option beats pairwise.

    :param votes: Condorcet votes.
    :param options: Options to report even if they beat nobody.
    """
    n_beats = {option: 0 for option in options}
    for winner, loser in pairwise_wins(votes):
        n_beats[winner] = n_beats.get(winner, 0) + 1
    return n_beats


@simple_serialization
class Condorcet(liquidvote.evaluate.core.Evaluator):
    '''Condorcet winner selector.

    Selects the option that beats every other option in a head-to-head
    comparison. If there is no such option (because of a preference cycle or
    a pairwise tie), there is no winner. The numbers of pairwise wins of the
    options are reported as their rankings.
    '''
    def evaluate(self,
                 votes: PairwiseVotes,
                 options: Collection[str],
                 ) -> Result:
        '''Select the Condorcet winner, if there is one.

        :param votes: Condorcet votes.
        :param options: Option labels of the session.
        '''
        options = list(options)
        n_beats = beat_counts(votes, options)
        winners = [
            option for option, n in n_beats.items() if n == len(options) - 1
        ]
        return Result(
            winner=(winners[0] if len(winners) == 1 else None),
            rankings=n_beats,
            details={
                'pairwise': liquidvote.util.pairwise_matrix(votes, options),
            },
        )


@simple_serialization
class Schulze(liquidvote.evaluate.core.Evaluator):
    '''Schulze (beatpath) Condorcet evaluator.

    Finds paths between pairs of options in which each option pairwise beats
    the next and compares the options by their strongest such paths. The
    winner is the option whose strongest path to every other option is
    stronger than the strongest path back. The numbers of such path wins of
    the options are reported as their rankings.
    '''
    def evaluate(self,
                 votes: PairwiseVotes,
                 options: Collection[str],
                 ) -> Result:
        '''Select the winner using the Schulze method.

        :param votes: Condorcet votes.
        :param options: Option labels of the session.
        '''
        options = list(options)
        paths = self.widest_paths(votes, options)
        path_wins = beat_counts(paths, options)
        winners = [
            option for option, n in path_wins.items()
            if n == len(options) - 1
        ]
        return Result(
            winner=(winners[0] if len(winners) == 1 else None),
            rankings=path_wins,
            details={
                'pairwise': liquidvote.util.pairwise_matrix(votes, options),
                'strongestPaths': liquidvote.util.pairwise_matrix(
                    paths, options
                ),
            },
        )

    @staticmethod
    def widest_paths(counts: PairwiseVotes,
                     options: Sequence[str],
                     ) -> PairwiseVotes:
        '''Compute the strengths of the strongest paths between all options.

        Only pairwise wins start a path; the strength of a path is its
        weakest link.
        '''
        paths = {}
        for pair, count in counts.items():
            if counts.get(tuple(reversed(pair)), 0) < count:
                paths[pair] = count
        for via in options:
            for start in options:
                if start == via:
                    continue
                for end in options:
                    if end in (start, via):
                        continue
                    paths[start, end] = max(
                        paths.get((start, end), 0),
                        min(
                            paths.get((start, via), 0),
                            paths.get((via, end), 0),
                        )
                    )
        return paths


@simple_serialization
class KemenyYoung(liquidvote.evaluate.core.Evaluator):
    '''Kemeny-Young Condorcet evaluator.

    Kemeny-Young orders the options based on their pairwise comparison by
    evaluating the total weighted disagreement of every ordering of the
    options with the voters, and selecting the ordering with the minimum
    disagreement. The winner is the top of that ordering; if several orderings
    are optimal and do not agree on the top, there is no winner. The positions
    of the options in the first optimal ordering are reported as their
    rankings (1 being the best).

    Due to the enumeration of all permutations of the options, this method
    is ``O(n!)`` in the number of options, so the number of options is capped.

    :param max_options: Maximum number of options to evaluate.
    '''
    def __init__(self, max_options: int = 8):
        self.max_options = max_options

    def evaluate(self,
                 votes: PairwiseVotes,
                 options: Collection[str],
                 ) -> Result:
        '''Select the winner by the Kemeny-Young method.

        :param votes: Condorcet votes.
        :param options: Option labels of the session.
        :raises VoteMagnitudeError: If there are more options than allowed
            and any votes to order them by.
        '''
        options = list(options)
        if not votes:
            pairwise = liquidvote.util.pairwise_matrix(votes, options)
            return Result(details={'pairwise': pairwise})
        if len(options) > self.max_options:
            raise VoteMagnitudeError(
                len(options), None, self.max_options, 'number of options'
            )
        best_variants = []
        best_score = None
        for variant in itertools.permutations(options):
            score = self.disagreement(variant, votes)
            if best_score is None or score < best_score:
                best_variants = [list(variant)]
                best_score = score
            elif score == best_score:
                best_variants.append(list(variant))
        logger.debug('%d optimal orderings with disagreement %s',
                     len(best_variants), best_score)
        tops = {variant[0] for variant in best_variants}
        return Result(
            winner=(tops.pop() if len(tops) == 1 else None),
            rankings={
                option: position + 1
                for position, option in enumerate(best_variants[0])
            },
            details={
                'ordering': best_variants[0],
                'optimalOrderings': best_variants,
                'disagreement': best_score,
                'pairwise': liquidvote.util.pairwise_matrix(votes, options),
            },
        )

    @staticmethod
    def disagreement(variant: Sequence[str], votes: PairwiseVotes) -> Number:
        '''Compute the weight of pairwise preferences an ordering violates.

        :param variant: The ordering of options to evaluate.
        :param votes: Condorcet votes.
        '''
        return sum(
            votes.get((lower, upper), 0)
            for i, upper in enumerate(variant)
                for lower in variant[i+1:]    # noqa: E131
        )
