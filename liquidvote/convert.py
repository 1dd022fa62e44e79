'''Converters between vote formats.

These objects have a `convert()` method that reshapes votes between the
stages of evaluation. Their input is a dictionary mapping vote objects
(choices, option labels or option pairs) to the total weight cast for them;
the second argument is the option list of the session, which converters use
to report options that nobody voted for.
'''

import collections
import copy
import math
import statistics
import builtins
from typing import Any, Tuple, Dict, Union, Callable, Iterable, Collection, \
    Optional
from numbers import Number

import liquidvote.util
import liquidvote.vote
from liquidvote.vote import Choice, SimpleChoice, ApprovalChoice, \
    RankedChoice, MappingChoice, FractionChoice, WeightedBallot
from liquidvote.component import rankscore
from liquidvote.persist import simple_serialization


class Converter:
    def convert(self, *args, **kwargs):
        raise NotImplementedError


@simple_serialization
class WeightedBallotsToVotes(Converter):
    '''Aggregate weighted ballots to votes.

    Identical choices are merged into a single key with the effective weights
    of their ballots summed. This is the vote format all evaluators accept.
    '''
    def convert(self,
                ballots: Iterable[WeightedBallot],
                options: Optional[Collection[str]] = None,
                ) -> Dict[Choice, float]:
        votes = {}
        for ballot in ballots:
            votes[ballot.choice] = votes.get(ballot.choice, 0) + ballot.weight
        return votes


@simple_serialization
class SimpleToOptionVotes(Converter):
    '''Unwrap simple choices to votes for option labels.'''
    def convert(self,
                votes: Dict[SimpleChoice, Number],
                options: Optional[Collection[str]] = None,
                ) -> Dict[str, Number]:
        agg_votes = liquidvote.util.zero_votes(options or [])
        for choice, n_votes in votes.items():
            agg_votes[choice.option] = agg_votes.get(choice.option, 0) + n_votes
        return agg_votes


@simple_serialization
class ApprovalToSimpleVotes(Converter):
    '''Aggregate approval votes to simple votes.

    Aggregate votes for option sets (approval votes) to separate votes
    for individual options.

    :param split: Whether to split the vote power among all the options
        in the set (as in satisfaction approval voting)
        or give full vote to each (as in ordinary approval voting).
    '''
    def __init__(self, split: bool = False):
        self.split = split

    def convert(self,
                votes: Dict[ApprovalChoice, Number],
                options: Optional[Collection[str]] = None,
                ) -> Dict[str, Number]:
        '''Convert approval votes to simple votes.'''
        agg_votes = liquidvote.util.zero_votes(options or [])
        for choice, n_votes in votes.items():
            if self.split and choice.approved:
                n_votes = n_votes / len(choice.approved)
            for option in choice.approved:
                agg_votes[option] = agg_votes.get(option, 0) + n_votes
        return agg_votes


@simple_serialization
class FractionToSimpleVotes(Converter):
    '''Aggregate weight voting choices to simple votes.

    Each choice contributes its weight multiplied by its fraction.
    '''
    def convert(self,
                votes: Dict[FractionChoice, Number],
                options: Optional[Collection[str]] = None,
                ) -> Dict[str, Number]:
        agg_votes = liquidvote.util.zero_votes(options or [])
        for choice, n_votes in votes.items():
            agg_votes[choice.option] = (
                agg_votes.get(choice.option, 0) + n_votes * choice.fraction
            )
        return agg_votes


@simple_serialization
class RankedToFirstPreference(Converter):
    '''Aggregate ranked votes to simple votes for their best ranked options.

    Options sharing the best rank split the vote equally. Only the options
    given are considered; rankings that rank none of them are exhausted and
    do not count.
    '''
    def convert(self,
                votes: Dict[RankedChoice, Number],
                options: Optional[Collection[str]] = None,
                ) -> Dict[str, Number]:
        agg_votes = liquidvote.util.zero_votes(options or [])
        for choice, n_votes in votes.items():
            top = choice.top(among=options)
            for option in sorted(top):
                agg_votes[option] = (
                    agg_votes.get(option, 0) + n_votes / len(top)
                )
        return agg_votes


@simple_serialization
class RankedToPositionalVotes(Converter):
    '''Aggregate ranked votes to simple votes by scoring ranks.

    Useful for Borda count systems. Assigns a score to each rank and then
    sums the scores weighted by the votes. Options not ranked by the voter get
    zero points.

    :param rank_scorer: A rank scorer that determines which score to assign to
        which rank through its `score()` method.
        You can use any object that honors the interface of
        :class:`rankscore.RankScorer`.
    '''
    def __init__(self, rank_scorer: rankscore.RankScorer):
        self.rank_scorer = rank_scorer

    def convert(self,
                votes: Dict[RankedChoice, Number],
                options: Optional[Collection[str]] = None,
                ) -> Dict[str, Number]:
        '''Convert ranked votes to simple votes by scoring their ranks.'''
        options = list(options or [])
        scorer = copy.copy(self.rank_scorer)
        if hasattr(scorer, 'set_n_candidates'):
            scorer.set_n_candidates(len(options))
        agg_votes = liquidvote.util.zero_votes(options)
        for choice, n_votes in votes.items():
            for option, rank in choice.marks:
                agg_votes[option] = (
                    agg_votes.get(option, 0)
                    + scorer.score(rank) * n_votes
                )
        return agg_votes


@simple_serialization
class RankedToCondorcetVotes(Converter):
    '''Aggregate ranked votes to counts of pairwise wins.

    Basic component for Condorcet methods. For each ballot that ranks a pair
    of options in a given order, adds its weight to the count of the first
    option over the second. Options sharing a rank are not compared.

    :param unranked_at_bottom: Whether to consider options not ranked on a
        ballot as being ranked last. If False, these options are not
        considered (the voter is assumed not to have any preferences there).
    '''
    def __init__(self, unranked_at_bottom: bool = True):
        self.unranked_at_bottom = unranked_at_bottom

    def convert(self,
                votes: Dict[RankedChoice, Number],
                options: Optional[Collection[str]] = None,
                ) -> Dict[Tuple[str, str], Number]:
        '''Convert ranked votes to counts of pairwise wins.'''
        all_options = list(options or [])
        for choice in votes:
            for option in sorted(choice.labels()):
                if option not in all_options:
                    all_options.append(option)
        counts = collections.defaultdict(int)
        for choice, n_votes in votes.items():
            ranks = choice.as_dict()
            for upper in all_options:
                if upper not in ranks:
                    continue
                for lower in all_options:
                    if lower in ranks:
                        if ranks[upper] < ranks[lower]:
                            counts[upper, lower] += n_votes
                    elif self.unranked_at_bottom:
                        counts[upper, lower] += n_votes
        return dict(counts)


@simple_serialization
class ScoreToCondorcetVotes(Converter):
    '''Convert score votes to counts of pairwise preferences.

    Each ballot prefers one option to another if it scores it higher; equal
    scores express no preference.

    :param unscored_value: Score assumed for options the voter did not
        score. None means such pairs are not compared.
    '''
    def __init__(self, unscored_value: Optional[Number] = 0):
        self.unscored_value = unscored_value

    def convert(self,
                votes: Dict[MappingChoice, Number],
                options: Optional[Collection[str]] = None,
                ) -> Dict[Tuple[str, str], Number]:
        options = list(options or [])
        counts = collections.defaultdict(int)
        for choice, n_votes in votes.items():
            scores = choice.as_dict()
            for upper in options:
                upper_score = scores.get(upper, self.unscored_value)
                if upper_score is None:
                    continue
                for lower in options:
                    lower_score = scores.get(lower, self.unscored_value)
                    if lower_score is not None and upper_score > lower_score:
                        counts[upper, lower] += n_votes
        return dict(counts)


@simple_serialization
class ScoreToSimpleVotes(Converter):
    '''Aggregate scores (cardinal votes) to simple votes.

    Useful for range, cumulative and quadratic voting. The scores of all
    ballots for an option are aggregated into a single number, with every
    ballot counted by its weight.

    :param function: Aggregation of the weighted scores given to an option,
        specified by its name in :data:`liquidvote.util.WEIGHTED_AGGREGATORS`
        (``'sum'`` or ``'mean'``) or as a callable taking a dictionary of
        score values mapped to their total weights.
    :param transform: A function to apply to every score before aggregating,
        such as ``'sqrt'`` for quadratic voting. Names are looked up in the
        math, statistics and builtins namespaces.
    :param unscored_value: Score to give to an option that was not assigned
        a score by the voter. None means such ballots will not be considered
        for the option.
    :param bottom_value: Value to assign to options that received no scores
        at all.
    '''
    FUNCTION_NAMESPACES = [
        math,
        statistics,
        builtins,
    ]

    def __init__(self,
                 function: Union[
                     Callable[[Dict[Any, Number]], Number], str
                 ] = 'mean',
                 transform: Union[Callable[[Number], Number], str, None] = None,
                 unscored_value: Optional[Number] = None,
                 bottom_value: Number = 0,
                 ):
        self.function = function
        self.transform = transform
        self.unscored_value = unscored_value
        self.bottom_value = bottom_value
        self._aggregator = self._get_function(
            function, liquidvote.util.WEIGHTED_AGGREGATORS
        )
        self._transformer = (
            None if transform is None else self._get_function(transform)
        )

    def _get_function(self, fdef, registry: Dict[str, Callable] = {}
                      ) -> Callable:
        if isinstance(fdef, str):
            if fdef in registry:
                return registry[fdef]
            for namespace in self.FUNCTION_NAMESPACES:
                if hasattr(namespace, fdef):
                    return getattr(namespace, fdef)
            raise ValueError(f'unknown function definition: {fdef!r}')
        else:
            if not hasattr(fdef, '__call__'):
                raise ValueError(f'not a callable function: {fdef!r}')
            return fdef

    def convert(self,
                votes: Dict[MappingChoice, Number],
                options: Optional[Collection[str]] = None,
                ) -> Dict[str, Number]:
        '''Convert score votes to simple votes.

        :param votes: Score votes.
        :param options: Options to report, in their order.
        :returns: A mapping from options to their aggregate scores.
        '''
        return self.aggregate(self.distributions(votes, options))

    def distributions(self,
                      votes: Dict[MappingChoice, Number],
                      options: Optional[Collection[str]] = None,
                      ) -> Dict[str, Dict[Any, Number]]:
        '''Collect the score distribution of each option.

        This forms the first part of the conversion (the second is
        :meth:`aggregate`) and is exposed independently for evaluators that
        need the whole distribution, such as majority judgment.

        :param votes: Score votes.
        :param options: Options to report, in their order.
        :returns: A nested dictionary mapping options to dictionaries mapping
            score values to the total weight that gave them.
        '''
        dists = {option: {} for option in (options or [])}
        for choice, n_votes in votes.items():
            scored = choice.as_dict()
            for option in scored:
                dists.setdefault(option, {})
            for option, dist in dists.items():
                score = scored.get(option, self.unscored_value)
                if score is not None:
                    dist[score] = dist.get(score, 0) + n_votes
        return dists

    def aggregate(self,
                  dists: Dict[str, Dict[Any, Number]]
                  ) -> Dict[str, Number]:
        '''Aggregate score distributions to scores per option.'''
        return {
            option: self.aggregate_one(dist) for option, dist in dists.items()
        }

    def aggregate_one(self, dist: Dict[Any, Number]) -> Number:
        '''Aggregate the score distribution of one option to a single score.'''
        if not dist:
            return self.bottom_value
        if self._transformer is not None:
            transformed = {}
            for score, weight in dist.items():
                tscore = self._transformer(score)
                transformed[tscore] = transformed.get(tscore, 0) + weight
            dist = transformed
        return self._aggregator(dist)


@simple_serialization
class SubsettedVotes(Converter):
    '''Subset the votes to only concern a subset of options.

    A wrapper over :class:`vote.VoteSubsetter` that takes the entire vote
    dictionary, not just a single choice. Useful in runoffs and elimination
    rounds.

    :param vote_subsetter: A vote subsetter that turns a single choice into a
        choice that only concerns the specified options, with other options
        removed.
    '''
    DEFAULT_SUBSETTER = liquidvote.vote.SimpleSubsetter()

    def __init__(self,
                 vote_subsetter: liquidvote.vote.VoteSubsetter = DEFAULT_SUBSETTER,
                 ):
        self.vote_subsetter = vote_subsetter

    def convert(self,
                votes: Dict[Choice, Number],
                subset: Collection[str],
                ) -> Dict[Choice, Number]:
        '''Subset the votes to only concern a subset of options.

        :param votes: Votes to be subsetted. Their type should be in accordance
            with the wrapped vote subsetter.
        :param subset: The only options that should be contained in the
            output.
        '''
        sub = {}
        for full_vote, n_votes in votes.items():
            sub_vote = self.vote_subsetter.subset(full_vote, subset)
            if sub_vote is not None:
                sub[sub_vote] = sub.get(sub_vote, 0) + n_votes
        return sub
