'''Various utility functions for other modules of Liquidvote.

There should normally be no need to use these functions directly.
'''

import operator
from typing import Any, List, Tuple, Dict, Iterable
from numbers import Number


def add_dict_to_dict(dict1: Dict[Any, Number],
                     dict2: Dict[Any, Number],
                     ) -> None:
    for key, addition in dict2.items():
        dict1[key] = dict1.get(key, 0) + addition


def sorted_votes(votes: Dict[Any, Number],
                 descending: bool = True,
                 ) -> List[Tuple[Any, Number]]:
    '''Return votes items sorted by value.

    The sort is stable, so items with equal values keep their input order.
    '''
    return list(sorted(
        votes.items(),
        key=operator.itemgetter(1),
        reverse=descending
    ))


def zero_votes(options: Iterable[str], value: Number = 0.0) -> Dict[str, Number]:
    '''Create a vote count dictionary with all options at the given value.'''
    return {option: value for option in options}


def pairwise_matrix(votes: Dict[Tuple[Any, Any], Number],
                    options: Iterable[Any],
                    ) -> Dict[Any, Dict[Any, Number]]:
    '''Reshape pairwise counts to a nested dictionary for reporting.

    :param votes: Counts of ordered option pairs.
    :param options: Options to include as rows and columns.
    '''
    options = list(options)
    return {
        upper: {
            lower: votes.get((upper, lower), 0)
            for lower in options if lower != upper
        }
        for upper in options
    }


def weighted_sum(dist: Dict[Any, Number]) -> Number:
    '''Sum score values multiplied by their weights.

    :param dist: Score values mapped to the total weight that gave them.
    '''
    return sum(score * weight for score, weight in dist.items())


def weighted_mean(dist: Dict[Any, Number]) -> Number:
    '''Compute the weighted mean of score values.

    :param dist: Score values mapped to the total weight that gave them.
    '''
    total_weight = sum(dist.values())
    if not total_weight:
        return 0
    return weighted_sum(dist) / total_weight


WEIGHTED_AGGREGATORS = {
    'sum': weighted_sum,
    'mean': weighted_mean,
}
