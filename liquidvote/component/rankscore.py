'''Objects to assign scores to ranks in ranked voting systems such as Borda.

A rank scorer turns the rank a voter gave to an option into a number of
points. This is the essence of the Borda count.
'''

import abc
from numbers import Number

from liquidvote.persist import simple_serialization


class RankScorer(metaclass=abc.ABCMeta):
    '''An abstract base class for rank scorers.

    Rank scorers must provide a `score()` method that returns the points for
    a single rank. They may also provide a `set_n_candidates()` method that
    sets the total number of options in the session, which might be relevant
    for computing the rank scores. If this method is defined, it must be
    called before the `score()` method is called first.
    '''
    @abc.abstractmethod
    def score(self, rank: int) -> Number:
        raise NotImplementedError


@simple_serialization
class Borda(RankScorer):
    '''Borda rank scorer, corresponding to the original Borda count variant.

    Assigns the `base` score to the option ranked last, and one point more
    for each higher rank, so that with the default base, rank ``r`` out of
    ``n`` options scores ``n - r + 1`` points. Ranks below the last one score
    zero.

    This rank scorer needs to be initialized by :meth:`set_n_candidates()`
    before calling :meth:`score()`.

    :param base: The score to assign to the option ranked last.
    '''

    def __init__(self, base: int = 1):
        self.base = base
        self.n_candidates = None

    def set_n_candidates(self, n_candidates: int) -> None:
        '''Set the total number of options that could be ranked.

        :param n_candidates: The number of options in the session.
        '''
        self.n_candidates = n_candidates

    def score(self, rank: int) -> int:
        '''Return the points for a rank (1 being the best).

        :raises RuntimeError: If the scorer has not been initialized first by
            calling ``set_n_candidates()``.
        '''
        if self.n_candidates is None:
            raise RuntimeError(
                'scorer not initialized, call set_n_candidates() first'
            )
        return max(self.n_candidates + self.base - rank, 0)
