'''Evaluate the results of vote sessions.

Every evaluator has an ``evaluate()`` method that takes votes (a dictionary
mapping choices, option labels or option pairs to the total effective weight
cast for them) and the option list of the session, and returns a
:class:`core.Result` with the winner and the counts, scores or rankings that
decided it.

The evaluators are grouped by the kind of votes they examine:

-   :mod:`core` - plurality and the shared machinery,
-   :mod:`approval` - approval voting,
-   :mod:`sequential` - methods that count in rounds (runoffs, instant runoff),
-   :mod:`condorcet` - methods based on pairwise comparisons,
-   :mod:`cardinal` - methods based on scores, grades and budgets.

None of the evaluators validate the choices; use the validators from the
:mod:`vote` module for that, or let :class:`liquidvote.system.VotingSystem`
do it.

No evaluator breaks ties arbitrarily. A tie for the win gives a result with
no winner; :meth:`core.Result.tied` lists the tied options.
'''

from liquidvote.evaluate.core import *    # noqa
