'''Resolve liquid democracy delegations.

-   :mod:`core` - delegation records, the scope rule and errors,
-   :mod:`graph` - the delegation graph of a scope,
-   :mod:`cycle` - detection of delegations that would close a cycle,
-   :mod:`weight` - transitive weight represented by a member,
-   :mod:`expand` - expansion of direct ballots into weighted ballots,
-   :mod:`store` - interfaces to delegation and ballot storage.
'''

from liquidvote.delegation.core import *    # noqa
