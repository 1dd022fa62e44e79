"""Shared functionality for session file I/O. Internal."""

from __future__ import annotations

import json
import typing
import dataclasses
from typing import Any, List, Dict, Tuple, Callable, TextIO, Optional

from liquidvote.vote import Ballot
from liquidvote.member import Member
from liquidvote.system import VoteSession
from liquidvote.delegation.core import Delegation


class ParseError(Exception):
    """An input that is invalid according to the session format was detected."""
    pass


@dataclasses.dataclass
class SessionSetup:
    """A container for data returnable from a session file."""
    session: VoteSession
    ballots: List[Ballot] = dataclasses.field(default_factory=list)
    delegations: List[Delegation] = dataclasses.field(default_factory=list)
    members: List[Member] = dataclasses.field(default_factory=list)
    systems: Optional[Dict[str, Any]] = None


def loaders(payload_loader: Callable[..., SessionSetup]
            ) -> Tuple[Callable[..., SessionSetup], Callable[..., SessionSetup]]:
    """Create load() and loads() functions from a JSON payload parser."""
    return_annot = typing.get_type_hints(payload_loader).get('return')
    if return_annot is None:
        return_annot = Any

    def load(file: TextIO, **kwargs) -> return_annot:
        return loads(file.read(), **kwargs)

    def loads(text: str, **kwargs) -> return_annot:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as err:
            raise ParseError(f'invalid JSON: {err}') from err
        return payload_loader(payload, **kwargs)

    return load, loads


def dumpers(payload_dumper: Callable[..., Dict[str, Any]]
            ) -> Tuple[Callable[..., None], Callable[..., str]]:
    """Create dump() and dumps() functions from a JSON payload builder."""

    def dump(file: TextIO, *args, **kwargs) -> None:
        file.write(dumps(*args, **kwargs))

    def dumps(*args, **kwargs) -> str:
        return json.dumps(
            payload_dumper(*args, **kwargs), indent=2, ensure_ascii=False
        ) + '\n'

    return dump, dumps
