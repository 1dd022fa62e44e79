'''JSON session files.

A session file holds a vote session together with everything needed to
tabulate it::

    {
      "session": {
        "id": "s1", "proposalId": "p1", "method": "firstPastThePost",
        "options": ["Yes", "No"], "topicId": null,
        "startsAt": "2024-05-01T08:00:00", "endsAt": "2024-05-08T08:00:00"
      },
      "members": [{"id": "alice", "name": "Alice", "role": "user"}],
      "delegations": [
        {"delegatorId": "alice", "delegateeId": "bob", "topicId": null,
         "validUntil": "2025-01-01T00:00:00", "weight": 1.0}
      ],
      "ballots": [
        {"voterId": "bob", "choice": "Yes", "castAt": "2024-05-02T10:00:00"}
      ],
      "systems": {}
    }

The shape of a ballot choice depends on the voting method of the session:
an option label for simple choices, a list of labels for approval choices,
an object mapping labels to values for ranked, score, grade, credit and
allocation choices, and an object with ``option`` and ``fraction`` keys for
weight voting. Timestamps are in ISO 8601. The optional ``systems`` object
maps method names to voting system definitions as produced by
:func:`liquidvote.persist.to_dict`, overriding the default systems.
'''

import datetime
from typing import Any, Dict, Optional

import liquidvote.io.core
import liquidvote.system
from liquidvote.vote import Choice, SimpleChoice, ApprovalChoice, \
    MappingChoice, FractionChoice, Ballot, ValidationError, is_number
from liquidvote.member import Member, Role
from liquidvote.system import VoteSession
from liquidvote.evaluate.core import UnknownMethodError
from liquidvote.delegation.core import Delegation
from liquidvote.io.core import ParseError, SessionSetup


class SessionParseError(ParseError):
    '''A session file is malformed.

    :param message: What is wrong.
    :param where: Which part of the file the problem was found in.
    '''
    def __init__(self, message: str, where: Optional[str] = None):
        self.where = where
        if where is not None:
            message = f'{where}: {message}'
        super().__init__(message)


def parse_payload(payload: Dict[str, Any]) -> SessionSetup:
    '''Build a session setup from a decoded session file.'''
    if not isinstance(payload, dict) or 'session' not in payload:
        raise SessionParseError('session file must contain a session object')
    session = parse_session(payload['session'])
    choice_type = liquidvote.system.get_system(session.method).choice_type
    return SessionSetup(
        session=session,
        ballots=[
            parse_ballot(ballot, session.id, choice_type, f'ballots[{i}]')
            for i, ballot in enumerate(payload.get('ballots', []))
        ],
        delegations=[
            parse_delegation(deleg, f'delegations[{i}]')
            for i, deleg in enumerate(payload.get('delegations', []))
        ],
        members=[
            parse_member(member, f'members[{i}]')
            for i, member in enumerate(payload.get('members', []))
        ],
        systems=payload.get('systems') or None,
    )


load, loads = liquidvote.io.core.loaders(parse_payload)


def parse_session(obj: Dict[str, Any]) -> VoteSession:
    _check_object(obj, 'session', ('id', 'method', 'options'))
    try:
        return VoteSession(
            id=str(obj['id']),
            proposal_id=str(obj.get('proposalId', obj['id'])),
            method=obj['method'],
            options=obj['options'],
            topic_id=obj.get('topicId'),
            starts_at=parse_datetime(obj.get('startsAt'), 'session.startsAt'),
            ends_at=parse_datetime(obj.get('endsAt'), 'session.endsAt'),
        )
    except (ValidationError, UnknownMethodError) as err:
        raise SessionParseError(str(err), 'session') from err


def parse_ballot(obj: Dict[str, Any],
                 session_id: str,
                 choice_type: type,
                 where: str = 'ballot',
                 ) -> Ballot:
    _check_object(obj, where, ('voterId', 'choice'))
    return Ballot(
        session_id=str(obj.get('sessionId', session_id)),
        voter_id=str(obj['voterId']),
        choice=parse_choice(obj['choice'], choice_type, f'{where}.choice'),
        cast_at=parse_datetime(obj.get('castAt'), f'{where}.castAt'),
    )


def parse_choice(value: Any, choice_type: type, where: str = 'choice'
                 ) -> Choice:
    '''Build a choice of the given type from its JSON form.

    Only the shape is checked here; the values are validated against the
    rules of the voting method at tabulation.
    '''
    if issubclass(choice_type, SimpleChoice):
        if not isinstance(value, str):
            raise SessionParseError('option label expected', where)
        return SimpleChoice(value)
    elif issubclass(choice_type, ApprovalChoice):
        if (not isinstance(value, list)
                or not all(isinstance(label, str) for label in value)):
            raise SessionParseError('list of option labels expected', where)
        return ApprovalChoice(value)
    elif issubclass(choice_type, MappingChoice):
        if not isinstance(value, dict):
            raise SessionParseError('object of option values expected', where)
        for label, mark in value.items():
            if isinstance(mark, (dict, list)):
                raise SessionParseError(
                    f'{choice_type.value_name} of {label!r} must be a scalar',
                    where
                )
        return choice_type(value)
    elif issubclass(choice_type, FractionChoice):
        _check_object(value, where, ('option', ))
        if not isinstance(value['option'], str):
            raise SessionParseError('option label expected', f'{where}.option')
        return FractionChoice(value['option'], value.get('fraction', 1.0))
    else:
        raise ValueError(f'unsupported choice type: {choice_type.__name__}')


def parse_delegation(obj: Dict[str, Any], where: str = 'delegation'
                     ) -> Delegation:
    _check_object(obj, where, ('delegatorId', 'delegateeId'))
    weight = obj.get('weight', 1.0)
    if not is_number(weight):
        raise SessionParseError(
            f'delegation weight must be a number, got {weight!r}',
            f'{where}.weight'
        )
    try:
        return Delegation(
            delegator_id=str(obj['delegatorId']),
            delegatee_id=str(obj['delegateeId']),
            topic_id=obj.get('topicId'),
            valid_until=parse_datetime(
                obj.get('validUntil'), f'{where}.validUntil'
            ),
            weight=weight,
            created_at=parse_datetime(
                obj.get('createdAt'), f'{where}.createdAt'
            ),
            active=obj.get('active', True),
            id=obj.get('id'),
        )
    except ValidationError as err:
        raise SessionParseError(str(err), where) from err


def parse_member(obj: Dict[str, Any], where: str = 'member') -> Member:
    _check_object(obj, where, ('id', ))
    try:
        role = Role(obj.get('role', Role.USER.value))
    except ValueError as err:
        raise SessionParseError(f'unknown role {obj["role"]!r}', where) from err
    return Member(
        id=str(obj['id']),
        name=obj.get('name', obj['id']),
        role=role,
        email=obj.get('email'),
    )


def parse_datetime(value: Optional[str], where: str = 'timestamp'
                   ) -> Optional[datetime.datetime]:
    if value is None:
        return None
    try:
        return datetime.datetime.fromisoformat(value)
    except (TypeError, ValueError) as err:
        raise SessionParseError(f'invalid timestamp {value!r}', where) from err


def _check_object(obj: Any, where: str, required: tuple) -> None:
    if not isinstance(obj, dict):
        raise SessionParseError('object expected', where)
    missing = [key for key in required if key not in obj]
    if missing:
        raise SessionParseError(f'missing keys {missing}', where)


def dump_payload(setup: SessionSetup) -> Dict[str, Any]:
    '''Build the JSON payload of a session file from a session setup.'''
    session = setup.session
    payload = {
        'session': {
            'id': session.id,
            'proposalId': session.proposal_id,
            'method': session.method.value,
            'options': list(session.options),
            'topicId': session.topic_id,
            'startsAt': _dump_datetime(session.starts_at),
            'endsAt': _dump_datetime(session.ends_at),
        },
        'members': [
            {
                'id': member.id,
                'name': member.name,
                'role': member.role.value,
                'email': member.email,
            }
            for member in setup.members
        ],
        'delegations': [
            {
                'id': deleg.id,
                'delegatorId': deleg.delegator_id,
                'delegateeId': deleg.delegatee_id,
                'topicId': deleg.topic_id,
                'validUntil': _dump_datetime(deleg.valid_until),
                'weight': deleg.weight,
                'createdAt': _dump_datetime(deleg.created_at),
                'active': deleg.active,
            }
            for deleg in setup.delegations
        ],
        'ballots': [
            {
                'voterId': ballot.voter_id,
                'choice': dump_choice(ballot.choice),
                'castAt': _dump_datetime(ballot.cast_at),
            }
            for ballot in setup.ballots
        ],
    }
    if setup.systems:
        payload['systems'] = setup.systems
    return payload


dump, dumps = liquidvote.io.core.dumpers(dump_payload)


def dump_choice(choice: Choice) -> Any:
    if isinstance(choice, SimpleChoice):
        return choice.option
    elif isinstance(choice, ApprovalChoice):
        return sorted(choice.approved)
    elif isinstance(choice, MappingChoice):
        return choice.as_dict()
    elif isinstance(choice, FractionChoice):
        return {'option': choice.option, 'fraction': choice.fraction}
    else:
        raise ValueError(f'cannot dump choice {choice!r}')


def _dump_datetime(value: Optional[datetime.datetime]) -> Optional[str]:
    return None if value is None else value.isoformat()
