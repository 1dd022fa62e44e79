'''Serialization of evaluators, validators and voting systems.

Objects decorated by :func:`simple_serialization` gain a ``to_dict()`` method
producing a JSON-ready dictionary that names their class and lists their
constructor parameters; :func:`from_dict` rebuilds the object. This allows
a custom registry of voting systems to be stored in a configuration file.

Values that JSON cannot hold directly are written as tagged objects:

-   voting system components as ``{"class": "<module>.<Class>", ...}``,
-   functions as ``{"callable": "<module>.<function>"}``,
-   enum members as ``{"type": "<module>.<Enum>", "value": ...}``,
-   timestamps as ``{"type": "datetime", "value": "<ISO 8601>"}``,
-   tuples and frozen sets as ``{"type": "tuple", "items": [...]}``.
'''

import sys
import enum
import inspect
import datetime
import importlib
from typing import Any, List, Dict, Callable


JSON_SCALARS = (str, int, float, bool, type(None))


def simple_serialization(class_: type) -> type:
    '''A decorator to provide a simple to_dict() serialization method.

    The resulting method will serialize all object attributes named like the
    class's constructor parameters, so the class must keep its parameters
    under those names in a form its constructor accepts.

    :param class_: The class to add the method to.
    '''
    param_names = _constructor_params(class_)

    def to_dict(self) -> Dict[str, Any]:
        out_dict = {'class': qualified_name(type(self))}
        out_dict.update(
            (name, serialize_value(getattr(self, name)))
            for name in param_names
        )
        return out_dict

    class_.to_dict = to_dict
    return class_


def _constructor_params(class_: type) -> List[str]:
    if class_.__init__ is object.__init__:
        return []
    params = inspect.signature(class_.__init__).parameters
    return [
        name for name, param in params.items()
        if name != 'self' and param.kind not in (
            param.VAR_POSITIONAL, param.VAR_KEYWORD
        )
    ]


def serialize_value(value: Any) -> Any:
    '''Convert a value to its JSON-ready form.

    :raises ValueError: If the value is of a type that cannot be stored.
    '''
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    elif isinstance(value, enum.Enum):
        return {'type': qualified_name(type(value)), 'value': value.value}
    elif isinstance(value, JSON_SCALARS):
        return value
    elif type(value) in TAGGED_TYPES:
        tag, dump, _ = TAGGED_TYPES[type(value)]
        return dict(type=tag, **dump(value))
    elif isinstance(value, dict):
        if not all(isinstance(key, str) for key in value):
            raise ValueError(f'cannot serialize non-string keys of {value!r}')
        return {key: serialize_value(val) for key, val in value.items()}
    elif isinstance(value, (list, frozenset, set)):
        return [serialize_value(item) for item in value]
    elif callable(value):
        return {'callable': qualified_name(value)}
    else:
        raise ValueError(f'cannot serialize {value!r} to dict format')


def deserialize_value(value: Any) -> Any:
    '''Rebuild a value from its JSON-ready form.

    :raises ValueError: If a tagged object names an unknown type or holds
        malformed contents.
    '''
    if isinstance(value, list):
        return [deserialize_value(item) for item in value]
    elif not isinstance(value, dict):
        if not isinstance(value, JSON_SCALARS):
            raise ValueError(f'cannot deserialize {value!r}, type unknown')
        return value
    elif 'class' in value:
        return _deserialize_object(value)
    elif 'callable' in value:
        return import_object(value['callable'])
    elif 'type' in value:
        return _deserialize_typed(value)
    else:
        return {key: deserialize_value(val) for key, val in value.items()}


def _deserialize_object(objdef: Dict[str, Any]) -> Any:
    params = dict(objdef)
    cls = import_object(params.pop('class'))
    return cls(**{
        name: deserialize_value(val) for name, val in params.items()
    })


def _deserialize_typed(typedef: Dict[str, Any]) -> Any:
    tag = typedef['type']
    for known_tag, _, load in TAGGED_TYPES.values():
        if tag == known_tag:
            try:
                return load(typedef)
            except (KeyError, TypeError, ValueError) as err:
                raise ValueError(
                    f'invalid {tag} value contents: {typedef!r}'
                ) from err
    enum_class = import_object(tag)
    if not (isinstance(enum_class, type)
            and issubclass(enum_class, enum.Enum)):
        raise ValueError(f'cannot deserialize values of type {tag}')
    return enum_class(typedef['value'])


def import_object(identifier: str) -> Any:
    '''Import a module-level object given by its dotted path.

    :raises ValueError: If the identifier is not a dotted path.
    '''
    if not is_scoped_identifier(identifier) or '.' not in identifier:
        raise ValueError(f'invalid object identifier: {identifier!r}')
    module_name, name = identifier.rsplit('.', 1)
    if module_name not in sys.modules:
        importlib.import_module(module_name)
    return getattr(sys.modules[module_name], name)


def from_dict(value: Dict[str, Any]) -> Any:
    """Rebuild an evaluator, validator or voting system from a dictionary.

    :param value: A dictionary created by :func:`to_dict`.
    :raises ValueError: If the dictionary does not define an object.
    """
    if not isinstance(value, dict):
        raise ValueError(
            f'invalid liquidvote object def: dict expected, got {value!r}'
        )
    elif not is_scoped_identifier(value.get('class')):
        raise ValueError(
            f'invalid liquidvote object def: no class in {value!r}'
        )
    return deserialize_value(value)


def to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize an evaluator or a similar object to a JSON-ready dictionary.

    :param obj: An evaluator, converter, validator or voting system; all
        those defined by Liquidvote provide a `to_dict()` method through the
        :func:`simple_serialization` decorator.
    """
    return serialize_value(obj)


def is_scoped_identifier(value: Any) -> bool:
    return (
        isinstance(value, str)
        and all(chunk.isidentifier() for chunk in value.split('.'))
    )


def qualified_name(obj: Any) -> str:
    return f'{obj.__module__}.{obj.__qualname__}'


def _items_loader(sequence_type: type) -> Callable[[Dict[str, Any]], Any]:
    def load(typedef: Dict[str, Any]) -> Any:
        return sequence_type(deserialize_value(typedef['items']))
    return load


def _dump_items(seq: Any) -> Dict[str, Any]:
    return {'items': [serialize_value(item) for item in seq]}


def _dump_set_items(items: frozenset) -> Dict[str, Any]:
    # sorted so that equal sets serialize equally
    return _dump_items(sorted(items, key=repr))


# exact type: (tag, dumper of contents, loader of the tagged object)
TAGGED_TYPES: Dict[type, tuple] = {
    datetime.datetime: (
        'datetime',
        lambda dt: {'value': dt.isoformat()},
        lambda typedef: datetime.datetime.fromisoformat(typedef['value']),
    ),
    tuple: ('tuple', _dump_items, _items_loader(tuple)),
    frozenset: ('frozenset', _dump_set_items, _items_loader(frozenset)),
}
