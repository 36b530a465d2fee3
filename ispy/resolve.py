"""
Value resolvers: map (subject, attribute) to the attribute's current value.

Resolution happens lazily, when a mutation is about to be logged, so the
value captured is whatever the subject holds at append time. Unknown
attributes always raise AttributeResolutionError instead of yielding None.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from .errors import AttributeResolutionError


@runtime_checkable
class ValueResolver(Protocol):
    """Protocol for resolving an attribute identifier on a subject."""

    def resolve(self, subject: Any, attribute: Any) -> Any:
        ...


def _attribute_key(attribute: Any) -> Any:
    # Descriptor handles resolve by their declared name.
    name = getattr(attribute, "name", None)
    return name if isinstance(name, str) else attribute


class SpiedAttributeResolver:
    """
    Resolve attributes declared with `spied()` on a Spyable class.

    Only declared attributes resolve; anything else is an error rather than a
    free-form getattr.
    """

    def resolve(self, subject: Any, attribute: Any) -> Any:
        declared: Mapping[str, Any] = getattr(type(subject), "__spied__", {})
        key = _attribute_key(attribute)
        if key not in declared:
            raise AttributeResolutionError(subject, attribute, "not a spied attribute")
        return declared[key].__get__(subject, type(subject))


class GetterResolver:
    """
    Resolve through an explicit attribute -> getter map.

    Example:
        resolver = GetterResolver({"x": lambda obj: obj.position[0]})
    """

    def __init__(self, getters: Mapping[Any, Callable[[Any], Any]]):
        self._getters = dict(getters)

    def register(self, attribute: Any, getter: Callable[[Any], Any]) -> None:
        self._getters[attribute] = getter

    def resolve(self, subject: Any, attribute: Any) -> Any:
        try:
            getter = self._getters[attribute]
        except KeyError:
            raise AttributeResolutionError(subject, attribute, "no getter registered") from None
        return getter(subject)


class GetattrResolver:
    """Plain attribute lookup, for subjects that are not Spyable."""

    def resolve(self, subject: Any, attribute: Any) -> Any:
        if not isinstance(attribute, str):
            raise AttributeResolutionError(subject, attribute, "attribute must be a name")
        try:
            return getattr(subject, attribute)
        except AttributeError as exc:
            raise AttributeResolutionError(subject, attribute, str(exc)) from exc
