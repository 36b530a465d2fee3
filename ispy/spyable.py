"""
The Spyable capability.

Subclass Spyable and declare tracked attributes with `spied()`: every
assignment stores the value and then leaks the attribute name to the
subject's mutation stream.

    class Player(Spyable):
        health = spied(100)

    player = Player()
    player.health = 90      # logged by player.spy.log

Spyable.__init__ calls setup_spy(), which binds one default Spy. Set
`auto_spy = False` on the class, or override setup_spy(), to opt out.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar

from .bus import EventBus
from .spy import Spy

_MISSING = object()


class spied:
    """Data descriptor that leaks its name after every assignment."""

    def __init__(self, default: Any = _MISSING, *, doc: str | None = None):
        self.default = default
        self.name = ""
        self.__doc__ = doc

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self._slot = f"_spied_{name}"

    def __get__(self, obj: Any, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        try:
            return obj.__dict__[self._slot]
        except KeyError:
            if self.default is _MISSING:
                raise AttributeError(
                    f"{type(obj).__name__!r} object has no value for spied attribute {self.name!r}"
                ) from None
            return self.default

    def __set__(self, obj: Any, value: Any) -> None:
        obj.__dict__[self._slot] = value
        obj.leak(self.name)

    def __repr__(self) -> str:
        return f"spied({self.name!r})"


class Spyable:
    """
    Base class for objects whose attribute changes can be spied on.

    Class attributes:
        auto_spy: Create a default Spy during __init__ (default True)
        __spied__: Mapping of spied attribute names to descriptors, collected
            across the class hierarchy
    """

    auto_spy: ClassVar[bool] = True
    __spied__: ClassVar[dict[str, spied]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        declared: dict[str, spied] = {}
        for base in reversed(cls.__mro__[1:]):
            declared.update(getattr(base, "__spied__", {}))
        declared.update({name: attr for name, attr in cls.__dict__.items() if isinstance(attr, spied)})
        cls.__spied__ = declared

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._spy: Spy | None = None
        self.setup_spy()

    def setup_spy(self) -> None:
        """
        Attach the default Spy.

        Override to customise or disable; call super().setup_spy() to keep the
        default behaviour.
        """
        if self.auto_spy:
            self._spy = Spy(self)

    @property
    def spy(self) -> Spy | None:
        """The default Spy, or None when opted out."""
        return self.__dict__.get("_spy")

    @property
    def _mutation_bus(self) -> EventBus:
        # Created lazily so spied attributes may be assigned before __init__
        # reaches Spyable.
        bus = self.__dict__.get("_mutations")
        if bus is None:
            bus = EventBus(
                f"{type(self).__name__}.mutations",
                context=lambda subject, attribute: (subject, attribute),
            )
            self.__dict__["_mutations"] = bus
        return bus

    def leak(self, attribute: Any) -> None:
        """
        Notify every mutation listener that `attribute` changed.

        Call from a property setter after the underlying field is updated.
        """
        bus = self.__dict__.get("_mutations")
        if bus is not None:
            bus.notify(self, attribute)

    def notify_mutation(self, attribute: Any) -> None:
        self.leak(attribute)

    def subscribe_to_mutations(self, listener: Callable[[Any, Any], Any]) -> None:
        self._mutation_bus.add(listener)

    def unsubscribe_from_mutations(self, listener: Callable[[Any, Any], Any]) -> None:
        self._mutation_bus.remove(listener)

    @property
    def mutation_listeners(self) -> tuple[Callable[[Any, Any], Any], ...]:
        bus = self.__dict__.get("_mutations")
        return bus.listeners if bus is not None else ()
