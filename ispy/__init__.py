"""
ispy - spy on mutable objects.

Declare that a property changed, fan the change out to observers, and keep an
ordered, append-only history of it keyed by time.

Components:
- bus: synchronous multicast EventBus
- log: OrderedLog / StateLog / PropertyLog (append-only, timestamp-ordered)
- spyable, spy: push-side change notification bound to a log
- tracking: poll-side change detection over watched sets and universes
"""

__version__ = "0.1.0"

from .bus import EventBus
from .clock import Clock, ManualClock, MonotonicClock
from .errors import (
    AttributeResolutionError,
    InvalidSubjectError,
    ListenerError,
    ListenerErrorGroup,
    SpyError,
)
from .log import AppendEvent, OrderedLog, PropertyLog, StateLog
from .records import ChangeRecord, format_record
from .resolve import GetattrResolver, GetterResolver, SpiedAttributeResolver, ValueResolver
from .spy import Spy, SpyRegistry, get_spy_registry, set_spy_registry
from .spyable import Spyable, spied
from .tracking import (
    SubjectPool,
    SubjectTracker,
    Trackable,
    Tracker,
    Transform,
    TransformState,
    Universe,
    UniverseTracker,
    WatchSet,
    capability,
)

__all__ = [
    "__version__",
    # Events and logs
    "AppendEvent",
    "EventBus",
    "OrderedLog",
    "PropertyLog",
    "StateLog",
    "ChangeRecord",
    "format_record",
    # Clocks
    "Clock",
    "ManualClock",
    "MonotonicClock",
    # Errors
    "AttributeResolutionError",
    "InvalidSubjectError",
    "ListenerError",
    "ListenerErrorGroup",
    "SpyError",
    # Resolvers
    "GetattrResolver",
    "GetterResolver",
    "SpiedAttributeResolver",
    "ValueResolver",
    # Spies
    "Spy",
    "SpyRegistry",
    "Spyable",
    "get_spy_registry",
    "set_spy_registry",
    "spied",
    # Tracking
    "SubjectPool",
    "SubjectTracker",
    "Trackable",
    "Tracker",
    "Transform",
    "TransformState",
    "Universe",
    "UniverseTracker",
    "WatchSet",
    "capability",
]
