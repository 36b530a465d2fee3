"""Tests for the spied descriptor and Spyable setup hooks."""

from __future__ import annotations

import pytest

from ispy.errors import AttributeResolutionError
from ispy.resolve import GetattrResolver, GetterResolver, SpiedAttributeResolver
from ispy.spy import Spy
from ispy.spyable import Spyable, spied


class Base(Spyable):
    auto_spy = False

    a = spied(1)


class Child(Base):
    b = spied()


class Custom(Spyable):
    value = spied(0)

    def setup_spy(self) -> None:
        self.events: list[object] = []
        self._spy = Spy(self, lambda s, attr: self.events.append(attr))


def test_spied_attributes_are_collected_across_hierarchy():
    assert set(Base.__spied__) == {"a"}
    assert set(Child.__spied__) == {"a", "b"}


def test_spied_default_and_missing_value():
    child = Child()
    assert child.a == 1
    with pytest.raises(AttributeError):
        child.b


def test_assignment_leaks_after_update():
    child = Child()
    observed: list[tuple[str, object]] = []
    child.subscribe_to_mutations(lambda s, attr: observed.append((attr, getattr(s, attr))))

    child.b = "new"
    child.a = 5

    assert observed == [("b", "new"), ("a", 5)]


def test_notify_mutation_goes_through_overridden_leak():
    class Audited(Base):
        def __init__(self):
            super().__init__()
            self.leaked: list[object] = []

        def leak(self, attribute):
            self.leaked.append(attribute)
            super().leak(attribute)

    audited = Audited()
    seen: list[object] = []
    audited.subscribe_to_mutations(lambda s, attr: seen.append(attr))

    audited.notify_mutation("a")

    assert audited.leaked == ["a"]
    assert seen == ["a"]


def test_unsubscribe_from_mutations_is_idempotent():
    child = Child()
    seen: list[object] = []
    child.subscribe_to_mutations(lambda s, a: seen.append(a))
    listener = child.mutation_listeners[0]
    child.unsubscribe_from_mutations(listener)
    child.unsubscribe_from_mutations(listener)

    child.a = 2

    assert seen == []


def test_opting_out_leaves_no_spy():
    child = Child()
    assert child.spy is None
    assert child.mutation_listeners == ()


def test_overridden_setup_spy():
    obj = Custom()
    obj.value = 3
    assert obj.events == ["value"]
    assert len(obj.mutation_listeners) == 1


def test_leak_without_listeners_is_noop():
    Child().leak("a")


def test_assignment_before_setup_is_not_logged():
    class Early(Spyable):
        level = spied(0)

        def __init__(self) -> None:
            self.level = 10
            super().__init__()

    early = Early()
    assert early.level == 10
    assert len(early.spy.log) == 0

    early.level = 11
    assert [r.value for _, r in early.spy.log.entries()] == [11]


class TestResolvers:
    def test_spied_resolver_reads_declared_attribute(self):
        child = Child()
        child.b = "x"
        resolver = SpiedAttributeResolver()
        assert resolver.resolve(child, "b") == "x"
        assert resolver.resolve(child, Child.b) == "x"

    def test_spied_resolver_rejects_undeclared(self):
        child = Child()
        child.plain = 1
        with pytest.raises(AttributeResolutionError):
            SpiedAttributeResolver().resolve(child, "plain")

    def test_getter_resolver(self):
        resolver = GetterResolver({"double": lambda obj: obj * 2})
        resolver.register("neg", lambda obj: -obj)
        assert resolver.resolve(4, "double") == 8
        assert resolver.resolve(4, "neg") == -4
        with pytest.raises(AttributeResolutionError) as excinfo:
            resolver.resolve(4, "triple")
        assert excinfo.value.subject == 4

    def test_getattr_resolver(self):
        resolver = GetattrResolver()
        assert resolver.resolve(3 + 4j, "real") == 3.0
        with pytest.raises(AttributeResolutionError):
            resolver.resolve(object(), "missing")
        with pytest.raises(AttributeResolutionError):
            resolver.resolve(object(), 42)
