"""
Shared pytest fixtures and configuration for attrflow tests.
"""

from collections import Counter

import pytest

from attrflow import Model, computed, stored


@pytest.fixture
def calls():
    """Counts recompute function invocations by attribute name."""
    return Counter()


@pytest.fixture
def person_cls(calls):
    """A fresh Person model whose fullname recomputations are counted."""

    class Person(Model):
        name = stored()
        surname = stored()

        @computed("name", "surname")
        def fullname(self):
            calls["fullname"] += 1
            return f"{self.name} {self.surname}"

    return Person


@pytest.fixture
def chain_cls(calls):
    """Factory for a stored a -> computed b -> computed c chain."""

    def make(**options):
        class Chain(Model, **options):
            a = stored()

            @computed("a")
            def b(self):
                calls["b"] += 1
                return self.a * 2

            @computed("b")
            def c(self):
                calls["c"] += 1
                return None if self.b is None else self.b + 1

        return Chain

    return make
