"""
Integration tests for write propagation between stored and computed
attributes.
"""

import pytest

from attrflow import Model, ReadOnlyAttributeError, computed, stored


@pytest.mark.integration
def test_equal_write_is_a_no_op(person_cls, calls):
    """Writing the cached value again recomputes nothing"""
    person = person_cls(name="John", surname="Snow")
    before = calls["fullname"]

    person.set("surname", "Snow")
    person.surname = "Snow"

    assert calls["fullname"] == before
    assert person.fullname == "John Snow"


@pytest.mark.integration
def test_construction_seeds_dependents(person_cls):
    """Constructing with name and surname seeds fullname"""
    person = person_cls(name="John", surname="Snow")
    assert person.get("fullname") == "John Snow"


@pytest.mark.integration
def test_update_recomputes_exactly_once(person_cls, calls):
    person = person_cls(name="John", surname="Snow")
    before = calls["fullname"]

    person.set("surname", "Stark")

    assert person.get("fullname") == "John Stark"
    assert calls["fullname"] == before + 1


@pytest.mark.integration
def test_direct_mode_does_not_refresh_second_order_dependents(chain_cls, calls):
    """Setting a updates b but leaves c stale until re-seeded"""
    Chain = chain_cls()
    chain = Chain(a=1)
    chain.refresh("c")
    assert (chain.a, chain.b, chain.c) == (1, 2, 3)

    chain.a = 10

    assert chain.b == 20
    assert chain.c == 3
    assert calls["c"] == 1

    chain.refresh("c")
    assert chain.c == 21


@pytest.mark.integration
def test_computed_read_before_any_write_is_none(person_cls, calls):
    person = person_cls()

    assert person.get("fullname") is None
    assert person.fullname is None
    assert not person.is_set("fullname")
    assert calls["fullname"] == 0


@pytest.mark.integration
@pytest.mark.parametrize("value", [None, "John Snow", 0, [], object()])
def test_setting_a_computed_attribute_always_raises(person_cls, value):
    person = person_cls(name="John", surname="Snow")

    with pytest.raises(ReadOnlyAttributeError):
        person.set("fullname", value)
    assert person.fullname == "John Snow"


@pytest.mark.integration
def test_transitive_mode_refreshes_the_whole_chain(chain_cls, calls):
    Chain = chain_cls(propagation="transitive")
    chain = Chain(a=1)

    assert (chain.b, chain.c) == (2, 3)
    chain.a = 10
    assert (chain.b, chain.c) == (20, 21)
    assert calls == {"b": 2, "c": 2}


@pytest.mark.integration
def test_transitive_mode_evaluates_dependencies_first():
    order = []

    class Diamond(Model, propagation="transitive"):
        x = stored()

        @computed("left", "right")
        def bottom(self):
            order.append("bottom")
            return (self.left, self.right)

        @computed("x")
        def left(self):
            order.append("left")
            return self.x - 1

        @computed("x")
        def right(self):
            order.append("right")
            return self.x + 1

    diamond = Diamond(x=5)

    assert diamond.bottom == (4, 6)
    assert order == ["left", "right", "bottom"]


@pytest.mark.integration
def test_direct_dependents_refresh_in_registration_order():
    order = []

    class Report(Model):
        data = stored()

        @computed("data")
        def summary(self):
            order.append("summary")
            return len(self.data)

        @computed("data")
        def header(self):
            order.append("header")
            return self.data[:1]

    Report(data="abc")
    assert order == ["summary", "header"]


@pytest.mark.integration
def test_listing_both_hops_keeps_a_chain_fresh_in_direct_mode():
    """Declaring the stored root as a direct dependency avoids staleness"""

    class Prices(Model):
        net = stored(0)
        rate = stored(0)

        @computed("net", "rate")
        def tax(self):
            return self.net * self.rate

        @computed("net", "rate", "tax")
        def gross(self):
            return self.net + (self.tax or 0)

    prices = Prices(net=100, rate=0.25)
    assert prices.gross == 125.0

    prices.net = 200
    assert prices.tax == 50.0
    assert prices.gross == 250.0


@pytest.mark.integration
def test_instances_do_not_share_state(person_cls):
    john = person_cls(name="John", surname="Snow")
    arya = person_cls(name="Arya", surname="Stark")

    john.surname = "Targaryen"

    assert john.fullname == "John Targaryen"
    assert arya.fullname == "Arya Stark"


@pytest.mark.integration
def test_subclass_override_replaces_inherited_edges():
    """An overriding subclass gets a fresh registry without the old edges"""

    class Sheet(Model):
        a = stored()
        b = stored()

        @computed("a")
        def c(self):
            return "old"

    class Override(Sheet):
        @computed("b")
        def c(self):
            return f"new {self.b}"

    sheet = Override(a=1, b=2)

    assert sheet.c == "new 2"
    assert Override.__registry__.dependents_of("a") == ()
    assert Sheet.__registry__.dependents_of("a") == ("c",)
