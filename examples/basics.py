from attrflow import Model, ReadOnlyAttributeError, computed, make_model, stored

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Defining a model")
print("-" * 100)
print()


# Stored attributes hold plain values, computed attributes are derived from them.
class Person(Model):
    name = stored()
    surname = stored()

    @computed("name", "surname")
    def fullname(self):
        return f"{self.name} {self.surname}"


# Constructor values are written through the accessor, so fullname is ready.
person = Person(name="John", surname="Snow")
print(person.fullname)  # John Snow

# Every write refreshes the computed attributes that depend on it.
person.surname = "Stark"
print(person.fullname)  # John Stark

# Computed attributes are read-only.
try:
    person.fullname = "Somebody Else"
except ReadOnlyAttributeError as e:
    print(f"Rejected: {e}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("One hop at a time")
print("-" * 100)
print()


class Chain(Model):
    a = stored(1)

    @computed("a")
    def b(self):
        return self.a * 2

    # c depends on b only, so writing a does not refresh it
    @computed("b")
    def c(self):
        return None if self.b is None else self.b + 1


chain = Chain()
print(chain.c)  # None, never seeded
chain.refresh("c")
print(chain.c)  # 3
chain.a = 10
print(chain.b, chain.c)  # 20 3


# Opting into transitive propagation refreshes the whole chain.
class TransitiveChain(Chain, propagation="transitive"):
    pass


chain = TransitiveChain()
chain.a = 10
print(chain.b, chain.c)  # 20 21

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Models from configuration")
print("-" * 100)
print()

Cart = make_model(
    "Cart",
    stored={"price": 10.0, "quantity": 1},
    computed={
        "total": (["price", "quantity"], lambda cart: cart.price * cart.quantity),
    },
)

cart = Cart()
cart.quantity = 3
print(cart)  # Cart(price=10.0, quantity=3, total=30.0)
print(cart.snapshot().as_dict())
