from hooktrace import (
    ComponentDefinition,
    PropsUpdate,
    check_deterministic,
    mount,
    simulate,
    use_callback,
    use_memo,
    verify_definition,
)

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Defining a component")
print("-" * 100)
print()

# A component declares its state cells with initial values, its handlers with their
# dependency lists, and a render function that only reads.
Counter = ComponentDefinition(
    "Counter",
    state={"count": 0},
    handlers=[
        # Functional update: computed from the committed value, not from this render.
        use_callback("increment", lambda s: s.set("count", lambda n: n + 1), deps=[]),
    ],
    render=lambda s: f"clicked {s.state.count} times",
)

counter = mount(Counter)
print(counter.output)
print(counter.dispatch("increment"))
print(counter.dispatch("increment"))

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Verifying a script against expected outputs")
print("-" * 100)
print()

script = ["increment"] * 3
expected = ["clicked 1 times", "clicked 2 times", "clicked 3 times"]

result = verify_definition(Counter, script, expected)
print(repr(result))
print(result.report())

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("A stale closure")
print("-" * 100)
print()


# This handler reads count from the render it was bound in. With deps=[] it is bound
# once, so every click sets count to 1.
def increment_from_closure(scope):
    scope.set("count", scope.state.count + 1)


StaleCounter = ComponentDefinition(
    "StaleCounter",
    state={"count": 0},
    handlers=[use_callback("increment", increment_from_closure, deps=[])],
    render=lambda s: f"clicked {s.state.count} times",
)

result = verify_definition(StaleCounter, script, expected)
print(repr(result))
print(result.report())

# Listing count as a dependency rebinds the handler after every change.
FixedCounter = ComponentDefinition(
    "FixedCounter",
    state={"count": 0},
    handlers=[use_callback("increment", increment_from_closure, deps=["count"])],
    render=lambda s: f"clicked {s.state.count} times",
)
print(verify_definition(FixedCounter, script, expected).report())

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Memos and recomputation")
print("-" * 100)
print()

Cart = ComponentDefinition(
    "Cart",
    state={"items": [], "discount": 0},
    memos=[
        use_memo(
            "total",
            lambda s: sum(price for _, price in s.state.items) * (100 - s.state.discount) / 100,
            deps=["items", "discount"],
        ),
    ],
    handlers=[
        use_callback("add", lambda s, name, price: s.set("items", lambda i: i + [(name, price)]), []),
        use_callback("discount", lambda s, percent: s.set("discount", percent), []),
    ],
    render=lambda s: f"{len(s.state.items)} items, {s.memo.total:.2f} USD",
)

# Every trace entry records which memos recomputed and why.
trace = simulate(Cart, [("add", "tea", 4.0), ("discount", 25), ("discount", 25)])
for entry in trace:
    print(repr(entry))
    for recompute in entry.recomputed:
        print(f"    {recompute.describe()}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Props")
print("-" * 100)
print()


def render_like(scope):
    liked = scope.props.get("liked")
    if liked is None:
        return "undecided"
    return "liked" if liked else "not liked"


LikeButton = ComponentDefinition("LikeButton", props=["liked"], render=render_like)

# A misspelled prop name is never visible to the component; it is recorded instead.
result = verify_definition(
    LikeButton,
    [PropsUpdate({"liked": True}), PropsUpdate({"likability": True})],
    ["liked", "liked"],
)
print(result.report())

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Determinism")
print("-" * 100)
print()

check = check_deterministic(Cart, [("add", "jam", 3.5), ("discount", 10)])
print(f"Identical traces across fresh mounts: {check.identical}")
