"""
Shared pytest fixtures for hooktrace tests.

Each fixture returns a fresh ComponentDefinition modelled on one of the
defect patterns the harness is meant to catch, plus its corrected form.
Definitions are immutable declarations, so every test mounts its own
instance and no state leaks between tests.
"""

import pytest

from hooktrace import ComponentDefinition, HarnessConfig, use_callback, use_memo


def _increment(scope):
    scope.set("count", lambda n: n + 1)


def _increment_from_closure(scope):
    # Reads the count captured by the render this handler was bound in
    scope.set("count", scope.state.count + 1)


@pytest.fixture
def counter():
    """Counter with a functional update and an empty dependency list."""
    return ComponentDefinition(
        "Counter",
        state={"count": 0},
        handlers=[use_callback("increment", _increment, deps=[])],
        render=lambda s: s.state.count,
    )


@pytest.fixture
def stale_counter():
    """Counter whose handler closes over count but declares no dependencies."""
    return ComponentDefinition(
        "StaleCounter",
        state={"count": 0},
        handlers=[use_callback("increment", _increment_from_closure, deps=[])],
        render=lambda s: s.state.count,
    )


@pytest.fixture
def like_button():
    """Renders a label from the ``liked`` prop, falling back to 'undecided'."""

    def render(scope):
        liked = scope.props.get("liked")
        if liked is None:
            return "undecided"
        return "liked" if liked else "not liked"

    return ComponentDefinition("LikeButton", props=["liked"], render=render)


@pytest.fixture
def shopping_cart():
    """Cart with a memoized total and an item list kept in state."""

    def add(scope, name, price):
        scope.set("items", lambda items: items + [{"name": name, "price": price}])

    def set_discount(scope, percent):
        scope.set("discount", percent)

    def render(scope):
        return {
            "count": len(scope.state.items),
            "total": scope.memo.total,
            "label": scope.memo.label,
        }

    return ComponentDefinition(
        "ShoppingCart",
        state={"items": [], "discount": 0},
        memos=[
            use_memo(
                "total",
                lambda s: round(
                    sum(item["price"] for item in s.state.items)
                    * (100 - s.state.discount)
                    / 100,
                    2,
                ),
                deps=["items", "discount"],
            ),
            use_memo("label", lambda s: f"{s.memo.total:.2f} USD", deps=["total"]),
        ],
        handlers=[
            use_callback("add", add, deps=[]),
            use_callback("discount", set_discount, deps=[]),
        ],
        render=render,
    )


def _next_id(items):
    return max((item["id"] for item in items), default=0) + 1


@pytest.fixture
def todo_row():
    """Child row: renders one item and forwards toggles to the parent."""

    def toggle(scope):
        scope.props.on_toggle(scope.props.item["id"])

    def render(scope):
        item = scope.props.item
        mark = "x" if item["done"] else " "
        return f"[{mark}] {item['title']}"

    return ComponentDefinition(
        "TodoRow",
        props=["item", "on_toggle"],
        handlers=[use_callback("toggle", toggle, deps=["item", "on_toggle"])],
        render=render,
    )


@pytest.fixture
def todo_list(todo_row):
    """Parent list owning the items and rendering one TodoRow per item."""

    def add(scope, title):
        scope.set(
            "items",
            lambda items: items
            + [{"id": _next_id(items), "title": title, "done": False}],
        )

    def toggle(scope, item_id):
        scope.set(
            "items",
            lambda items: [
                {**item, "done": not item["done"]} if item["id"] == item_id else item
                for item in items
            ],
        )

    def clear_done(scope):
        scope.set("items", lambda items: [i for i in items if not i["done"]])

    def render(scope):
        rows = [
            scope.child(
                str(item["id"]), todo_row, item=item, on_toggle=scope.memo.toggle
            )
            for item in scope.state.items
        ]
        return {"rows": rows, "remaining": scope.memo.remaining}

    return ComponentDefinition(
        "TodoList",
        state={"items": []},
        memos=[
            use_memo(
                "remaining",
                lambda s: sum(1 for item in s.state.items if not item["done"]),
                deps=["items"],
            )
        ],
        handlers=[
            use_callback("add", add, deps=[]),
            use_callback("toggle", toggle, deps=[]),
            use_callback("clear_done", clear_done, deps=[]),
        ],
        render=render,
    )


@pytest.fixture
def unfrozen_config():
    """Config that hands out raw state values, reproducing in-place mutation."""
    return HarnessConfig(freeze_reads=False)
