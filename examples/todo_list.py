"""
Todo List Example - Parent and Child Components

A TodoList owns the items in state and renders one TodoRow per item. Each row
receives its item and the parent's toggle handler as props, and forwards its own
"toggle" event to the parent. Row handlers are addressed by key path, e.g.
"2/toggle".
"""

from hooktrace import (
    ComponentDefinition,
    HarnessConfig,
    mount,
    thaw,
    use_callback,
    use_memo,
    verify_definition,
)


def toggle_row(scope):
    scope.props.on_toggle(scope.props.item["id"])


def render_row(scope):
    item = scope.props.item
    return f"[{'x' if item['done'] else ' '}] {item['title']}"


TodoRow = ComponentDefinition(
    "TodoRow",
    props=["item", "on_toggle"],
    handlers=[use_callback("toggle", toggle_row, deps=["item", "on_toggle"])],
    render=render_row,
)


def add(scope, title):
    def append(items):
        next_id = max((item["id"] for item in items), default=0) + 1
        return items + [{"id": next_id, "title": title, "done": False}]

    scope.set("items", append)


def toggle(scope, item_id):
    scope.set(
        "items",
        lambda items: [
            {**item, "done": not item["done"]} if item["id"] == item_id else item
            for item in items
        ],
    )


def clear_done(scope):
    scope.set("items", lambda items: [item for item in items if not item["done"]])


def render_list(scope):
    rows = [
        scope.child(str(item["id"]), TodoRow, item=item, on_toggle=scope.memo.toggle)
        for item in scope.state.items
    ]
    return {"rows": rows, "remaining": scope.memo.remaining}


TodoList = ComponentDefinition(
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
    render=render_list,
)

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Driving the tree by hand")
print("-" * 100)
print()

app = mount(TodoList)
app.dispatch("add", "buy milk")
app.dispatch("add", "call the plumber")
print(app.dispatch("1/toggle"))
print(f"Mounted rows: {sorted(app.children)}")
print(app.dispatch("clear_done"))
print(f"Mounted rows: {sorted(app.children)}")

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Verifying the tree")
print("-" * 100)
print()

script = [("add", "buy milk"), ("add", "call the plumber"), "2/toggle", "clear_done"]
expected = [
    {"rows": ["[ ] buy milk"], "remaining": 1},
    {"rows": ["[ ] buy milk", "[ ] call the plumber"], "remaining": 2},
    {"rows": ["[ ] buy milk", "[x] call the plumber"], "remaining": 1},
    {"rows": ["[ ] buy milk"], "remaining": 1},
]
print(verify_definition(TodoList, script, expected).report())

# ------------------------------------------------------------------------------------------------

print()
print("=" * 100)
print("Mutating state in place")
print("-" * 100)
print()


# Appending to the current list instead of building a new one.
def add_in_place(scope, title):
    items = scope.state.items
    items.append({"id": len(items) + 1, "title": title, "done": False})
    scope.set("items", items)


BrokenList = ComponentDefinition(
    "BrokenList",
    state={"items": []},
    memos=TodoList.derived[:1],
    handlers=[
        use_callback("add", add_in_place, deps=[]),
        use_callback("toggle", toggle, deps=[]),
    ],
    render=render_list,
)

# Reads are frozen by default, so the mutation is refused on the spot.
print(verify_definition(BrokenList, script[:2], expected[:2]).report())
print()

# With freezing disabled the list changes under the renderer, the commit looks like a
# no-op and the output is never refreshed.
unfrozen = HarnessConfig(freeze_reads=False)
print(verify_definition(BrokenList, script[:2], expected[:2], config=unfrozen).report())
print()


# thaw() hands out a private mutable copy that can be edited and then committed.
def add_from_copy(scope, title):
    items = thaw(scope.state.items)
    items.append({"id": len(items) + 1, "title": title, "done": False})
    scope.set("items", items)


FixedList = ComponentDefinition(
    "FixedList",
    state={"items": []},
    memos=TodoList.derived[:1],
    handlers=[
        use_callback("add", add_from_copy, deps=[]),
        use_callback("toggle", toggle, deps=[]),
    ],
    render=render_list,
)
print(verify_definition(FixedList, script[:3], expected[:3]).report())
