"""
In-memory accessibility tree that implements UIDriver for engine tests.

Nodes carry a role, an accessible name and optional callbacks that mimic
what the real form does on click, typing or keys. Queries are lazy and are
re-resolved on every driver call, like Playwright locators.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterator, List, Optional, Pattern, Sequence

from uciforms.core.interfaces import UIDriver
from uciforms.error_handling.exceptions import BrowserError

# Roles whose displayed text defaults to their accessible name.
NAMED_TEXT_ROLES = {
    "option", "button", "link", "gridcell", "heading", "listitem",
    "alert", "menuitem", "columnheader",
}

# Roles rendered as <input>/<textarea>; only these have an input value.
EDITABLE_ROLES = {"textbox", "searchbox", "spinbutton"}


class FakeNode:
    """One element of the fake accessibility tree."""

    def __init__(
        self,
        role: str,
        name: str = "",
        *,
        text: Optional[str] = None,
        value: str = "",
        visible: bool = True,
        checked: bool = False,
        attrs: Optional[Dict[str, str]] = None,
        children: Sequence["FakeNode"] = (),
        editable: Optional[bool] = None,
    ) -> None:
        self.role = role
        self.name = name
        self.text = text if text is not None else (name if role in NAMED_TEXT_ROLES else "")
        self.value = value
        self.editable = role in EDITABLE_ROLES if editable is None else editable
        self.visible = visible
        self.checked = checked
        self.attrs = dict(attrs or {})
        self.parent: Optional["FakeNode"] = None
        self._children: List["FakeNode"] = []

        self.on_click: Optional[Callable[["FakeNode"], None]] = None
        self.on_dblclick: Optional[Callable[["FakeNode"], None]] = None
        self.on_type: Optional[Callable[["FakeNode"], None]] = None
        self.on_key: Optional[Callable[["FakeNode", str], None]] = None
        self.on_blur: Optional[Callable[["FakeNode"], None]] = None
        self.add(*children)

    def __repr__(self) -> str:
        return f"<{self.role} {self.name!r}>"

    def add(self, *nodes: "FakeNode") -> "FakeNode":
        for node in nodes:
            node.parent = self
            self._children.append(node)
        return self

    def remove(self, node: "FakeNode") -> None:
        if node in self._children:
            self._children.remove(node)
            node.parent = None

    def detach(self) -> None:
        if self.parent is not None:
            self.parent.remove(self)

    @property
    def children(self) -> List["FakeNode"]:
        return list(self._children)

    def walk(self) -> Iterator["FakeNode"]:
        """Rendered descendants in document order; hidden subtrees are skipped."""
        for child in self.children:
            if not child.visible:
                continue
            yield child
            yield from child.walk()

    def full_text(self) -> str:
        parts = [self.text] + [child.full_text() for child in self.children if child.visible]
        return " ".join(part for part in parts if part)


class VirtualList(FakeNode):
    """A container that only renders a window of its items."""

    def __init__(
        self,
        role: str,
        name: str,
        items: Sequence[str],
        *,
        window: int = 5,
        row_height: int = 40,
        make_item: Optional[Callable[[str], FakeNode]] = None,
        footer: Sequence[FakeNode] = (),
    ) -> None:
        super().__init__(role, name)
        self.items = list(items)
        self.window = window
        self.row_height = row_height
        self.offset = 0
        self.scrolls = 0
        self.make_item = make_item or (lambda item: FakeNode("option", item))
        self._item_nodes: Dict[int, FakeNode] = {}
        self.footer = list(footer)
        for node in self.footer:
            node.parent = self

    def item_node(self, index: int) -> FakeNode:
        if index not in self._item_nodes:
            node = self.make_item(self.items[index])
            node.parent = self
            self._item_nodes[index] = node
        return self._item_nodes[index]

    @property
    def children(self) -> List[FakeNode]:
        end = min(self.offset + self.window, len(self.items))
        return [self.item_node(i) for i in range(self.offset, end)] + self.footer

    def scroll(self, delta: Optional[int] = None) -> None:
        self.scrolls += 1
        rows = self.window if delta is None else max(1, delta // self.row_height)
        self.offset = min(self.offset + rows, max(0, len(self.items) - self.window))

    def replace_items(self, items: Sequence[str]) -> None:
        self.items = list(items)
        self.offset = 0
        self._item_nodes = {}


@dataclass(eq=False)
class FakeQuery:
    """Lazy query; resolved against the live tree on every call."""

    ui: "FakeUI"
    role: Optional[str] = None
    name: Optional[Pattern[str]] = None
    within: Optional["FakeQuery"] = None
    has_text: Optional[Pattern[str]] = None
    has: Optional["FakeQuery"] = None
    index: Optional[int] = 0
    text: Optional[Pattern[str]] = None
    attributes: Optional[Dict[str, str]] = None

    def resolve(self, base: Optional[FakeNode] = None) -> List[FakeNode]:
        if self.within is not None:
            scopes = self.within.resolve(base)
        else:
            scopes = [base if base is not None else self.ui.root]

        found: List[FakeNode] = []
        for scope in scopes:
            for node in scope.walk():
                if self._accepts(node) and not any(node is seen for seen in found):
                    found.append(node)

        if self.index is None:
            return found
        try:
            return [found[self.index]]
        except IndexError:
            return []

    def _accepts(self, node: FakeNode) -> bool:
        if self.text is not None:
            return bool(node.text) and self.text.search(node.text) is not None
        if node.role != self.role:
            return False
        if self.name is not None and not self.name.search(node.name):
            return False
        if self.has_text is not None and not self.has_text.search(node.full_text()):
            return False
        if self.has is not None and not self.has.resolve(node):
            return False
        if self.attributes and any(node.attrs.get(k) != v for k, v in self.attributes.items()):
            return False
        return True


class FakeUI(UIDriver):
    """UIDriver over a FakeNode tree that records every action."""

    def __init__(self, root: Optional[FakeNode] = None) -> None:
        self.root = root or FakeNode("document", "page")
        self.actions: List[tuple] = []
        self.probes: List[tuple] = []
        self.responses = True
        self.failing_clicks = 0
        self.url: Optional[str] = None

    def add(self, *nodes: FakeNode) -> FakeNode:
        self.root.add(*nodes)
        return nodes[0] if nodes else self.root

    def actions_named(self, kind: str) -> List[tuple]:
        return [action for action in self.actions if action[0] == kind]

    def _one(self, handle: FakeQuery, action: str) -> FakeNode:
        nodes = handle.resolve()
        if not nodes:
            raise BrowserError(f"{action}: no element for {handle.role}", action=action)
        return nodes[0]

    # queries

    def query(self, role, name=None, *, within=None, has_text=None, has=None, index=0, attributes=None):
        return FakeQuery(self, role, name, within, has_text, has, index, attributes=attributes)

    def query_text(self, pattern, *, within=None, index=0):
        return FakeQuery(self, None, None, within, None, None, index, text=pattern)

    async def count(self, handle):
        return len(handle.resolve())

    async def is_visible(self, handle, timeout_ms):
        self.probes.append((handle.role, timeout_ms))
        return bool(handle.resolve())

    async def wait_hidden(self, handle, timeout_ms):
        return not handle.resolve()

    # actions

    async def click(self, handle):
        if self.failing_clicks:
            self.failing_clicks -= 1
            raise BrowserError(
                "element was detached during click", action="click", retry_delay_ms=0
            )
        node = self._one(handle, "click")
        self.actions.append(("click", node.role, node.name))
        if node.on_click is not None:
            node.on_click(node)
        elif node.role == "checkbox":
            node.checked = not node.checked
        elif node.role == "switch":
            node.attrs["aria-checked"] = "false" if node.attrs.get("aria-checked") == "true" else "true"

    async def double_click(self, handle):
        node = self._one(handle, "double_click")
        self.actions.append(("double_click", node.role, node.name))
        if node.on_dblclick is not None:
            node.on_dblclick(node)

    async def fill(self, handle, text):
        node = self._one(handle, "fill")
        self.actions.append(("fill", node.role, node.name, text))
        node.value = text

    async def type_text(self, handle, text, delay_ms=0):
        node = self._one(handle, "type_text")
        self.actions.append(("type", node.role, node.name, text))
        node.value += text
        if node.on_type is not None:
            node.on_type(node)

    async def press_key(self, handle, key):
        node = self._one(handle, "press_key")
        self.actions.append(("press", node.role, node.name, key))
        if node.on_key is not None:
            node.on_key(node, key)

    async def blur(self, handle):
        node = self._one(handle, "blur")
        self.actions.append(("blur", node.role, node.name))
        if node.on_blur is not None:
            node.on_blur(node)

    async def read_text(self, handle):
        return self._one(handle, "read_text").full_text()

    async def read_value(self, handle):
        node = self._one(handle, "read_value")
        if not node.editable:
            raise BrowserError(
                "read_value: Node is not an <input>, <textarea> or <select> element",
                action="read_value",
            )
        return node.value

    async def get_attribute(self, handle, name):
        return self._one(handle, "get_attribute").attrs.get(name)

    async def is_checked(self, handle):
        return self._one(handle, "is_checked").checked

    async def scroll_by(self, handle, delta=None):
        node = self._one(handle, "scroll_by")
        self.actions.append(("scroll", node.role, node.name, delta))
        if isinstance(node, VirtualList):
            node.scroll(delta)

    async def scroll_into_view(self, handle):
        node = self._one(handle, "scroll_into_view")
        self.actions.append(("scroll_into_view", node.role, node.name))

    async def wait_for_response(self, url_pattern, timeout_ms):
        self.actions.append(("wait_response", url_pattern.pattern, timeout_ms))
        return self.responses

    async def navigate(self, url):
        self.actions.append(("navigate", url))
        self.url = url


# --------------------------------------------------------------------- fields


class LookupField:
    """A lookup with a virtualized result list and an advanced-find dialog."""

    def __init__(
        self,
        ui: FakeUI,
        label: str,
        records: Sequence[str],
        *,
        window: int = 5,
        dialog_records: Optional[Sequence[str]] = None,
        more_records_option: bool = True,
        trigger_button: bool = True,
        dialog_opens: bool = True,
        commit_on_double_click: bool = True,
        selected: Optional[str] = None,
    ) -> None:
        self.ui = ui
        self.label = label
        self.records = list(records)
        self.window = window
        self.dialog_records = list(dialog_records if dialog_records is not None else records)
        self.more_records_option = more_records_option
        self.dialog_opens = dialog_opens
        self.commit_on_double_click = commit_on_double_click

        self.selected: Optional[str] = None
        self.listbox: Optional[VirtualList] = None
        self.dialog: Optional[FakeNode] = None
        self.chip: Optional[FakeNode] = None
        self.delete_button: Optional[FakeNode] = None
        self.dialog_triggers = 0
        self.scrolls_at_trigger: Optional[int] = None

        self.group = FakeNode("group", label)
        self.input = FakeNode("combobox", f"{label}, Lookup", editable=True)
        self.input.on_type = self._show_results
        self.input.on_key = self._on_key
        self.group.add(self.input)
        if trigger_button:
            button = FakeNode("button", "Search for more records")
            button.on_click = lambda node: self.open_dialog()
            self.group.add(button)
        ui.add(self.group)
        if selected:
            self.choose(selected)

    def _show_results(self, node: FakeNode) -> None:
        self.close_list()
        footer = []
        if self.more_records_option:
            more = FakeNode("option", "Look up more records")
            more.on_click = lambda n: self.open_dialog()
            footer.append(more)
        self.listbox = VirtualList(
            "listbox",
            f"{self.label} results",
            self.records,
            window=self.window,
            make_item=self._make_option,
            footer=footer,
        )
        self.ui.add(self.listbox)

    def _make_option(self, record: str) -> FakeNode:
        option = FakeNode("option", record)
        option.on_click = lambda n: self.choose(record)
        return option

    def _on_key(self, node: FakeNode, key: str) -> None:
        if key == "Alt+ArrowDown":
            self.open_dialog()
        elif key == "Escape":
            self.close_list()

    def close_list(self) -> None:
        if self.listbox is not None:
            self.listbox.detach()

    def choose(self, record: str) -> None:
        self.close_list()
        self.clear()
        self.selected = record
        self.input.value = ""
        self.chip = FakeNode("listitem", record)
        self.delete_button = FakeNode("button", f"Delete {record}")
        self.delete_button.on_click = lambda n: self.clear()
        self.group.add(self.chip, self.delete_button)

    def clear(self) -> None:
        if self.chip is not None:
            self.chip.detach()
            self.delete_button.detach()
            self.chip = None
        self.selected = None

    def open_dialog(self) -> None:
        self.dialog_triggers += 1
        self.scrolls_at_trigger = self.listbox.scrolls if self.listbox is not None else None
        self.close_list()
        if not self.dialog_opens:
            return

        self.dialog = FakeNode("dialog", "Lookup Records")
        self.dialog.add(FakeNode("heading", "Lookup Records"))
        search = FakeNode("textbox", "Search records")
        grid = FakeNode("grid", "Records")
        search.on_key = lambda node, key: self._filter(grid, node.value) if key == "Enter" else None
        for record in self.dialog_records:
            row = FakeNode("row", record)
            row.add(FakeNode("checkbox", f"Select {record}"), FakeNode("gridcell", record))
            row.on_dblclick = self._double_clicked(record)
            grid.add(row)
        add = FakeNode("button", "Add")
        add.on_click = lambda n: self._confirm(grid)
        self.dialog.add(search, grid, add, FakeNode("button", "Cancel"))
        self.ui.add(self.dialog)

    def _double_clicked(self, record: str) -> Callable[[FakeNode], None]:
        def handler(node: FakeNode) -> None:
            if self.commit_on_double_click:
                self.choose(record)
                self.dialog.detach()
        return handler

    def _filter(self, grid: FakeNode, text: str) -> None:
        for row in grid.children:
            row.visible = text.lower() in row.name.lower()

    def _confirm(self, grid: FakeNode) -> None:
        for row in grid.children:
            if row.visible and row.children[0].checked:
                self.choose(row.name)
        self.dialog.detach()


class OptionSetField:
    """A fully rendered option set, single- or multi-select."""

    def __init__(
        self,
        ui: FakeUI,
        label: str,
        options: Sequence[str],
        *,
        selected: Sequence[str] = (),
        multi: bool = False,
    ) -> None:
        self.ui = ui
        self.label = label
        self.options = list(options)
        self.multi = multi
        self.selected: List[str] = list(selected)
        self.listbox: Optional[FakeNode] = None

        self.group = FakeNode("group", label)
        self.combobox = FakeNode("combobox", label)
        self.combobox.on_click = self._open
        self.combobox.on_key = lambda node, key: self._close() if key == "Escape" else None
        self.group.add(self.combobox)
        ui.add(self.group)
        self._render_selection()

    def _open(self, node: FakeNode) -> None:
        self._close()
        self.listbox = FakeNode("listbox", self.label)
        for option in self.options:
            child = FakeNode(
                "option",
                option,
                attrs={"aria-selected": "true" if option in self.selected else "false"},
            )
            child.on_click = self._picked(option)
            self.listbox.add(child)
        self.ui.add(self.listbox)

    def _close(self) -> None:
        if self.listbox is not None:
            self.listbox.detach()
            self.listbox = None

    def _picked(self, option: str) -> Callable[[FakeNode], None]:
        def handler(node: FakeNode) -> None:
            if self.multi:
                if option in self.selected:
                    self.selected.remove(option)
                else:
                    self.selected.append(option)
                node.attrs["aria-selected"] = "true" if option in self.selected else "false"
            else:
                self.selected = [option]
                self._close()
            self._render_selection()
        return handler

    def _render_selection(self) -> None:
        for child in self.group.children:
            if child.role == "listitem":
                self.group.remove(child)
        if self.multi:
            self.combobox.text = ""
            for option in self.selected:
                self.group.add(FakeNode("listitem", option))
        else:
            self.combobox.text = self.selected[0] if self.selected else "---"


class CalendarPopup:
    """A month-view calendar opened from a date field."""

    def __init__(
        self,
        ui: FakeUI,
        year: int,
        month: int,
        on_pick: Callable[[date], None],
        *,
        nav_buttons: bool = True,
        stuck: bool = False,
        heading_format: str = "{month_name} {year}",
    ) -> None:
        self.ui = ui
        self.year = year
        self.month = month
        self.on_pick = on_pick
        self.stuck = stuck
        self.heading_format = heading_format
        self.next_clicks = 0
        self.previous_clicks = 0
        self.page_keys = 0

        self.node = FakeNode("dialog", "Calendar")
        self.heading = FakeNode("heading", "")
        self.grid = FakeNode("grid", "Days")
        self.node.add(self.heading)
        if nav_buttons:
            previous = FakeNode("button", "Previous month")
            previous.on_click = lambda n: self._hop(-1)
            following = FakeNode("button", "Go to next month")
            following.on_click = lambda n: self._hop(1)
            self.node.add(previous, following)
        self.node.on_key = self._on_key
        self.node.add(self.grid)
        self._render()
        ui.add(self.node)

    def _on_key(self, node: FakeNode, key: str) -> None:
        if key in ("PageDown", "PageUp"):
            self.page_keys += 1
            self._hop(1 if key == "PageDown" else -1)

    def _hop(self, step: int) -> None:
        if step > 0:
            self.next_clicks += 1
        else:
            self.previous_clicks += 1
        if self.stuck:
            return
        index = self.year * 12 + (self.month - 1) + step
        self.year, self.month = divmod(index, 12)
        self.month += 1
        self._render()

    def _render(self) -> None:
        self.heading.text = self.heading_format.format(
            month_name=calendar.month_name[self.month],
            month_abbr=calendar.month_abbr[self.month],
            year=self.year,
        )
        self.heading.name = self.heading.text
        for row in self.grid.children:
            self.grid.remove(row)
        days = calendar.monthrange(self.year, self.month)[1]
        for day in range(1, days + 1):
            cell = FakeNode("gridcell", "", text="")
            button = FakeNode("button", str(day))
            button.on_click = self._picked(day)
            cell.add(button)
            self.grid.add(cell)

    def _picked(self, day: int) -> Callable[[FakeNode], None]:
        def handler(node: FakeNode) -> None:
            self.on_pick(date(self.year, self.month, day))
            self.node.detach()
        return handler

    @property
    def open(self) -> bool:
        return self.node.parent is not None


class DateField:
    """A date textbox that may or may not accept typed input."""

    def __init__(
        self,
        ui: FakeUI,
        label: str,
        *,
        typed_sticks: bool = True,
        display_format: str = "%d/%m/%Y",
        shows: tuple = (2024, 1),
        role: str = "textbox",
        **calendar_options,
    ) -> None:
        self.ui = ui
        self.typed_sticks = typed_sticks
        self.display_format = display_format
        self.shows = shows
        self.calendar_options = calendar_options
        self.popup: Optional[CalendarPopup] = None

        self.group = FakeNode("group", label)
        self.input = FakeNode(role, f"{label}*")
        self.input.on_key = self._on_key
        button = FakeNode("button", "Open calendar")
        button.on_click = lambda n: self.open_calendar()
        self.group.add(self.input, button)
        ui.add(self.group)

    def _on_key(self, node: FakeNode, key: str) -> None:
        if key != "Enter":
            return
        match = re.match(r"^(\d{2})/(\d{2})/(\d{4})$", node.value)
        if self.typed_sticks and match:
            day, month, year = (int(part) for part in match.groups())
            self._show(date(year, month, day))
        else:
            node.value = ""

    def _show(self, picked: date) -> None:
        self.input.value = picked.strftime(self.display_format)
        if not self.input.editable:
            self.input.text = self.input.value

    def open_calendar(self) -> None:
        self.popup = CalendarPopup(self.ui, *self.shows, self._show, **self.calendar_options)


class GridView:
    """
    A record list with a quick-find box and a virtualized body.

    The primary column is "Account Name" (logical name ``name``). Passing
    ``parents`` adds a "Parent Account" column holding another record's name.
    """

    def __init__(
        self,
        ui: FakeUI,
        records: Sequence[str],
        *,
        window: int = 10,
        parents: Optional[Dict[str, str]] = None,
    ) -> None:
        self.ui = ui
        self.records = list(records)
        self.parents = dict(parents or {})
        self.opened: Optional[str] = None

        self.search = FakeNode("textbox", "Search this view")
        self.search.on_key = lambda node, key: self._filter(node.value) if key == "Enter" else None
        self.grid = FakeNode("grid", "Active Accounts")
        header_row = FakeNode("row", "Column headers")
        header_row.add(FakeNode("columnheader", "Account Name", attrs={"aria-colindex": "2"}))
        if parents is not None:
            header_row.add(FakeNode("columnheader", "Parent Account", attrs={"aria-colindex": "3"}))
        header = FakeNode("rowgroup", "header", children=[header_row])
        self.body = VirtualList(
            "rowgroup",
            "body",
            self.records,
            window=window,
            row_height=800 // window,
            make_item=self._make_row,
        )
        self.grid.add(header, self.body)
        ui.add(self.search, self.grid)

    def _make_row(self, record: str) -> FakeNode:
        row = FakeNode("row", record)
        link = FakeNode("link", record)
        link.on_click = lambda n: setattr(self, "opened", record)
        cell = FakeNode(
            "gridcell", record, text="", attrs={"aria-colindex": "2", "data-id": "cell-name"}
        )
        cell.add(link)
        row.add(FakeNode("checkbox", "Select or deselect the row"), cell)
        if record in self.parents:
            row.add(FakeNode(
                "gridcell",
                self.parents[record],
                attrs={"aria-colindex": "3", "data-id": "cell-parentaccountid"},
            ))
        return row

    def _filter(self, text: str) -> None:
        self.body.replace_items([r for r in self.records if text.lower() in r.lower()])

    def row_checkbox(self, record: str) -> FakeNode:
        index = self.body.items.index(record)
        return self.body.item_node(index).children[0]
