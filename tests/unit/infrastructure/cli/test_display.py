import json

import pytest
from unittest.mock import MagicMock
from rich.panel import Panel
from rich.table import Table

from bggproxy.domain.models import Thing
from bggproxy.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object for stdout."""
    return MagicMock()


@pytest.fixture
def mock_error_console():
    """Fixture to create a mock rich Console object for stderr."""
    return MagicMock()


@pytest.fixture
def console_display(mock_console: MagicMock, mock_error_console: MagicMock):
    return ConsoleDisplay(console=mock_console, error_console=mock_error_console)


def test_display_json(console_display: ConsoleDisplay, mock_console: MagicMock):
    """JSON goes to stdout through print_json."""
    console_display.display_json({"id": "13", "name": "CATAN"})

    mock_console.print_json.assert_called_once()
    (text,), _ = mock_console.print_json.call_args
    assert json.loads(text) == {"id": "13", "name": "CATAN"}


def test_display_things_table(console_display: ConsoleDisplay, mock_console: MagicMock):
    things = [Thing(id="13", name="CATAN", year_published=1995, rank=1), Thing(id="822", name="Carcassonne")]

    console_display.display_things_table(things, title="Hot items")

    (table,), _ = mock_console.print.call_args
    assert isinstance(table, Table)
    assert table.title == "Hot items"
    assert table.row_count == 2


def test_display_error_goes_to_stderr(console_display: ConsoleDisplay, mock_console: MagicMock, mock_error_console: MagicMock):
    """Errors are rendered in a panel on the error console, never on stdout."""
    console_display.display_error("Something went wrong", hint="try again")

    mock_console.print.assert_not_called()
    (panel,), _ = mock_error_console.print.call_args
    assert isinstance(panel, Panel)
    assert "Something went wrong" in panel.renderable
    assert "try again" in panel.renderable


def test_display_info_goes_to_stderr(console_display: ConsoleDisplay, mock_error_console: MagicMock):
    console_display.display_info("Process completed")
    mock_error_console.print.assert_called_once_with("[cyan]Process completed[/cyan]")


def test_console_property(console_display: ConsoleDisplay, mock_console: MagicMock):
    assert console_display.console is mock_console
