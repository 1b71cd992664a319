import pytest
from unittest.mock import MagicMock

from rich.json import JSON
from rich.panel import Panel
from rich.table import Table

from formacli.infrastructure.cli.display import ConsoleDisplay, format_retry_time


@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()


@pytest.fixture
def console_display(mock_console: MagicMock):
    return ConsoleDisplay(console=mock_console)


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (None, "a few seconds"),
        (1, "1 second"),
        (0.2, "1 second"),
        (45, "45 seconds"),
        (60, "1 minute"),
        (61, "2 minutes"),
        (900, "15 minutes"),
        (3600, "1 hour"),
        (7201, "3 hours"),
    ],
)
def test_format_retry_time(seconds, expected):
    assert format_retry_time(seconds) == expected


def test_record_list_is_rendered_as_table(console_display: ConsoleDisplay, mock_console: MagicMock):
    rows = [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Linus", "city": None}]

    console_display.display_output(rows, title="candidates")

    (table,), _ = mock_console.print.call_args
    assert isinstance(table, Table)
    assert [c.header for c in table.columns] == ["id", "name", "city"]
    assert table.row_count == 2


def test_nested_data_is_rendered_as_json(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_output({"total": 3, "items": [1, 2, 3]})

    (rendered,), _ = mock_console.print.call_args
    assert isinstance(rendered, JSON)


def test_wide_record_list_falls_back_to_json(console_display: ConsoleDisplay, mock_console: MagicMock):
    row = {f"col{i}": i for i in range(12)}

    console_display.display_output([row])

    (rendered,), _ = mock_console.print.call_args
    assert isinstance(rendered, JSON)


def test_text_and_empty_output(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_output("OK")
    console_display.display_output("")

    assert mock_console.print.call_args_list[0].args == ("OK",)
    assert "empty response" in mock_console.print.call_args_list[1].args[0]


def test_display_error(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_error("Something went wrong")

    (panel,), _ = mock_console.print.call_args
    assert isinstance(panel, Panel)
    assert "Error" in panel.title
    assert panel.renderable.plain == "Something went wrong"


def test_display_rate_limit(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_rate_limit(90)

    (panel,), _ = mock_console.print.call_args
    assert "Too many requests" in panel.title
    assert "Please wait 2 minutes before trying again." in panel.renderable.plain
