"""Tests for console rendering and command dispatch."""

import io

import pytest

from fieldops_panel.console import ConsoleSession, render
from fieldops_panel.errors import LineNotFoundError
from fieldops_panel.models import DraftKey, Persisted
from fieldops_panel.panel import TaskDetailPanel

from .conftest import D


async def test_render_shows_missing_costs_as_dash(panel):
    line = panel.ledger.add()
    panel.ledger.set_name(line.key, "Valve")
    text = render(panel)
    assert "Replace valve at pump house  [Open]" in text
    assert "₹100.00" in text
    assert "new1" in text
    assert "—" in text
    assert "Total: ₹100.00" in text
    assert "Unsaved changes" in text
    assert "Available: approve, reject" in text


def test_render_unloaded(backend, prompter):
    p = TaskDetailPanel(backend, 9, prompter=prompter, notifier=prompter)
    assert render(p) == "Task 9: not loaded"


async def test_dispatch_edits_ledger(panel):
    out = io.StringIO()
    session = ConsoleSession(panel, out=out)

    await session.dispatch("add", [])
    await session.dispatch("name", ["new1", "Ball", "valve"])
    await session.dispatch("qty", ["new1", "2"])
    await session.dispatch("cost", ["new1", "75"])
    await session.dispatch("cost", ["1", "-"])

    assert panel.ledger.get(DraftKey(-1)).resource_name == "Ball valve"
    assert panel.ledger.get(DraftKey(-1)).total_cost == D(150)
    assert panel.ledger.get(Persisted(1)).unit_cost is None
    assert "Added line new1" in out.getvalue()


async def test_dispatch_rejects_bad_input(panel):
    session = ConsoleSession(panel, out=io.StringIO())
    with pytest.raises(ValueError):
        await session.dispatch("qty", ["1", "lots"])
    with pytest.raises(LineNotFoundError):
        await session.dispatch("qty", ["new4", "1"])


async def test_run_loop_saves_and_quits(panel, backend):
    commands = iter(["notes 'Gate code 4411'", "save", "bogus", "quit"])
    out = io.StringIO()
    session = ConsoleSession(panel, out=out, read_line=lambda prompt: next(commands))

    await session.run()

    assert backend.called("update_task")[0][2].internal_notes == "Gate code 4411"
    assert "Unknown command: bogus" in out.getvalue()
    assert panel.closed


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-inf"])
async def test_non_finite_numbers_rejected(panel, value):
    session = ConsoleSession(panel, out=io.StringIO())
    await session.dispatch("add", [])
    with pytest.raises(ValueError):
        await session.dispatch("qty", ["new1", value])
    with pytest.raises(ValueError):
        await session.dispatch("cost", ["new1", value])
    assert panel.ledger.get(DraftKey(-1)).quantity == 1
    assert panel.ledger.get(DraftKey(-1)).unit_cost is None


async def test_run_loop_survives_non_finite_number(panel, backend):
    commands = iter(["add", "qty new1 NaN", "qty new1 3", "cost new1 Infinity", "cost new1 2", "quit"])
    out = io.StringIO()
    session = ConsoleSession(panel, out=out, read_line=lambda prompt: next(commands))

    await session.run()

    assert "Error: Not a number: NaN" in out.getvalue()
    assert "Error: Not a number: Infinity" in out.getvalue()
    assert panel.ledger.get(DraftKey(-1)).total_cost == D(6)
    assert panel.ledger.total == D(106)
    assert panel.closed


async def test_reject_without_reason_prompts(panel, backend, prompter):
    prompter.texts = ["Wrong site"]
    await ConsoleSession(panel, out=io.StringIO()).dispatch("reject", [])
    assert prompter.questions
    assert backend.called("reject_task") == [("reject_task", 1, "Wrong site")]
