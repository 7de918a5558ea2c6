"""
Interactive console session for one task panel.

Renders the panel (ledger, totals, warnings, attachments, activity) and maps
typed commands onto panel operations.
"""

from __future__ import annotations

import asyncio
import shlex
from decimal import Decimal, InvalidOperation
from typing import Callable, TextIO

import structlog

from .costs import MISSING, format_money
from .errors import PanelError
from .models import parse_line_key
from .panel import TaskDetailPanel

log = structlog.get_logger()

HELP = """Commands:
  show                      redraw the panel
  add                       add an empty resource line
  name KEY TEXT             set a line's resource name
  qty KEY N                 set a line's quantity
  cost KEY N|-              set a line's unit cost ('-' clears it)
  rm KEY                    remove a line
  notes TEXT                replace the internal notes
  save                      save notes and resources
  approve                   approve the task
  reject [REASON]           reject the task
  upload PATH [NOTES]       upload an attachment
  delattach ID              delete an attachment
  refresh                   reload from the server
  quit                      close the panel"""


def _decimal(text: str) -> Decimal:
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a number: {text}") from None
    if not value.is_finite():
        raise ValueError(f"Not a number: {text}")
    return value


def render(panel: TaskDetailPanel, currency: str = "₹", activity_entries: int = 10) -> str:
    task = panel.task
    if task is None:
        return f"Task {panel.task_id}: not loaded"

    out = [f"#{task.id} {task.task_name}  [{task.status.value}]"]
    details = [
        ("Date", task.deadline.isoformat() if task.deadline else None),
        ("Location", task.location or None),
        ("Employee", task.employee_name),
        ("Project", task.project_name),
    ]
    out.extend(f"  {label}: {value}" for label, value in details if value)

    out.append("")
    out.append("Resources:")
    out.append(f"  {'KEY':<6} {'NAME':<24} {'QTY':>8} {'UNIT COST':>12} {'TOTAL':>12}")
    for line in panel.ledger.lines:
        out.append(
            f"  {str(line.key):<6} {line.resource_name or '(unnamed)':<24} "
            f"{line.quantity:>8} {format_money(line.unit_cost, currency):>12} "
            f"{format_money(line.total_cost, currency):>12}"
        )
    out.append(f"  Total: {format_money(panel.ledger.total, currency)}")
    if panel.ledger.has_missing_costs:
        out.append(f"  ! Some resources have no unit cost ({MISSING})")

    out.append("")
    out.append(f"Internal notes: {panel.notes or '-'}")

    out.append("")
    out.append("Attachments:")
    for att in panel.attachments.items:
        note = f" — {att.notes}" if att.notes else ""
        out.append(f"  [{att.id}] {att.file_name} ({att.file_type}) by {att.uploaded_by}{note}")
    if not panel.attachments.items:
        out.append("  none")

    out.append("")
    out.append("Activity:")
    for entry in panel.activity.latest(activity_entries):
        when = entry.timestamp.strftime("%Y-%m-%d %H:%M") if entry.timestamp else "?"
        out.append(f"  {when} {entry.type.value}: {entry.description} ({entry.performed_by})")

    actions = [a.value for a in panel.allowed_actions()]
    out.append("")
    out.append("Unsaved changes" if panel.dirty else "All changes saved")
    if actions:
        out.append(f"Available: {', '.join(actions)}")
    return "\n".join(out)


class ConsoleSession:
    """Reads commands and drives a ``TaskDetailPanel`` until ``quit``."""

    def __init__(
        self,
        panel: TaskDetailPanel,
        out: TextIO,
        read_line: Callable[[str], str] = input,
        currency: str = "₹",
        activity_entries: int = 10,
    ):
        self._panel = panel
        self._out = out
        self._read_line = read_line
        self._currency = currency
        self._activity_entries = activity_entries

    def _print(self, text: str) -> None:
        print(text, file=self._out)

    def show(self) -> None:
        self._print(render(self._panel, self._currency, self._activity_entries))

    async def run(self) -> None:
        await self._panel.fetch_detail()
        self.show()
        while True:
            try:
                raw = await asyncio.to_thread(self._read_line, "> ")
            except EOFError:
                break
            try:
                args = shlex.split(raw)
            except ValueError as exc:
                self._print(f"Error: {exc}")
                continue
            if not args:
                continue
            if args[0] in ("quit", "exit"):
                break
            try:
                await self.dispatch(args[0], args[1:])
            except (PanelError, ValueError, KeyError, OSError) as exc:
                log.warning("console.command_failed", command=args[0], error=str(exc))
                self._print(f"Error: {exc}")
        self._panel.close()

    async def dispatch(self, command: str, args: list[str]) -> None:
        panel = self._panel
        ledger = panel.ledger

        if command == "show":
            pass
        elif command == "help":
            self._print(HELP)
            return
        elif command == "add":
            line = ledger.add()
            self._print(f"Added line {line.key}")
        elif command == "name" and len(args) >= 2:
            ledger.set_name(parse_line_key(args[0]), " ".join(args[1:]))
        elif command == "qty" and len(args) == 2:
            ledger.set_quantity(parse_line_key(args[0]), _decimal(args[1]))
        elif command == "cost" and len(args) == 2:
            cost = None if args[1] == "-" else _decimal(args[1])
            ledger.set_unit_cost(parse_line_key(args[0]), cost)
        elif command == "rm" and len(args) == 1:
            await panel.remove_resource(parse_line_key(args[0]))
        elif command == "notes":
            panel.set_notes(" ".join(args))
        elif command == "save":
            if not panel.dirty:
                self._print("Nothing to save")
                return
            await panel.save()
        elif command == "approve":
            await panel.approve()
        elif command == "reject":
            if args:
                await panel.reject(" ".join(args))
            else:
                await panel.reject_interactive()
        elif command == "upload" and args:
            notes = " ".join(args[1:]) or None
            await panel.upload_attachment(args[0], notes=notes)
        elif command == "delattach" and len(args) == 1:
            await panel.delete_attachment(int(args[0]))
        elif command == "refresh":
            await panel.fetch_detail(keep_local_edits=panel.dirty)
        else:
            self._print(f"Unknown command: {command} {' '.join(args)}".rstrip())
            self._print(HELP)
            return
        self.show()
