"""
Resource ledger: the user-editable draft of a task's resource lines.

Keeps two parallel copies of the lines:
- draft: what the user sees and edits
- snapshot: the lines as of the last detail fetch, used only as the diff
  baseline when committing

Edits never touch the backend. ``diff_for_commit`` turns the draft into the
create/update/delete calls that make the backend match it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Union

import structlog

from . import costs
from .errors import InvalidLineValueError, LineNotFoundError
from .models import DraftKey, LineKey, Persisted, ResourceLine
from .schemas import ResourceLineCreate, ResourceLineUpdate

log = structlog.get_logger()


@dataclass(frozen=True)
class CreateLine:
    key: DraftKey
    body: ResourceLineCreate


@dataclass(frozen=True)
class UpdateLine:
    line_id: int
    body: ResourceLineUpdate


@dataclass(frozen=True)
class DeleteLine:
    line_id: int


LedgerOp = Union[CreateLine, UpdateLine, DeleteLine]


def _non_negative(value: Decimal | int, what: str) -> Decimal:
    value = Decimal(value)
    if not value.is_finite():
        raise InvalidLineValueError(f"{what} must be a finite number: {value}")
    if value < 0:
        raise InvalidLineValueError(f"{what} cannot be negative: {value}")
    return value


class ResourceLedger:
    """Draft and snapshot of one task's resource lines."""

    def __init__(self) -> None:
        self._draft: list[ResourceLine] = []
        self._snapshot: dict[int, ResourceLine] = {}
        self._next_temp_id = -1
        self.dirty = False

    @property
    def lines(self) -> list[ResourceLine]:
        return list(self._draft)

    @property
    def snapshot(self) -> list[ResourceLine]:
        return list(self._snapshot.values())

    def load(self, lines: Iterable[ResourceLine]) -> None:
        """Replace draft and snapshot with the lines from a fresh fetch."""
        fetched = list(lines)
        self._snapshot = {
            line.key.id: line.copy() for line in fetched if isinstance(line.key, Persisted)
        }
        self._draft = [line.copy() for line in fetched]
        self.dirty = False

    def rebase(self, lines: Iterable[ResourceLine]) -> None:
        """
        Take a fresh fetch as the new snapshot but keep the user's edits.

        Saved lines the user edited keep their draft values, unsaved lines are
        carried over, and the dirty flag is left as it was.
        """
        fetched = list(lines)
        edited = {}
        for line in self._draft:
            if isinstance(line.key, Persisted) and line != self._snapshot.get(line.key.id):
                edited[line.key.id] = line
        unsaved = [line for line in self._draft if isinstance(line.key, DraftKey)]
        self._snapshot = {
            line.key.id: line.copy() for line in fetched if isinstance(line.key, Persisted)
        }
        draft = []
        for line in fetched:
            local = edited.get(line.key.id) if isinstance(line.key, Persisted) else None
            draft.append((local or line).copy())
        self._draft = draft + unsaved

    def mark_created(self, key: DraftKey, line_id: int) -> None:
        """Record that the backend stored a draft line under ``line_id``."""
        line = self.get(key)
        line.key = Persisted(line_id)
        self._snapshot[line_id] = line.copy()

    def get(self, key: LineKey) -> ResourceLine:
        for line in self._draft:
            if line.key == key:
                return line
        raise LineNotFoundError(f"No resource line {key}")

    def is_persisted(self, key: LineKey) -> bool:
        return isinstance(key, Persisted) and key.id in self._snapshot

    # --- Draft edits ---

    def add(self) -> ResourceLine:
        key = DraftKey(self._next_temp_id)
        self._next_temp_id -= 1
        line = ResourceLine(key=key)
        self._draft.append(line)
        self.dirty = True
        log.debug("ledger.line_added", key=str(key))
        return line

    def set_name(self, key: LineKey, name: str) -> None:
        line = self.get(key)
        line.resource_name = name
        self.dirty = True

    def set_quantity(self, key: LineKey, quantity: Decimal | int) -> None:
        line = self.get(key)
        line.quantity = _non_negative(quantity, "Quantity")
        line.recompute()
        self.dirty = True

    def set_unit_cost(self, key: LineKey, unit_cost: Decimal | int | None) -> None:
        line = self.get(key)
        line.unit_cost = None if unit_cost is None else _non_negative(unit_cost, "Unit cost")
        line.recompute()
        self.dirty = True

    def discard(self, key: LineKey) -> None:
        """Drop a line that was never saved. No backend call is involved."""
        if self.is_persisted(key):
            raise ValueError(f"Resource line {key} is saved on the server; delete it there")
        line = self.get(key)
        self._draft.remove(line)
        self.dirty = True
        log.debug("ledger.line_discarded", key=str(key))

    def forget(self, key: Persisted) -> None:
        """Drop a line the backend has just deleted."""
        self._draft = [line for line in self._draft if line.key != key]
        self._snapshot.pop(key.id, None)

    # --- Totals ---

    @property
    def total(self) -> Decimal:
        return costs.ledger_total(self._draft)

    @property
    def has_missing_costs(self) -> bool:
        return costs.has_missing_costs(self._draft)

    # --- Commit ---

    def diff_for_commit(self) -> list[LedgerOp]:
        """
        Operations that bring the backend in line with the draft.

        Every saved line is re-sent as an update whether or not it changed.
        New lines without a name or with a zero quantity are skipped.
        """
        updates: list[LedgerOp] = []
        creates: list[LedgerOp] = []
        kept: set[int] = set()

        for line in self._draft:
            if isinstance(line.key, Persisted) and line.key.id in self._snapshot:
                kept.add(line.key.id)
                updates.append(UpdateLine(
                    line_id=line.key.id,
                    body=ResourceLineUpdate(
                        quantity=line.quantity,
                        unit_cost=line.unit_cost,
                        total_cost=line.total_cost,
                    ),
                ))
            elif isinstance(line.key, DraftKey):
                name = line.resource_name.strip()
                if not name or line.quantity <= 0:
                    log.debug("ledger.skip_incomplete", key=str(line.key))
                    continue
                creates.append(CreateLine(
                    key=line.key,
                    body=ResourceLineCreate(
                        resource_name=name,
                        quantity=line.quantity,
                        unit_cost=line.unit_cost,
                        total_cost=line.total_cost,
                    ),
                ))

        deletes: list[LedgerOp] = [
            DeleteLine(line_id=line_id) for line_id in self._snapshot if line_id not in kept
        ]
        return updates + creates + deletes
