"""
FieldOps Task Panel

Client-side core of the task resource-and-approval workflow: a locally edited
resource ledger reconciled against the backend at save time, immediate
attachment upload/delete, the task activity trail, and the Open → Approved /
Rejected approval gate.
"""

__version__ = "0.1.0"
