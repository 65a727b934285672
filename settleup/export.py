import csv
import io
from typing import Iterable

from .models import EntryKind, LedgerEntry

CSV_HEADER = ["Date", "Title", "Category", "Amount", "Payer", "Shared With", "Group ID"]


def generate_csv(entries: Iterable[LedgerEntry]) -> str:
    """Render entries as CSV. Payments list the sender as payer and the receiver as shared-with."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for entry in entries:
        if entry.kind == EntryKind.EXPENSE:
            payer, shared_with = entry.payer, ";".join(entry.participants)
        else:
            payer, shared_with = entry.from_member, entry.to_member
        writer.writerow([
            entry.created_at.strftime("%Y-%m-%d") if entry.created_at else "",
            entry.title,
            entry.category,
            str(entry.amount),
            payer or "",
            shared_with or "",
            str(entry.group_id) if entry.group_id else "",
        ])
    return buffer.getvalue()
