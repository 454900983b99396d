"""Read-only views over the controller's guest cache: stats, recent list, CSV."""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone

from checkin.data.models import GuestRecord

CSV_HEADER = "Nombre,Teléfono,Acompañantes,Fecha y Hora"


@dataclass(frozen=True)
class GuestStats:
    total_guests: int
    total_companions: int


def compute_stats(guests: Sequence[GuestRecord]) -> GuestStats:
    return GuestStats(
        total_guests=len(guests),
        total_companions=sum(g.companions for g in guests),
    )


def recent_guests(guests: Sequence[GuestRecord], limit: int = 10) -> list[GuestRecord]:
    """Most recently created guests first, at most ``limit`` of them."""
    return sorted(guests, key=lambda g: g.timestamp, reverse=True)[:limit]


def export_csv(guests: Sequence[GuestRecord]) -> str:
    """Render guests as CSV in cache order.

    Name, phone and entry time are double-quoted, companions are bare.
    Rows are ``\\n``-separated with no trailing newline.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for guest in guests:
        writer.writerow([guest.name, guest.phone, guest.companions, guest.entry_time])
    body = buf.getvalue().removesuffix("\n")
    return f"{CSV_HEADER}\n{body}" if body else CSV_HEADER


def export_filename(today: date | None = None) -> str:
    """``registro_fiesta_YYYY-MM-DD.csv`` for the current UTC date."""
    today = today or datetime.now(timezone.utc).date()
    return f"registro_fiesta_{today.isoformat()}.csv"
