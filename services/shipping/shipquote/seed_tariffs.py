"""Load the tariff table from a CSV file with ``origin,destination,price_per_kg`` columns.

Usage: python -m shipquote.seed_tariffs [path/to/tariffs.csv]
"""

import csv
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Iterable, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from shipquote.domain.models import Tariff

DEFAULT_FILE = Path(__file__).resolve().parent.parent / "seed" / "tariffs.csv"


def load_tariffs(db: Session, rows: Iterable[Dict[str, str]]) -> Tuple[int, int]:
    """Insert new routes and update the price of existing ones. Returns (inserted, updated)."""
    existing = {(t.origin, t.destination): t for t in db.scalars(select(Tariff))}
    inserted = updated = 0
    for line, row in enumerate(rows, start=2):
        origin = (row.get("origin") or "").strip()
        destination = (row.get("destination") or "").strip()
        try:
            price_per_kg = Decimal((row.get("price_per_kg") or "").strip())
        except InvalidOperation:
            print(f"Line {line}: invalid price_per_kg, skipped")
            continue
        if not origin or not destination or price_per_kg <= 0:
            print(f"Line {line}: incomplete row, skipped")
            continue

        tariff = existing.get((origin, destination))
        if tariff is None:
            tariff = Tariff(origin=origin, destination=destination, price_per_kg=price_per_kg)
            db.add(tariff)
            existing[(origin, destination)] = tariff
            inserted += 1
        elif tariff.price_per_kg != price_per_kg:
            tariff.price_per_kg = price_per_kg
            updated += 1
    db.commit()
    return inserted, updated


def main(argv=None) -> None:
    from shipquote.infrastructure.db import SessionLocal, init_models

    args = sys.argv[1:] if argv is None else argv
    path = Path(args[0]) if args else DEFAULT_FILE
    init_models()
    with open(path, newline="", encoding="utf-8") as f, SessionLocal() as db:
        inserted, updated = load_tariffs(db, csv.DictReader(f))
    print(f"Loaded tariffs from {path}: {inserted} inserted, {updated} updated")


if __name__ == "__main__":
    main()
