"""
Worker Import Service — CSV template, parsing and bulk insert.

Template format (kept byte-compatible with previously downloaded files):
  - UTF-8 BOM prefix, ``\\n`` line endings
  - header:  Name*,Trade/Skill,Daily Rate,Contractor,Phone
  - three sample rows with every field quoted

Parsing is lenient: blank lines are skipped, the first non-blank line is
the header, a non-numeric daily rate becomes 0 and an empty name marks
the row invalid ("Name is required"). Only valid rows are inserted.
"""

import csv
import io
import logging
import re
from dataclasses import asdict, dataclass

from siteledger.core.exceptions import ValidationError
from siteledger.models import db
from siteledger.models.labour import Worker

logger = logging.getLogger(__name__)

BOM = "\ufeff"

# ═══════════════════════════════════════════════════════════════
# CSV Template
# ═══════════════════════════════════════════════════════════════

CSV_TEMPLATE_HEADER = ["Name*", "Trade/Skill", "Daily Rate", "Contractor", "Phone"]
CSV_TEMPLATE_EXAMPLE = [
    ["Ravi Kumar", "Mason", "800", "ABC Contractors", "9876543210"],
    ["Suresh Yadav", "Carpenter", "750", "", "9123456789"],
    ["Meena Devi", "Helper", "500", "XYZ Labour", ""],
]
CSV_TEMPLATE_FILENAME = "workers_template.csv"


def generate_csv_template() -> str:
    """Template text, BOM included. Header unquoted, sample cells quoted."""
    output = io.StringIO()
    csv.writer(output, lineterminator="\n").writerow(CSV_TEMPLATE_HEADER)
    csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n").writerows(CSV_TEMPLATE_EXAMPLE)
    return BOM + output.getvalue().rstrip("\n")


# ═══════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


@dataclass
class ParsedWorker:
    name: str
    trade: str
    daily_rate: float
    contractor: str
    phone: str
    valid: bool
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def parse_rate(value) -> float:
    """Leading numeric prefix of *value* ("800/day" → 800); otherwise 0."""
    match = _LEADING_NUMBER.match(value or "")
    if not match:
        return 0.0
    return float(match.group(0))


def parse_worker_csv(text: str) -> list[ParsedWorker]:
    """Parse uploaded CSV text. Fewer than two non-blank lines → []."""
    if text.startswith(BOM):
        text = text[len(BOM):]
    lines = [line for line in re.split(r"\r?\n", text) if line.strip()]
    if len(lines) < 2:
        return []

    parsed = []
    for cols in csv.reader(lines[1:], skipinitialspace=True):
        cols = [c.strip() for c in cols] + [""] * 5
        name, trade, rate, contractor, phone = cols[:5]
        valid = bool(name)
        parsed.append(ParsedWorker(
            name=name,
            trade=trade,
            daily_rate=parse_rate(rate),
            contractor=contractor,
            phone=phone,
            valid=valid,
            error=None if valid else "Name is required",
        ))
    return parsed


def preview(text: str) -> dict:
    rows = parse_worker_csv(text)
    if not rows:
        raise ValidationError("No data rows found in file")
    return {
        "rows": [r.to_dict() for r in rows],
        "valid_count": sum(1 for r in rows if r.valid),
        "invalid_count": sum(1 for r in rows if not r.valid),
    }


# ═══════════════════════════════════════════════════════════════
# Bulk insert
# ═══════════════════════════════════════════════════════════════

def bulk_insert_workers(org_id: int, parsed) -> list[Worker]:
    """Insert the valid rows for *org_id*. Empty optional strings → NULL."""
    valid = [p for p in parsed if p.valid]
    if not valid:
        raise ValidationError("No valid workers to import")

    workers = [
        Worker(
            organization_id=org_id,
            name=p.name,
            trade=p.trade or None,
            daily_rate=p.daily_rate,
            contractor=p.contractor or None,
            phone=p.phone or None,
        )
        for p in valid
    ]
    db.session.add_all(workers)
    db.session.flush()
    logger.info("Imported %d workers into org %s", len(workers), org_id)
    return workers
