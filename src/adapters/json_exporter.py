"""JSON export of cached collections.

Why JSON:
- Interoperability with spreadsheets and other CRM tooling.
- A snapshot of last-known-good state without depending on the CLI tables.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from core.domain.models import Entity


def export_records_json(*, records: Sequence[Entity], output_path: Path) -> Path:
    """Export records to UTF-8 JSON using wire field names, stable formatting."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = [record.model_dump(mode="json", by_alias=True, exclude_none=True) for record in records]
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
