from __future__ import annotations

import csv
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Iterable

    from devstages.types import StageRecord

RECORD_COLUMNS = ["stage_id", "name", "left", "right", "level", "taxa"]


def write_stage_records(records: Iterable[StageRecord], path: str) -> int:
    """
    Write stage records to a tab-separated file with a header line.

    The `taxa` column lists taxon identifiers separated by `,`, and is
    empty for stages existing in all requested taxa.

    Returns the number of written records.
    """
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, delimiter="\t", lineterminator="\n")
        writer.writerow(RECORD_COLUMNS)
        for record in records:
            taxa = record["taxa"]
            writer.writerow(
                [
                    record["stage_id"],
                    record["name"],
                    record["left"],
                    record["right"],
                    record["level"],
                    "" if taxa is None else ",".join(str(t) for t in taxa),
                ]
            )
            count += 1
    return count
