import csv
import json
from datetime import datetime

from flowstate.common.logger import log
from flowstate.common.setup import PATHS
from flowstate.util import ms_to_local

CSV_HEADERS = ["ID", "Category", "StartTime", "EndTime", "Duration(ms)", "Rating", "Tags", "Distractions", "Notes"]
_CSV_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


# Default export path, e.g. exports/flowstate_export_20261018.csv
def default_export_path(extension):
    return PATHS.exports / f"flowstate_export_{datetime.now():%Y%m%d}.{extension}"


# Writes one CSV row per session. Categories that no longer exist show up as "Unknown".
def export_csv(sessions, categories, path=None):
    path = path or default_export_path("csv")
    names = {c["id"]: c["name"] for c in categories}
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADERS)
        for s in sessions:
            writer.writerow([
                s.id,
                names.get(s.category_id, "Unknown"),
                ms_to_local(s.start_time).strftime(_CSV_TIME_FORMAT),
                ms_to_local(s.end_time).strftime(_CSV_TIME_FORMAT),
                s.duration,
                s.rating or "",
                ";".join(s.tags),
                ";".join(s.distractions),
                s.notes,
            ])
    log.info(f"Exported {len(sessions)} session(s) to '{path}'")
    return path


# Dumps the full state dict as-is.
def export_json(state, path=None):
    path = path or default_export_path("json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2)
    log.info(f"Exported full state to '{path}'")
    return path
