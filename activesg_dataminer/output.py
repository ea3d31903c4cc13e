import datetime
import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional

from .errors import OutputError
from .models import GymRecord
from .normalizer import PORTAL_TZ


def record_to_dict(record: GymRecord) -> Dict[str, Any]:
    return {
        "gym": record.gym,
        "datetime": record.datetime.isoformat(),
        "slots": [{"time": slot.time.isoformat(), "avail": slot.avail} for slot in record.slots],
    }


def record_to_soa_dict(record: GymRecord) -> Dict[str, Any]:
    return {
        "gym": record.gym,
        "datetime": record.datetime.isoformat(),
        "time": [t.isoformat() for t in record.time],
        "slots_avail": list(record.slots_avail),
    }


def format_records(records: Iterable[GymRecord], is_soa: bool = False) -> str:
    """
    Default: one JSON array of per-gym objects with a `slots` list.
    Struct-of-arrays: newline-delimited JSON, one compact object per gym.
    """
    if is_soa:
        return "\n".join(json.dumps(record_to_soa_dict(r)) for r in records)
    return json.dumps([record_to_dict(r) for r in records], indent=2)


def write_record_files(records: Iterable[GymRecord], output_dir: str, is_soa: bool = False,
                       now: Optional[datetime.datetime] = None) -> List[str]:
    """Write each record to `{output_dir}/{date}/{GYM}-{date time}.json`, dated in portal time."""
    local = (now or datetime.datetime.now(datetime.timezone.utc)).astimezone(PORTAL_TZ)
    day_dir = os.path.join(output_dir, local.strftime("%Y-%m-%d"))
    stamp = local.strftime("%Y-%m-%d %H-%M-%S")
    to_dict = record_to_soa_dict if is_soa else record_to_dict

    written = []
    try:
        os.makedirs(day_dir, exist_ok=True)
        for record in records:
            filename = os.path.join(day_dir, f"{record.gym}-{stamp}.json")
            with open(filename, "w", encoding="utf-8") as f:
                json.dump(to_dict(record), f, indent=2)
            logging.info(f"{filename}, write successful")
            written.append(filename)
    except OSError as e:
        raise OutputError(f"Failed to write output files: {e}") from e
    return written
