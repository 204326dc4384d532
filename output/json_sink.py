from __future__ import annotations
import json
import pathlib
import sys
from typing import Any, Dict

STDOUT = "-"


class JsonSink:
    """
    Appends records as NDJSON, one object per line.

    A path of '-' writes to standard output; any other path is opened in
    append mode for each record, creating parent directories on first use.
    """

    def __init__(self, path: str = STDOUT) -> None:
        self.path = path
        if path != STDOUT:
            pathlib.Path(path).parent.mkdir(parents=True, exist_ok=True)

    def write(self, obj: Dict[str, Any]) -> None:
        line = json.dumps(obj, sort_keys=True) + "\n"
        if self.path == STDOUT:
            sys.stdout.write(line)
            sys.stdout.flush()
            return
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)
