"""
Utility functions for the HTTP recorder.
"""

import json
import os
from typing import Any, Dict, Optional


def jsonDumps(data: Any, compact: Optional[bool] = None, **kwargs) -> str:
    """
    Dump data to JSON text.

    Compact separators are used unless indent is passed (pretty-printed output).
    Key order is preserved, non-ASCII characters are written as-is.
    """
    dumpKwargs: Dict[str, Any] = {
        "ensure_ascii": False,
    }

    if compact is None:
        # If indent is passed, then user want pretty-printed JSON,
        #  no need to use compact separators
        compact = "indent" not in kwargs

    if compact:
        dumpKwargs["separators"] = (",", ":")
    dumpKwargs.update(kwargs)
    return json.dumps(data, **dumpKwargs)


def loadDotenv(path: str = ".env", populateEnv: bool = True) -> Dict[str, str]:
    """
    Simple dotenv file loader.
    Just read file line by line and put key-value pairs into dictionary.

    Variables already present in the environment are not overridden.

    Args:
        path: Path to .env file (default ".env")
        populateEnv: Whether to populate environment variables (default True)

    Returns:
        Dictionary of key-value pairs from .env file
    """
    ret: Dict[str, str] = {}
    with open(path, "rt", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            key, sep, value = line.partition("=")
            if sep:
                ret[key.strip()] = value.strip().strip('"')

    if populateEnv:
        for k, v in ret.items():
            os.environ.setdefault(k, v)
    return ret
