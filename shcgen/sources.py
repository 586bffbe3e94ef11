"""
Source bundle loading.

Bundles come from local JSON files. Anything that keeps a bundle from
reaching the trimmer is reported as SourceFetchFailure.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Union

from .errors import SourceFetchFailure


def read_bundle(path: Union[str, Path]) -> Dict[str, Any]:
    """Read and minimally validate a FHIR Bundle file."""
    source = str(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            bundle = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SourceFetchFailure(source, str(e)) from e

    if not isinstance(bundle, dict) or bundle.get("resourceType") != "Bundle":
        raise SourceFetchFailure(source, "not a FHIR Bundle")
    if not isinstance(bundle.get("entry"), list):
        raise SourceFetchFailure(source, "Bundle has no entry array")
    return bundle


async def load_bundle(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a bundle without blocking the event loop."""
    return await asyncio.to_thread(read_bundle, path)
