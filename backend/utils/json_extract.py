import json
import logging
import re
from typing import Any

import json_repair

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL)
_BRACED = re.compile(r"\{.*\}", re.DOTALL)


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Pull a JSON object out of free-form model output.

    Prefers a ```json fenced block, else the outermost {...} span. Falls back
    to json_repair for truncated or slightly malformed output.
    """
    match = _FENCED_JSON.search(text) or _BRACED.search(text)
    if not match:
        return None
    candidate = match.group(1) if match.re is _FENCED_JSON else match.group(0)

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning("json.loads failed (%s), attempting json_repair...", e)
        parsed = json_repair.loads(candidate)
        if isinstance(parsed, dict) and parsed:
            logger.info("json_repair succeeded, recovered valid JSON")

    if not isinstance(parsed, dict):
        logger.warning("Model output is %s, expected a JSON object", type(parsed).__name__)
        return None
    return parsed
