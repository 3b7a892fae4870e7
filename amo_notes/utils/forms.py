# amo_notes/utils/forms.py

import re
from typing import Any, Dict, Iterable, Tuple

_KEY_PART = re.compile(r"\[([^\[\]]*)\]")


def split_bracket_key(key: str) -> list:
    """'leads[add][0][id]' -> ['leads', 'add', '0', 'id']"""
    head, _, rest = key.partition("[")
    if not rest:
        return [key]
    parts = _KEY_PART.findall("[" + rest)
    if "".join(f"[{part}]" for part in parts) != "[" + rest:
        return [key]
    return [head] + parts


def parse_bracket_form(items: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """
    Decode form fields in PHP bracket notation (as amoCRM posts webhooks)
    into nested dicts. Numeric segments stay dict keys; "[]" appends.
    """
    result: Dict[str, Any] = {}
    for key, value in items:
        parts = split_bracket_key(key)
        node = result
        for i, part in enumerate(parts):
            last = i == len(parts) - 1
            if part == "":
                part = str(len(node))
            if last:
                node[part] = value
                break
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
    return result
