from typing import Any, List, Mapping, Sequence

def normalize_null_strings(obj: Any) -> Any:
    """Recursively convert string 'null' (case-insensitive) to None inside dict/list structures.

    Args:
        obj: The object to process. Can be a string, dictionary, list, or other type.

    Returns:
        The processed object with all 'null' strings converted to None.
        Other types are returned as-is.
    """
    if isinstance(obj, str):
        return None if obj.lower() == "null" else obj
    if isinstance(obj, Mapping):
        return {k: normalize_null_strings(v) for k, v in obj.items()}
    if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
        return [normalize_null_strings(v) for v in obj]
    return obj


def split_list(raw: Any) -> List[str]:
    """Accept a list or a comma separated string; drop blanks and null placeholders."""
    normalized = normalize_null_strings(raw)
    if normalized is None:
        return []
    if isinstance(normalized, str):
        items = normalized.split(',')
    elif isinstance(normalized, (list, tuple, set)):
        items = normalized
    else:
        items = [normalized]
    cleaned: List[str] = []
    for item in items:
        if item is None:
            continue
        text = str(item).strip()
        if not text or text.lower() in {"null", "none"}:
            continue
        cleaned.append(text)
    return cleaned
