"""URL and route pattern helpers shared by the lineage connectors."""

import re
from typing import Dict, Tuple
from urllib.parse import urlsplit

PARAM_PLACEHOLDER = "{param}"

_COLON_PARAM = re.compile(r":[a-zA-Z_][a-zA-Z0-9_]*")
_COLON_PARAM_NAME = re.compile(r":([a-zA-Z_][a-zA-Z0-9_]*)")
_TEMPLATE_EXPR = re.compile(r"\$\{[^}]*\}")
_BRACKET_SEGMENT = re.compile(r"\[[^\]]*\]")
_BRACE_SEGMENT = re.compile(r"\{[^}]*\}")
_ENV_VAR = re.compile(r"\$\{([^}]+)\}|\$([A-Z_][A-Z0-9_]*)")


def normalize_url(url: str) -> str:
    """
    Strip the scheme, query and fragment; collapse slashes; lower-case.

    The host stays as the first segment, so absolute URLs only line up with
    endpoint paths through containment or ``extract_path``.
    """
    stripped = re.sub(r"^https?://", "", url, flags=re.IGNORECASE)
    stripped = stripped.split("?")[0].split("#")[0]
    normalized = "/".join(s for s in stripped.split("/") if s)
    return ("/" + normalized).lower()


def normalize_path(path: str) -> str:
    """Collapse slashes and ensure a single leading slash."""
    return "/" + "/".join(s for s in path.split("/") if s)


def extract_path(url: str) -> str:
    """Return the path component of a URL, or the URL without query/fragment."""
    if "://" in url:
        try:
            return urlsplit(url).path or "/"
        except ValueError:
            pass
    return url.split("?")[0].split("#")[0]


def extract_base_url(url: str) -> str:
    """Return ``scheme://host[:port]`` for absolute URLs, else an empty string."""
    if "://" not in url:
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return ""
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def normalize_path_pattern(path: str) -> str:
    """Replace every dynamic segment with ``{param}`` and lower-case."""
    pattern = _TEMPLATE_EXPR.sub(PARAM_PLACEHOLDER, path)
    pattern = _COLON_PARAM.sub(PARAM_PLACEHOLDER, pattern)
    pattern = _BRACKET_SEGMENT.sub(PARAM_PLACEHOLDER, pattern)
    pattern = _BRACE_SEGMENT.sub(PARAM_PLACEHOLDER, pattern)
    return pattern.lower()


def count_dynamic_segments(pattern: str) -> int:
    """Count ``${...}``, ``[...]`` and ``{...}`` placeholders in a call pattern."""
    without_templates = _TEMPLATE_EXPR.sub("", pattern)
    return (
        len(_TEMPLATE_EXPR.findall(pattern))
        + len(_BRACKET_SEGMENT.findall(without_templates))
        + len(_BRACE_SEGMENT.findall(without_templates))
    )


def match_path_pattern(call_path: str, endpoint_path: str) -> bool:
    """Check a concrete path against an endpoint path with ``:param`` segments."""
    parts = _COLON_PARAM.split(endpoint_path)
    regex = "[^/]+".join(re.escape(part) for part in parts)
    return re.fullmatch(regex, call_path) is not None


def compare_pattern_structure(pattern1: str, pattern2: str) -> bool:
    """
    Compare two normalized patterns segment by segment.

    Static segments must be equal; a segment that is dynamic on either side
    is compatible with anything.
    """
    segments1 = pattern1.split("/")
    segments2 = pattern2.split("/")
    if len(segments1) != len(segments2):
        return False

    for seg1, seg2 in zip(segments1, segments2):
        dynamic1 = PARAM_PLACEHOLDER in seg1
        dynamic2 = PARAM_PLACEHOLDER in seg2
        if not dynamic1 and not dynamic2 and seg1 != seg2:
            return False
    return True


def extract_parameter_names(path: str):
    return _COLON_PARAM_NAME.findall(path)


def match_paths_with_params(path1: str, path2: str) -> Tuple[bool, float, Dict[str, str]]:
    """
    Match two route paths, capturing parameter values.

    Args:
        path1: Route with ``:param`` segments
        path2: Route or concrete path to compare

    Returns:
        Tuple of (matches, confidence, matched_params)
    """
    if normalize_path_pattern(path1) == normalize_path_pattern(path2):
        return True, 1.0, {}

    params1 = extract_parameter_names(path1)
    params2 = extract_parameter_names(path2)
    if params1 and len(params1) == len(params2):
        parts = _COLON_PARAM.split(path1)
        regex = "([^/]+)".join(re.escape(part) for part in parts)
        match = re.fullmatch(regex, path2)
        if match:
            return True, 0.8, dict(zip(params1, match.groups()))

    return False, 0.0, {}


def resolve_env_vars(url: str, env: Dict[str, str]) -> str:
    """Substitute ``${VAR}`` and ``$VAR`` references that appear in ``env``."""
    def _replace(match):
        name = match.group(1) or match.group(2)
        return env.get(name, match.group(0))

    return _ENV_VAR.sub(_replace, url)
