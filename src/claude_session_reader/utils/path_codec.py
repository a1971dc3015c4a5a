"""Encode and decode Claude Code project path ↔ directory name."""

import re
import sys

_WINDOWS_DRIVE_RE = re.compile(r'^([A-Za-z])--')


def encode_path(path: str) -> str:
    """Encode a filesystem path to a Claude project directory name.

    /home/wiz/AI/LLM → -home-wiz-AI-LLM
    """
    if not path:
        return ""
    # Both separator styles map to a hyphen
    return path.replace("/", "-").replace("\\", "-")


def decode_path(encoded: str, platform: str | None = None) -> str:
    """Decode a Claude project directory name to a filesystem path.

    -home-wiz-AI-LLM → /home/wiz/AI/LLM
    C--Users-wiz-app → C:\\Users\\wiz\\app (on Windows)

    The encoding is lossy: a hyphen that was part of a directory name decodes
    to a separator. No attempt is made to tell the two apart.
    """
    if not encoded:
        return ""
    if platform is None:
        platform = sys.platform

    if platform == "win32":
        match = _WINDOWS_DRIVE_RE.match(encoded)
        if match:
            rest = encoded[match.end():]
            return f"{match.group(1)}:\\" + rest.replace("-", "\\")
    return encoded.replace("-", "/")


def find_matching_project(
    target_path: str,
    project_names: list[str],
    platform: str | None = None,
) -> str | None:
    """Resolve a filesystem path to one of the encoded project directories.

    An exact encoded match wins; otherwise the first project whose decoded
    path is a suffix of the target (or has the target as a suffix) is used.
    Returns the decoded path.
    """
    encoded_target = encode_path(target_path)
    if encoded_target in project_names:
        return decode_path(encoded_target, platform)

    for name in project_names:
        decoded = decode_path(name, platform)
        if decoded.endswith(target_path) or target_path.endswith(decoded):
            return decoded
    return None
