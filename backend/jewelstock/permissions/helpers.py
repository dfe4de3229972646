# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS, Permission


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0].value for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def parse_permission_codes(codes) -> set[Permission]:
    """Convert a list of code strings into Permission members; raises ValueError on unknown codes."""
    if codes is None:
        return set()
    if isinstance(codes, str) or not isinstance(codes, (list, tuple, set, frozenset)):
        raise ValueError("permissions must be a list of permission codes")
    unknown = [c for c in codes if not validate_permission_code(str(c))]
    if unknown:
        raise ValueError(f"Unknown permission codes: {', '.join(sorted(map(str, unknown)))}")
    return {Permission(str(c)) for c in codes}
