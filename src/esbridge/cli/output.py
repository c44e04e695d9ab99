"""Output formatting utilities for CLI commands.

Every command supports a --json mode that prints one consistent envelope,
and a text mode for humans.
"""

import json
from typing import Any, Dict, List, Optional


def format_json_response(
    status: str,
    message: str = "",
    data: Optional[Dict[str, Any]] = None,
    errors: Optional[List[str]] = None
) -> str:
    """Build the --json envelope shared by every esb command.

    The four keys are always present so scripts can test "status" without
    checking for missing fields; data and errors default to empty.

    Example:
        >>> print(format_json_response("success", "12 documents in 'logs'", {"count": 12}))  # doctest: +SKIP
    """
    response = {
        "status": status,
        "message": message,
        "data": data or {},
        "errors": errors or []
    }
    return json.dumps(response, indent=2)


def print_json(
    status: str,
    message: str = "",
    data: Optional[Dict[str, Any]] = None,
    errors: Optional[List[str]] = None
):
    """Write the envelope to stdout, where tests and pipelines read it."""
    output = format_json_response(status, message, data, errors)
    print(output)


def print_info(message: str, json_output: bool = False):
    """Progress hint for humans; silent under --json."""
    if not json_output:
        print(f"[INFO] {message}")


def print_success(message: str, json_output: bool = False, data: Optional[Dict[str, Any]] = None):
    """Report a finished command: plain message, or a success envelope carrying data."""
    if json_output:
        print_json("success", message, data=data)
    else:
        print(message)
