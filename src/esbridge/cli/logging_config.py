"""Centralized logging configuration for CLI commands.

Provides three logging levels:
- Default: Clean output, only warnings and errors
- Verbose: Show request progress, suppress HTTP library chatter
- Debug: Show everything including every dispatched request and urllib3 internals
"""

import logging


def setup_logging_default():
    """Default logging: Clean output, only warnings and errors.

    Suppresses:
    - urllib3 connection pool messages
    - esbridge request/response tracing
    """
    logging.basicConfig(
        level=logging.WARNING,
        format='%(levelname)s: %(message)s'
    )

    logging.getLogger('esbridge').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.ERROR)
    logging.getLogger('requests').setLevel(logging.ERROR)


def setup_logging_verbose():
    """Verbose logging: Show user-relevant progress.

    Shows:
    - Registered scripts, pagination progress, readiness waits

    Suppresses:
    - urllib3 DEBUG output
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(levelname)s: %(message)s'
    )

    logging.getLogger('esbridge').setLevel(logging.INFO)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)


def setup_logging_debug():
    """Debug logging: Show everything.

    Use for:
    - Inspecting each dispatched request and its classified outcome
    - Troubleshooting TLS and connection pool issues
    """
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(name)s - %(levelname)s: %(message)s'
    )

    logging.getLogger('esbridge').setLevel(logging.DEBUG)
    logging.getLogger('urllib3').setLevel(logging.DEBUG)


def configure_logging(verbose: bool = False, debug: bool = False):
    """Pick one of the three levels from CLI flags."""
    if debug:
        setup_logging_debug()
    elif verbose:
        setup_logging_verbose()
    else:
        setup_logging_default()
