"""Numeric process exit codes for the ``reauth`` command line.

Each constant maps to an error category and is referenced by the
corresponding :class:`~reauth.exceptions.ReauthError` subclass, so shell
wrappers can tell *why* a command failed without parsing stderr.

Example::

    $ reauth login test "api.example.com/**"
    $ echo $?
    4   # EXIT_RATE_LIMITED -- a login for this host ran moments ago
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NO_PROFILE = 3
"""No enabled profile matches the requested URL or pattern."""

EXIT_RATE_LIMITED = 4
"""A login was refused because the per-host minimum interval has not elapsed."""

EXIT_LOGIN_FAILURE = 5
"""The login exchange failed (transport error or non-2xx status)."""

EXIT_EXTRACTION_FAILURE = 6
"""The login succeeded but no credential could be extracted from its response."""

EXIT_CONNECTION_ERROR = 7
"""A retried or forwarded request failed at the network level."""
