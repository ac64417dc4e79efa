"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~offlinefetch.exceptions.OfflineFetchError` subclass.
Shell wrappers can inspect the exit code to tell "served from the network"
apart from "nothing could be served" without parsing stderr.

Example::

    $ offlinefetch show weather
    $ echo $?
    8   # EXIT_NO_DATA -- nothing cached under that name
"""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments (e.g. an unsafe cache name)."""

EXIT_NO_DATA = 8
"""Neither the network nor the local cache produced a body."""
