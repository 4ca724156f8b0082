"""Exceptions raised by external collaborators (stores, token provider).

None of these ever reach a caller verbatim: the dispatcher maps them to a
fixed status code and a generic body.
"""


class DependencyUnavailable(Exception):
    """An external dependency failed or exceeded its deadline."""


class CounterStoreError(DependencyUnavailable):
    """Rate-limit counter store unreachable. Recovered by failing open."""


class ArtworkStoreError(DependencyUnavailable):
    """Artwork store unreachable. Surfaced as a 500."""


class MachineTokenError(DependencyUnavailable):
    """Machine token could not be obtained. Always swallowed."""
