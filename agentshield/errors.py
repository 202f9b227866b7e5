"""Error taxonomy shared by the scoring models and the HTTP layer.

Input errors are rejected before any scoring runs. Ledger errors never leave
the address model; they are converted to informational flags there.
"""


class InputValidationError(ValueError):
    """Malformed caller input: wrong type, oversized payload, unusable URL."""


class FetchError(InputValidationError):
    """Raw-text fetch refused or failed. Reported as an input problem."""


class LedgerQueryError(Exception):
    """A ledger RPC call failed, timed out, or returned an error payload.

    Distinct from an empty answer: a missing account is ``None``, not this.
    """
