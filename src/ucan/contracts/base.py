"""Base contract enforcement utility.

``require()`` is the single enforcement mechanism for all contracts.
"""

from ucan.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a pipeline contract.

    Called at stage boundaries to verify the preceding stage produced what
    it guaranteed. There is no recovery path.

    Parameters
    ----------
    condition : bool
        Invariant that must hold.

    message : str
        Explanation used as the ContractViolation message.

    Raises
    ------
    ContractViolation
        If condition is False.

    Examples
    --------
    >>> require(frame.pixels.ndim == 2, "Frame contract: pixels must be 2-D")
    >>> require(df["time"].is_monotonic_increasing, "Series contract: unordered")
    """
    if not condition:
        raise ContractViolation(message)
