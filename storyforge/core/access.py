"""Optional shared-secret access gate."""

import hmac


class AccessGate:
    """Checks callers against a single configured secret.

    With no secret configured the gate is open and allows every request.
    A denial never says whether the key was missing or wrong.
    """

    def __init__(self, secret: str | None = None) -> None:
        self._secret = secret or None

    @property
    def is_open(self) -> bool:
        return self._secret is None

    def authorize(self, supplied_key: str | None) -> bool:
        """Return True if the supplied key may pass.

        Keys are compared in constant time.
        """
        if self._secret is None:
            return True
        if not supplied_key:
            return False
        return hmac.compare_digest(supplied_key.encode(), self._secret.encode())
