"""Completion flag and run lease in the shared store."""

from __future__ import annotations

import redis

from address_ingest.common.constants import COMPLETION_FLAG
from address_ingest.common.errors import LeaseLostError, StoreUnavailableError
from address_ingest.common.store import STORE_CONNECTION_ERRORS

# Both scripts only touch the lease while it still holds the caller's run id.
RELEASE_IF_OWNER = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

RENEW_IF_OWNER = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("expire", KEYS[1], ARGV[2])
end
return 0
"""


class CompletionGate:
    """Gates the whole pipeline on a single flag key.

    ``claim`` takes a lease with one conditional write so two processes
    starting together cannot both run the load. The lease is renewed while
    loading and only ever released by the run that holds it.
    """

    def __init__(self, client: redis.Redis, *, flag_key: str = COMPLETION_FLAG, lease_seconds: int = 3600) -> None:
        self.client = client
        self.flag_key = flag_key
        self.lease_key = f"{flag_key}:lease"
        self.lease_seconds = lease_seconds
        self.owner: str | None = None
        self._release_script = client.register_script(RELEASE_IF_OWNER)
        self._renew_script = client.register_script(RENEW_IF_OWNER)

    def _call(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except STORE_CONNECTION_ERRORS as exc:
            raise StoreUnavailableError(f"store lost while checking {self.flag_key}: {exc}") from exc

    def is_complete(self) -> bool:
        return bool(self._call(self.client.exists, self.flag_key))

    def claim(self, owner: str) -> bool:
        claimed = bool(self._call(self.client.set, self.lease_key, owner, nx=True, ex=self.lease_seconds))
        if claimed:
            self.owner = owner
        return claimed

    def lease_owner(self) -> str | None:
        return self._call(self.client.get, self.lease_key)

    def renew(self) -> None:
        """Push the lease expiry out; raises LeaseLostError if another run now holds it."""
        if self.owner is None:
            raise LeaseLostError(f"no lease held on {self.lease_key}")
        renewed = self._call(self._renew_script, keys=[self.lease_key], args=[self.owner, self.lease_seconds])
        if not renewed:
            raise LeaseLostError(f"lease {self.lease_key} lost by {self.owner}")

    def release(self) -> bool:
        if self.owner is None:
            return False
        released = bool(self._call(self._release_script, keys=[self.lease_key], args=[self.owner]))
        self.owner = None
        return released

    def mark_complete(self) -> None:
        self._call(self.client.set, self.flag_key, "true")
        self.release()

    def reset(self) -> None:
        self._call(self.client.delete, self.flag_key, self.lease_key)
        self.owner = None
