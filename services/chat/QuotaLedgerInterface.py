from abc import ABC, abstractmethod
from datetime import date


class QuotaLedgerInterface(ABC):
    """Per-user, per-day message counter gating non-privileged chat usage."""

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_key(self, user_id: str, day: date) -> str:
        """
        Returns the ledger key for a user and a UTC calendar day. E.g. "user:u_42:2024-05-01"
        """
        return f"user:{user_id}:{day.isoformat()}"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_get(self, user_id: str, day: date) -> int | None:
        """Read the current count for a user and day.

        Args:
            user_id (str): The caller's id.
            day (date): The UTC calendar day.

        Returns:
            int | None: The stored count, or None if nothing is recorded yet.
        """
        pass

    @abstractmethod
    async def do_increment(self, user_id: str, day: date) -> int:
        """Increment the count for a user and day and return the new value.

        Args:
            user_id (str): The caller's id.
            day (date): The UTC calendar day.

        Returns:
            int: The count after incrementing.
        """
        pass
