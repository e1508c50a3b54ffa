import abc
import logging
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from cdm import CdmTransactionSet, X12TransactionSet

logger = logging.getLogger(__name__)


class TransactionSetBinder(abc.ABC):
    """Turns the generic result of one transaction set into its typed form."""

    transaction_set_id: str = ""

    @abc.abstractmethod
    def bind(self, transaction: CdmTransactionSet) -> X12TransactionSet:
        pass


class BinderRegistry:
    """
    Read-only lookup from transaction set identifier (ST01) to its binder.

    The mapping is fixed when the registry is built, so one registry can be
    shared by any number of concurrent parses. `register` never changes an
    existing registry; it returns a new snapshot with the binder added.
    """

    def __init__(self, binders: Iterable[TransactionSetBinder] = ()):
        mapping = {}
        for binder in binders:
            if not binder.transaction_set_id:
                raise ValueError(f"Binder {type(binder).__name__} has no transaction set id.")
            if binder.transaction_set_id in mapping:
                logger.warning(f"Replacing binder for transaction set {binder.transaction_set_id} with {type(binder).__name__}")
            mapping[binder.transaction_set_id] = binder
            logger.debug(f"Registered binder {type(binder).__name__} for transaction set {binder.transaction_set_id}")
        self._binders: Mapping[str, TransactionSetBinder] = MappingProxyType(mapping)

    def register(self, binder: TransactionSetBinder) -> 'BinderRegistry':
        """Returns a new registry containing the existing binders plus this one."""
        return BinderRegistry([*self._binders.values(), binder])

    def get_binder(self, transaction_set_id: Optional[str]) -> Optional[TransactionSetBinder]:
        """
        Get the binder for a transaction set identifier.

        Args:
            transaction_set_id: ST01 value (e.g., "856")

        Returns:
            The registered binder or None if the transaction set is not registered
        """
        if transaction_set_id is None:
            return None
        return self._binders.get(transaction_set_id.strip())

    def list_transaction_set_ids(self) -> List[str]:
        """List registered transaction set identifiers."""
        return list(self._binders.keys())

    @property
    def binders(self) -> Mapping[str, TransactionSetBinder]:
        return self._binders
