import pytest

from asn856_binder import Asn856TransactionSetBinder
from binder_registry import BinderRegistry, TransactionSetBinder
from cdm import CdmTransactionSet, X12TransactionSet

pytestmark = pytest.mark.unit


class InvoiceBinder(TransactionSetBinder):
    transaction_set_id = "810"

    def bind(self, transaction: CdmTransactionSet) -> X12TransactionSet:
        return X12TransactionSet(transaction_set_identifier_code=transaction.transaction_set_identifier_code)


class UnnamedBinder(TransactionSetBinder):
    def bind(self, transaction: CdmTransactionSet) -> X12TransactionSet:
        return transaction


def test_registry_looks_up_binders_by_transaction_set_id():
    """
    Tests that binders are looked up by their transaction set id.
    """
    asn_binder = Asn856TransactionSetBinder()
    registry = BinderRegistry([asn_binder])
    assert registry.get_binder("856") is asn_binder
    assert registry.get_binder(" 856 ") is asn_binder
    assert registry.get_binder("810") is None
    assert registry.get_binder(None) is None
    assert registry.list_transaction_set_ids() == ["856"]


def test_register_returns_a_new_registry():
    """
    Tests that register returns a new registry and leaves the original unchanged.
    """
    registry = BinderRegistry([Asn856TransactionSetBinder()])
    extended = registry.register(InvoiceBinder())

    assert extended is not registry
    assert sorted(extended.list_transaction_set_ids()) == ["810", "856"]
    assert registry.list_transaction_set_ids() == ["856"]


def test_later_binder_replaces_earlier_one_for_same_id():
    """
    Tests that a later binder for the same id replaces the earlier one.
    """
    first, second = Asn856TransactionSetBinder(), Asn856TransactionSetBinder()
    registry = BinderRegistry([first, second])
    assert registry.get_binder("856") is second


def test_registry_mapping_is_read_only():
    """
    Tests that the registry mapping cannot be modified.
    """
    registry = BinderRegistry([Asn856TransactionSetBinder()])
    with pytest.raises(TypeError):
        registry.binders["810"] = InvoiceBinder()
    assert registry.get_binder("810") is None


def test_binder_without_id_is_rejected():
    """
    Tests that a binder without a transaction set id is rejected.
    """
    with pytest.raises(ValueError):
        BinderRegistry([UnnamedBinder()])


def test_empty_registry():
    """
    Tests that an empty registry has no binders.
    """
    registry = BinderRegistry()
    assert registry.list_transaction_set_ids() == []
    assert registry.get_binder("856") is None
