from concurrent.futures import ThreadPoolExecutor

import pytest

from asn856_binder import AsnTransactionSet
from cdm import CdmTransactionSet
from x12_errors import X12ParserException
from x12_parser import X12Parser

pytestmark = pytest.mark.unit


def test_whitespace_only_source_yields_no_document(asn_parser: X12Parser):
    """
    Tests that whitespace-only text or empty bytes give no document.
    """
    assert asn_parser.parse("   \n  \r\n  \t  ") is None
    assert asn_parser.parse(b"") is None


def test_source_without_isa_is_fatal(asn_parser: X12Parser):
    """
    Tests that text not starting with ISA raises X12ParserException.
    """
    with pytest.raises(X12ParserException):
        asn_parser.parse("ST*856*0001~SE*2*0001~")


def test_bytes_source_is_parsed(asn_parser: X12Parser, asn856_edi_string: str):
    """
    Tests that UTF-8 bytes parse the same as text.
    """
    x12 = asn_parser.parse(asn856_edi_string.encode("utf-8"))
    assert x12.groups[0].transactions[0].shipment_identification == "829716"


def test_group_count_mismatch_is_not_fatal(asn_parser: X12Parser, asn856_edi_string: str):
    """
    Tests that a wrong IEA group count is reported on the document without failing the parse.
    """
    source = asn856_edi_string.replace("IEA*1*000000049", "IEA*3*000000049")
    x12 = asn_parser.parse(source)

    assert x12 is not None
    assert x12.interchange_control_envelope.number_of_groups == 3
    assert len(x12.groups) == 1
    assert [e.message for e in x12.errors] == ["Interchange (000003438) expected 3 groups but contained 1"]
    # the transaction set itself is untouched
    assert x12.groups[0].transactions[0].looping_valid is True


def test_segment_count_mismatch_invalidates_looping(asn_parser: X12Parser, asn856_edi_string: str):
    """
    Tests that a wrong SE segment count marks looping as invalid.
    """
    source = asn856_edi_string.replace("SE*31*0008", "SE*30*0008")
    asn_tx = asn_parser.parse(source).groups[0].transactions[0]

    assert asn_tx.expected_number_of_segments == 30
    assert asn_tx.looping_valid is False
    assert [e.message for e in asn_tx.looping_errors] == ["Transaction set (0008) expected 30 segments but contained 31"]
    # best-effort structure is still bound
    assert asn_tx.get_shipment().children[0].as_order() is not None


def test_loop_errors_precede_trailer_errors(asn_parser: X12Parser, asn856_edi_string: str):
    """
    Tests that HL errors are listed before SE trailer errors.
    """
    source = asn856_edi_string.replace("HL*2*1*O", "HL*2*99*O").replace("SE*31*0008", "SE*30*0008")
    asn_tx = asn_parser.parse(source).groups[0].transactions[0]
    assert [e.message for e in asn_tx.looping_errors] == [
        "HL segment (2) is missing parent (99)",
        "Transaction set (0008) expected 30 segments but contained 31",
    ]


def test_group_errors_are_reported_on_the_group(asn_parser: X12Parser, asn856_edi_string: str):
    """
    Tests that GE mismatches land on the group and in the collected errors.
    """
    source = asn856_edi_string.replace("GE*1*49", "GE*2*50")
    x12 = asn_parser.parse(source)
    group = x12.groups[0]
    assert group.number_of_transactions == 2
    assert group.trailer_group_control_number == "50"
    assert len(group.errors) == 2
    assert x12.errors == []

    locations = [location for location, _ in asn_parser.collect_all_errors(x12)]
    assert locations == ["Group 49", "Group 49"]


def test_unregistered_transaction_set_keeps_generic_loops(asn_parser: X12Parser, interchange_builder):
    """
    Tests that a transaction set with no binder keeps its generic HL loops.
    """
    source = interchange_builder([["BIG*20240718*INV1", "HL*1**S", "REF*IA*1", "HL*2*1*X"]], identifier_code="810")
    transaction = asn_parser.parse(source).groups[0].transactions[0]

    assert type(transaction) is CdmTransactionSet
    assert transaction.transaction_set_identifier_code == "810"
    assert transaction.expected_number_of_segments == 6
    assert transaction.looping_valid is True
    assert [s.segment_id for s in transaction.header_segments] == ["BIG"]
    assert transaction.loops[0].level_code == "S"
    assert transaction.loops[0].children[0].level_code == "X"


def test_parser_without_registry_returns_generic_transaction_sets(asn856_edi_string: str):
    """
    Tests that a parser without a registry returns generic transaction sets.
    """
    transaction = X12Parser().parse(asn856_edi_string).groups[0].transactions[0]
    assert isinstance(transaction, CdmTransactionSet)
    assert not isinstance(transaction, AsnTransactionSet)
    assert transaction.header_control_number == "0008"
    assert [child.hierarchical_id for child in transaction.loops[0].children] == ["2"]


def test_mixed_transaction_sets_in_one_group(asn_parser: X12Parser, interchange_builder):
    """
    Tests that several transaction sets in one group are each bound.
    """
    source = interchange_builder([["BSN*00*A*20240718*1200*0001", "HL*1**S"], ["BSN*00*B*20240718*1200*0001", "HL*1**S"]])
    transactions = asn_parser.parse(source).groups[0].transactions
    assert [t.shipment_identification for t in transactions] == ["A", "B"]
    assert [t.header_control_number for t in transactions] == ["0001", "0002"]


def test_concurrent_parses_share_one_registry(asn_parser: X12Parser, asn856_edi_string: str):
    """
    Tests that concurrent parses sharing one registry give the same results as sequential ones.
    """
    bad_source = asn856_edi_string.replace("HL*2*1*O", "HL*2*99*O")
    sources = [asn856_edi_string, bad_source] * 8

    with ThreadPoolExecutor(max_workers=4) as executor:
        documents = list(executor.map(asn_parser.parse, sources))

    good_dump = asn_parser.parse(asn856_edi_string).model_dump()
    bad_dump = asn_parser.parse(bad_source).model_dump()
    for source, document in zip(sources, documents):
        assert document.model_dump() == (good_dump if source == asn856_edi_string else bad_dump)


def test_latin1_encoded_source_is_parsed(asn_parser: X12Parser, asn856_edi_string: str):
    """
    Tests that a latin-1 encoded interchange with extended characters is parsed.
    """
    source = asn856_edi_string.replace("BLUE WIDGET", "BLEU CAFÉ").encode("latin-1")
    asn_tx = asn_parser.parse(source).groups[0].transactions[0]
    item = asn_tx.get_shipment().children[0].children[0].children[0].as_item()
    assert item.pid_list[0].description == "BLEU CAFÉ"
    assert asn_tx.looping_valid is True


def test_isa_with_colliding_delimiters_is_fatal(asn_parser: X12Parser, asn856_edi_string: str):
    """
    Tests that an ISA whose segment terminator repeats the element separator is rejected.
    """
    isa_line, rest = asn856_edi_string.split("~\n", 1)
    with pytest.raises(X12ParserException):
        asn_parser.parse(isa_line + "*" + rest.replace("~\n", "*"))
