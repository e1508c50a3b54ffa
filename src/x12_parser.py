import logging
from typing import List, Optional, Tuple, Union

from cdm import (
    CdmSegment,
    CdmTransactionSet,
    CdmValidationError,
    InterchangeControlEnvelope,
    X12Document,
    X12Group,
    X12TransactionSet,
)
from binder_registry import BinderRegistry
from envelope_assembler import AssembledGroup, AssembledInterchange, AssembledTransactionSet, EnvelopeAssembler
from envelope_validator import parse_count
from hl_loops import HierarchicalLoopBuilder, validate_looping
from x12_tokenizer import X12Tokenizer

logger = logging.getLogger(__name__)


def _field(segment: Optional[CdmSegment], position: int) -> Optional[str]:
    if segment is None:
        return None
    value = segment.get_element(position)
    return value.strip() if value is not None else None


class X12Parser:
    """
    Parses an X12 interchange into an X12Document.

    Transaction sets whose ST01 has a binder in the registry are returned in
    their typed form; all others come back as a CdmTransactionSet holding the
    generic HL loop forest. A parser keeps no state between calls.
    """

    def __init__(self, registry: Optional[BinderRegistry] = None):
        self.registry = registry or BinderRegistry()
        self.loop_builder = HierarchicalLoopBuilder()

    def parse(self, source: Union[str, bytes, None]) -> Optional[X12Document]:
        """
        Args:
            source: the complete interchange text

        Returns:
            The parsed document, or None when the source is empty

        Raises:
            X12ParserException: the source does not start with a usable ISA header
        """
        segments = X12Tokenizer().tokenize(source)
        if not segments:
            return None
        logger.debug(f"Parser received {len(segments)} segments.")

        interchange = EnvelopeAssembler().assemble(segments)
        if interchange is None:
            return None

        document = X12Document(
            interchange_control_envelope=self._build_interchange_envelope(interchange),
            errors=list(interchange.errors),
        )
        for assembled_group in interchange.groups:
            document.groups.append(self._build_group(assembled_group))

        self._log_summary(document)
        return document

    def _build_interchange_envelope(self, interchange: AssembledInterchange) -> InterchangeControlEnvelope:
        isa = interchange.header
        iea = interchange.trailer
        return InterchangeControlEnvelope(
            authorization_information_qualifier=_field(isa, 1),
            authorization_information=_field(isa, 2),
            security_information_qualifier=_field(isa, 3),
            security_information=_field(isa, 4),
            interchange_id_qualifier=_field(isa, 5),
            interchange_sender_id=_field(isa, 6),
            interchange_id_qualifier_two=_field(isa, 7),
            interchange_receiver_id=_field(isa, 8),
            interchange_date=_field(isa, 9),
            interchange_time=_field(isa, 10),
            interchange_control_standard_id=_field(isa, 11),
            interchange_control_version=_field(isa, 12),
            interchange_control_number=_field(isa, 13),
            acknowledgement_requested=_field(isa, 14),
            usage_indicator=_field(isa, 15),
            element_separator=_field(isa, 16),
            number_of_groups=parse_count(_field(iea, 1)),
            trailer_interchange_control_number=_field(iea, 2),
        )

    def _build_group(self, assembled: AssembledGroup) -> X12Group:
        gs = assembled.header
        ge = assembled.trailer
        group = X12Group(
            functional_identifier_code=_field(gs, 1),
            application_sender_code=_field(gs, 2),
            application_receiver_code=_field(gs, 3),
            date=_field(gs, 4),
            time=_field(gs, 5),
            header_group_control_number=_field(gs, 6),
            responsible_agency_code=_field(gs, 7),
            version=_field(gs, 8),
            number_of_transactions=parse_count(_field(ge, 1)),
            trailer_group_control_number=_field(ge, 2),
            errors=list(assembled.errors),
        )
        for assembled_transaction in assembled.transactions:
            group.transactions.append(self._parse_transaction_set(assembled_transaction))
        return group

    def _parse_transaction_set(self, assembled: AssembledTransactionSet) -> X12TransactionSet:
        st = assembled.header
        se = assembled.trailer
        identifier_code = _field(st, 1)
        logger.info(f"=== PARSING TRANSACTION SET {identifier_code or 'UNKNOWN'} ({_field(st, 2)}) ===")

        loop_result = self.loop_builder.build(assembled.body)
        # HL errors come from the body, trailer errors from SE; together they stay in document order
        loop_result.errors.extend(assembled.errors)
        validation = validate_looping(loop_result)

        transaction = CdmTransactionSet(
            transaction_set_identifier_code=identifier_code,
            header_control_number=_field(st, 2),
            expected_number_of_segments=parse_count(_field(se, 1)),
            trailer_control_number=_field(se, 2),
            looping_valid=validation.looping_valid,
            looping_errors=validation.errors,
            header_segments=loop_result.header_segments,
            loops=loop_result.loops,
        )

        binder = self.registry.get_binder(identifier_code)
        if binder is None:
            logger.info(f"No binder registered for transaction set {identifier_code}. Returning generic loops.")
            return transaction

        bound = binder.bind(transaction)
        logger.info(f"=== TRANSACTION SET PARSING COMPLETE (looping valid: {bound.looping_valid}) ===")
        return bound

    def collect_all_errors(self, document: X12Document) -> List[Tuple[str, CdmValidationError]]:
        all_errors: List[Tuple[str, CdmValidationError]] = []
        for error in document.errors:
            all_errors.append(("Interchange", error))

        for group in document.groups:
            for error in group.errors:
                all_errors.append((f"Group {group.header_group_control_number}", error))
            for transaction in group.transactions:
                for error in transaction.looping_errors or []:
                    all_errors.append((f"Transaction {transaction.header_control_number}", error))
        return all_errors

    def _log_summary(self, document: X12Document):
        all_errors = self.collect_all_errors(document)
        if all_errors:
            logger.warning("--- X12 PARSE SUMMARY: ERRORS FOUND ---")
            logger.warning(f"Total Errors: {len(all_errors)}")
            for location, error in all_errors:
                logger.warning(f"  - Location: {location}")
                logger.warning(f"    - Error: {error.message}")
            logger.warning("--- END OF SUMMARY ---")
        else:
            logger.info("--- X12 PARSE SUMMARY: SUCCESS ---")
            logger.info("No errors found in the document.")
            logger.info("--- END OF SUMMARY ---")
