import logging
from typing import Callable, Dict, List, Optional

from pydantic import Field

from cdm import CdmHlLoop, CdmSegment, CdmTransactionSet, X12TransactionSet
from binder_registry import TransactionSetBinder
from asn856_loops import Asn856Loop, GenericLoop, Item, Order, Pack, Shipment, Tare
from asn856_segments import (
    DTMDateTimeReference,
    LINItemIdentification,
    MANMarkNumber,
    N1PartyIdentification,
    PIDProductDescription,
    PO4ItemPhysicalDetail,
    PRFPurchaseOrderReference,
    REFReferenceInformation,
    SN1ItemDetail,
    TD1CarrierDetail,
    TD5CarrierDetail,
    element_value,
)

logger = logging.getLogger(__name__)

ASN_TRANSACTION_SET_ID = "856"


class AsnTransactionSet(X12TransactionSet):
    """ASN 856: Advance Shipment Notice"""
    # BSN
    purpose_code: Optional[str] = None
    shipment_identification: Optional[str] = None
    shipment_date: Optional[str] = None
    shipment_time: Optional[str] = None
    hierarchical_structure_code: Optional[str] = None
    loops: List[Asn856Loop] = Field(default_factory=list)

    def get_shipment(self) -> Optional[Shipment]:
        return next((loop for loop in self.loops if isinstance(loop, Shipment)), None)


# --- Segment handlers, one table per loop shape ---

def _add_td1(loop, segment: CdmSegment):
    loop.add_td1_carrier_detail(TD1CarrierDetail.from_segment(segment))

def _add_ref(loop, segment: CdmSegment):
    loop.add_reference_information(REFReferenceInformation.from_segment(segment))

def _add_man(loop, segment: CdmSegment):
    loop.add_mark_number(MANMarkNumber.from_segment(segment))

def _add_td5(shipment: Shipment, segment: CdmSegment):
    shipment.add_td5_carrier_detail(TD5CarrierDetail.from_segment(segment))

def _add_dtm(shipment: Shipment, segment: CdmSegment):
    shipment.add_date_time_reference(DTMDateTimeReference.from_segment(segment))

def _add_n1(shipment: Shipment, segment: CdmSegment):
    shipment.add_party_identification(N1PartyIdentification.from_segment(segment))

def _add_n3(shipment: Shipment, segment: CdmSegment):
    party = shipment.last_party_identification()
    if party is None:
        logger.debug(f"N3 (line {segment.line_number}) has no preceding N1. Dropping it.")
        return
    party.add_address(segment)

def _set_n4(shipment: Shipment, segment: CdmSegment):
    party = shipment.last_party_identification()
    if party is None:
        logger.debug(f"N4 (line {segment.line_number}) has no preceding N1. Dropping it.")
        return
    party.set_geographic_location(segment)

def _set_prf(order: Order, segment: CdmSegment):
    order.prf = PRFPurchaseOrderReference.from_segment(segment)

def _set_lin(item: Item, segment: CdmSegment):
    item.lin = LINItemIdentification.from_segment(segment)

def _set_sn1(item: Item, segment: CdmSegment):
    item.sn1 = SN1ItemDetail.from_segment(segment)

def _set_po4(item: Item, segment: CdmSegment):
    item.po4 = PO4ItemPhysicalDetail.from_segment(segment)

def _add_pid(item: Item, segment: CdmSegment):
    item.add_product_description(PIDProductDescription.from_segment(segment))


SegmentHandler = Callable[[Asn856Loop, CdmSegment], None]

SHIPMENT_SEGMENT_HANDLERS: Dict[str, SegmentHandler] = {
    'TD1': _add_td1,
    'TD5': _add_td5,
    'REF': _add_ref,
    'DTM': _add_dtm,
    'N1': _add_n1,
    'N3': _add_n3,
    'N4': _set_n4,
}

ORDER_SEGMENT_HANDLERS: Dict[str, SegmentHandler] = {
    'PRF': _set_prf,
    'TD1': _add_td1,
    'REF': _add_ref,
}

PACKAGING_SEGMENT_HANDLERS: Dict[str, SegmentHandler] = {
    'MAN': _add_man,
    'REF': _add_ref,
}

ITEM_SEGMENT_HANDLERS: Dict[str, SegmentHandler] = {
    'LIN': _set_lin,
    'SN1': _set_sn1,
    'PO4': _set_po4,
    'PID': _add_pid,
    'REF': _add_ref,
}


class Asn856TransactionSetBinder(TransactionSetBinder):
    """
    Binds the generic HL forest of an 856 into Shipment/Order/Tare/Pack/Item loops.

    Loops are dispatched on their HL03 level code; any other code is passed
    through as a GenericLoop. Within a loop each segment is routed by its id
    and segments the shape does not know are dropped.
    """

    transaction_set_id = ASN_TRANSACTION_SET_ID

    def __init__(self):
        self._loop_shapes = {
            Shipment.LOOP_CODE: (Shipment, SHIPMENT_SEGMENT_HANDLERS),
            Order.LOOP_CODE: (Order, ORDER_SEGMENT_HANDLERS),
            Tare.LOOP_CODE: (Tare, PACKAGING_SEGMENT_HANDLERS),
            Pack.LOOP_CODE: (Pack, PACKAGING_SEGMENT_HANDLERS),
            Item.LOOP_CODE: (Item, ITEM_SEGMENT_HANDLERS),
        }

    def bind(self, transaction: CdmTransactionSet) -> AsnTransactionSet:
        asn = AsnTransactionSet(
            transaction_set_identifier_code=transaction.transaction_set_identifier_code,
            header_control_number=transaction.header_control_number,
            expected_number_of_segments=transaction.expected_number_of_segments,
            trailer_control_number=transaction.trailer_control_number,
            looping_valid=transaction.looping_valid,
            looping_errors=transaction.looping_errors,
        )
        self._bind_beginning_segment(asn, transaction.header_segments)
        asn.loops = [self._bind_loop(root) for root in transaction.loops]
        logger.debug(f"Bound ASN {asn.shipment_identification} with {len(asn.loops)} root loops.")
        return asn

    def _bind_beginning_segment(self, asn: AsnTransactionSet, header_segments: List[CdmSegment]):
        bsn = next((segment for segment in header_segments if segment.segment_id == 'BSN'), None)
        if bsn is None:
            logger.warning(f"ASN {asn.header_control_number} has no BSN segment.")
            return
        asn.purpose_code = element_value(bsn, 1)
        asn.shipment_identification = element_value(bsn, 2)
        asn.shipment_date = element_value(bsn, 3)
        asn.shipment_time = element_value(bsn, 4)
        asn.hierarchical_structure_code = element_value(bsn, 5)

    def _bind_loop(self, node: CdmHlLoop) -> Asn856Loop:
        shape = self._loop_shapes.get(node.level_code)
        if shape is None:
            logger.debug(f"HL {node.hierarchical_id} has unrecognized level code '{node.level_code}'. Keeping it as a generic loop.")
            loop = GenericLoop(
                hierarchical_id=node.hierarchical_id,
                parent_id=node.parent_id,
                level_code=node.level_code,
                segments=node.segments,
            )
        else:
            loop_type, handlers = shape
            loop = loop_type(
                hierarchical_id=node.hierarchical_id,
                parent_id=node.parent_id,
                level_code=node.level_code,
            )
            for segment in node.segments:
                handler = handlers.get(segment.segment_id)
                if handler is None:
                    logger.debug(f"Dropping {segment.segment_id} (line {segment.line_number}) from {loop.loop_kind} loop {node.hierarchical_id}.")
                    continue
                handler(loop, segment)

        for child in node.children:
            loop.children.append(self._bind_loop(child))
        return loop
