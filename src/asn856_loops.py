from typing import Annotated, ClassVar, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from cdm import CdmHlLoop, CdmSegment
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
)

# The loops of an ASN 856 form a closed set of variants tagged by `loop_kind`.
# Any HL level code without a variant of its own is kept as a GenericLoop.
# New loop types are added here and in the binder's dispatch table.


def is_loop_with_code(loop: Optional[CdmHlLoop], level_code: str) -> bool:
    return loop is not None and loop.level_code == level_code


class Asn856LoopFields(BaseModel):
    """Fields every bound loop carries over from its HL segment."""
    hierarchical_id: str
    parent_id: Optional[str] = None
    level_code: str
    children: List['Asn856Loop'] = Field(default_factory=list)

    def as_shipment(self) -> Optional['Shipment']:
        return self if isinstance(self, Shipment) else None

    def as_order(self) -> Optional['Order']:
        return self if isinstance(self, Order) else None

    def as_tare(self) -> Optional['Tare']:
        return self if isinstance(self, Tare) else None

    def as_pack(self) -> Optional['Pack']:
        return self if isinstance(self, Pack) else None

    def as_item(self) -> Optional['Item']:
        return self if isinstance(self, Item) else None

    def as_generic(self) -> Optional['GenericLoop']:
        return self if isinstance(self, GenericLoop) else None


class Shipment(Asn856LoopFields):
    """Represents the Shipment level of information"""
    LOOP_CODE: ClassVar[str] = "S"

    loop_kind: Literal["shipment"] = "shipment"
    td1_list: Optional[List[TD1CarrierDetail]] = None
    td5_list: Optional[List[TD5CarrierDetail]] = None
    ref_list: Optional[List[REFReferenceInformation]] = None
    dtm_list: Optional[List[DTMDateTimeReference]] = None
    n1_party_identifications: Optional[List[N1PartyIdentification]] = None

    @staticmethod
    def is_shipment_loop(loop: Optional[CdmHlLoop]) -> bool:
        return is_loop_with_code(loop, Shipment.LOOP_CODE)

    def add_td1_carrier_detail(self, td1: TD1CarrierDetail):
        if self.td1_list is None:
            self.td1_list = []
        self.td1_list.append(td1)

    def add_td5_carrier_detail(self, td5: TD5CarrierDetail):
        if self.td5_list is None:
            self.td5_list = []
        self.td5_list.append(td5)

    def add_reference_information(self, ref: REFReferenceInformation):
        if self.ref_list is None:
            self.ref_list = []
        self.ref_list.append(ref)

    def add_date_time_reference(self, dtm: DTMDateTimeReference):
        if self.dtm_list is None:
            self.dtm_list = []
        self.dtm_list.append(dtm)

    def add_party_identification(self, n1: N1PartyIdentification):
        if self.n1_party_identifications is None:
            self.n1_party_identifications = []
        self.n1_party_identifications.append(n1)

    def last_party_identification(self) -> Optional[N1PartyIdentification]:
        if not self.n1_party_identifications:
            return None
        return self.n1_party_identifications[-1]


class Order(Asn856LoopFields):
    """Represents the Order level of information"""
    LOOP_CODE: ClassVar[str] = "O"

    loop_kind: Literal["order"] = "order"
    # PRF: Purchase Order Ref
    prf: Optional[PRFPurchaseOrderReference] = None
    # TD1: Carrier Details
    td1_list: Optional[List[TD1CarrierDetail]] = None
    ref_list: Optional[List[REFReferenceInformation]] = None

    @staticmethod
    def is_order_loop(loop: Optional[CdmHlLoop]) -> bool:
        return is_loop_with_code(loop, Order.LOOP_CODE)

    def add_td1_carrier_detail(self, td1: TD1CarrierDetail):
        if self.td1_list is None:
            self.td1_list = []
        self.td1_list.append(td1)

    def add_reference_information(self, ref: REFReferenceInformation):
        if self.ref_list is None:
            self.ref_list = []
        self.ref_list.append(ref)


class Tare(Asn856LoopFields):
    """Represents the Tare (pallet) level of information"""
    LOOP_CODE: ClassVar[str] = "T"

    loop_kind: Literal["tare"] = "tare"
    man_list: Optional[List[MANMarkNumber]] = None
    ref_list: Optional[List[REFReferenceInformation]] = None

    @staticmethod
    def is_tare_loop(loop: Optional[CdmHlLoop]) -> bool:
        return is_loop_with_code(loop, Tare.LOOP_CODE)

    def add_mark_number(self, man: MANMarkNumber):
        if self.man_list is None:
            self.man_list = []
        self.man_list.append(man)

    def add_reference_information(self, ref: REFReferenceInformation):
        if self.ref_list is None:
            self.ref_list = []
        self.ref_list.append(ref)


class Pack(Asn856LoopFields):
    """Represents the Pack (carton) level of information"""
    LOOP_CODE: ClassVar[str] = "P"

    loop_kind: Literal["pack"] = "pack"
    man_list: Optional[List[MANMarkNumber]] = None
    ref_list: Optional[List[REFReferenceInformation]] = None

    @staticmethod
    def is_pack_loop(loop: Optional[CdmHlLoop]) -> bool:
        return is_loop_with_code(loop, Pack.LOOP_CODE)

    def add_mark_number(self, man: MANMarkNumber):
        if self.man_list is None:
            self.man_list = []
        self.man_list.append(man)

    def add_reference_information(self, ref: REFReferenceInformation):
        if self.ref_list is None:
            self.ref_list = []
        self.ref_list.append(ref)


class Item(Asn856LoopFields):
    """Represents the Item level of information"""
    LOOP_CODE: ClassVar[str] = "I"

    loop_kind: Literal["item"] = "item"
    lin: Optional[LINItemIdentification] = None
    sn1: Optional[SN1ItemDetail] = None
    po4: Optional[PO4ItemPhysicalDetail] = None
    pid_list: Optional[List[PIDProductDescription]] = None
    ref_list: Optional[List[REFReferenceInformation]] = None

    @staticmethod
    def is_item_loop(loop: Optional[CdmHlLoop]) -> bool:
        return is_loop_with_code(loop, Item.LOOP_CODE)

    def add_product_description(self, pid: PIDProductDescription):
        if self.pid_list is None:
            self.pid_list = []
        self.pid_list.append(pid)

    def add_reference_information(self, ref: REFReferenceInformation):
        if self.ref_list is None:
            self.ref_list = []
        self.ref_list.append(ref)


class GenericLoop(Asn856LoopFields):
    """A loop whose level code has no typed shape. Keeps its raw segments."""
    loop_kind: Literal["generic"] = "generic"
    segments: List[CdmSegment] = Field(default_factory=list)


Asn856Loop = Annotated[
    Union[Shipment, Order, Tare, Pack, Item, GenericLoop],
    Field(discriminator='loop_kind'),
]

# Rebuild models to resolve forward references.
for _model in (Asn856LoopFields, Shipment, Order, Tare, Pack, Item, GenericLoop):
    _model.model_rebuild()
