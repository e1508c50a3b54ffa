from typing import List, Optional

from pydantic import BaseModel, Field

from cdm import CdmSegment

# Typed records for the segments an ASN 856 binds into its loops.
# Values stay as strings; callers coerce what they need.


def element_value(segment: CdmSegment, position: int) -> Optional[str]:
    value = segment.get_element(position)
    if value is None:
        return None
    value = value.strip()
    return value or None


class PRFPurchaseOrderReference(BaseModel):
    """PRF: Purchase Order Reference"""
    purchase_order_number: Optional[str] = None
    release_number: Optional[str] = None
    change_order_sequence_number: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'PRFPurchaseOrderReference':
        return cls(
            purchase_order_number=element_value(segment, 1),
            release_number=element_value(segment, 2),
            change_order_sequence_number=element_value(segment, 3),
            date=element_value(segment, 4),
        )


class TD1CarrierDetail(BaseModel):
    """TD1: Carrier Details (Quantity and Weight)"""
    packaging_code: Optional[str] = None
    lading_quantity: Optional[str] = None
    commodity_code_qualifier: Optional[str] = None
    commodity_code: Optional[str] = None
    lading_description: Optional[str] = None
    weight_qualifier: Optional[str] = None
    weight: Optional[str] = None
    unit_of_measurement_code: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'TD1CarrierDetail':
        return cls(
            packaging_code=element_value(segment, 1),
            lading_quantity=element_value(segment, 2),
            commodity_code_qualifier=element_value(segment, 3),
            commodity_code=element_value(segment, 4),
            lading_description=element_value(segment, 5),
            weight_qualifier=element_value(segment, 6),
            weight=element_value(segment, 7),
            unit_of_measurement_code=element_value(segment, 8),
        )


class TD5CarrierDetail(BaseModel):
    """TD5: Carrier Details (Routing Sequence/Transit Time)"""
    routing_sequence_code: Optional[str] = None
    identification_code_qualifier: Optional[str] = None
    identification_code: Optional[str] = None
    transportation_method_code: Optional[str] = None
    routing: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'TD5CarrierDetail':
        return cls(
            routing_sequence_code=element_value(segment, 1),
            identification_code_qualifier=element_value(segment, 2),
            identification_code=element_value(segment, 3),
            transportation_method_code=element_value(segment, 4),
            routing=element_value(segment, 5),
        )


class REFReferenceInformation(BaseModel):
    """REF: Reference Information"""
    reference_identification_qualifier: Optional[str] = None
    reference_identification: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'REFReferenceInformation':
        return cls(
            reference_identification_qualifier=element_value(segment, 1),
            reference_identification=element_value(segment, 2),
            description=element_value(segment, 3),
        )


class DTMDateTimeReference(BaseModel):
    """DTM: Date/Time Reference"""
    date_time_qualifier: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'DTMDateTimeReference':
        return cls(
            date_time_qualifier=element_value(segment, 1),
            date=element_value(segment, 2),
            time=element_value(segment, 3),
        )


class N1PartyIdentification(BaseModel):
    """
    N1: Party Identification, with the N3 (address) and N4 (geographic location)
    segments that follow it folded in.
    """
    entity_identifier_code: Optional[str] = None
    name: Optional[str] = None
    identification_code_qualifier: Optional[str] = None
    identification_code: Optional[str] = None
    address_lines: List[str] = Field(default_factory=list)
    city_name: Optional[str] = None
    state_or_province_code: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'N1PartyIdentification':
        return cls(
            entity_identifier_code=element_value(segment, 1),
            name=element_value(segment, 2),
            identification_code_qualifier=element_value(segment, 3),
            identification_code=element_value(segment, 4),
        )

    def add_address(self, segment: CdmSegment):
        """N3 carries up to two address lines."""
        for position in (1, 2):
            line = element_value(segment, position)
            if line:
                self.address_lines.append(line)

    def set_geographic_location(self, segment: CdmSegment):
        self.city_name = element_value(segment, 1)
        self.state_or_province_code = element_value(segment, 2)
        self.postal_code = element_value(segment, 3)
        self.country_code = element_value(segment, 4)


class MANMarkNumber(BaseModel):
    """MAN: Marks and Numbers Information"""
    qualifier: Optional[str] = None
    number: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'MANMarkNumber':
        return cls(qualifier=element_value(segment, 1), number=element_value(segment, 2))


class ProductId(BaseModel):
    qualifier: str
    value: Optional[str] = None


class LINItemIdentification(BaseModel):
    """LIN: Item Identification. LIN02 onwards are qualifier/id pairs."""
    assigned_identification: Optional[str] = None
    product_ids: List[ProductId] = Field(default_factory=list)

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'LINItemIdentification':
        lin = cls(assigned_identification=element_value(segment, 1))
        for position in range(2, len(segment.elements) + 1, 2):
            qualifier = element_value(segment, position)
            if qualifier:
                lin.product_ids.append(ProductId(qualifier=qualifier, value=element_value(segment, position + 1)))
        return lin

    def get_product_id(self, qualifier: str) -> Optional[str]:
        return next((p.value for p in self.product_ids if p.qualifier == qualifier), None)


class SN1ItemDetail(BaseModel):
    """SN1: Item Detail (Shipment)"""
    assigned_identification: Optional[str] = None
    number_of_units_shipped: Optional[str] = None
    unit_of_measurement_code: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'SN1ItemDetail':
        return cls(
            assigned_identification=element_value(segment, 1),
            number_of_units_shipped=element_value(segment, 2),
            unit_of_measurement_code=element_value(segment, 3),
        )


class PO4ItemPhysicalDetail(BaseModel):
    """PO4: Item Physical Details"""
    pack: Optional[str] = None
    size: Optional[str] = None
    unit_of_measurement_code: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'PO4ItemPhysicalDetail':
        return cls(
            pack=element_value(segment, 1),
            size=element_value(segment, 2),
            unit_of_measurement_code=element_value(segment, 3),
        )


class PIDProductDescription(BaseModel):
    """PID: Product/Item Description"""
    item_description_type: Optional[str] = None
    product_characteristic_code: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: CdmSegment) -> 'PIDProductDescription':
        return cls(
            item_description_type=element_value(segment, 1),
            product_characteristic_code=element_value(segment, 2),
            description=element_value(segment, 5),
        )
