from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny
from typing import List, Optional

# Canonical Data Model (CDM) for a parsed X12 interchange.
# Envelope levels (interchange -> group -> transaction set) hold typed header/trailer
# fields; the HL loop forest of each transaction set is built from CdmHlLoop nodes.

class CdmValidationError(BaseModel):
    """A structural error found during parsing. Recorded, never raised."""
    model_config = ConfigDict(frozen=True)

    message: str
    line_number: Optional[int] = None
    segment_id: Optional[str] = None
    hierarchical_id: Optional[str] = None

class CdmElement(BaseModel):
    """Represents a single data element within a segment."""
    value: str
    position: int

class CdmSegment(BaseModel):
    """Represents a single X12 segment."""
    segment_id: str
    elements: List[CdmElement]
    line_number: int
    raw_segment: str # Store the original segment string for reference
    component_separator: Optional[str] = None

    def get_element(self, position: int) -> Optional[str]:
        """Retrieves the value of an element by its position (1-based index)."""
        if 1 <= position <= len(self.elements):
            return self.elements[position - 1].value
        return None

    def get_components(self, position: int) -> List[str]:
        """Splits a composite element on the interchange's sub-element separator."""
        value = self.get_element(position)
        if not value:
            return []
        if not self.component_separator:
            return [value]
        return value.split(self.component_separator)

class CdmHlLoop(BaseModel):
    """
    One HL segment's scope: the segments that follow it up to the next HL,
    and the loops whose HL02 points at it.

    The parent relation is kept as an id only. Ownership runs parent -> children.
    """
    # id and parent id are write-once; segments/children are filled in during the build
    model_config = ConfigDict(frozen=True)

    hierarchical_id: str
    parent_id: Optional[str] = None
    level_code: str
    child_code: Optional[str] = None
    line_number: Optional[int] = None
    segments: List[CdmSegment] = Field(default_factory=list)
    children: List['CdmHlLoop'] = Field(default_factory=list)

    def get_segment(self, segment_id: str) -> Optional[CdmSegment]:
        return next((segment for segment in self.segments if segment.segment_id == segment_id), None)

    def get_segments(self, segment_id: str) -> List[CdmSegment]:
        return [segment for segment in self.segments if segment.segment_id == segment_id]

    def get_children(self, level_code: str) -> List['CdmHlLoop']:
        return [child for child in self.children if child.level_code == level_code]

class InterchangeControlEnvelope(BaseModel):
    """ISA header and IEA trailer fields."""
    authorization_information_qualifier: Optional[str] = None
    authorization_information: Optional[str] = None
    security_information_qualifier: Optional[str] = None
    security_information: Optional[str] = None
    interchange_id_qualifier: Optional[str] = None
    interchange_sender_id: Optional[str] = None
    interchange_id_qualifier_two: Optional[str] = None
    interchange_receiver_id: Optional[str] = None
    interchange_date: Optional[str] = None
    interchange_time: Optional[str] = None
    interchange_control_standard_id: Optional[str] = None
    interchange_control_version: Optional[str] = None
    interchange_control_number: Optional[str] = None
    acknowledgement_requested: Optional[str] = None
    usage_indicator: Optional[str] = None
    # ISA16 as it appears in the header
    element_separator: Optional[str] = None
    number_of_groups: Optional[int] = None
    trailer_interchange_control_number: Optional[str] = None

class X12TransactionSet(BaseModel):
    """Fields shared by every transaction set, bound or not."""
    transaction_set_identifier_code: Optional[str] = None
    header_control_number: Optional[str] = None
    expected_number_of_segments: Optional[int] = None
    trailer_control_number: Optional[str] = None
    looping_valid: bool = True
    looping_errors: Optional[List[CdmValidationError]] = None

class CdmTransactionSet(X12TransactionSet):
    """A transaction set with no registered binder: the generic HL forest as built."""
    header_segments: List[CdmSegment] = Field(default_factory=list)
    loops: List[CdmHlLoop] = Field(default_factory=list)

class X12Group(BaseModel):
    """GS header and GE trailer fields plus the transaction sets between them."""
    functional_identifier_code: Optional[str] = None
    application_sender_code: Optional[str] = None
    application_receiver_code: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    header_group_control_number: Optional[str] = None
    responsible_agency_code: Optional[str] = None
    version: Optional[str] = None
    number_of_transactions: Optional[int] = None
    trailer_group_control_number: Optional[str] = None
    transactions: List[SerializeAsAny[X12TransactionSet]] = Field(default_factory=list)
    errors: List[CdmValidationError] = Field(default_factory=list)

class X12Document(BaseModel):
    interchange_control_envelope: InterchangeControlEnvelope
    groups: List[X12Group] = Field(default_factory=list)
    errors: List[CdmValidationError] = Field(default_factory=list)

CdmHlLoop.model_rebuild()
