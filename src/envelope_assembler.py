import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from cdm import CdmSegment, CdmValidationError
from envelope_validator import (
    validate_group_trailer,
    validate_interchange_trailer,
    validate_transaction_set_trailer,
)

logger = logging.getLogger(__name__)


class AssemblerState(Enum):
    AWAIT_INTERCHANGE = "AwaitInterchange"
    AWAIT_GROUP = "AwaitGroup"
    AWAIT_TRANSACTION_SET = "AwaitTransactionSet"
    IN_TRANSACTION_SET = "InTransactionSet"
    AWAIT_GROUP_TRAILER = "AwaitGroupTrailer"
    AWAIT_INTERCHANGE_TRAILER = "AwaitInterchangeTrailer"


# States in which a functional group is open
GROUP_OPEN_STATES = (
    AssemblerState.AWAIT_TRANSACTION_SET,
    AssemblerState.IN_TRANSACTION_SET,
    AssemblerState.AWAIT_GROUP_TRAILER,
)


class AssembledTransactionSet(BaseModel):
    header: CdmSegment
    trailer: Optional[CdmSegment] = None
    body: List[CdmSegment] = Field(default_factory=list)
    errors: List[CdmValidationError] = Field(default_factory=list)

    @property
    def segment_count(self) -> int:
        """Segments consumed from ST to SE, both markers included."""
        return len(self.body) + 1 + (1 if self.trailer is not None else 0)

    @property
    def identifier_code(self) -> Optional[str]:
        return self.header.get_element(1)


class AssembledGroup(BaseModel):
    header: CdmSegment
    trailer: Optional[CdmSegment] = None
    transactions: List[AssembledTransactionSet] = Field(default_factory=list)
    stray_segments: List[CdmSegment] = Field(default_factory=list)
    errors: List[CdmValidationError] = Field(default_factory=list)


class AssembledInterchange(BaseModel):
    header: CdmSegment
    trailer: Optional[CdmSegment] = None
    groups: List[AssembledGroup] = Field(default_factory=list)
    stray_segments: List[CdmSegment] = Field(default_factory=list)
    errors: List[CdmValidationError] = Field(default_factory=list)


class EnvelopeAssembler:
    """
    Groups a flat segment list into interchange -> groups -> transaction sets.

    Strict only about the ISA/GS/ST/SE/GE/IEA markers and their trailer counts.
    Every other segment is kept on whichever container is open. Problems are
    recorded as CdmValidationErrors on the level they belong to and assembly
    carries on.

    SE pops back to AWAIT_TRANSACTION_SET and GE pops back to AWAIT_GROUP, so
    the trailer-await states are never entered by a well-formed walk.
    """

    def __init__(self):
        self.state = AssemblerState.AWAIT_INTERCHANGE
        self._interchange: Optional[AssembledInterchange] = None
        self._group: Optional[AssembledGroup] = None
        self._transaction: Optional[AssembledTransactionSet] = None
        self._marker_handlers: Dict[str, Callable[[CdmSegment], None]] = {
            'ISA': self._on_interchange_header,
            'GS': self._on_group_header,
            'ST': self._on_transaction_header,
            'SE': self._on_transaction_trailer,
            'GE': self._on_group_trailer,
            'IEA': self._on_interchange_trailer,
        }

    def assemble(self, segments: List[CdmSegment]) -> Optional[AssembledInterchange]:
        self.state = AssemblerState.AWAIT_INTERCHANGE
        self._interchange = None
        self._group = None
        self._transaction = None
        if not segments:
            return None

        for index, segment in enumerate(segments):
            handler = self._marker_handlers.get(segment.segment_id, self._on_content)
            handler(segment)
            if self._interchange is not None and self._interchange.trailer is not None:
                remaining = len(segments) - index - 1
                if remaining:
                    logger.warning(f"Ignoring {remaining} segments after the IEA trailer (line {segment.line_number}).")
                break
        else:
            self._close_open_containers(segments[-1])

        return self._interchange

    # --- Marker handlers ---

    def _on_interchange_header(self, segment: CdmSegment):
        if self.state is not AssemblerState.AWAIT_INTERCHANGE:
            self._unexpected(segment)
            return
        self._interchange = AssembledInterchange(header=segment)
        self._transition(AssemblerState.AWAIT_GROUP, segment)

    def _on_group_header(self, segment: CdmSegment):
        if self.state is AssemblerState.AWAIT_INTERCHANGE:
            self._unexpected(segment)
            return
        if self.state in GROUP_OPEN_STATES:
            self._close_transaction_without_trailer()
            self._close_group_without_trailer()
        self._group = AssembledGroup(header=segment)
        self._interchange.groups.append(self._group)
        self._transition(AssemblerState.AWAIT_TRANSACTION_SET, segment)

    def _on_transaction_header(self, segment: CdmSegment):
        if self.state not in GROUP_OPEN_STATES:
            self._unexpected(segment)
            return
        if self.state is AssemblerState.IN_TRANSACTION_SET:
            self._close_transaction_without_trailer()
        self._transaction = AssembledTransactionSet(header=segment)
        self._group.transactions.append(self._transaction)
        self._transition(AssemblerState.IN_TRANSACTION_SET, segment)

    def _on_transaction_trailer(self, segment: CdmSegment):
        if self.state is not AssemblerState.IN_TRANSACTION_SET:
            self._unexpected(segment)
            return
        transaction = self._transaction
        transaction.trailer = segment
        count_errors = validate_transaction_set_trailer(transaction.header, segment, transaction.segment_count)
        for error in count_errors:
            logger.warning(f"[STRUCTURAL ERROR] {error.message}")
        transaction.errors.extend(count_errors)
        self._transaction = None
        self._transition(AssemblerState.AWAIT_TRANSACTION_SET, segment)

    def _on_group_trailer(self, segment: CdmSegment):
        if self.state not in GROUP_OPEN_STATES:
            self._unexpected(segment)
            return
        if self.state is AssemblerState.IN_TRANSACTION_SET:
            self._close_transaction_without_trailer()
        group = self._group
        group.trailer = segment
        count_errors = validate_group_trailer(group.header, segment, len(group.transactions))
        for error in count_errors:
            logger.warning(f"[STRUCTURAL ERROR] {error.message}")
        group.errors.extend(count_errors)
        self._group = None
        self._transition(AssemblerState.AWAIT_GROUP, segment)

    def _on_interchange_trailer(self, segment: CdmSegment):
        if self.state is AssemblerState.AWAIT_INTERCHANGE:
            self._unexpected(segment)
            return
        if self.state in GROUP_OPEN_STATES:
            self._close_transaction_without_trailer()
            self._close_group_without_trailer()
        interchange = self._interchange
        interchange.trailer = segment
        count_errors = validate_interchange_trailer(interchange.header, segment, len(interchange.groups))
        for error in count_errors:
            logger.warning(f"[STRUCTURAL ERROR] {error.message}")
        interchange.errors.extend(count_errors)
        self._transition(AssemblerState.AWAIT_INTERCHANGE, segment)

    def _on_content(self, segment: CdmSegment):
        if self.state is AssemblerState.IN_TRANSACTION_SET:
            self._transaction.body.append(segment)
        elif self._group is not None:
            logger.debug(f"Segment '{segment.segment_id}' (line {segment.line_number}) is outside a transaction set. Keeping it on the group.")
            self._group.stray_segments.append(segment)
        elif self._interchange is not None:
            logger.debug(f"Segment '{segment.segment_id}' (line {segment.line_number}) is outside a group. Keeping it on the interchange.")
            self._interchange.stray_segments.append(segment)

    # --- Helpers ---

    def _transition(self, new_state: AssemblerState, segment: CdmSegment):
        logger.debug(f"[{segment.segment_id} line {segment.line_number}] {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _unexpected(self, segment: CdmSegment):
        error = CdmValidationError(
            message=f"Unexpected {segment.segment_id} segment while in state {self.state.value}",
            line_number=segment.line_number,
            segment_id=segment.segment_id,
        )
        logger.warning(f"[STRUCTURAL ERROR] {error.message} (line {segment.line_number})")
        if self._group is not None:
            self._group.errors.append(error)
            self._group.stray_segments.append(segment)
        elif self._interchange is not None:
            self._interchange.errors.append(error)
            self._interchange.stray_segments.append(segment)

    def _close_transaction_without_trailer(self):
        transaction = self._transaction
        if transaction is None:
            return
        error = CdmValidationError(
            message=f"Transaction set ({(transaction.header.get_element(2) or '').strip()}) is missing its SE trailer",
            line_number=transaction.header.line_number,
            segment_id=transaction.header.segment_id,
        )
        logger.warning(f"[STRUCTURAL ERROR] {error.message}")
        transaction.errors.append(error)
        self._transaction = None
        self.state = AssemblerState.AWAIT_TRANSACTION_SET

    def _close_group_without_trailer(self):
        group = self._group
        if group is None:
            return
        error = CdmValidationError(
            message=f"Group ({(group.header.get_element(6) or '').strip()}) is missing its GE trailer",
            line_number=group.header.line_number,
            segment_id=group.header.segment_id,
        )
        logger.warning(f"[STRUCTURAL ERROR] {error.message}")
        group.errors.append(error)
        self._group = None
        self.state = AssemblerState.AWAIT_GROUP

    def _close_open_containers(self, last_segment: CdmSegment):
        """Input ran out before the IEA trailer."""
        self._close_transaction_without_trailer()
        self._close_group_without_trailer()
        interchange = self._interchange
        if interchange is None or interchange.trailer is not None:
            return
        error = CdmValidationError(
            message=f"Interchange ({(interchange.header.get_element(13) or '').strip()}) is missing its IEA trailer",
            line_number=last_segment.line_number,
            segment_id=interchange.header.segment_id,
        )
        logger.warning(f"[STRUCTURAL ERROR] {error.message}")
        interchange.errors.append(error)
